"""
Unit tests for per-rendition packaging.
"""

import pytest

from dubcast.media.artifact_pipeline import ArtifactPipeline
from dubcast.media.exceptions import TranscodeError
from dubcast.media.ffmpeg_utils import TranscodeProfile


def test_package_audio_runs_three_steps(pipeline, ffmpeg, source_video, tmp_path):
    artifacts = pipeline.package_audio("ja", source_video, tmp_path / "scratch" / "ja",
                                       tmp_path / "tree" / "audio" / "ja")

    assert ffmpeg.steps() == ["decode", "loudnorm", "audio_segment"]
    assert artifacts.init_segment.name == "init.mp4"
    assert artifacts.playlist.name == "audio.m3u8"
    assert [s.name for s in artifacts.segments] == ["a_000.m4s", "a_001.m4s"]
    # Intermediates stay out of the upload tree
    assert (tmp_path / "scratch" / "ja" / "aligned.wav").is_file()
    assert not list((tmp_path / "tree").rglob("*.wav"))


def test_segment_step_runs_in_rendition_directory(pipeline, ffmpeg, source_video, tmp_path):
    out_dir = tmp_path / "tree" / "audio" / "en"
    pipeline.package_audio("en", source_video, tmp_path / "scratch" / "en", out_dir)
    assert ffmpeg.calls[-1]["cwd"] == out_dir


def test_missing_init_segment_fails_even_on_zero_exit(pipeline, ffmpeg, source_video, tmp_path):
    ffmpeg.skip_init_markers = ["/audio/ko"]
    with pytest.raises(TranscodeError) as exc_info:
        pipeline.package_audio("ko", source_video, tmp_path / "scratch" / "ko",
                               tmp_path / "tree" / "audio" / "ko")
    assert exc_info.value.step == "verify"
    assert exc_info.value.language == "ko"


def test_runner_failure_is_tagged_with_language(pipeline, ffmpeg, source_video, tmp_path):
    ffmpeg.fail_markers = ["loudnorm="]
    with pytest.raises(TranscodeError) as exc_info:
        pipeline.package_audio("de", source_video, tmp_path / "scratch" / "de",
                               tmp_path / "tree" / "audio" / "de")
    assert exc_info.value.language == "de"
    assert exc_info.value.step == "loudnorm"


def test_missing_source(pipeline, tmp_path):
    with pytest.raises(TranscodeError, match="Source file not found"):
        pipeline.package_audio("ja", tmp_path / "nope.mp3", tmp_path / "s", tmp_path / "o")


def test_source_without_audio_stream(ffmpeg, source_video, tmp_path):
    pipeline = ArtifactPipeline(TranscodeProfile(), runner=ffmpeg,
                                prober=lambda path: {"streams": [{"codec_type": "video"}]})
    with pytest.raises(TranscodeError, match="No audio stream"):
        pipeline.extract_audio(source_video, tmp_path / "scratch")
    assert ffmpeg.calls == []


def test_package_video(pipeline, ffmpeg, source_video, tmp_path):
    artifacts = pipeline.package_video(source_video, tmp_path / "tree" / "video")
    assert ffmpeg.steps() == ["video_segment"]
    assert artifacts.playlist.name == "video.m3u8"
    assert [s.name for s in artifacts.segments] == ["v_000.m4s", "v_001.m4s"]


def test_extract_submission_audio(pipeline, source_video, tmp_path):
    path = pipeline.extract_submission_audio(source_video, tmp_path / "submit")
    assert path.name == "submit.m4a"
    assert path.is_file()


def test_verify_outputs_requires_segments(tmp_path):
    (tmp_path / "init.mp4").write_bytes(b"init")
    (tmp_path / "audio.m3u8").write_text("#EXTM3U\n")
    with pytest.raises(TranscodeError, match="No media segments"):
        ArtifactPipeline.verify_outputs(tmp_path, "audio.m3u8", "a_")
