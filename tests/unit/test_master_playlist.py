"""
Unit tests for the master playlist codec.
"""

import itertools

import pytest

from dubcast.hls import (
    AudioEntry,
    ManifestParseError,
    MasterPlaylistCodec,
    VideoEntry,
    audio_uri,
    parse,
)

VIDEO = VideoEntry(bandwidth=2500000, resolution="1920x1080",
                   codecs="avc1.4d401f,mp4a.40.2", uri="video/video.m3u8")


@pytest.fixture
def codec():
    return MasterPlaylistCodec()


def _media_lines(text):
    return [line for line in text.splitlines() if line.startswith("#EXT-X-MEDIA:")]


def _default_lines(text):
    return [line for line in _media_lines(text) if "DEFAULT=YES" in line]


class TestBuild:
    def test_exact_output_with_origin(self, codec):
        text = codec.build_for_languages(VIDEO, ["ja", "origin"])
        assert text == (
            '#EXTM3U\n'
            '#EXT-X-VERSION:7\n'
            '#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aud",NAME="ORIGIN",LANGUAGE="origin",'
            'AUTOSELECT=YES,DEFAULT=YES,URI="audio/origin/audio.m3u8"\n'
            '#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aud",NAME="ja",LANGUAGE="ja",'
            'AUTOSELECT=YES,DEFAULT=NO,URI="audio/ja/audio.m3u8"\n'
            '#EXT-X-STREAM-INF:BANDWIDTH=2500000,CODECS="avc1.4d401f,mp4a.40.2",'
            'RESOLUTION=1920x1080,AUDIO="aud"\n'
            'video/video.m3u8\n'
        )

    def test_origin_sorts_first_then_by_code(self, codec):
        text = codec.build_for_languages(VIDEO, ["zh", "en", "origin", "de"])
        languages = [parse(text).audios[i].language for i in range(4)]
        assert languages == ["origin", "de", "en", "zh"]

    def test_priority_language_is_default_without_origin(self, codec):
        text = codec.build_for_languages(VIDEO, ["en", "ko", "ja"])
        assert parse(text).default_audio.language == "ja"

    def test_second_priority_language(self, codec):
        text = codec.build_for_languages(VIDEO, ["en", "ko"])
        assert parse(text).default_audio.language == "ko"

    def test_falls_back_to_first_in_sort_order(self, codec):
        text = codec.build_for_languages(VIDEO, ["fr", "de"])
        assert parse(text).default_audio.language == "de"

    def test_determinism_regardless_of_input_order(self, codec):
        entries = codec.audio_entries_for(["origin", "en", "ja", "zh"])
        outputs = {codec.build(VIDEO, list(p)) for p in itertools.permutations(entries)}
        assert len(outputs) == 1

    @pytest.mark.parametrize("languages", [
        ["en"], ["origin"], ["en", "ja"], ["fr", "de", "es"], ["origin", "ko", "ja"],
    ])
    def test_exactly_one_default(self, codec, languages):
        text = codec.build_for_languages(VIDEO, languages)
        assert len(_default_lines(text)) == 1

    @pytest.mark.parametrize("languages", [
        [], ["en"], ["origin", "ja", "en"], ["zh", "ko", "vi", "th"],
    ])
    def test_round_trip_language_set(self, codec, languages):
        parsed = parse(codec.build_for_languages(VIDEO, languages))
        assert parsed.languages == set(languages)
        assert parsed.video == VIDEO
        assert parsed.version == 7

    def test_empty_audio_set_still_lists_video(self, codec):
        text = codec.build_for_languages(VIDEO, [])
        assert _media_lines(text) == []
        assert text.endswith("video/video.m3u8\n")

    def test_rejects_two_defaults(self, codec):
        entries = [
            AudioEntry("en", "en", audio_uri("en"), is_default=True),
            AudioEntry("ja", "ja", audio_uri("ja"), is_default=True),
        ]
        with pytest.raises(ValueError):
            codec.build(VIDEO, entries)

    def test_rejects_no_default(self, codec):
        with pytest.raises(ValueError):
            codec.build(VIDEO, [AudioEntry("en", "en", audio_uri("en"))])

    def test_rejects_duplicate_language(self, codec):
        entries = [
            AudioEntry("en", "en", audio_uri("en"), is_default=True),
            AudioEntry("en", "English", audio_uri("en")),
        ]
        with pytest.raises(ValueError):
            codec.build(VIDEO, entries)

    def test_custom_group_and_names(self):
        codec = MasterPlaylistCodec(group_id="dub", origin_name="Original",
                                    default_priority_languages=["en"])
        video = VideoEntry(1000, "640x360", "avc1.42e01e", "video/video.m3u8", audio_group="dub")
        text = codec.build_for_languages(video, ["ja", "en"])
        assert 'GROUP-ID="dub"' in text
        assert parse(text).default_audio.language == "en"


class TestAppendAudioIfAbsent:
    def test_inserts_before_stream_line(self, codec):
        existing = codec.build_for_languages(VIDEO, ["origin", "ja"])
        entry = AudioEntry("en", "en", audio_uri("en"))
        patched = codec.append_audio_if_absent(existing, entry)

        lines = patched.splitlines()
        stream_index = next(i for i, l in enumerate(lines) if l.startswith("#EXT-X-STREAM-INF"))
        assert 'LANGUAGE="en"' in lines[stream_index - 1]
        assert parse(patched).languages == {"origin", "ja", "en"}

    def test_preserves_other_lines_verbatim(self, codec):
        existing = (
            "#EXTM3U\n"
            "#EXT-X-VERSION:7\n"
            "# hand edited\n"
            "#EXT-X-INDEPENDENT-SEGMENTS\n"
            '#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aud",NAME="ja",LANGUAGE="ja",AUTOSELECT=YES,DEFAULT=YES,URI="audio/ja/audio.m3u8"\n'
            '#EXT-X-STREAM-INF:BANDWIDTH=2500000,CODECS="avc1.4d401f,mp4a.40.2",RESOLUTION=1920x1080,AUDIO="aud"\n'
            "video/video.m3u8\n"
        )
        patched = codec.append_audio_if_absent(existing, AudioEntry("en", "en", audio_uri("en")))
        original_lines = existing.splitlines()
        patched_lines = patched.splitlines()
        assert len(patched_lines) == len(original_lines) + 1
        for line in original_lines:
            assert line in patched_lines
        assert patched.endswith("\n")

    def test_idempotent(self, codec):
        existing = codec.build_for_languages(VIDEO, ["ja"])
        entry = AudioEntry("en", "en", audio_uri("en"))
        once = codec.append_audio_if_absent(existing, entry)
        twice = codec.append_audio_if_absent(once, entry)
        assert once == twice

    def test_matches_by_language_not_name(self, codec):
        existing = codec.build_for_languages(VIDEO, ["en"])
        entry = AudioEntry("en", "English", audio_uri("en"))
        assert codec.append_audio_if_absent(existing, entry) == existing

    def test_appends_at_end_without_stream_line(self, codec):
        existing = "#EXTM3U\n#EXT-X-VERSION:7\n"
        patched = codec.append_audio_if_absent(existing, AudioEntry("en", "en", audio_uri("en")))
        assert patched.splitlines()[-1].startswith("#EXT-X-MEDIA:")
        assert patched.endswith("\n")
        # First audio rendition becomes the default
        assert parse(patched).default_audio.language == "en"

    def test_default_entry_demoted_when_default_exists(self, codec):
        existing = codec.build_for_languages(VIDEO, ["ja"])
        entry = AudioEntry("origin", "ORIGIN", audio_uri("origin"), is_default=True)
        patched = codec.append_audio_if_absent(existing, entry)
        assert len(_default_lines(patched)) == 1
        assert parse(patched).default_audio.language == "ja"

    def test_raises_on_unparseable_input(self, codec):
        with pytest.raises(ManifestParseError):
            codec.append_audio_if_absent("not a playlist", AudioEntry("en", "en", audio_uri("en")))


class TestParse:
    def test_missing_header(self):
        with pytest.raises(ManifestParseError) as exc_info:
            parse("#EXT-X-VERSION:7\n")
        assert exc_info.value.line_number == 1

    def test_empty_text(self):
        with pytest.raises(ManifestParseError):
            parse("")

    def test_malformed_attribute_list(self):
        with pytest.raises(ManifestParseError):
            parse('#EXTM3U\n#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aud,LANGUAGE="en"\n')

    def test_audio_without_language(self):
        with pytest.raises(ManifestParseError):
            parse('#EXTM3U\n#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aud",URI="a.m3u8"\n')

    def test_stream_without_uri(self):
        with pytest.raises(ManifestParseError):
            parse('#EXTM3U\n#EXT-X-STREAM-INF:BANDWIDTH=1,AUDIO="aud"\n')

    def test_stray_uri_line(self):
        with pytest.raises(ManifestParseError):
            parse("#EXTM3U\nvideo/video.m3u8\n")

    def test_invalid_default_value(self):
        with pytest.raises(ManifestParseError):
            parse('#EXTM3U\n#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID="aud",LANGUAGE="en",DEFAULT=MAYBE,URI="a.m3u8"\n')

    def test_accepts_bom_and_crlf(self, codec):
        text = "\ufeff" + codec.build_for_languages(VIDEO, ["en", "ja"]).replace("\n", "\r\n")
        assert parse(text).languages == {"en", "ja"}

    def test_subtitle_media_lines_are_ignored(self):
        text = (
            '#EXTM3U\n'
            '#EXT-X-MEDIA:TYPE=SUBTITLES,GROUP-ID="subs",NAME="en",LANGUAGE="en",URI="subs/en.m3u8"\n'
        )
        assert parse(text).audios == []
