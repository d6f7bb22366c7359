"""
Unit tests for configuration loading and settings accessors.
"""

from unittest.mock import patch

import pytest

from dubcast import settings
from dubcast.config.config_loader import ConfigLoader


@pytest.fixture
def user_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "hls:\n"
        "  segment_duration: 6\n"
        "dubbing:\n"
        "  poll:\n"
        "    max_attempts: 10\n",
        encoding="utf-8",
    )
    return path


def test_defaults_are_loaded(tmp_path):
    loader = ConfigLoader(str(tmp_path / "missing.yaml"))
    assert loader.get("hls", "group_id") == "aud"
    assert loader.get("hls.segment_duration") == 4
    assert loader.get("transcode", "audio", "loudnorm") == "I=-16:LRA=11:TP=-1.5"
    assert loader.get("nope", default="x") == "x"


def test_user_config_is_merged(user_config):
    loader = ConfigLoader(str(user_config))
    assert loader.get("hls", "segment_duration") == 6
    # Untouched siblings survive the merge
    assert loader.get("hls", "group_id") == "aud"
    assert loader.get("dubbing", "poll", "max_attempts") == 10
    assert loader.get("dubbing", "poll", "interval_seconds") == 5


def test_env_override_with_underscored_keys(user_config, monkeypatch):
    monkeypatch.setenv("DUBCAST_DUBBING_API_KEY", "secret")
    monkeypatch.setenv("DUBCAST_DUBBING_POLL_MAX_ATTEMPTS", "60")
    monkeypatch.setenv("DUBCAST_PIPELINE_FORCE_REGENERATE_VIDEO", "true")
    monkeypatch.setenv("DUBCAST_HLS_DEFAULT_PRIORITY_LANGUAGES", "ko,ja")
    loader = ConfigLoader(str(user_config))
    assert loader.get("dubbing", "api_key") == "secret"
    assert loader.get("dubbing", "poll", "max_attempts") == 60
    assert loader.get("pipeline", "force_regenerate_video") is True
    assert loader.get("hls", "default_priority_languages") == ["ko", "ja"]


def test_invalid_yaml_falls_back_to_defaults(tmp_path):
    bad = tmp_path / "config.yaml"
    bad.write_text("hls: [unclosed\n", encoding="utf-8")
    loader = ConfigLoader(str(bad))
    assert loader.get("hls", "segment_duration") == 4


def test_poll_attempts_accessor_validates():
    with patch.object(settings, "get_dubbing_config", return_value={"poll": {"max_attempts": "abc"}}):
        assert settings.get_dub_poll_max_attempts() == 120
    with patch.object(settings, "get_dubbing_config", return_value={"poll": {"max_attempts": 0}}):
        assert settings.get_dub_poll_max_attempts() == 1


def test_secret_falls_back_to_conventional_env(monkeypatch):
    monkeypatch.setenv("ELEVENLABS_API_KEY", "from-env")
    with patch.object(settings, "get_dubbing_config", return_value={"api_key": None}):
        assert settings.get_dubbing_api_key() == "from-env"
