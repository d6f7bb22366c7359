"""
Unit tests for source resolution and language validation.
"""

from unittest.mock import MagicMock, Mock

import pytest
import requests

from dubcast.exceptions import SourceError, UnsupportedLanguageError, ValidationError
from dubcast.languages import normalize_languages
from dubcast.services.source_fetcher import fetch_source, is_remote, validate_source


class TestLanguages:
    def test_normalize(self):
        assert normalize_languages([" JA", "en", "ja", "origin"]) == ["ja", "en", "origin"]

    def test_empty(self):
        with pytest.raises(ValidationError):
            normalize_languages([])

    def test_unsupported(self):
        with pytest.raises(UnsupportedLanguageError) as exc_info:
            normalize_languages(["en", "klingon", "xx"])
        assert exc_info.value.languages == ["klingon", "xx"]
        assert exc_info.value.field == "target_languages"


class TestValidateSource:
    def test_remote_url_is_accepted(self):
        assert validate_source(" https://example.com/a.mp4 ") == "https://example.com/a.mp4"

    def test_local_file(self, source_video):
        assert validate_source(str(source_video)) == str(source_video)

    @pytest.mark.parametrize("source", [None, "", "   ", "/does/not/exist.mp4"])
    def test_rejected(self, source):
        with pytest.raises(ValidationError) as exc_info:
            validate_source(source)
        assert exc_info.value.field == "source_url"


class TestFetchSource:
    def test_local_path_used_in_place(self, source_video, tmp_path):
        assert fetch_source(str(source_video), tmp_path / "dl") == source_video
        assert not (tmp_path / "dl").exists()

    def test_download(self, tmp_path):
        response = MagicMock()
        response.__enter__.return_value = response
        response.iter_content.return_value = [b"abc", b"", b"def"]
        session = Mock()
        session.get.return_value = response

        path = fetch_source("https://cdn.example.com/videos/lesson.mov", tmp_path / "dl", session=session)

        assert path == tmp_path / "dl" / "source.mov"
        assert path.read_bytes() == b"abcdef"
        assert session.get.call_args[1]["stream"] is True

    def test_download_failure(self, tmp_path):
        session = Mock()
        session.get.side_effect = requests.ConnectionError("refused")
        with pytest.raises(SourceError):
            fetch_source("https://cdn.example.com/lesson.mp4", tmp_path, session=session)

    def test_missing_local_file(self, tmp_path):
        with pytest.raises(SourceError):
            fetch_source(str(tmp_path / "gone.mp4"), tmp_path)

    def test_is_remote(self):
        assert is_remote("http://x/y.mp4")
        assert not is_remote("/srv/y.mp4")
