"""Tests for URL validation and strategy classification."""

import pytest

from marginalia.extraction import (
    Document,
    InvalidUrl,
    InvalidVideoUrl,
    Video,
    classify,
    extract_video_id,
    validate_url,
)
from marginalia.extraction.classifier import is_video_url


class TestValidateUrl:
    def test_accepts_http_and_https(self):
        assert validate_url("https://example.com/a") == "https://example.com/a"
        assert validate_url("http://example.com") == "http://example.com"

    def test_strips_whitespace(self):
        assert validate_url("  https://example.com/a \n") == "https://example.com/a"

    @pytest.mark.parametrize(
        "url",
        ["", "example.com", "ftp://example.com/file", "javascript:alert(1)", "https://", "/relative/path"],
    )
    def test_rejects_invalid(self, url):
        with pytest.raises(InvalidUrl) as exc:
            validate_url(url)
        assert exc.value.kind == "invalid_url"


class TestVideoId:
    def test_watch_url(self):
        assert extract_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ") == "dQw4w9WgXcQ"

    def test_watch_url_with_extra_params(self):
        url = "https://www.youtube.com/watch?list=PL123&v=dQw4w9WgXcQ&t=42s"
        assert extract_video_id(url) == "dQw4w9WgXcQ"

    def test_short_url(self):
        assert extract_video_id("https://youtu.be/dQw4w9WgXcQ") == "dQw4w9WgXcQ"

    def test_short_url_ignores_query(self):
        assert extract_video_id("https://youtu.be/dQw4w9WgXcQ?t=10") == "dQw4w9WgXcQ"

    @pytest.mark.parametrize("path", ["embed", "shorts", "live"])
    def test_path_forms(self, path):
        assert extract_video_id(f"https://www.youtube.com/{path}/dQw4w9WgXcQ") == "dQw4w9WgXcQ"

    def test_missing_v_param(self):
        with pytest.raises(InvalidVideoUrl):
            extract_video_id("https://www.youtube.com/watch")

    def test_empty_v_param(self):
        with pytest.raises(InvalidVideoUrl):
            extract_video_id("https://www.youtube.com/watch?v=")

    def test_short_url_without_id(self):
        with pytest.raises(InvalidVideoUrl):
            extract_video_id("https://youtu.be/")


class TestClassify:
    def test_video_hosts(self):
        assert is_video_url("https://m.youtube.com/watch?v=abc")
        assert is_video_url("https://YOUTU.BE/abc")
        assert not is_video_url("https://example.com/youtube.com")

    def test_classify_video(self):
        assert classify("https://www.youtube.com/watch?v=dQw4w9WgXcQ") == Video("dQw4w9WgXcQ")

    def test_classify_document(self):
        assert classify("https://example.com/post") == Document()

    def test_classify_video_without_id_raises(self):
        with pytest.raises(InvalidVideoUrl) as exc:
            classify("https://www.youtube.com/feed/subscriptions")
        assert exc.value.to_detail()["error"] == "invalid_video_url"
