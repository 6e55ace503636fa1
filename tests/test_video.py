"""Tests for YouTube oEmbed extraction."""

import httpx
import pytest
from bs4 import BeautifulSoup

from marginalia.extraction import FetchFailed, MetadataFetchFailed
from marginalia.extraction.video import EMBED_BASE_URL, VideoExtractor, build_embed_html

VIDEO_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


class TestBuildEmbedHtml:
    def test_iframe_points_at_embed_url(self):
        soup = BeautifulSoup(build_embed_html("dQw4w9WgXcQ", title="Song"), "html.parser")
        iframe = soup.find("iframe")
        assert iframe["src"] == EMBED_BASE_URL + "dQw4w9WgXcQ"
        assert iframe["src"].endswith("/embed/dQw4w9WgXcQ")
        assert iframe.has_attr("allowfullscreen")
        assert soup.find("div", class_="video-embed") is not None

    def test_description_is_escaped(self):
        html = build_embed_html("abc", description="<b>bold</b> & more")
        assert "<p>&lt;b&gt;bold&lt;/b&gt; &amp; more</p>" in html

    def test_empty_description(self):
        assert build_embed_html("abc").endswith("<p></p>")


class TestVideoExtractor:
    async def test_extract(self, settings):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(
                200,
                json={"title": "Never Gonna Give You Up", "author_name": "Rick Astley"},
            )

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            article = await VideoExtractor(settings, client).extract(VIDEO_URL, "dQw4w9WgXcQ")

        assert seen["params"] == {"url": VIDEO_URL, "format": "json"}
        assert article.title == "Never Gonna Give You Up"
        assert article.strategy == "video"
        assert article.description == ""
        assert 'src="https://www.youtube.com/embed/dQw4w9WgXcQ"' in article.content

    async def test_description_carried_through(self, settings):
        payload = {"title": "Talk", "description": "A talk about <parsers>"}

        async with httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=payload))
        ) as client:
            article = await VideoExtractor(settings, client).extract(VIDEO_URL, "dQw4w9WgXcQ")

        assert article.description == "A talk about <parsers>"
        assert "<p>A talk about &lt;parsers&gt;</p>" in article.content

    async def test_non_2xx(self, settings):
        async with httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(401))
        ) as client:
            with pytest.raises(MetadataFetchFailed) as exc:
                await VideoExtractor(settings, client).extract(VIDEO_URL, "dQw4w9WgXcQ")

        assert exc.value.kind == "metadata_fetch_failed"
        assert exc.value.status_code == 401

    async def test_transport_error(self, settings):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(MetadataFetchFailed):
                await VideoExtractor(settings, client).fetch_metadata(VIDEO_URL)

    async def test_invalid_json(self, settings):
        async with httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="not json"))
        ) as client:
            with pytest.raises(MetadataFetchFailed, match="JSON"):
                await VideoExtractor(settings, client).fetch_metadata(VIDEO_URL)

    def test_metadata_failure_is_a_fetch_failure(self):
        assert issubclass(MetadataFetchFailed, FetchFailed)
        assert MetadataFetchFailed().to_detail() == {
            "error": "metadata_fetch_failed",
            "message": "Could not fetch video metadata",
        }
