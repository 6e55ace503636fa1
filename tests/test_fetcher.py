"""Tests for the HTTP fetcher."""

import asyncio

import httpx
import pytest

from marginalia.extraction import FetchFailed
from marginalia.extraction.fetcher import Fetcher, decode_body


@pytest.fixture
def fetcher(settings):
    return Fetcher(settings)


def _install(fetcher: Fetcher, transport: httpx.MockTransport) -> None:
    fetcher._client = httpx.AsyncClient(transport=transport, follow_redirects=True)


class TestFetch:
    async def test_success(self, fetcher, mock_transport):
        _install(
            fetcher,
            mock_transport({"https://example.com/post": httpx.Response(200, html="<p>Hi</p>")}),
        )
        page = await fetcher.fetch("https://example.com/post")
        assert page.status_code == 200
        assert page.text == "<p>Hi</p>"
        assert page.final_url == "https://example.com/post"
        await fetcher.close()

    async def test_follows_redirects(self, fetcher, mock_transport):
        _install(
            fetcher,
            mock_transport(
                {
                    "https://example.com/old": httpx.Response(
                        301, headers={"Location": "https://example.com/new"}
                    ),
                    "https://example.com/new": httpx.Response(200, html="<p>Moved</p>"),
                }
            ),
        )
        page = await fetcher.fetch("https://example.com/old")
        assert page.final_url == "https://example.com/new"
        await fetcher.close()

    async def test_not_found(self, fetcher, mock_transport):
        _install(fetcher, mock_transport({"https://example.com/": httpx.Response(404)}))
        with pytest.raises(FetchFailed) as exc:
            await fetcher.fetch("https://example.com/missing")
        assert exc.value.status_code == 404
        assert exc.value.kind == "fetch_failed"
        assert "404" in exc.value.message
        await fetcher.close()

    async def test_server_error(self, fetcher, mock_transport):
        _install(fetcher, mock_transport({"https://example.com/": httpx.Response(503)}))
        with pytest.raises(FetchFailed) as exc:
            await fetcher.fetch("https://example.com/")
        assert exc.value.status_code == 503
        await fetcher.close()

    async def test_timeout(self, fetcher):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        _install(fetcher, httpx.MockTransport(handler))
        with pytest.raises(FetchFailed) as exc:
            await fetcher.fetch("https://example.com/slow")
        assert "timed out" in exc.value.message
        await fetcher.close()

    async def test_connection_error(self, fetcher, mock_transport):
        _install(fetcher, mock_transport({}))
        with pytest.raises(FetchFailed) as exc:
            await fetcher.fetch("https://unreachable.example/")
        assert exc.value.status_code is None
        await fetcher.close()

    async def test_oversized_body(self, settings, mock_transport):
        settings.max_content_bytes = 100
        fetcher = Fetcher(settings)
        _install(fetcher, mock_transport({"https://example.com/": httpx.Response(200, text="x" * 500)}))
        with pytest.raises(FetchFailed, match="too large"):
            await fetcher.fetch("https://example.com/big")
        await fetcher.close()

    async def test_oversized_stream_without_length(self, settings):
        settings.max_content_bytes = 100

        async def chunks():
            for _ in range(10):
                yield b"x" * 50

        fetcher = Fetcher(settings)
        _install(fetcher, httpx.MockTransport(lambda request: httpx.Response(200, content=chunks())))
        with pytest.raises(FetchFailed, match="too large"):
            await fetcher.fetch("https://example.com/endless")
        await fetcher.close()

    async def test_overall_deadline(self, settings):
        settings.fetch_timeout = 0.05

        async def handler(request):
            await asyncio.sleep(1)
            return httpx.Response(200, html="<p>late</p>")

        fetcher = Fetcher(settings)
        _install(fetcher, httpx.MockTransport(handler))
        with pytest.raises(FetchFailed) as exc:
            await fetcher.fetch("https://example.com/trickle")
        assert "timed out" in exc.value.message
        await fetcher.close()


class TestCharset:
    async def test_meta_charset_without_header_charset(self, fetcher):
        body = '<html><head><meta charset="iso-8859-1"></head><body><p>café crème</p></body></html>'
        _install(
            fetcher,
            httpx.MockTransport(
                lambda request: httpx.Response(
                    200, headers={"content-type": "text/html"}, content=body.encode("latin-1")
                )
            ),
        )
        page = await fetcher.fetch("https://example.com/latin")
        assert "<p>café crème</p>" in page.text
        assert "�" not in page.text
        assert page.content == body.encode("latin-1")
        await fetcher.close()

    def test_header_charset_wins(self):
        body = '<meta charset="utf-8"><p>café</p>'.encode("latin-1")
        assert decode_body(body, "iso-8859-1").endswith("<p>café</p>")

    def test_utf8_default(self):
        assert decode_body("<p>naïve</p>".encode("utf-8")) == "<p>naïve</p>"


class TestClientLifecycle:
    async def test_client_is_reused(self, fetcher):
        assert fetcher.get_client() is fetcher.get_client()
        await fetcher.close()

    async def test_close_then_recreate(self, fetcher):
        first = fetcher.get_client()
        await fetcher.close()
        assert first.is_closed
        second = fetcher.get_client()
        assert second is not first
        await fetcher.close()
