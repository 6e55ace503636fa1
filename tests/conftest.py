"""Shared pytest fixtures for Marginalia tests."""

from pathlib import Path

import httpx
import pytest

from marginalia.auth import generate_key, register_user
from marginalia.config import Settings
from marginalia.db import create_article, get_db, init_db
from marginalia.models import ArticleRecord


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Create settings with a temporary database."""
    return Settings(db_path=tmp_path / "test_marginalia.db")


@pytest.fixture
async def db(settings: Settings):
    """Initialize database and return connection."""
    await init_db(settings.db_path)
    conn = await get_db(settings.db_path)
    yield conn
    await conn.close()


@pytest.fixture
async def user_id(db) -> int:
    """Register a user and return their id."""
    return await register_user(db, "alice", "correct horse battery staple")


@pytest.fixture
async def other_user_id(db) -> int:
    return await register_user(db, "bob", "hunter2")


@pytest.fixture
async def api_key(db, user_id) -> str:
    """Generate an API key for the default user and return the raw key."""
    return await generate_key(db, user_id, name="test-key")


@pytest.fixture
def sample_content() -> str:
    """Stored article content with nested inline markup."""
    return (
        "<h2>Intro</h2>\n"
        "<p>Hello <b>brave</b> new world.</p>\n"
        "<p>Second paragraph with <a href=\"https://example.com/x\">a link</a> inside.</p>"
    )


@pytest.fixture
async def article(db, user_id, sample_content) -> dict:
    """A saved article owned by the default user."""
    return await create_article(
        db,
        ArticleRecord(
            user_id=user_id,
            url="https://example.com/article",
            title="Example",
            content=sample_content,
            description="An example article.",
            tags=["reading"],
        ),
    )


@pytest.fixture
def sample_html() -> str:
    """A realistic article page with chrome around the body."""
    return """
    <!DOCTYPE html>
    <html>
    <head>
        <title>Example</title>
        <meta name="description" content="An example article about readable content.">
        <style>body { color: red; }</style>
    </head>
    <body>
        <nav><a href="/">Home</a> <a href="/about">About</a></nav>
        <div class="sidebar">Buy now! Limited offer on everything.</div>
        <article>
            <h1>Example</h1>
            <p>Hello world. This is the first paragraph of a long article about readable
            content extraction, written with enough words, commas, and sentences to score well.</p>
            <p>The second paragraph continues the discussion, adding more sentences, more commas,
            and more detail so that the readability scoring clearly prefers this container.</p>
            <p>Read <a href="/docs/guide">the guide</a> for more about extraction, highlights,
            and exporting your notes as Markdown documents later on.</p>
        </article>
        <footer class="footer">Copyright 2024 Example Inc.</footer>
        <script>var tracking = "should not survive";</script>
    </body>
    </html>
    """


@pytest.fixture
def mock_transport():
    """Build an httpx.MockTransport from a {url-prefix: response} mapping.

    Unmatched requests raise ConnectError.
    """

    def build(routes: dict) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            url = str(request.url)
            for prefix, response in routes.items():
                if url.startswith(prefix):
                    return response(request) if callable(response) else response
            raise httpx.ConnectError("unreachable", request=request)

        return httpx.MockTransport(handler)

    return build
