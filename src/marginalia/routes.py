"""Marginalia API routes."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request, Response
from fastapi.responses import PlainTextResponse

from . import db as db_ops
from .annotate import capture_text, content_text, render_highlights
from .auth import AuthError, authenticate_user, generate_key, register_user, validate_key
from .export import article_to_markdown, export_filename
from .extraction import ExtractionError
from .extraction.pipeline import build_article_record
from .models import (
    AnchorIn,
    ArticleIn,
    ArticleOut,
    ArticleUpdate,
    HighlightIn,
    HighlightOut,
    HighlightUpdate,
    PreferencesIn,
    PreferencesOut,
    TokenOut,
    UserIn,
)

logger = logging.getLogger(__name__)


def _normalize(text: str) -> str:
    return " ".join(text.split())


def _check_span(text: str, start: int, end: int, claimed: Optional[str]) -> str:
    """Validate a span against canonical text and return the covered substring."""
    if not 0 <= start < end <= len(text):
        raise HTTPException(
            400,
            {
                "error": "invalid_offsets",
                "message": f"Offsets must satisfy 0 <= start < end <= {len(text)}",
            },
        )
    actual = text[start:end]
    if claimed and _normalize(claimed) != _normalize(actual):
        raise HTTPException(
            400,
            {
                "error": "text_mismatch",
                "message": "Highlight text does not match the article at the given offsets",
            },
        )
    return actual


def create_router() -> APIRouter:
    """Create the API router."""
    router = APIRouter()

    async def _get_db(request: Request):
        """Get DB connection from app state."""
        return request.app.state.db

    async def _authenticate(request: Request) -> int:
        """Validate the Authorization header and return the caller's user id."""
        auth_header = request.headers.get("Authorization", "")
        if not auth_header:
            raise HTTPException(401, "Unauthorized")

        db = await _get_db(request)
        try:
            key_record = await validate_key(db, auth_header)
        except AuthError:
            raise HTTPException(401, "Unauthorized")
        return key_record["user_id"]

    async def _owned_article(request: Request, article_id: int, user_id: int) -> dict:
        # Missing and not-owned are indistinguishable to the caller
        article = await db_ops.get_article(await _get_db(request), article_id, user_id)
        if not article:
            raise HTTPException(404, "Article not found")
        return article

    @router.get("/health")
    async def health():
        """Health check (no auth required)."""
        return {"status": "ok", "service": "marginalia"}

    # --- Accounts ---

    @router.post("/api/register", status_code=201)
    async def register(request: Request, body: UserIn):
        db = await _get_db(request)
        try:
            user_id = await register_user(db, body.username, body.password)
        except AuthError as e:
            raise HTTPException(409, str(e))
        api_key = await generate_key(db, user_id, name="register")
        return TokenOut(user_id=user_id, username=body.username.strip(), api_key=api_key)

    @router.post("/api/login")
    async def login(request: Request, body: UserIn):
        db = await _get_db(request)
        try:
            user = await authenticate_user(db, body.username, body.password)
        except AuthError:
            raise HTTPException(401, "Unauthorized")
        api_key = await generate_key(db, user["id"], name="login")
        return TokenOut(user_id=user["id"], username=user["username"], api_key=api_key)

    # --- Articles ---

    @router.get("/api/articles")
    async def list_articles(request: Request, archived: Optional[bool] = None):
        user_id = await _authenticate(request)
        rows = await db_ops.list_articles(await _get_db(request), user_id, archived=archived)
        return [ArticleOut(**row) for row in rows]

    @router.post("/api/articles", status_code=201)
    async def create_article(request: Request, body: ArticleIn):
        """Fetch, extract and save an article. Nothing is stored on failure."""
        user_id = await _authenticate(request)
        extractor = request.app.state.extractor

        try:
            extracted = await extractor.extract(body.url)
        except ExtractionError as e:
            logger.info(f"[API] Save of {body.url} failed: {e.kind}: {e.message}")
            raise HTTPException(400, e.to_detail())

        record = build_article_record(user_id, body, extracted)
        article = await db_ops.create_article(await _get_db(request), record)

        logger.info(f"[API] Article {article['id']} saved for user {user_id} ({extracted.strategy})")
        return ArticleOut(**article)

    @router.get("/api/articles/{article_id}")
    async def get_article(request: Request, article_id: int):
        user_id = await _authenticate(request)
        return ArticleOut(**await _owned_article(request, article_id, user_id))

    @router.patch("/api/articles/{article_id}")
    async def update_article(request: Request, article_id: int, body: ArticleUpdate):
        user_id = await _authenticate(request)
        await _owned_article(request, article_id, user_id)
        updated = await db_ops.update_article(
            await _get_db(request), article_id, user_id, body.model_dump(exclude_none=True)
        )
        return ArticleOut(**updated)

    @router.delete("/api/articles/{article_id}", status_code=204)
    async def delete_article(request: Request, article_id: int):
        user_id = await _authenticate(request)
        if not await db_ops.delete_article(await _get_db(request), article_id, user_id):
            raise HTTPException(404, "Article not found")
        logger.info(f"[API] Article {article_id} deleted with its highlights")
        return Response(status_code=204)

    @router.get("/api/articles/{article_id}/rendered")
    async def rendered_article(request: Request, article_id: int):
        """Article content with every highlight applied as inline spans."""
        user_id = await _authenticate(request)
        article = await _owned_article(request, article_id, user_id)
        highlights = await db_ops.get_highlights(await _get_db(request), article_id)
        return {
            "id": article_id,
            "content": render_highlights(article["content"], highlights),
            "highlight_count": len(highlights),
        }

    @router.get("/api/articles/{article_id}/markdown")
    async def article_markdown(request: Request, article_id: int):
        user_id = await _authenticate(request)
        article = await _owned_article(request, article_id, user_id)
        highlights = await db_ops.get_highlights(await _get_db(request), article_id)
        return PlainTextResponse(
            article_to_markdown(article, highlights),
            media_type="text/markdown; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{export_filename(article)}"'},
        )

    # --- Highlights ---

    @router.get("/api/articles/{article_id}/highlights")
    async def list_highlights(request: Request, article_id: int):
        user_id = await _authenticate(request)
        await _owned_article(request, article_id, user_id)
        rows = await db_ops.get_highlights(await _get_db(request), article_id)
        return [HighlightOut(**row) for row in rows]

    @router.post("/api/articles/{article_id}/highlights", status_code=201)
    async def create_highlight(request: Request, article_id: int, body: HighlightIn):
        user_id = await _authenticate(request)
        article = await _owned_article(request, article_id, user_id)

        text = _check_span(content_text(article["content"]), body.start, body.end, body.text)
        highlight = await db_ops.create_highlight(
            await _get_db(request),
            article_id=article_id,
            user_id=user_id,
            text=text,
            start_offset=body.start,
            end_offset=body.end,
            color=body.color,
            note=body.note,
        )

        logger.info(
            f"[HIGHLIGHT] Highlight {highlight['id']} on article {article_id} "
            f"[{body.start}, {body.end})"
        )
        return HighlightOut(**highlight)

    @router.post("/api/articles/{article_id}/highlights/anchor")
    async def anchor_highlight(request: Request, article_id: int, body: AnchorIn):
        """Find offsets for quoted text without saving anything."""
        user_id = await _authenticate(request)
        article = await _owned_article(request, article_id, user_id)

        captured = capture_text(article["content"], body.text, body.occurrence)
        if captured is None:
            raise HTTPException(404, "Text not found in article")
        return captured.to_payload()

    @router.patch("/api/highlights/{highlight_id}")
    async def update_highlight(request: Request, highlight_id: int, body: HighlightUpdate):
        user_id = await _authenticate(request)
        db = await _get_db(request)

        highlight = await db_ops.get_highlight(db, highlight_id, user_id)
        if not highlight:
            raise HTTPException(404, "Highlight not found")

        changes = body.model_dump(exclude_none=True)
        if body.start_offset is not None:
            article = await _owned_article(request, highlight["article_id"], user_id)
            start, end = int(body.start_offset), int(body.end_offset)
            changes["text"] = _check_span(content_text(article["content"]), start, end, body.text)
            changes["start_offset"] = start
            changes["end_offset"] = end
        else:
            # Text only follows the span; it is not edited on its own
            changes.pop("text", None)

        updated = await db_ops.update_highlight(db, highlight_id, user_id, changes)
        return HighlightOut(**updated)

    @router.delete("/api/highlights/{highlight_id}", status_code=204)
    async def delete_highlight(request: Request, highlight_id: int):
        user_id = await _authenticate(request)
        if not await db_ops.delete_highlight(await _get_db(request), highlight_id, user_id):
            raise HTTPException(404, "Highlight not found")
        return Response(status_code=204)

    # --- Preferences ---

    @router.get("/api/preferences")
    async def get_preferences(request: Request):
        user_id = await _authenticate(request)
        return PreferencesOut(**await db_ops.get_preferences(await _get_db(request), user_id))

    @router.patch("/api/preferences")
    async def update_preferences(request: Request, body: PreferencesIn):
        user_id = await _authenticate(request)
        prefs = await db_ops.update_preferences(
            await _get_db(request), user_id, body.model_dump(exclude_none=True)
        )
        return PreferencesOut(**prefs)

    return router
