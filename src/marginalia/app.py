"""FastAPI application for the Marginalia server."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .config import Settings
from .db import get_db, init_db
from .extraction.base import InvalidUrl
from .extraction.pipeline import ArticleExtractor
from .routes import create_router

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add standard security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cache-Control"] = "no-store"
        return response


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report schema validation failures as 400.

    A rejected article URL keeps the ``invalid_url`` kind that extraction uses.
    """
    errors = exc.errors()
    for error in errors:
        if error.get("type") == InvalidUrl.kind:
            return JSONResponse(
                status_code=400,
                content={"detail": {"error": InvalidUrl.kind, "message": error["msg"]}},
            )
    return JSONResponse(
        status_code=400,
        content={
            "detail": {
                "error": "validation_error",
                "message": "Request failed validation",
                "errors": jsonable_encoder(errors, custom_encoder={Exception: str}),
            }
        },
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage DB connection and HTTP client lifecycle."""
    settings: Settings = app.state.settings
    await init_db(settings.db_path)
    app.state.db = await get_db(settings.db_path)
    app.state.extractor = ArticleExtractor(settings)
    logger.info(f"[STARTUP] Server ready on {settings.host}:{settings.port}")
    yield
    await app.state.extractor.close()
    await app.state.db.close()
    logger.info("[STARTUP] Database connection closed")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create the FastAPI application."""
    if settings is None:
        settings = Settings()

    app = FastAPI(
        title="Marginalia",
        description="Read-it-later articles with highlights and notes",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings

    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.add_middleware(SecurityHeadersMiddleware)

    # Auth is Bearer-token-based (not cookie-based), so a wildcard
    # origin does not widen the attack surface.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )

    app.include_router(create_router())

    return app
