"""Marginalia CLI for accounts, extraction checks, exports and the server."""

import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path

import click

from .config import Settings
from .logging_config import setup_colored_logging

logger = logging.getLogger(__name__)


def _run_async(coro):
    """Run an async function synchronously."""
    return asyncio.run(coro)


@click.group()
@click.option(
    "--db",
    "db_path",
    default=None,
    type=click.Path(),
    help="Database path (default: from MARGINALIA_DB_PATH or data/marginalia.db)",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, db_path, verbose):
    """Marginalia - save articles, highlight them, export them."""
    ctx.ensure_object(dict)
    settings = Settings()
    if db_path:
        settings.db_path = Path(db_path)
    ctx.obj["settings"] = settings
    ctx.obj["verbose"] = verbose


@cli.command("init-db")
@click.pass_context
def init_db_cmd(ctx):
    """Initialize the database tables."""
    from .db import init_db

    settings = ctx.obj["settings"]
    _run_async(init_db(settings.db_path))
    click.echo(f"Database initialized at {settings.db_path}")


@cli.command("create-user")
@click.option("--username", required=True, help="Login name")
@click.password_option(help="Password (prompted if omitted)")
@click.pass_context
def create_user_cmd(ctx, username, password):
    """Create a user and print their first API key."""
    from .auth import AuthError, generate_key, register_user
    from .db import get_db, init_db

    settings = ctx.obj["settings"]

    async def run():
        await init_db(settings.db_path)
        db = await get_db(settings.db_path)
        try:
            user_id = await register_user(db, username, password)
            return user_id, await generate_key(db, user_id, name="cli")
        finally:
            await db.close()

    try:
        user_id, raw_key = _run_async(run())
    except AuthError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo("")
    click.echo("User created. Save the API key now; it cannot be retrieved later.")
    click.echo("")
    click.echo(f"  User:   {username} ({user_id})")
    click.echo(f"  Key:    {raw_key}")
    click.echo("")


@cli.command("generate-key")
@click.option("--username", required=True, help="Owner of the new key")
@click.option("--name", default="cli", help="Name for this key (e.g. 'browser-extension')")
@click.pass_context
def generate_key_cmd(ctx, username, name):
    """Generate a new API key for an existing user."""
    from .auth import generate_key
    from .db import find_user_by_username, get_db

    settings = ctx.obj["settings"]

    async def run():
        db = await get_db(settings.db_path)
        try:
            user = await find_user_by_username(db, username)
            if not user:
                return None
            return await generate_key(db, user["id"], name=name)
        finally:
            await db.close()

    raw_key = _run_async(run())
    if raw_key is None:
        click.echo(f"No user named '{username}'.", err=True)
        sys.exit(1)

    click.echo(f"  Key:    {raw_key}")


@cli.command("list-keys")
@click.pass_context
def list_keys_cmd(ctx):
    """List all API keys (prefix only, never full key)."""
    from .db import get_db, list_api_keys

    settings = ctx.obj["settings"]

    async def run():
        db = await get_db(settings.db_path)
        try:
            return await list_api_keys(db)
        finally:
            await db.close()

    keys = _run_async(run())

    if not keys:
        click.echo("No API keys found. Use 'marginalia create-user' to create one.")
        return

    click.echo(f"{'User':<16} {'Name':<16} {'Prefix':<18} {'Active':<8} {'Last Used'}")
    click.echo("-" * 80)

    for key in keys:
        last_used = ""
        if key["last_used_at"]:
            last_used = datetime.fromtimestamp(key["last_used_at"]).strftime("%Y-%m-%d %H:%M")

        click.echo(
            f"{key['username']:<16} "
            f"{key['name']:<16} "
            f"{key['key_prefix']:<18} "
            f"{'yes' if key['is_active'] else 'REVOKED':<8} "
            f"{last_used}"
        )


@cli.command("revoke-key")
@click.argument("prefix")
@click.pass_context
def revoke_key_cmd(ctx, prefix):
    """Revoke an API key by its prefix."""
    from .db import get_db, revoke_key

    settings = ctx.obj["settings"]

    async def run():
        db = await get_db(settings.db_path)
        try:
            return await revoke_key(db, prefix)
        finally:
            await db.close()

    if _run_async(run()):
        click.echo(f"Key with prefix '{prefix}' has been revoked.")
    else:
        click.echo(f"No active key found with prefix '{prefix}'.", err=True)


@cli.command("extract")
@click.argument("url")
@click.option("--show-content", is_flag=True, help="Print the extracted HTML")
@click.pass_context
def extract_cmd(ctx, url, show_content):
    """Run extraction on URL without saving anything."""
    from .extraction import ExtractionError
    from .extraction.pipeline import ArticleExtractor

    setup_colored_logging(ctx.obj["verbose"])
    settings = ctx.obj["settings"]

    async def run():
        extractor = ArticleExtractor(settings)
        try:
            return await extractor.extract(url)
        finally:
            await extractor.close()

    try:
        extracted = _run_async(run())
    except ExtractionError as e:
        click.echo(f"{e.kind}: {e.message}", err=True)
        sys.exit(1)

    click.echo(f"Strategy:    {extracted.strategy}")
    click.echo(f"Title:       {extracted.title}")
    click.echo(f"Description: {extracted.description}")
    click.echo(f"Content:     {len(extracted.content)} chars")
    if show_content:
        click.echo("")
        click.echo(extracted.content)


@cli.command("export")
@click.argument("article_id", type=int)
@click.option("--username", required=True, help="Owner of the article")
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Write to file instead of stdout")
@click.pass_context
def export_cmd(ctx, article_id, username, output):
    """Export an article with its highlights and notes as Markdown."""
    from .db import find_user_by_username, get_article, get_db, get_highlights
    from .export import article_to_markdown

    settings = ctx.obj["settings"]

    async def run():
        db = await get_db(settings.db_path)
        try:
            user = await find_user_by_username(db, username)
            if not user:
                return None
            article = await get_article(db, article_id, user["id"])
            if not article:
                return None
            return article_to_markdown(article, await get_highlights(db, article_id))
        finally:
            await db.close()

    markdown = _run_async(run())
    if markdown is None:
        click.echo(f"Article {article_id} not found for '{username}'.", err=True)
        sys.exit(1)

    if output:
        Path(output).write_text(markdown, encoding="utf-8")
        click.echo(f"Exported to {output}")
    else:
        click.echo(markdown, nl=False)


@cli.command("serve")
@click.pass_context
def serve_cmd(ctx):
    """Start the API server."""
    import uvicorn

    from .app import create_app

    settings = ctx.obj["settings"]
    setup_colored_logging(ctx.obj["verbose"])

    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="info")


if __name__ == "__main__":
    cli()
