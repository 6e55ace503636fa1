"""SQLite database operations for Marginalia."""

import json
import logging
import time
from pathlib import Path
from typing import Optional

import aiosqlite

from .models import ArticleRecord

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    created_at REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS api_keys (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    key_hash TEXT NOT NULL,
    key_prefix TEXT NOT NULL,
    created_at REAL NOT NULL,
    last_used_at REAL,
    is_active INTEGER NOT NULL DEFAULT 1,
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS articles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    url TEXT NOT NULL,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    description TEXT,
    tags TEXT NOT NULL DEFAULT '[]',
    notes TEXT,
    archived INTEGER NOT NULL DEFAULT 0,
    read INTEGER NOT NULL DEFAULT 0,
    sync_status TEXT NOT NULL DEFAULT 'not_synced',
    created REAL NOT NULL,
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS highlights (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    article_id INTEGER NOT NULL,
    user_id INTEGER NOT NULL,
    text TEXT NOT NULL,
    start_offset INTEGER NOT NULL,
    end_offset INTEGER NOT NULL,
    color TEXT NOT NULL DEFAULT 'yellow',
    note TEXT,
    created REAL NOT NULL,
    CHECK (start_offset >= 0 AND start_offset < end_offset),
    FOREIGN KEY (article_id) REFERENCES articles(id) ON DELETE CASCADE,
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS preferences (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL UNIQUE,
    font_size TEXT NOT NULL DEFAULT 'medium',
    line_height TEXT NOT NULL DEFAULT 'normal',
    margins TEXT NOT NULL DEFAULT 'normal',
    theme TEXT NOT NULL DEFAULT 'light',
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_api_keys_prefix ON api_keys(key_prefix);
CREATE INDEX IF NOT EXISTS idx_articles_user_created ON articles(user_id, created);
CREATE INDEX IF NOT EXISTS idx_highlights_article ON highlights(article_id, start_offset);
"""

ARTICLE_UPDATABLE = ("tags", "notes", "archived", "read", "sync_status")
HIGHLIGHT_UPDATABLE = ("color", "note", "text", "start_offset", "end_offset")
PREFERENCE_FIELDS = ("font_size", "line_height", "margins", "theme")


async def init_db(db_path: Path) -> None:
    """Create database tables."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    async with aiosqlite.connect(db_path) as db:
        await db.executescript(SCHEMA)
        await db.commit()
    logger.info(f"[DB] Initialized database at {db_path}")


async def get_db(db_path: Path) -> aiosqlite.Connection:
    """Get a database connection."""
    db = await aiosqlite.connect(db_path)
    db.row_factory = aiosqlite.Row
    await db.execute("PRAGMA journal_mode=WAL")
    await db.execute("PRAGMA foreign_keys=ON")
    return db


# --- Users and API keys ---


async def create_user(db: aiosqlite.Connection, username: str, password_hash: str) -> int:
    """Insert a user. Returns the user ID."""
    cursor = await db.execute(
        "INSERT INTO users (username, password_hash, created_at) VALUES (?, ?, ?)",
        (username, password_hash, time.time()),
    )
    await db.commit()
    return cursor.lastrowid


async def find_user_by_username(db: aiosqlite.Connection, username: str) -> dict | None:
    cursor = await db.execute("SELECT * FROM users WHERE username = ?", (username,))
    row = await cursor.fetchone()
    return dict(row) if row else None


async def store_api_key(
    db: aiosqlite.Connection,
    user_id: int,
    name: str,
    key_hash: str,
    key_prefix: str,
) -> int:
    """Store a hashed API key. Returns the key ID."""
    cursor = await db.execute(
        """INSERT INTO api_keys (user_id, name, key_hash, key_prefix, created_at)
           VALUES (?, ?, ?, ?, ?)""",
        (user_id, name, key_hash, key_prefix, time.time()),
    )
    await db.commit()
    return cursor.lastrowid


async def find_key_by_prefix(db: aiosqlite.Connection, prefix: str) -> dict | None:
    """Find an active API key record by its prefix."""
    cursor = await db.execute(
        "SELECT * FROM api_keys WHERE key_prefix = ? AND is_active = 1",
        (prefix,),
    )
    row = await cursor.fetchone()
    return dict(row) if row else None


async def list_api_keys(db: aiosqlite.Connection, user_id: int | None = None) -> list[dict]:
    """List API keys (without hashes), newest first."""
    query = (
        "SELECT k.id, k.user_id, u.username, k.name, k.key_prefix, k.created_at, "
        "k.last_used_at, k.is_active FROM api_keys k JOIN users u ON u.id = k.user_id"
    )
    params: tuple = ()
    if user_id is not None:
        query += " WHERE k.user_id = ?"
        params = (user_id,)
    cursor = await db.execute(query + " ORDER BY k.created_at DESC, k.id DESC", params)
    rows = await cursor.fetchall()
    return [dict(row) for row in rows]


async def revoke_key(db: aiosqlite.Connection, key_prefix: str) -> bool:
    """Soft-delete an API key by prefix. Returns True if found."""
    cursor = await db.execute(
        "UPDATE api_keys SET is_active = 0 WHERE key_prefix = ? AND is_active = 1",
        (key_prefix,),
    )
    await db.commit()
    return cursor.rowcount > 0


async def update_key_last_used(db: aiosqlite.Connection, key_id: int) -> None:
    await db.execute(
        "UPDATE api_keys SET last_used_at = ? WHERE id = ?",
        (time.time(), key_id),
    )
    await db.commit()


# --- Articles ---


def _article_row(row: aiosqlite.Row) -> dict:
    article = dict(row)
    article["tags"] = json.loads(article["tags"] or "[]")
    article["archived"] = bool(article["archived"])
    article["read"] = bool(article["read"])
    return article


async def create_article(db: aiosqlite.Connection, record: ArticleRecord) -> dict:
    """Insert a fully extracted article and return it."""
    now = time.time()
    cursor = await db.execute(
        """INSERT INTO articles
           (user_id, url, title, content, description, tags, notes, archived, read, sync_status, created)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            record.user_id,
            record.url,
            record.title,
            record.content,
            record.description,
            json.dumps(record.tags),
            record.notes,
            int(record.archived),
            int(record.read),
            record.sync_status,
            now,
        ),
    )
    await db.commit()
    return await get_article(db, cursor.lastrowid, record.user_id)


async def get_article(db: aiosqlite.Connection, article_id: int, user_id: int) -> dict | None:
    """Get an article owned by ``user_id``; None if missing or not owned."""
    cursor = await db.execute(
        "SELECT * FROM articles WHERE id = ? AND user_id = ?",
        (article_id, user_id),
    )
    row = await cursor.fetchone()
    return _article_row(row) if row else None


async def list_articles(
    db: aiosqlite.Connection,
    user_id: int,
    archived: Optional[bool] = None,
) -> list[dict]:
    """List a user's articles, newest first."""
    query = "SELECT * FROM articles WHERE user_id = ?"
    params: list = [user_id]
    if archived is not None:
        query += " AND archived = ?"
        params.append(int(archived))
    cursor = await db.execute(query + " ORDER BY created DESC, id DESC", params)
    rows = await cursor.fetchall()
    return [_article_row(row) for row in rows]


async def update_article(
    db: aiosqlite.Connection, article_id: int, user_id: int, changes: dict
) -> dict | None:
    """Apply annotation changes. Content is never updated here."""
    fields = {k: v for k, v in changes.items() if k in ARTICLE_UPDATABLE}
    if fields:
        if "tags" in fields:
            fields["tags"] = json.dumps(fields["tags"])
        for flag in ("archived", "read"):
            if flag in fields:
                fields[flag] = int(fields[flag])
        assignments = ", ".join(f"{name} = ?" for name in fields)
        await db.execute(
            f"UPDATE articles SET {assignments} WHERE id = ? AND user_id = ?",
            (*fields.values(), article_id, user_id),
        )
        await db.commit()
    return await get_article(db, article_id, user_id)


async def delete_article(db: aiosqlite.Connection, article_id: int, user_id: int) -> bool:
    """Delete an article and all of its highlights in one transaction."""
    await db.execute(
        "DELETE FROM highlights WHERE article_id IN "
        "(SELECT id FROM articles WHERE id = ? AND user_id = ?)",
        (article_id, user_id),
    )
    cursor = await db.execute(
        "DELETE FROM articles WHERE id = ? AND user_id = ?",
        (article_id, user_id),
    )
    await db.commit()
    return cursor.rowcount > 0


# --- Highlights ---


async def create_highlight(
    db: aiosqlite.Connection,
    article_id: int,
    user_id: int,
    text: str,
    start_offset: int,
    end_offset: int,
    color: str = "yellow",
    note: Optional[str] = None,
) -> dict:
    """Insert a highlight and return it."""
    cursor = await db.execute(
        """INSERT INTO highlights
           (article_id, user_id, text, start_offset, end_offset, color, note, created)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        (article_id, user_id, text, start_offset, end_offset, color, note, time.time()),
    )
    await db.commit()
    return await get_highlight(db, cursor.lastrowid, user_id)


async def get_highlights(db: aiosqlite.Connection, article_id: int) -> list[dict]:
    """All highlights of an article, ordered by position then id."""
    cursor = await db.execute(
        "SELECT * FROM highlights WHERE article_id = ? ORDER BY start_offset ASC, id ASC",
        (article_id,),
    )
    rows = await cursor.fetchall()
    return [dict(row) for row in rows]


async def get_highlight(db: aiosqlite.Connection, highlight_id: int, user_id: int) -> dict | None:
    """Get a highlight whose parent article is owned by ``user_id``."""
    cursor = await db.execute(
        """SELECT h.* FROM highlights h JOIN articles a ON a.id = h.article_id
           WHERE h.id = ? AND a.user_id = ?""",
        (highlight_id, user_id),
    )
    row = await cursor.fetchone()
    return dict(row) if row else None


async def update_highlight(
    db: aiosqlite.Connection, highlight_id: int, user_id: int, changes: dict
) -> dict | None:
    """Replace highlight fields in place (no versioning)."""
    fields = {k: v for k, v in changes.items() if k in HIGHLIGHT_UPDATABLE}
    if fields:
        assignments = ", ".join(f"{name} = ?" for name in fields)
        await db.execute(
            f"""UPDATE highlights SET {assignments}
                WHERE id = ? AND article_id IN (SELECT id FROM articles WHERE user_id = ?)""",
            (*fields.values(), highlight_id, user_id),
        )
        await db.commit()
    return await get_highlight(db, highlight_id, user_id)


async def delete_highlight(db: aiosqlite.Connection, highlight_id: int, user_id: int) -> bool:
    """Delete a highlight. The parent article is untouched."""
    cursor = await db.execute(
        """DELETE FROM highlights
           WHERE id = ? AND article_id IN (SELECT id FROM articles WHERE user_id = ?)""",
        (highlight_id, user_id),
    )
    await db.commit()
    return cursor.rowcount > 0


# --- Preferences ---


async def get_preferences(db: aiosqlite.Connection, user_id: int) -> dict:
    """Get a user's preferences, creating defaults on first access."""
    cursor = await db.execute("SELECT * FROM preferences WHERE user_id = ?", (user_id,))
    row = await cursor.fetchone()
    if row is None:
        await db.execute("INSERT OR IGNORE INTO preferences (user_id) VALUES (?)", (user_id,))
        await db.commit()
        cursor = await db.execute("SELECT * FROM preferences WHERE user_id = ?", (user_id,))
        row = await cursor.fetchone()
    return dict(row)


async def update_preferences(db: aiosqlite.Connection, user_id: int, changes: dict) -> dict:
    await get_preferences(db, user_id)
    fields = {k: v for k, v in changes.items() if k in PREFERENCE_FIELDS and v is not None}
    if fields:
        assignments = ", ".join(f"{name} = ?" for name in fields)
        await db.execute(
            f"UPDATE preferences SET {assignments} WHERE user_id = ?",
            (*fields.values(), user_id),
        )
        await db.commit()
    return await get_preferences(db, user_id)
