"""User credentials and API key generation, hashing, and validation."""

import logging
import secrets

import aiosqlite
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError

from . import db as db_ops

logger = logging.getLogger(__name__)

_ph = PasswordHasher()

KEY_PREFIX = "mg_live_"
KEY_PREFIX_LEN = 16  # "mg_live_" (8) + 8 hex chars

# Pre-computed dummy hash so prefix-miss takes the same time as prefix-hit.
# Generated from an impossible key value; never matches any real input.
_DUMMY_HASH = _ph.hash("mg_dummy_never_matches_any_real_key")


class AuthError(Exception):
    """Raised on any authentication failure."""


def generate_raw_key() -> str:
    """Generate a new API key string."""
    hex_part = secrets.token_hex(16)  # 32 hex chars
    return f"{KEY_PREFIX}{hex_part}"


def hash_secret(raw: str) -> str:
    """Hash a password or API key with argon2id."""
    return _ph.hash(raw)


def verify_secret(raw: str, hashed: str) -> bool:
    """Verify a raw secret against its argon2id hash."""
    try:
        return _ph.verify(hashed, raw)
    except (VerifyMismatchError, InvalidHashError):
        return False


def get_key_prefix(raw_key: str) -> str:
    """Extract the lookup prefix from a raw key."""
    return raw_key[:KEY_PREFIX_LEN]


async def generate_key(db: aiosqlite.Connection, user_id: int, name: str = "default") -> str:
    """Generate a new API key for a user, store its hash, and return the raw key (shown once)."""
    raw_key = generate_raw_key()
    prefix = get_key_prefix(raw_key)

    await db_ops.store_api_key(
        db,
        user_id=user_id,
        name=name,
        key_hash=hash_secret(raw_key),
        key_prefix=prefix,
    )

    logger.info(f"[AUTH] Created key '{name}' for user {user_id} (prefix: {prefix})")
    return raw_key


async def register_user(db: aiosqlite.Connection, username: str, password: str) -> int:
    """Create a user. Returns the user ID.

    Raises:
        AuthError: If the username is taken.
    """
    username = username.strip()
    if not username:
        raise AuthError("Username is required")
    if await db_ops.find_user_by_username(db, username):
        raise AuthError("Username already exists")

    user_id = await db_ops.create_user(db, username, hash_secret(password))
    logger.info(f"[AUTH] Registered user '{username}' ({user_id})")
    return user_id


async def authenticate_user(db: aiosqlite.Connection, username: str, password: str) -> dict:
    """Check a username/password pair and return the user record.

    Raises:
        AuthError: On unknown user or wrong password (same message for both).
    """
    user = await db_ops.find_user_by_username(db, username.strip())
    if not user:
        verify_secret(password, _DUMMY_HASH)
        raise AuthError("Invalid username or password")
    if not verify_secret(password, user["password_hash"]):
        raise AuthError("Invalid username or password")
    return user


async def validate_key(db: aiosqlite.Connection, bearer_token: str) -> dict:
    """Validate a Bearer token and return the key record (includes ``user_id``).

    Raises:
        AuthError: If the key is malformed, unknown, revoked or wrong.
    """
    raw_key = bearer_token.removeprefix("Bearer ").strip()

    if not raw_key.startswith(KEY_PREFIX):
        # Still do a dummy verify to keep timing constant
        verify_secret("dummy", _DUMMY_HASH)
        raise AuthError("Invalid API key")

    key_record = await db_ops.find_key_by_prefix(db, get_key_prefix(raw_key))

    if not key_record:
        verify_secret(raw_key, _DUMMY_HASH)
        raise AuthError("Invalid API key")

    if not verify_secret(raw_key, key_record["key_hash"]):
        raise AuthError("Invalid API key")

    await db_ops.update_key_last_used(db, key_record["id"])

    return key_record
