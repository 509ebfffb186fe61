"""Authentication service: operator login, JWT access tokens, rotating refresh tokens."""

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import bcrypt
from jose import JWTError, jwt
from sqlalchemy import select

from backend.models.user import RefreshToken, User
from backend.services.datetime_service import format_iso, now_utc, parse_iso

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from backend.config import Settings

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
_DUMMY_PASSWORD_HASH = bcrypt.hashpw(b"blockpanel-dummy-password", bcrypt.gensalt()).decode(
    "utf-8"
)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


def hash_token(token: str) -> str:
    """SHA-256 of a token value, the only form in which refresh tokens are stored."""
    return hashlib.sha256(token.encode()).hexdigest()


def create_access_token(data: dict[str, Any], secret_key: str, expires_minutes: int = 15) -> str:
    to_encode = data.copy()
    to_encode.update(
        {"exp": datetime.now(UTC) + timedelta(minutes=expires_minutes), "type": "access"}
    )
    return str(jwt.encode(to_encode, secret_key, algorithm=ALGORITHM))


def decode_access_token(token: str, secret_key: str) -> dict[str, Any] | None:
    """Decode and validate a JWT access token; None when invalid or expired."""
    try:
        payload: dict[str, Any] = jwt.decode(token, secret_key, algorithms=[ALGORITHM])
    except JWTError:
        logger.debug("Failed to decode access token", exc_info=True)
        return None
    if payload.get("type") != "access":
        return None
    return payload


async def authenticate_user(session: AsyncSession, username: str, password: str) -> User | None:
    result = await session.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if user is None:
        # Keep the response time of unknown usernames close to wrong passwords
        verify_password(password, _DUMMY_PASSWORD_HASH)
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


async def create_tokens(session: AsyncSession, user: User, settings: Settings) -> tuple[str, str]:
    """Issue an access token and a new refresh token for ``user``."""
    access_token = create_access_token(
        {"sub": str(user.id), "username": user.username, "is_admin": user.is_admin},
        settings.secret_key,
        settings.access_token_expire_minutes,
    )
    refresh_value = secrets.token_urlsafe(48)
    now = now_utc()
    session.add(
        RefreshToken(
            user_id=user.id,
            token_hash=hash_token(refresh_value),
            expires_at=format_iso(now + timedelta(days=settings.refresh_token_expire_days)),
            created_at=format_iso(now),
        )
    )
    await session.commit()
    return access_token, refresh_value


async def _find_refresh_token(session: AsyncSession, value: str) -> RefreshToken | None:
    result = await session.execute(
        select(RefreshToken).where(RefreshToken.token_hash == hash_token(value))
    )
    return result.scalar_one_or_none()


async def refresh_tokens(
    session: AsyncSession, refresh_value: str, settings: Settings
) -> tuple[str, str] | None:
    """Exchange a refresh token for a new token pair.

    The presented refresh token is revoked (rotation).
    """
    stored = await _find_refresh_token(session, refresh_value)
    if stored is None:
        return None

    expires = parse_iso(stored.expires_at)
    if expires is None or expires < now_utc():
        await session.delete(stored)
        await session.commit()
        return None

    user = await session.get(User, stored.user_id)
    if user is None:
        return None
    await session.delete(stored)
    return await create_tokens(session, user, settings)


async def revoke_refresh_token(session: AsyncSession, refresh_value: str) -> bool:
    stored = await _find_refresh_token(session, refresh_value)
    if stored is None:
        return False
    await session.delete(stored)
    await session.commit()
    return True


async def ensure_admin_user(session: AsyncSession, settings: Settings) -> None:
    """Create the bootstrap operator account if it doesn't exist."""
    result = await session.execute(select(User).where(User.username == settings.admin_username))
    if result.scalar_one_or_none() is not None:
        return

    now = format_iso(now_utc())
    session.add(
        User(
            username=settings.admin_username,
            email=f"{settings.admin_username}@localhost",
            password_hash=hash_password(settings.admin_password),
            display_name="Admin",
            is_admin=True,
            created_at=now,
            updated_at=now,
        )
    )
    await session.commit()
    logger.info("Created admin user %s", settings.admin_username)
