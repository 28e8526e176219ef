"""Server-side session store.

The cookie carries an HS256 JWT whose ``sid`` claim is the primary key of a
``user_sessions`` row, so a tampered cookie is rejected before touching the
database.
"""

import re
import secrets
from datetime import timedelta
from typing import Optional

from fastapi import Request, Response
from jose import JWTError, jwt
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from core.dates import ensure_utc, utcnow
from core.logging import get_logger
from domain.user.models import User, UserSession

settings = get_settings()
logger = get_logger(__name__)

SESSION_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{32,64}$")


def sign_session_token(token: str) -> str:
    """Wrap a session id in a signed cookie value."""
    expire = utcnow() + timedelta(seconds=settings.session_max_age_seconds)
    return jwt.encode(
        {"sid": token, "exp": expire, "type": "session"},
        settings.session_secret,
        algorithm=settings.session_algorithm,
    )


def unsign_session_token(value: Optional[str]) -> Optional[str]:
    """Return the session token inside a cookie value, or None when it is malformed."""
    if not value:
        return None
    try:
        payload = jwt.decode(
            value,
            settings.session_secret,
            algorithms=[settings.session_algorithm],
        )
    except JWTError:
        return None
    token = payload.get("sid")
    if payload.get("type") != "session" or not isinstance(token, str):
        return None
    if not SESSION_TOKEN_PATTERN.match(token):
        return None
    return token


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()[:45]
    return request.client.host[:45] if request.client else None


async def create_session(session: AsyncSession, user: User, request: Request) -> str:
    """Persist a new session for ``user`` and return the signed cookie value."""
    token = secrets.token_urlsafe(32)
    now = utcnow()
    user_agent = request.headers.get("user-agent")

    session.add(
        UserSession(
            id=token,
            user_id=user.id,
            ip_address=_client_ip(request),
            user_agent=user_agent[:255] if user_agent else None,
            created_at=now,
            last_activity_at=now,
            expires_at=now + timedelta(seconds=settings.session_max_age_seconds),
        )
    )
    await session.flush()

    logger.info("session_created", user_id=str(user.id))
    return sign_session_token(token)


async def resolve_session(session: AsyncSession, token: str) -> Optional[UserSession]:
    """Return the session row for ``token`` if it exists and has not expired."""
    result = await session.execute(select(UserSession).where(UserSession.id == token))
    user_session = result.scalar_one_or_none()
    if user_session is None:
        return None
    if ensure_utc(user_session.expires_at) <= utcnow():
        return None
    return user_session


async def clear_session(session: AsyncSession, token: str) -> None:
    await session.execute(delete(UserSession).where(UserSession.id == token))


def set_session_cookie(response: Response, value: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=value,
        max_age=settings.session_max_age_seconds,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )
