"""Custom middleware for the application."""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

from config import get_settings
from core.database import async_session
from core.dates import utcnow
from core.logging import bind_request_context, get_logger
from core.sessions import (
    clear_session,
    clear_session_cookie,
    resolve_session,
    unsign_session_token,
)
from domain.user.models import User

settings = get_settings()
logger = get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for structured request logging."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and log details."""
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id

        bind_request_context(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )

        logger.info("request_started")

        start_time = time.time()
        try:
            response = await call_next(request)
            process_time = time.time() - start_time

            logger.info(
                "request_completed",
                status_code=response.status_code,
                process_time_ms=round(process_time * 1000, 2),
            )

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = str(process_time)

            return response

        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                "request_failed",
                error=str(e),
                process_time_ms=round(process_time * 1000, 2),
                exc_info=True,
            )
            raise


def _sets_session_cookie(response: Response) -> bool:
    prefix = f"{settings.session_cookie_name}=".encode("latin-1")
    return any(
        value.startswith(prefix)
        for name, value in response.raw_headers
        if name.lower() == b"set-cookie"
    )


class SessionMiddleware(BaseHTTPMiddleware):
    """Resolve the session cookie to a user and attach it to request state.

    A cookie that is malformed, expired, unknown or points at a deleted user
    is removed server-side and cleared on the response; the request then
    continues anonymously.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.user = None
        request.state.session_token = None
        request.state.session_invalid = False

        cookie_value = request.cookies.get(settings.session_cookie_name)
        if not cookie_value:
            return await call_next(request)

        invalid = False
        token = unsign_session_token(cookie_value)

        if token is None:
            invalid = True
        else:
            try:
                async with async_session() as session:
                    user_session = await resolve_session(session, token)
                    user = None
                    if user_session is not None:
                        user = await session.get(User, user_session.user_id)

                    if user is None:
                        await clear_session(session, token)
                        invalid = True
                    else:
                        user_session.last_activity_at = utcnow()
                        request.state.user = user
                        request.state.session_token = token
                    await session.commit()
            except SQLAlchemyError as e:
                # Database unavailable: continue anonymously, keep the cookie
                logger.warning("session_lookup_failed", error=str(e))

        if invalid:
            request.state.session_invalid = True
            logger.info("session_invalidated")

        response = await call_next(request)

        if invalid and not _sets_session_cookie(response):
            clear_session_cookie(response)
        return response
