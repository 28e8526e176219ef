"""Authentication endpoints."""

import secrets
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from core.auth import hash_password, verify_password
from core.database import get_session
from core.dates import ensure_utc, utcnow
from core.exceptions import (
    AppException,
    AuthenticationError,
    DuplicateResourceError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    RateLimitExceededError,
    ResourceNotFoundError,
    SessionInvalidError,
    TokenExpiredError,
    ValidationError,
)
from core.logging import get_logger
from core.ratelimit import check_rate_limit
from core.sessions import (
    clear_session,
    clear_session_cookie,
    create_session,
    set_session_cookie,
)
from domain.common import MessageResponse
from domain.user.models import EmailVerificationToken, User
from domain.user.schemas import (
    EMAIL_PATTERN,
    LoginRequest,
    RegisterRequest,
    ResendVerificationRequest,
    UserEnvelope,
    UserResponse,
)
from services.email_service import get_email_service

settings = get_settings()
logger = get_logger(__name__)
router = APIRouter()

RESEND_VERIFICATION_SCOPE = "auth:resend-verification"
VERIFICATION_SENT_MESSAGE = "Verification email sent. Please check your inbox."


async def _issue_verification_token(session: AsyncSession, user: User) -> str:
    """Replace any outstanding verification tokens for ``user`` with a fresh one."""
    await session.execute(
        delete(EmailVerificationToken).where(EmailVerificationToken.user_id == user.id)
    )
    token = secrets.token_hex(32)
    session.add(
        EmailVerificationToken(
            user_id=user.id,
            token=token,
            expires_at=utcnow() + timedelta(hours=settings.email_verification_ttl_hours),
        )
    )
    await session.flush()
    return token


async def _email_taken(session: AsyncSession, email: str) -> bool:
    existing = await session.execute(select(User.id).where(User.email == email))
    return existing.scalar_one_or_none() is not None


def _email_registered() -> DuplicateResourceError:
    return DuplicateResourceError("Email already registered.", resource="User", field="email")


@router.post("/register", response_model=UserEnvelope)
async def register(
    payload: RegisterRequest,
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Create an account, start a session and mail a verification link."""
    if not payload.email or not payload.password or not payload.name:
        raise ValidationError("Email, password, and name are required.")
    if not EMAIL_PATTERN.match(payload.email):
        raise ValidationError("Invalid email address.", field="email")
    if len(payload.password) < 8:
        raise ValidationError(
            "Password must be at least 8 characters long.", field="password"
        )
    if not 2 <= len(payload.name) <= 100:
        raise ValidationError("Name must be between 2 and 100 characters.", field="name")

    if await _email_taken(session, payload.email):
        raise _email_registered()

    user = User(
        email=payload.email,
        hashed_password=hash_password(payload.password),
        name=payload.name,
        email_verified=False,
    )
    session.add(user)
    try:
        await session.flush()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same address
        await session.rollback()
        raise _email_registered() from None

    token = await _issue_verification_token(session, user)
    cookie_value = await create_session(session, user, request)
    await session.commit()
    await session.refresh(user)

    logger.info("user_registered", user_id=str(user.id))

    try:
        await get_email_service().send_verification_email(user.email, token, user.name)
    except AppException as e:
        logger.warning("verification_email_not_sent", user_id=str(user.id), error=e.message)

    set_session_cookie(response, cookie_value)
    return UserEnvelope(user=UserResponse.model_validate(user))


@router.post("/login", response_model=UserEnvelope)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    if not payload.email or not payload.password:
        raise ValidationError("Email and password are required.")

    result = await session.execute(select(User).where(User.email == payload.email))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(payload.password, user.hashed_password):
        logger.warning("login_failed")
        raise InvalidCredentialsError()

    if not user.email_verified:
        raise EmailNotVerifiedError()

    previous_token = getattr(request.state, "session_token", None)
    if previous_token:
        # Rotate an existing session on login
        await clear_session(session, previous_token)

    cookie_value = await create_session(session, user, request)
    await session.commit()

    logger.info("user_logged_in", user_id=str(user.id))
    set_session_cookie(response, cookie_value)
    return UserEnvelope(user=UserResponse.model_validate(user))


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    token = getattr(request.state, "session_token", None)
    if token:
        await clear_session(session, token)
        await session.commit()

    clear_session_cookie(response)
    return MessageResponse(message="Logged out successfully.")


@router.get("/session", response_model=UserEnvelope)
async def get_current_session(request: Request):
    """Return the signed-in user."""
    user: Optional[User] = getattr(request.state, "user", None)
    if user is None:
        if getattr(request.state, "session_invalid", False):
            raise SessionInvalidError()
        raise AuthenticationError("Not authenticated.")
    return UserEnvelope(user=UserResponse.model_validate(user))


@router.get("/verify-email", response_model=MessageResponse)
async def verify_email(
    token: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_session),
):
    token = token.strip() if token else None
    if not token:
        raise ValidationError("Verification token is required.", field="token")

    result = await session.execute(
        select(EmailVerificationToken).where(EmailVerificationToken.token == token)
    )
    record = result.scalar_one_or_none()
    if record is None:
        raise ResourceNotFoundError(
            "Verification token", message="Invalid or expired verification token."
        )

    now = utcnow()
    if ensure_utc(record.expires_at) < now:
        raise TokenExpiredError(
            "Verification token has expired. Please request a new verification email."
        )

    user = await session.get(User, record.user_id)
    if user is None:
        raise ResourceNotFoundError("User", message="User not found.")

    if user.email_verified:
        await session.delete(record)
        await session.commit()
        return MessageResponse(message="Email already verified. You can now log in.")

    user.email_verified = True
    user.email_verified_at = now
    await session.delete(record)
    await session.commit()

    logger.info("email_verified", user_id=str(user.id))
    return MessageResponse(message="Email verified successfully. You can now log in.")


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(
    payload: ResendVerificationRequest,
    session: AsyncSession = Depends(get_session),
):
    if not payload.email:
        raise ValidationError("Email is required.", field="email")

    result = await session.execute(select(User).where(User.email == payload.email))
    user = result.scalar_one_or_none()

    # Unknown addresses get the same answer as known ones
    if user is None:
        return MessageResponse(message=VERIFICATION_SENT_MESSAGE)
    if user.email_verified:
        return MessageResponse(message="Your email is already verified. You can log in.")

    window_seconds = settings.resend_verification_window_seconds
    rate_limit = await check_rate_limit(
        session,
        identifier=payload.email,
        scope=RESEND_VERIFICATION_SCOPE,
        limit=1,
        window_seconds=window_seconds,
    )
    if rate_limit.limited:
        await session.commit()
        raise RateLimitExceededError(
            "Please wait before requesting another verification email.",
            retry_after_ms=rate_limit.retry_after_ms or window_seconds * 1000,
        )

    token = await _issue_verification_token(session, user)
    await session.commit()

    await get_email_service().send_verification_email(user.email, token, user.name)
    return MessageResponse(message=VERIFICATION_SENT_MESSAGE)
