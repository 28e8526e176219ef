"""Authentication utilities."""

from typing import Optional

import bcrypt
from fastapi import Request

from core.exceptions import AuthenticationError
from domain.user.models import User


def hash_password(password: str) -> str:
    """Hash a password."""
    password_bytes = password.encode("utf-8")
    # Truncate to 72 bytes if needed (bcrypt limitation)
    if len(password_bytes) > 72:
        password_bytes = password_bytes[:72]
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash."""
    password_bytes = plain_password.encode("utf-8")
    if len(password_bytes) > 72:
        password_bytes = password_bytes[:72]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
    except ValueError:
        # Stored hash is not a bcrypt hash
        return False


def get_optional_user(request: Request) -> Optional[User]:
    """Get the user attached by SessionMiddleware, if any."""
    return getattr(request.state, "user", None)


def get_current_user(request: Request) -> User:
    """Get the current authenticated user or fail with 401."""
    user = get_optional_user(request)
    if user is None:
        raise AuthenticationError()
    return user
