# app/core/auth.py
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from app.core.config import Settings, get_settings
from app.core.errors import AuthenticationError

# Accepted only in demo mode, and only when ADMIN_EMAIL/ADMIN_PASSWORD are unset
DEMO_ADMIN_EMAIL = "admin@popplayground.com"
DEMO_ADMIN_PASSWORD = "admin123"

# Signs demo tokens when ADMIN_JWT_SECRET is unset; tokens die with the process
_DEMO_JWT_SECRET = secrets.token_urlsafe(32)

# HTTP Bearer scheme:
# - auto_error=False => a missing header reaches require_admin, which answers
#   with our own 401 body instead of FastAPI's 403.
bearer_scheme = HTTPBearer(auto_error=False)


def admin_credentials(settings: Settings) -> tuple[str, str] | None:
    """
    The single admin account, or None when admin login is disabled
    (supabase mode without ADMIN_EMAIL / ADMIN_PASSWORD).
    """
    if settings.ADMIN_EMAIL and settings.ADMIN_PASSWORD:
        return settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD
    if settings.resolved_backend_mode == "demo":
        return DEMO_ADMIN_EMAIL, DEMO_ADMIN_PASSWORD
    return None


def jwt_secret(settings: Settings) -> str:
    """
    The key admin tokens are signed and verified with.

    Raises:
        AuthenticationError: supabase mode without ADMIN_JWT_SECRET.
    """
    if settings.ADMIN_JWT_SECRET:
        return settings.ADMIN_JWT_SECRET
    if settings.resolved_backend_mode == "demo":
        return _DEMO_JWT_SECRET
    raise AuthenticationError("Admin tokens are disabled: ADMIN_JWT_SECRET is not set")


def create_access_token(subject: str, settings: Settings | None = None) -> str:
    settings = settings or get_settings()
    now = datetime.now(timezone.utc)
    claims = {
        "sub": subject,
        "role": "admin",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=settings.ADMIN_TOKEN_EXPIRE_MINUTES)).timestamp()),
    }
    return jwt.encode(claims, jwt_secret(settings), algorithm=settings.ADMIN_JWT_ALG)


def decode_access_token(token: str, settings: Settings | None = None) -> dict[str, Any]:
    """
    Decode and verify an admin access token (JWT).

    Verification:
      - signature (ADMIN_JWT_ALG using jwt_secret())
      - expiration time (exp)

    Raises:
        AuthenticationError: if token is invalid/expired, or no secret is configured.
    """
    settings = settings or get_settings()
    try:
        return jwt.decode(
            token,
            jwt_secret(settings),
            algorithms=[settings.ADMIN_JWT_ALG],
        )
    except JWTError as exc:
        raise AuthenticationError("Invalid or expired token") from exc


def authenticate_admin(email: str, password: str, settings: Settings | None = None) -> str:
    """
    Check the admin credentials and return a signed access token.

    Raises:
        AuthenticationError: wrong credentials or admin login disabled.
    """
    settings = settings or get_settings()
    expected = admin_credentials(settings)
    if expected is None:
        raise AuthenticationError("Admin login is not configured")

    expected_email, expected_password = expected
    email_ok = hmac.compare_digest(email.strip().lower(), expected_email.strip().lower())
    password_ok = hmac.compare_digest(password.encode(), expected_password.encode())
    if not (email_ok and password_ok):
        raise AuthenticationError("Invalid email or password")

    return create_access_token(expected_email, settings)


def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    """
    Enforce a valid admin token.

    Returns:
        The admin email (token subject).

    Raises:
        AuthenticationError(401): missing, invalid or non-admin token.
    """
    if credentials is None:
        raise AuthenticationError("Authentication required")

    payload = decode_access_token(credentials.credentials)
    if payload.get("role") != "admin" or not payload.get("sub"):
        raise AuthenticationError("Admin access required")
    return payload["sub"]
