"""
Bearer Token Identity

Tokens are HS256 JWTs carrying ``userId`` and ``role`` claims. A request's
token is decoded and the user row loaded to build the Principal that the
access policy works with. Passwords are stored as werkzeug salted hashes.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from werkzeug.security import check_password_hash, generate_password_hash

from canteen.core.config import Settings
from canteen.core.exceptions import AuthenticationError
from canteen.database import get_db
from canteen.models import User, UserRole
from canteen.services.access import Principal

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(settings: Settings, password: str) -> str:
    return generate_password_hash(password, method=settings.password_hash_method)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def create_access_token(
    settings: Settings,
    user_id: int,
    role: UserRole,
    expires_in: Optional[timedelta] = None,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "role": role.value,
        "iat": now,
        "exp": now + (expires_in or timedelta(days=settings.jwt_expire_days)),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(settings: Settings, token: str) -> dict:
    """
    Verify signature and expiry.

    Raises:
        AuthenticationError: expired, malformed or missing claims
    """
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")

    if "userId" not in claims or "role" not in claims:
        raise AuthenticationError("Invalid token")
    return claims


async def resolve_principal(session: AsyncSession, claims: dict) -> Principal:
    try:
        user_id = int(claims["userId"])
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid token")

    user = await session.get(User, user_id)
    if user is None:
        raise AuthenticationError("User not found")
    if user.role.value != claims["role"]:
        # Role changed since the token was issued
        raise AuthenticationError("Token is no longer valid")

    return Principal(
        user_id=user.id,
        name=user.name,
        role=user.role,
        canteen_id=user.canteen_id,
        email=user.email,
    )


async def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Principal:
    """FastAPI dependency: the authenticated caller, or 401."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("No token, authorization denied")

    settings: Settings = request.app.state.settings
    claims = decode_access_token(settings, credentials.credentials)
    principal = await resolve_principal(db, claims)

    logger.debug(f"Authenticated user #{principal.user_id} ({principal.role.value})")
    return principal
