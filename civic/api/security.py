"""
Session token encoding and verification.

Tokens are HS256 JWTs carrying the user id in "sub" and the role in
"role". The auth provider issues them; this service only verifies.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from common.config import Settings
from modules.civic_service import Actor
from modules.errors import AuthenticationError

ROLES = ("user", "admin")


def create_access_token(
    settings: Settings,
    user_id: str,
    role: str = "user",
    expires_delta: Optional[timedelta] = None,
    **claims: Any
) -> str:
    """
    Issue a signed session token.

    Args:
        settings: Application settings (secret and algorithm)
        user_id: Subject of the token
        role: user or admin
        expires_delta: Lifetime, defaults to the configured expiry
        **claims: Extra claims such as name or email

    Returns:
        str: Encoded JWT
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta
        or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {**claims, "sub": user_id, "role": role, "exp": expire}
    return jwt.encode(
        payload,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm
    )


def decode_access_token(settings: Settings, token: str) -> Actor:
    """
    Verify a session token and return the identity it carries.

    Raises:
        AuthenticationError: If the token is invalid, expired or
            lacks a subject
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Session expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid authentication token")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid authentication token")

    role = payload.get("role", "user")
    if role not in ROLES:
        role = "user"

    return Actor(
        user_id=str(user_id),
        role=role,
        name=payload.get("name", ""),
        email=payload.get("email")
    )
