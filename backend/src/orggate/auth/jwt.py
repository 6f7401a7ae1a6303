"""JWT token generation and validation

Web sessions authenticate with HS256 bearer tokens. The token only
identifies the principal; the organization is resolved per request from the
org hint, the session-level active org or the membership set, so no org_id
or role claims are embedded.

Claims:
- sub: User ID as UUID string
- email: User's email address
- iat / exp: issue and expiry timestamps (JWT_EXPIRY_MINUTES)
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict
from uuid import UUID

import jwt

from ..config import get_settings


def create_access_token(user_id: UUID, email: str) -> str:
    """Create a signed access token for an authenticated user.

    Args:
        user_id: User's UUID
        email: User's email address

    Returns:
        str: Signed JWT token
    """
    settings = get_settings()

    now = datetime.now(timezone.utc)
    expiration = now + timedelta(minutes=settings.JWT_EXPIRY_MINUTES)

    payload = {
        'sub': str(user_id),
        'email': email,
        'iat': int(now.timestamp()),
        'exp': int(expiration.timestamp())
    }

    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or tampered
    """
    settings = get_settings()

    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise jwt.ExpiredSignatureError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise jwt.InvalidTokenError(f"Invalid token: {str(e)}")
