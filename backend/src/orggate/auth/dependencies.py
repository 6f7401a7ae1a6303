"""FastAPI dependencies for authentication.

Usage:
    @router.get("/workspace/memberships")
    def list_memberships(user: User = Depends(get_current_user)):
        ...

    @router.post("/channels/{channel}/messages")
    def channel_message(_: None = Depends(require_channel_service)):
        ...
"""

import hmac
from typing import Annotated, Optional
from uuid import UUID

import jwt
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import get_db
from ..models.user import User
from .jwt import decode_token


# HTTP Bearer token security scheme
security = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Extract and validate the bearer token, returning the authenticated user.

    Raises:
        HTTPException 401: If token is missing, invalid, expired, or user not found
        HTTPException 403: If user status is DISABLED
    """
    token = credentials.credentials

    try:
        payload = decode_token(token)

        user_id_str = payload.get("sub")
        if not user_id_str:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token: missing user ID claim",
                headers={"WWW-Authenticate": "Bearer"},
            )

        user_id = UUID(user_id_str)

    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token claims: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if user.status != "ACTIVE":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return user


def require_channel_service(
    x_channel_service_token: Optional[str] = Header(default=None),
) -> None:
    """Authenticate a channel adapter by its shared service token."""
    expected = get_settings().CHANNEL_SERVICE_TOKEN
    if not x_channel_service_token or not hmac.compare_digest(x_channel_service_token, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid channel service token",
        )


# Type alias for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
