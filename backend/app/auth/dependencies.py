"""FastAPI dependency resolving the bearer token to the current user."""
import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.errors import AuthenticationError
from app.users.schemas import User
from app.users.service import UserService

from .security import decode_access_token

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> User:
    """Resolve ``Authorization: Bearer <token>`` and touch ``last_active``.

    Raises:
        AuthenticationError: No token, bad token, or the user no longer exists.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError()

    claims = decode_access_token(credentials.credentials)
    users = UserService()
    user = users.get(claims["userId"])
    if user is None:
        raise AuthenticationError("User not found")

    users.touch_last_active(user.id)
    return user
