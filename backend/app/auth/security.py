"""Password hashing and access-token helpers.

Passwords are hashed with bcrypt; access tokens are HS256 JWTs carrying
``userId`` and ``email``. Both the HTTP bearer dependency and the socket
handshake resolve principals through :func:`decode_access_token`.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from app.config import get_config
from app.errors import AuthenticationError

logger = logging.getLogger(__name__)


class TokenExpiredError(AuthenticationError):
    """Raised when a token's ``exp`` claim is in the past."""
    def __init__(self):
        super().__init__("Token expired")


class TokenInvalidError(AuthenticationError):
    """Raised for malformed, tampered or incomplete tokens."""
    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    rounds = rounds or get_config().auth.bcrypt_rounds
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash or over-long password
        logger.warning("Password check failed on malformed input")
        return False


def create_access_token(
    user_id: str,
    email: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    config = get_config()
    if expires_delta is None:
        expires_delta = timedelta(minutes=config.auth.token_expire_minutes)
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "email": email,
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(
        payload,
        config.secrets.jwt.secret_key,
        algorithm=config.secrets.jwt.algorithm,
    )


def decode_access_token(token: str) -> dict:
    """Verify a token and return its claims.

    Raises:
        TokenExpiredError: The signature is valid but the token expired.
        TokenInvalidError: Anything else wrong with the token.
    """
    config = get_config()
    try:
        claims = jwt.decode(
            token,
            config.secrets.jwt.secret_key,
            algorithms=[config.secrets.jwt.algorithm],
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenExpiredError() from exc
    except jwt.PyJWTError as exc:
        raise TokenInvalidError() from exc

    if not claims.get("userId"):
        raise TokenInvalidError("Token has no subject")
    return claims
