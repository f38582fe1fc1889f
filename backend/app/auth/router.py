"""Auth router for password accounts.

Endpoints:
    POST /api/auth/register  - Create an account and return a token
    POST /api/auth/login     - Exchange email/password for a token
    GET  /api/auth/me        - Current user's profile
    PUT  /api/auth/profile   - Update the current user's profile
"""
import logging

from fastapi import APIRouter, Depends

from app.errors import AuthenticationError, ConflictError, ValidationFailedError
from app.realtime.hub import get_hub
from app.users.schemas import LoginRequest, ProfileUpdate, RegisterRequest, User
from app.users.service import UserService

from .dependencies import get_current_user
from .security import create_access_token, hash_password, verify_password
from .validation import is_valid_email, is_valid_name, is_valid_password, is_valid_username

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _validate_registration(req: RegisterRequest) -> None:
    if not (req.username and req.name and req.email and req.password):
        raise ValidationFailedError("Please provide username, name, email, and password")
    if not is_valid_username(req.username):
        raise ValidationFailedError(
            "Username must be 3-30 characters and contain only lowercase "
            "letters, numbers, and underscores"
        )
    if not is_valid_name(req.name):
        raise ValidationFailedError("Name must be between 2 and 50 characters")
    if not is_valid_email(req.email):
        raise ValidationFailedError("Please provide a valid email")
    if not is_valid_password(req.password):
        raise ValidationFailedError("Password must be at least 6 characters")


@router.post("/register", status_code=201)
async def register(req: RegisterRequest) -> dict:
    """Create a verified account and sign the user in."""
    _validate_registration(req)

    users = UserService()
    if users.get_by_username(req.username):
        raise ConflictError("Username already taken")
    if users.get_by_email(req.email):
        raise ConflictError("User with this email already exists")

    user = users.create(
        username=req.username,
        name=req.name,
        email=req.email,
        password_hash=hash_password(req.password),
        verified=True,
    )
    token = create_access_token(user.id, user.email)
    return {
        "success": True,
        "message": "User registered successfully",
        "data": {"token": token, "user": user.to_public()},
    }


@router.post("/login")
async def login(req: LoginRequest) -> dict:
    if not req.email or not req.password:
        raise ValidationFailedError("Please provide email and password")

    users = UserService()
    user = users.get_by_email(req.email)
    if user is None or not verify_password(req.password, user.password_hash):
        logger.info("[auth] Failed login for %s", req.email)
        raise AuthenticationError("Invalid credentials")

    users.touch_last_active(user.id)
    token = create_access_token(user.id, user.email)
    return {
        "success": True,
        "message": "Login successful",
        "data": {"token": token, "user": user.to_public()},
    }


@router.get("/me")
async def me(user: User = Depends(get_current_user)) -> dict:
    return {"success": True, "data": {"user": user.to_public()}}


@router.put("/profile")
async def update_profile(
    req: ProfileUpdate,
    user: User = Depends(get_current_user),
) -> dict:
    """Apply the non-empty fields of the request to the current user.

    When anything changed and the user holds a live socket session, the
    change set is announced to every other connected user.
    """
    changes = req.changes()
    updated = UserService().update_profile(user.id, **changes)

    hub = get_hub()
    if changes and hub is not None and hub.registry.is_online(user.id):
        await hub.presence.announce_profile_update(user.id, changes, user_name=updated.name)

    return {
        "success": True,
        "message": "Profile updated successfully",
        "data": {"user": updated.to_public()},
    }
