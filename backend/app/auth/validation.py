"""Field rules applied at registration."""
import re

_EMAIL_RE = re.compile(r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$")
_USERNAME_RE = re.compile(r"^[a-z0-9_]{3,30}$")


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email))


def is_valid_password(password: str) -> bool:
    return len(password) >= 6


def is_valid_name(name: str) -> bool:
    return 2 <= len(name.strip()) <= 50


def is_valid_username(username: str) -> bool:
    return bool(_USERNAME_RE.match(username))
