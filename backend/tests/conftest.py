"""Shared test fixtures and configuration for backend tests.

Every test runs against a fresh in-memory DuckDB and a known config. The
FastAPI app is driven with ``TestClient(app)`` outside a ``with`` block, so
the lifespan hook does not run; fixtures install the realtime hub and AI
resolver themselves.
"""
import time
from collections import deque
from typing import Any, Callable, List, Tuple

import pytest
from fastapi.testclient import TestClient

from app.ai_provider.base import AIProvider
from app.ai_provider.resolver import ProviderResolver, set_resolver
from app.auth.security import create_access_token, hash_password
from app.config import AppConfig, set_config
from app.database import Database
from app.main import app
from app.messages.service import MessageService
from app.realtime.hub import RealtimeHub, set_hub
from app.users.schemas import User
from app.users.service import UserService

TEST_PASSWORD = "secret123"


class RecordingTransport:
    """Transport that records every emit instead of sending it.

    Handles listed in ``failing`` raise on emit, like a dropped socket.
    """

    def __init__(self) -> None:
        self.sent: List[Tuple[str, Any, str]] = []
        self.failing: set = set()

    async def emit(self, event: str, data: Any, to: str) -> None:
        if to in self.failing:
            raise ConnectionError(f"{to} is gone")
        self.sent.append((event, data, to))

    def to(self, handle: str) -> List[Tuple[str, Any]]:
        return [(event, data) for event, data, target in self.sent if target == handle]

    def named(self, event: str) -> List[Tuple[Any, str]]:
        return [(data, target) for name, data, target in self.sent if name == event]

    def clear(self) -> None:
        self.sent.clear()


class FakeProvider(AIProvider):
    """AIProvider returning queued replies; an Exception in the queue is raised.

    ``delay`` makes each call block its thread for that many seconds.
    """

    def __init__(self, *replies) -> None:
        self.replies = deque(replies)
        self.calls: List[dict] = []
        self.delay = 0.0

    def queue(self, *replies) -> None:
        self.replies.extend(replies)

    def health_check(self) -> bool:
        return True

    def call_model(self, prompt, max_tokens=1024, system=None, temperature=None, json_mode=False):
        self.calls.append({
            "prompt": prompt,
            "max_tokens": max_tokens,
            "system": system,
            "temperature": temperature,
            "json_mode": json_mode,
        })
        if self.delay:
            time.sleep(self.delay)
        if not self.replies:
            raise RuntimeError("no reply queued")
        reply = self.replies.popleft()
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture(autouse=True)
def config():
    """In-memory database, fast bcrypt and a fixed JWT secret."""
    cfg = AppConfig(
        database={"path": ":memory:"},
        auth={"bcrypt_rounds": 4},
        secrets={"jwt": {"secret_key": "test-secret"}},
    )
    set_config(cfg)
    yield cfg
    set_config(None)


@pytest.fixture(autouse=True)
def db(config):
    Database.reset_instance()
    database = Database.get_instance(":memory:")
    yield database
    set_hub(None)
    set_resolver(None)
    Database.reset_instance()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def hub(db, transport):
    """Realtime hub on a recording transport, installed as the global hub."""
    realtime = RealtimeHub(transport, MessageService(db), UserService(db))
    set_hub(realtime)
    return realtime


@pytest.fixture
def ai(config):
    """Fake AI provider installed as the active provider."""
    provider = FakeProvider()
    resolver = ProviderResolver(config, provider=provider)
    resolver.resolve()
    set_resolver(resolver)
    return provider


@pytest.fixture
def api_client():
    """Provide a TestClient for the main FastAPI app."""
    return TestClient(app)


@pytest.fixture
def make_user(db) -> Callable[..., Tuple[User, str]]:
    """Factory creating a stored user and returning ``(user, token)``."""
    users = UserService(db)

    def _make(username: str, name: str = None, **profile) -> Tuple[User, str]:
        user = users.create(
            username=username,
            name=name or username.capitalize(),
            email=f"{username}@example.com",
            password_hash=hash_password(TEST_PASSWORD),
            **profile,
        )
        return user, create_access_token(user.id, user.email)

    return _make


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
