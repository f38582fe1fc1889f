"""Networking Companion application configuration.

Loads settings from two YAML files:
  * networking.settings.yaml : non-secret configuration
  * networking.secrets.yaml  : secrets (never committed)

Lookup order for the directory holding both files:
  1. explicit ``settings_path`` passed to :func:`load_config`
  2. ``NETWORKING_CONFIG_DIR`` environment variable
  3. ``./config/``
  4. current working directory

Missing files are not an error; every field has a development default.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILENAME = "networking.settings.yaml"
SECRETS_FILENAME  = "networking.secrets.yaml"
CONFIG_DIR_ENV    = "NETWORKING_CONFIG_DIR"


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def _resolve_settings_path(settings_path: Optional[Path]) -> Path:
    if settings_path is not None:
        return Path(settings_path)

    env_dir = os.environ.get(CONFIG_DIR_ENV)
    if env_dir:
        return Path(env_dir) / SETTINGS_FILENAME

    config_dir_candidate = Path("config") / SETTINGS_FILENAME
    if config_dir_candidate.exists():
        return config_dir_candidate

    return Path(SETTINGS_FILENAME)


# ---------------------------------------------------------------------------
# Secrets models
# ---------------------------------------------------------------------------


class JWTSecrets(BaseModel):
    secret_key: str = "change-me-in-production"
    algorithm:  str = "HS256"


class OpenAISecrets(BaseModel):
    api_key:      Optional[str] = None
    organization: Optional[str] = None


class Secrets(BaseModel):
    jwt:    JWTSecrets    = Field(default_factory=JWTSecrets)
    openai: OpenAISecrets = Field(default_factory=OpenAISecrets)


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:         str       = "0.0.0.0"
    port:         int       = 5000
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


class AuthSettings(BaseModel):
    token_expire_minutes: int = 60 * 24 * 7
    bcrypt_rounds:        int = 10

    @field_validator("bcrypt_rounds")
    @classmethod
    def _check_rounds(cls, value: int) -> int:
        # bcrypt accepts cost factors 4..31
        if not 4 <= value <= 31:
            raise ValueError("bcrypt_rounds must be between 4 and 31")
        return value


class DatabaseSettings(BaseModel):
    path: str = "networking.duckdb"


class AISettings(BaseModel):
    """Match-suggestion and assistant model settings."""
    enabled:         bool  = True
    model:           str   = "gpt-3.5-turbo"
    temperature:     float = 0.7
    max_matches:     int   = 5
    min_match_score: int   = 60
    verify_on_start: bool  = False  # health-check the provider at startup


class LoggingSettings(BaseModel):
    level: str = "info"


class RealtimeSettings(BaseModel):
    socketio_path: str = "socket.io"


class AppConfig(BaseModel):
    server:   ServerSettings   = Field(default_factory=ServerSettings)
    auth:     AuthSettings     = Field(default_factory=AuthSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    ai:       AISettings       = Field(default_factory=AISettings)
    logging:  LoggingSettings  = Field(default_factory=LoggingSettings)
    realtime: RealtimeSettings = Field(default_factory=RealtimeSettings)
    secrets:  Secrets          = Field(default_factory=Secrets)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(settings_path: Optional[Path] = None) -> AppConfig:
    """Load and merge settings + secrets into a single *AppConfig* object.

    The secrets file is looked up next to the settings file. A relative
    ``database.path`` is resolved against the settings file's directory so
    the same YAML works regardless of the process working directory.
    """
    resolved = _resolve_settings_path(settings_path)
    settings_data = _load_yaml(resolved)
    secrets_data  = _load_yaml(resolved.parent / SECRETS_FILENAME)

    # Merge: secrets live under the "secrets" key in AppConfig
    settings_data["secrets"] = secrets_data

    config = AppConfig(**settings_data)

    db_path = config.database.path
    if db_path != ":memory:" and resolved.exists() and not Path(db_path).is_absolute():
        config.database.path = str(resolved.parent / db_path)

    logger.info(
        "Config loaded (server=%s:%s, database=%s, ai.enabled=%s)",
        config.server.host,
        config.server.port,
        config.database.path,
        config.ai.enabled,
    )
    return config


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the process-wide config, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Optional[AppConfig]) -> None:
    """Replace the process-wide config (``None`` forces a reload)."""
    global _config
    _config = config
