"""
Runtime configuration for the Retell voice bridge.

Settings are read from environment variables (optionally seeded from a ``.env``
file) and validated into pydantic models. Parsing is lenient: a value of the
wrong shape falls back to its default instead of refusing to start.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import dotenv
from pydantic import BaseModel, Field, field_validator

from retell_bridge.config.constants import (
    DEFAULT_RESPONSE_MODEL,
    DEFAULT_RESPONSE_PROVIDER,
    LOGGER_NAME,
)

logger = logging.getLogger(LOGGER_NAME)

DEFAULT_GREETING = "Hey! What's up?"
DEFAULT_WS_PORT = 8765
DEFAULT_WS_PATH = "/llm-websocket"
DEFAULT_RESPONSE_TIMEOUT_MS = 30000
DEFAULT_GATEWAY_PORT = 18789


class WebSocketSettings(BaseModel):
    """Where the bridge listens for Retell connections."""

    port: int = Field(DEFAULT_WS_PORT, description="Inbound listen port")
    path: str = Field(DEFAULT_WS_PATH, description="Path prefix for the LLM websocket")

    @field_validator("path")
    def normalize_path(cls, v):
        """Keep a single leading slash and no trailing slash."""
        v = "/" + v.strip().strip("/")
        return v if v != "/" else DEFAULT_WS_PATH


class GatewaySettings(BaseModel):
    """Connection details for the agent gateway."""

    host: str = "127.0.0.1"
    port: int = DEFAULT_GATEWAY_PORT
    token: Optional[str] = None
    password: Optional[str] = None

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}"


class BridgeConfig(BaseModel):
    """Top-level bridge configuration."""

    enabled: bool = True
    allow_from: List[str] = Field(default_factory=list)
    greeting: str = DEFAULT_GREETING
    host: str = "0.0.0.0"
    websocket: WebSocketSettings = Field(default_factory=WebSocketSettings)
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    response_model: Optional[str] = None
    response_timeout_ms: int = DEFAULT_RESPONSE_TIMEOUT_MS
    session_store_path: Optional[Path] = None

    @field_validator("allow_from", mode="before")
    def validate_allow_from(cls, v):
        """Accept a list or a comma separated string; drop non-string and blank entries."""
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        if not isinstance(v, (list, tuple)):
            return []
        return [item.strip() for item in v if isinstance(item, str) and item.strip()]

    @field_validator("response_timeout_ms")
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError("response_timeout_ms must be positive")
        return v

    def model_ref(self) -> Tuple[str, str]:
        """Resolve the response model override into a (provider, model) pair."""
        return resolve_model_ref(self.response_model)

    @classmethod
    def parse(cls, raw: Any) -> "BridgeConfig":
        """
        Build a config from a loosely typed mapping.

        Unknown keys are ignored and every field whose value does not validate
        is replaced by its default.

        Args:
            raw: Mapping of raw values (anything else yields the defaults)

        Returns:
            A validated BridgeConfig
        """
        if not isinstance(raw, Mapping):
            return cls()

        values: Dict[str, Any] = {}
        for name in cls.model_fields:
            if name not in raw or raw[name] is None:
                continue
            try:
                cls.model_validate({name: raw[name]})
            except ValueError:
                logger.warning(f"Ignoring invalid value for {name}: {raw[name]!r}")
                continue
            values[name] = raw[name]
        return cls.model_validate(values)


def resolve_model_ref(value: Optional[str]) -> Tuple[str, str]:
    """
    Split a ``provider/model`` string.

    Absent values and values without a ``/`` resolve to the default provider
    and model.
    """
    if not value or "/" not in value:
        return DEFAULT_RESPONSE_PROVIDER, DEFAULT_RESPONSE_MODEL
    provider, model = value.split("/", 1)
    if not provider or not model:
        return DEFAULT_RESPONSE_PROVIDER, DEFAULT_RESPONSE_MODEL
    return provider, model


def _env_bool(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    return None


def _env_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring non-integer setting: {value!r}")
        return None


def load_config(env_file: Optional[Path] = None) -> BridgeConfig:
    """
    Load the bridge configuration from the environment.

    Args:
        env_file: Optional ``.env`` file to load first (defaults to ``./.env``)

    Returns:
        The validated BridgeConfig
    """
    env_path = env_file or Path(".") / ".env"
    if env_path.exists():
        dotenv.load_dotenv(env_path)

    raw: Dict[str, Any] = {
        "enabled": _env_bool(os.getenv("RETELL_ENABLED")),
        "allow_from": os.getenv("RETELL_ALLOW_FROM"),
        "greeting": os.getenv("RETELL_GREETING"),
        "host": os.getenv("HOST"),
        "response_model": os.getenv("RETELL_RESPONSE_MODEL"),
        "response_timeout_ms": _env_int(os.getenv("RETELL_RESPONSE_TIMEOUT_MS")),
        "session_store_path": os.getenv("SESSION_STORE_PATH"),
    }

    websocket = {
        "port": _env_int(os.getenv("RETELL_WS_PORT")),
        "path": os.getenv("RETELL_WS_PATH"),
    }
    raw["websocket"] = {k: v for k, v in websocket.items() if v is not None}

    gateway = {
        "host": os.getenv("GATEWAY_HOST"),
        "port": _env_int(os.getenv("GATEWAY_PORT")),
        "token": os.getenv("GATEWAY_TOKEN"),
        "password": os.getenv("GATEWAY_PASSWORD"),
    }
    raw["gateway"] = {k: v for k, v in gateway.items() if v is not None}

    return BridgeConfig.parse(raw)
