import logging

import pytest
from unittest.mock import AsyncMock, MagicMock

from retell_bridge.bot.voice_agent import VoiceAgent
from retell_bridge.config.constants import LOGGER_NAME
from retell_bridge.config.settings import BridgeConfig
from retell_bridge.handlers.context import HandlerContext
from retell_bridge.models.gateway_schemas import ChatResponse
from retell_bridge.models.session_registry import SessionRegistry

ALLOWED_NUMBER = "+15551234567"


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset the application logger before each test"""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    yield


@pytest.fixture
def config():
    return BridgeConfig(allow_from=[ALLOWED_NUMBER], greeting="Hello from the bridge")


@pytest.fixture
def open_config():
    return BridgeConfig(allow_from=[])


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def backend():
    backend = MagicMock()
    backend.send = AsyncMock(return_value=ChatResponse(text="Sure, it's sunny today.", run_id="run-1"))
    backend.connect = AsyncMock()
    backend.close = AsyncMock()
    backend.is_connected = MagicMock(return_value=True)
    return backend


@pytest.fixture
def voice_agent(backend, registry):
    return VoiceAgent(backend, registry, timeout_ms=1000)


@pytest.fixture
def context(config, voice_agent):
    return HandlerContext(config, voice_agent)
