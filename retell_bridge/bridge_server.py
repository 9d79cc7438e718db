"""
Bridge server object for the Retell voice bridge.

Ties the pieces of a running bridge together: the shared gateway client, the
session registry, the voice agent and the WebSocket manager that serves calls.
The FastAPI application starts and stops it from its lifespan.
"""

import logging
from typing import Any, Dict, Optional

from retell_bridge.bot.voice_agent import VoiceAgent
from retell_bridge.config.constants import LOGGER_NAME
from retell_bridge.config.settings import BridgeConfig
from retell_bridge.handlers.context import HandlerContext
from retell_bridge.models.session_registry import SessionRegistry
from retell_bridge.services.agent_backend import AgentBackend
from retell_bridge.services.gateway_client import GatewayClient
from retell_bridge.websocket_manager import WebSocketManager

logger = logging.getLogger(LOGGER_NAME)


class BridgeServer:
    """
    Lifecycle owner of the bridge.

    Args:
        config: Bridge configuration
        gateway: Agent backend to use instead of a GatewayClient built from the config
        registry: Session registry to use instead of one built from the config
    """

    def __init__(
        self,
        config: BridgeConfig,
        gateway: Optional[AgentBackend] = None,
        registry: Optional[SessionRegistry] = None,
    ):
        self.config = config
        self.registry = registry or SessionRegistry(config.session_store_path)

        if gateway is None:
            # The gateway picks its own model unless an override is configured
            model = None
            if config.response_model:
                provider, name = config.model_ref()
                model = f"{provider}/{name}"
            gateway = GatewayClient(config.gateway, model=model)
        self.gateway = gateway

        self.agent = VoiceAgent(self.gateway, self.registry, config.response_timeout_ms)
        self.manager = WebSocketManager(self.registry, HandlerContext(config, self.agent))
        self.running = False

    async def start(self) -> None:
        """
        Connect to the gateway and start accepting calls.

        Raises:
            GatewayConnectionError: If the gateway cannot be reached; the bridge
                stays stopped
        """
        if not self.config.enabled:
            logger.info("Retell bridge disabled")
            return
        if self.running:
            logger.info("Retell bridge already running")
            return

        await self.gateway.connect()
        self.running = True

        logger.info(
            f"Retell bridge listening on port {self.config.websocket.port}, "
            f"path {self.config.websocket.path}"
        )
        if self.config.allow_from:
            logger.info(f"Allowed callers: {', '.join(self.config.allow_from)}")
        else:
            logger.warning("No caller allowlist configured: every caller is accepted")

    async def stop(self) -> None:
        """Stop accepting calls and close the gateway connection."""
        if not self.running:
            return
        self.running = False
        try:
            await self.gateway.close()
        except Exception as e:
            logger.error(f"Error closing gateway client: {e}", exc_info=True)
        logger.info("Retell bridge stopped")

    def status(self) -> Dict[str, Any]:
        """Snapshot of the bridge state."""
        return {
            "running": self.running,
            "port": self.config.websocket.port,
            "path": self.config.websocket.path,
            "allow_from": list(self.config.allow_from),
        }
