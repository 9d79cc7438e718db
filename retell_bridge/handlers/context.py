"""
Shared dependencies passed to every frame handler.
"""

from retell_bridge.bot.voice_agent import VoiceAgent
from retell_bridge.config.settings import BridgeConfig


class HandlerContext:
    """What a handler may use besides the frame and its call session."""

    def __init__(self, config: BridgeConfig, agent: VoiceAgent):
        self.config = config
        self.agent = agent

    @property
    def allowlist_enforced(self) -> bool:
        return bool(self.config.allow_from)
