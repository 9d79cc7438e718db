"""
Capability interface the call flow needs from the agent backend.

Anything that can turn (session key, message, context, timeout) into a
ChatResponse can drive calls: the gateway client in production, a stub in tests.
"""

from typing import Optional, Protocol, runtime_checkable

from retell_bridge.models.gateway_schemas import ChatResponse


@runtime_checkable
class AgentBackend(Protocol):
    """Single request/response access to the agent."""

    async def send(
        self,
        session_key: str,
        message: str,
        system_context: Optional[str] = None,
        timeout_ms: Optional[int] = None,
    ) -> ChatResponse:
        """
        Run one agent turn.

        Timeouts, aborts and agent-side errors resolve to a ChatResponse with
        the matching flag set. Only transport failures raise (GatewayError).
        """
        ...

    def is_connected(self) -> bool:
        ...

    async def connect(self) -> None:
        ...

    async def close(self) -> None:
        ...
