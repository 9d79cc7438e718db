"""
Pydantic models for the agent gateway WebSocket protocol.

This module provides type-safe models for the frames exchanged with the agent
gateway: request/response envelopes, streamed agent events and the chat result
handed back to the call flow.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class FrameType(str, Enum):
    """Envelope type of a gateway frame."""
    REQUEST = "req"
    RESPONSE = "res"
    EVENT = "event"


class AgentStream(str, Enum):
    """Stream an agent event belongs to."""
    ASSISTANT = "assistant"
    LIFECYCLE = "lifecycle"


class LifecyclePhase(str, Enum):
    """Lifecycle phases that finish a run."""
    END = "end"
    DONE = "done"
    ERROR = "error"
    ABORTED = "aborted"


TERMINAL_PHASES = {phase.value for phase in LifecyclePhase}


class ClientInfo(BaseModel):
    """Identity the bridge presents to the gateway."""
    id: str = "gateway-client"
    version: str = "1.0.0"
    platform: str = "plugin"
    mode: str = "backend"


class ConnectAuth(BaseModel):
    token: Optional[str] = None
    password: Optional[str] = None


class ConnectParams(BaseModel):
    """Parameters of the connect handshake request."""
    minProtocol: int = 3
    maxProtocol: int = 3
    client: ClientInfo = Field(default_factory=ClientInfo)
    role: str = "operator"
    scopes: List[str] = Field(
        default_factory=lambda: ["operator.read", "operator.write", "operator.admin"]
    )
    caps: List[str] = Field(default_factory=list)
    commands: List[str] = Field(default_factory=list)
    permissions: Dict[str, Any] = Field(default_factory=dict)
    auth: ConnectAuth = Field(default_factory=ConnectAuth)
    locale: str = "en-US"
    userAgent: str = "retell-bridge/1.0.0"


class GatewayRequest(BaseModel):
    """Request envelope sent to the gateway."""
    type: Literal["req"] = "req"
    id: str
    method: str
    params: Dict[str, Any] = Field(default_factory=dict)


class GatewayErrorBody(BaseModel):
    model_config = ConfigDict(extra="allow")

    message: Optional[str] = None


class GatewayResponse(BaseModel):
    """Response envelope received from the gateway."""
    model_config = ConfigDict(extra="allow")

    type: Literal["res"] = "res"
    id: Optional[str] = None
    ok: bool = False
    payload: Optional[Dict[str, Any]] = None
    error: Optional[GatewayErrorBody] = None

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None


class GatewayEvent(BaseModel):
    """Event envelope received from the gateway."""
    model_config = ConfigDict(extra="allow")

    type: Literal["event"] = "event"
    event: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class ChatSendParams(BaseModel):
    """Parameters of a chat.send request."""
    sessionKey: str
    message: str
    idempotencyKey: str
    model: Optional[str] = None


class ChatResponse(BaseModel):
    """Outcome of one chat run."""
    text: str
    error: bool = False
    aborted: bool = False
    run_id: Optional[str] = None
    session_id: Optional[str] = None
