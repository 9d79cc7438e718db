"""
Pydantic models for the Retell Custom LLM WebSocket protocol.

This module defines structured data models for the incoming frames (keyed by
``interaction_type``) and the outgoing frames (keyed by ``response_type``) the
bridge exchanges with Retell, providing type validation and documentation.
"""

import logging
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from retell_bridge.config.constants import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

CALL_DIRECTIONS = ("inbound", "outbound")


# Base Models
class BaseInteraction(BaseModel):
    """Base model for all frames sent by Retell."""

    # Retell adds fields over time; keep whatever we do not model
    model_config = ConfigDict(extra="allow")

    interaction_type: str = Field(..., description="Frame type identifier")


class BaseResponse(BaseModel):
    """Base model for all frames sent to Retell."""

    response_type: str = Field(..., description="Frame type identifier")


# Transcript
class Utterance(BaseModel):
    """One entry of the transcript Retell attaches to turn frames."""

    model_config = ConfigDict(extra="allow")

    role: str = Field(..., description="Speaker role: user or agent")
    content: str = Field("", description="Transcribed text")

    @field_validator("content", mode="before")
    def coerce_content(cls, v):
        """Retell may send null content for interrupted utterances."""
        return "" if v is None else v


# Call details
class CallInfo(BaseModel):
    """Call metadata delivered with call_details."""

    model_config = ConfigDict(extra="allow")

    call_id: Optional[str] = Field(None, description="Retell call identifier")
    from_number: Optional[str] = Field(None, description="Calling number")
    to_number: Optional[str] = Field(None, description="Called number")
    direction: str = Field("inbound", description="inbound or outbound")

    @field_validator("direction", mode="before")
    def validate_direction(cls, v):
        """Unknown directions are treated as inbound."""
        if v not in CALL_DIRECTIONS:
            if v is not None:
                logger.warning(f"Unknown call direction: {v}")
            return "inbound"
        return v

    @property
    def is_outbound(self) -> bool:
        return self.direction == "outbound"

    @property
    def party_number(self) -> Optional[str]:
        """The number identifying the person on the other end of the bridge."""
        return self.to_number if self.is_outbound else self.from_number


class CallDetailsMessage(BaseInteraction):
    """Model for the call_details frame."""

    interaction_type: Literal["call_details"]
    call: CallInfo = Field(default_factory=CallInfo, description="Call metadata")


class PingPongMessage(BaseInteraction):
    """Model for the ping_pong keepalive frame."""

    interaction_type: Literal["ping_pong"]
    timestamp: Any = Field(None, description="Opaque timestamp to echo back")


class ResponseRequiredMessage(BaseInteraction):
    """Model for response_required and reminder_required frames."""

    interaction_type: Literal["response_required", "reminder_required"]
    response_id: int = Field(..., description="Identifier the reply must carry")
    transcript: List[Utterance] = Field(default_factory=list)

    @field_validator("transcript", mode="before")
    def coerce_transcript(cls, v):
        return v or []

    def last_user_utterance(self) -> Optional[Utterance]:
        """Return the latest user-authored entry, if any."""
        for utterance in reversed(self.transcript):
            if utterance.role == "user":
                return utterance
        return None


class UpdateOnlyMessage(BaseInteraction):
    """Model for update_only frames, which need no reply."""

    interaction_type: Literal["update_only"]
    transcript: List[Utterance] = Field(default_factory=list)


# Outgoing frames
class ResponseConfig(BaseModel):
    """Capabilities announced to Retell at connection open."""

    auto_reconnect: bool = True
    call_details: bool = True


class ConfigResponse(BaseResponse):
    """Model for the config frame sent once at connection open."""

    response_type: Literal["config"] = "config"
    config: ResponseConfig = Field(default_factory=ResponseConfig)


class AgentResponse(BaseResponse):
    """Model for a spoken reply."""

    response_type: Literal["response"] = "response"
    response_id: int = Field(..., description="Identifier of the turn being answered")
    content: str = Field(..., description="Text to speak")
    content_complete: bool = Field(True, description="Whether this is the full reply")
    end_call: bool = Field(False, description="Hang up after playback")


class PingPongResponse(BaseResponse):
    """Model for the heartbeat echo."""

    response_type: Literal["ping_pong"] = "ping_pong"
    timestamp: Any = Field(None, description="Timestamp copied from the ping")


# Union type for all possible incoming messages
IncomingMessage = Union[
    CallDetailsMessage,
    PingPongMessage,
    ResponseRequiredMessage,
    UpdateOnlyMessage,
]

# Union type for all possible outgoing messages
OutgoingMessage = Union[
    ConfigResponse,
    AgentResponse,
    PingPongResponse,
]
