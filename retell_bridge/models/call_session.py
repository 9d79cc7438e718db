"""
Per-connection call state for the Retell bridge.

A CallSession lives exactly as long as its WebSocket connection. It tracks the
authorization state machine, the sliding transcript window and the session key
that scopes the conversation on the agent gateway.
"""

import uuid
from enum import Enum
from typing import Iterable, List, Literal, Optional

from pydantic import BaseModel, Field

from retell_bridge.caller_auth import normalize_phone
from retell_bridge.config.constants import SESSION_KEY_PREFIX, TRANSCRIPT_WINDOW
from retell_bridge.models.message_schemas import Utterance


class CallState(str, Enum):
    """Lifecycle of a call connection."""
    PENDING = "pending"
    AUTHORIZED = "authorized"
    REJECTED = "rejected"
    ENDED = "ended"


class TranscriptEntry(BaseModel):
    role: Literal["user", "agent"]
    content: str = ""


def call_session_key(call_id: str) -> str:
    """Session key used before the caller is known."""
    return f"{SESSION_KEY_PREFIX}{call_id}"


def caller_session_key(phone: Optional[str], call_id: str) -> str:
    """Session key scoped to the caller, stable across reconnects."""
    return f"{SESSION_KEY_PREFIX}{normalize_phone(phone or call_id)}"


class CallSession(BaseModel):
    """State of one live Retell call."""

    call_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    caller_number: Optional[str] = None
    authorized: bool = False
    state: CallState = CallState.PENDING
    transcript: List[TranscriptEntry] = Field(default_factory=list)
    session_key: str = ""
    details_received: bool = False

    def model_post_init(self, __context) -> None:
        if not self.session_key:
            self.session_key = call_session_key(self.call_id)
        if self.authorized and self.state == CallState.PENDING:
            self.state = CallState.AUTHORIZED

    @property
    def is_terminal(self) -> bool:
        return self.state in (CallState.REJECTED, CallState.ENDED)

    def authorize(self, phone: Optional[str]) -> None:
        """Bind the call to a caller and move the session onto the caller-scoped key."""
        self.caller_number = phone
        self.session_key = caller_session_key(phone, self.call_id)
        self.authorized = True
        self.state = CallState.AUTHORIZED

    def reject(self) -> None:
        # authorized stays as it was: it never reverts once granted
        self.state = CallState.REJECTED

    def end(self) -> None:
        self.state = CallState.ENDED

    def update_transcript(self, utterances: Iterable[Utterance]) -> None:
        """Replace the transcript window with the most recent utterances."""
        recent = list(utterances)[-TRANSCRIPT_WINDOW:]
        self.transcript = [
            TranscriptEntry(
                role="agent" if utterance.role == "agent" else "user",
                content=utterance.content or "",
            )
            for utterance in recent
        ]
