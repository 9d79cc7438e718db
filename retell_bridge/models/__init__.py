"""
Models module for data structures and state management in the Retell bridge.

Key components:
- message_schemas: Pydantic models for the Retell Custom LLM WebSocket frames,
  both the ``interaction_type`` frames Retell sends and the ``response_type``
  frames the bridge answers with.
- gateway_schemas: Models for the agent gateway protocol (request/response
  envelopes, streamed agent events, chat results).
- call_session: The per-connection CallSession and its state machine.
- session_registry: Live calls plus the durable session handles that let a
  caller resume their conversation on reconnect.

Usage examples:
```python
from retell_bridge.models.message_schemas import AgentResponse, ResponseRequiredMessage
from retell_bridge.models.session_registry import SessionRegistry

registry = SessionRegistry()
session = registry.open_call("call_123")

event = ResponseRequiredMessage(
    interaction_type="response_required",
    response_id=1,
    transcript=[{"role": "user", "content": "What's the weather?"}],
)
session.update_transcript(event.transcript)

reply = AgentResponse(response_id=event.response_id, content="Sunny and warm.")
await websocket.send_text(reply.model_dump_json())
```
"""

from retell_bridge.models.call_session import CallSession, CallState, TranscriptEntry
from retell_bridge.models.gateway_schemas import ChatResponse
from retell_bridge.models.message_schemas import (
    AgentResponse,
    CallDetailsMessage,
    CallInfo,
    ConfigResponse,
    IncomingMessage,
    OutgoingMessage,
    PingPongMessage,
    PingPongResponse,
    ResponseRequiredMessage,
    UpdateOnlyMessage,
    Utterance,
)
from retell_bridge.models.session_registry import SessionHandle, SessionRegistry
