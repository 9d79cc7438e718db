"""
Handlers module for the Retell Custom LLM WebSocket protocol.

Each handler takes the raw frame, the CallSession of the connection it arrived
on and a HandlerContext, and returns the frame to send back (or None).

Key components:
- session_handlers: call_details (caller authorization, session key, greeting)
  and ping_pong (heartbeat echo).
- turn_handlers: response_required / reminder_required, including the
  short-circuit replies and end-of-call inference.
- context: HandlerContext, the configuration and voice agent handlers share.

Usage examples:
```python
from retell_bridge.handlers import session_handlers, turn_handlers
from retell_bridge.handlers.context import HandlerContext

context = HandlerContext(config, voice_agent)

response = await session_handlers.handle_call_details(frame, session, context)
if response:
    await websocket.send_text(response.model_dump_json())

response = await turn_handlers.handle_response_required(frame, session, context)
```
"""
