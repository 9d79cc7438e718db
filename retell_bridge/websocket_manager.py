"""
WebSocket connection manager for Retell Custom LLM calls.

This module implements the server side of the Retell Custom LLM WebSocket
protocol, providing the infrastructure to:
- Accept one connection per call and keep its CallSession
- Announce the bridge's capabilities before anything else is exchanged
- Route incoming frames to the handler for their ``interaction_type``
- Serialize outgoing frames and clean up when the call goes away

The WebSocketManager class is the central component that orchestrates all WebSocket
communications between Retell and the agent behind the bridge.
"""

import asyncio
import json
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect

from retell_bridge.config.constants import (
    INTERACTION_CALL_DETAILS,
    INTERACTION_PING_PONG,
    INTERACTION_REMINDER_REQUIRED,
    INTERACTION_RESPONSE_REQUIRED,
    LOGGER_NAME,
)
from retell_bridge.handlers.context import HandlerContext
from retell_bridge.handlers.session_handlers import handle_call_details, handle_ping_pong
from retell_bridge.handlers.turn_handlers import handle_response_required
from retell_bridge.models.call_session import CallSession
from retell_bridge.models.message_schemas import ConfigResponse, OutgoingMessage
from retell_bridge.models.session_registry import SessionRegistry

logger = logging.getLogger(LOGGER_NAME)

# Type hint for handler functions
HandlerFunc = Callable[
    [Dict[str, Any], CallSession, HandlerContext],
    Awaitable[Optional[OutgoingMessage]],
]

# Frames answered by the agent; they run off the read loop so heartbeats keep flowing
TURN_INTERACTIONS = {INTERACTION_RESPONSE_REQUIRED, INTERACTION_REMINDER_REQUIRED}


class WebSocketManager:
    """Manages Retell call connections and routes frames to the matching handlers.

    Each connection gets its own CallSession. call_details and ping_pong are
    answered inline; turns run as one background task per connection, a newer turn
    replacing one that is still waiting on the agent.

    Args:
        registry: Registry the call sessions are kept in
        context: Dependencies handed to every handler
    """

    def __init__(self, registry: SessionRegistry, context: HandlerContext):
        self.registry = registry
        self.context = context
        # Keyed by connection: a reconnecting call briefly has two
        self.turn_tasks: Dict[str, asyncio.Task] = {}

        self.handlers: Dict[str, HandlerFunc] = {
            INTERACTION_CALL_DETAILS: handle_call_details,
            INTERACTION_PING_PONG: handle_ping_pong,
            INTERACTION_RESPONSE_REQUIRED: handle_response_required,
            INTERACTION_REMINDER_REQUIRED: handle_response_required,
        }

    async def handle_websocket(self, websocket: WebSocket, call_id: Optional[str] = None):
        """Handle a call connection throughout its lifecycle.

        Args:
            websocket: The FastAPI WebSocket connection object
            call_id: Call identifier from the connection path; generated when absent

        This method:
        1. Accepts the connection and opens the CallSession
        2. Sends the config frame (the bridge must speak first)
        3. Reads frames in order and routes each one by interaction_type
        4. Drops frames that are not valid JSON without closing the call
        5. Cancels any turn in flight and forgets the session on disconnect
        """
        await websocket.accept()
        call_id = call_id or str(uuid.uuid4())
        session = self.registry.open_call(
            call_id, authorized=not self.context.allowlist_enforced
        )
        connection_id = str(uuid.uuid4())
        send_lock = asyncio.Lock()
        logger.info(f"New call: {call_id}")

        try:
            await self._send(websocket, send_lock, ConfigResponse())

            while True:
                data = await websocket.receive_text()

                try:
                    message = json.loads(data)
                except json.JSONDecodeError as e:
                    logger.error(f"Message parse error on call {call_id}: {e}")
                    continue
                if not isinstance(message, dict):
                    logger.error(f"Unexpected frame on call {call_id}: {data[:100]}")
                    continue

                interaction_type = message.get("interaction_type")
                handler = self.handlers.get(interaction_type)
                if handler is None:
                    logger.debug(f"Ignoring {interaction_type} frame on call {call_id}")
                    continue

                if interaction_type in TURN_INTERACTIONS:
                    self._start_turn(connection_id, websocket, send_lock, session, handler, message)
                    continue

                response = await handler(message, session, self.context)
                if response:
                    await self._send(websocket, send_lock, response)

        except WebSocketDisconnect as e:
            logger.info(f"Call disconnected: {call_id} (code {e.code})")
        except Exception as e:
            logger.error(f"Error in WebSocket connection: {e}", exc_info=True)
        finally:
            await self._cancel_turn(connection_id)
            self.registry.close_call(call_id, session)
            logger.info(f"Call ended: {call_id}")
            await self._close(websocket)

    def _start_turn(
        self,
        connection_id: str,
        websocket: WebSocket,
        send_lock: asyncio.Lock,
        session: CallSession,
        handler: HandlerFunc,
        message: Dict[str, Any],
    ) -> None:
        previous = self.turn_tasks.get(connection_id)
        if previous and not previous.done():
            logger.info(
                f"Turn {message.get('response_id')} supersedes the pending one on call {session.call_id}"
            )
            previous.cancel()

        task = asyncio.create_task(
            self._run_turn(websocket, send_lock, session, handler, message)
        )
        self.turn_tasks[connection_id] = task
        task.add_done_callback(lambda t: self._forget_turn(connection_id, t))

    async def _run_turn(
        self,
        websocket: WebSocket,
        send_lock: asyncio.Lock,
        session: CallSession,
        handler: HandlerFunc,
        message: Dict[str, Any],
    ) -> None:
        try:
            response = await handler(message, session, self.context)
            if response:
                await self._send(websocket, send_lock, response)
        except asyncio.CancelledError:
            logger.debug(f"Turn {message.get('response_id')} cancelled on call {session.call_id}")
            raise
        except Exception as e:
            logger.error(f"Turn failed on call {session.call_id}: {e}", exc_info=True)

    def _forget_turn(self, connection_id: str, task: asyncio.Task) -> None:
        if self.turn_tasks.get(connection_id) is task:
            del self.turn_tasks[connection_id]

    async def _cancel_turn(self, connection_id: str) -> None:
        task = self.turn_tasks.pop(connection_id, None)
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _send(
        self, websocket: WebSocket, send_lock: asyncio.Lock, message: OutgoingMessage
    ) -> None:
        async with send_lock:
            await websocket.send_text(message.model_dump_json())
        logger.debug(f"Sent {message.response_type} frame")

    async def _close(self, websocket: WebSocket) -> None:
        try:
            await websocket.close()
        except RuntimeError as e:
            # Starlette refuses to close a socket the peer already closed
            logger.debug(f"WebSocket already closed: {e}")
