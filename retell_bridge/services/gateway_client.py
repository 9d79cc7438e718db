"""
WebSocket client for the agent gateway.

The bridge talks to the gateway the same way the web UI does: it connects as an
operator client, runs agent turns with ``chat.send`` and follows the streamed
``agent`` events of the run until a lifecycle event finishes it. One client (and
one connection) is shared by every call; replies are correlated by run id.
"""

import asyncio
import json
import logging
import uuid
from enum import Enum
from typing import Any, Dict, Optional

import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, WebSocketException

from retell_bridge.config.constants import (
    GATEWAY_ABORTED_TEXT,
    GATEWAY_ERROR_TEXT,
    GATEWAY_TIMEOUT_TEXT,
    LOGGER_NAME,
)
from retell_bridge.config.settings import GatewaySettings
from retell_bridge.models.gateway_schemas import (
    AgentStream,
    ChatResponse,
    ChatSendParams,
    ConnectAuth,
    ConnectParams,
    FrameType,
    GatewayEvent,
    GatewayRequest,
    GatewayResponse,
    LifecyclePhase,
    TERMINAL_PHASES,
)

logger = logging.getLogger(LOGGER_NAME)

# Timeouts (seconds)
CONNECT_TIMEOUT = 10
REQUEST_TIMEOUT = 5
DEFAULT_CHAT_TIMEOUT_MS = 30000

# WebSocket configuration
WS_MAX_SIZE = 16 * 1024 * 1024
WS_PING_INTERVAL = 20


class GatewayError(Exception):
    """Base class for gateway failures."""


class GatewayConnectionError(GatewayError):
    """The gateway could not be reached or refused the handshake."""


class GatewayRequestError(GatewayError):
    """A request was rejected, malformed or could not be delivered."""


class GatewayTimeoutError(GatewayRequestError):
    """A request got no response in time."""


class RunState(str, Enum):
    """States of an outstanding chat run. Only the first transition out of AWAITING counts."""
    AWAITING = "awaiting"
    RESOLVED = "resolved"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class PendingRun:
    """
    One chat run waiting for its lifecycle completion.

    The run's future is resolved exactly once, by whichever of completion,
    timeout, cancellation or connection loss happens first.
    """

    def __init__(self, session_key: str):
        self.session_key = session_key
        self.run_id: Optional[str] = None
        self.session_id: Optional[str] = None
        self.state = RunState.AWAITING
        self.text = ""
        self.future: asyncio.Future = asyncio.get_running_loop().create_future()

    @property
    def is_awaiting(self) -> bool:
        return self.state == RunState.AWAITING

    def update_text(self, text: str) -> None:
        # Snapshots are cumulative: the latest one replaces what we had
        if self.is_awaiting:
            self.text = text

    def _settle(self, state: RunState, response: ChatResponse) -> bool:
        if not self.is_awaiting or self.future.done():
            return False
        self.state = state
        response.run_id = self.run_id
        response.session_id = self.session_id
        self.future.set_result(response)
        return True

    def finish(self, phase: str) -> bool:
        """Resolve from a terminal lifecycle phase."""
        text = self.text.strip()
        if phase == LifecyclePhase.ERROR.value:
            response = ChatResponse(text=text or GATEWAY_ERROR_TEXT, error=True)
        elif phase == LifecyclePhase.ABORTED.value:
            response = ChatResponse(text=text or GATEWAY_ABORTED_TEXT, aborted=True)
        else:
            response = ChatResponse(text=text)
        return self._settle(RunState.RESOLVED, response)

    def fail(self) -> bool:
        """Resolve after the gateway connection went away."""
        text = self.text.strip()
        return self._settle(RunState.RESOLVED, ChatResponse(text=text or GATEWAY_ERROR_TEXT, error=True))

    def expire(self) -> bool:
        """Resolve with the timeout utterance."""
        return self._settle(RunState.TIMED_OUT, ChatResponse(text=GATEWAY_TIMEOUT_TEXT, aborted=True))

    def cancel(self) -> bool:
        if not self.is_awaiting:
            return False
        self.state = RunState.CANCELLED
        self.future.cancel()
        return True


class _PendingRequest:
    """A request waiting for its ``res`` frame."""

    def __init__(self, method: str, future: asyncio.Future, run: Optional[PendingRun] = None):
        self.method = method
        self.future = future
        self.run = run


class GatewayClient:
    """
    Client for the agent gateway WebSocket API.

    Args:
        settings: Gateway host, port and credentials
        model: Optional ``provider/model`` string sent with every chat run
    """

    def __init__(self, settings: GatewaySettings, model: Optional[str] = None):
        self.settings = settings
        self.model = model
        self.ws = None
        self._connected = False
        self._recv_task: Optional[asyncio.Task] = None
        self._hello: Optional[asyncio.Future] = None
        self._handshake_id: Optional[str] = None
        self._connect_lock = asyncio.Lock()
        self._pending_requests: Dict[str, _PendingRequest] = {}
        self._runs: Dict[str, PendingRun] = {}

    @property
    def url(self) -> str:
        return self.settings.url

    def is_connected(self) -> bool:
        return (
            self._connected
            and self.ws is not None
            and self._recv_task is not None
            and not self._recv_task.done()
        )

    async def connect(self) -> None:
        """
        Connect to the gateway and complete the operator handshake.

        Raises:
            GatewayConnectionError: If the gateway is unreachable, rejects the
                handshake or does not finish it within CONNECT_TIMEOUT seconds
        """
        async with self._connect_lock:
            if self.is_connected():
                return

            await self._close_socket()

            loop = asyncio.get_running_loop()
            deadline = loop.time() + CONNECT_TIMEOUT
            self._hello = loop.create_future()
            self._handshake_id = None

            logger.info(f"Connecting to agent gateway at {self.url}")
            try:
                self.ws = await asyncio.wait_for(
                    websockets.connect(
                        self.url,
                        max_size=WS_MAX_SIZE,
                        ping_interval=WS_PING_INTERVAL,
                    ),
                    timeout=CONNECT_TIMEOUT,
                )
            except asyncio.TimeoutError:
                self._hello = None
                raise GatewayConnectionError("Gateway connection timeout")
            except (OSError, WebSocketException) as e:
                self._hello = None
                raise GatewayConnectionError(f"Could not reach gateway at {self.url}: {e}") from e

            logger.debug("Gateway WebSocket open, waiting for handshake challenge")
            self._recv_task = asyncio.create_task(self._recv_loop(self.ws))

            try:
                await asyncio.wait_for(self._hello, timeout=max(deadline - loop.time(), 0))
            except asyncio.TimeoutError:
                await self._close_socket()
                raise GatewayConnectionError("Gateway connection timeout")
            except GatewayConnectionError:
                await self._close_socket()
                raise

            self._connected = True
            logger.info("Connected to agent gateway")

    async def send(
        self,
        session_key: str,
        message: str,
        system_context: Optional[str] = None,
        timeout_ms: Optional[int] = None,
    ) -> ChatResponse:
        """
        Send a chat message and wait for the full response.

        Args:
            session_key: Conversation the turn belongs to
            message: What the caller said
            system_context: Extra instructions prepended to the message
            timeout_ms: Budget for the whole turn, request included

        Returns:
            The agent's reply. Timeouts, aborts and agent errors are reported
            through the response flags rather than raised.

        Raises:
            GatewayConnectionError: If the gateway cannot be (re)connected
            GatewayRequestError: If chat.send is rejected or malformed
        """
        loop = asyncio.get_running_loop()
        timeout = (timeout_ms or DEFAULT_CHAT_TIMEOUT_MS) / 1000
        deadline = loop.time() + timeout

        if not self.is_connected():
            await self.connect()

        full_message = message
        if system_context:
            full_message = f"[Context: {system_context}]\n\n{message}"

        params = ChatSendParams(
            sessionKey=session_key,
            message=full_message,
            idempotencyKey=str(uuid.uuid4()),
            model=self.model,
        )

        run = PendingRun(session_key)
        remaining = max(deadline - loop.time(), 0)
        try:
            payload = await self.request(
                "chat.send",
                params.model_dump(exclude_none=True),
                timeout=min(REQUEST_TIMEOUT, remaining),
                run=run,
            )
        except GatewayTimeoutError:
            if remaining <= REQUEST_TIMEOUT:
                logger.warning(f"chat.send for {session_key} used up the turn budget")
                run.expire()
                return run.future.result()
            raise
        except asyncio.CancelledError:
            run.cancel()
            if run.run_id:
                self._runs.pop(run.run_id, None)
            raise

        run_id = payload.get("runId")
        if not run_id:
            raise GatewayRequestError("No runId in chat.send response")
        logger.debug(f"Run {run_id} started for {session_key}")

        try:
            return await asyncio.wait_for(
                asyncio.shield(run.future), timeout=max(deadline - loop.time(), 0)
            )
        except asyncio.TimeoutError:
            if run.expire():
                logger.warning(f"Run {run_id} timed out after {timeout:.1f}s")
            return run.future.result()
        except asyncio.CancelledError:
            if run.cancel():
                logger.info(f"Run {run_id} abandoned by caller")
            raise
        finally:
            self._runs.pop(run_id, None)

    async def request(
        self,
        method: str,
        params: Dict[str, Any],
        timeout: float = REQUEST_TIMEOUT,
        run: Optional[PendingRun] = None,
    ) -> Dict[str, Any]:
        """
        Send a request and wait for its response payload.

        Args:
            method: Gateway method name
            params: Method parameters
            timeout: Seconds to wait for the response
            run: Chat run to register under the run id the response carries

        Returns:
            The response payload
        """
        if not self.is_connected():
            await self.connect()

        request_id = str(uuid.uuid4())
        future = asyncio.get_running_loop().create_future()
        self._pending_requests[request_id] = _PendingRequest(method, future, run)

        try:
            await self._send(GatewayRequest(id=request_id, method=method, params=params))
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            raise GatewayTimeoutError(f"Request timeout: {method}")
        finally:
            self._pending_requests.pop(request_id, None)

    async def close(self) -> None:
        """Close the gateway connection and settle everything outstanding."""
        logger.info("Closing agent gateway client")
        await self._close_socket()

    async def _send(self, frame: GatewayRequest) -> None:
        if self.ws is None:
            raise GatewayRequestError("Gateway is not connected")
        try:
            await self.ws.send(frame.model_dump_json())
        except ConnectionClosed as e:
            raise GatewayRequestError(f"Gateway connection closed: {e}") from e

    async def _send_handshake(self, nonce: Optional[str] = None) -> None:
        params = ConnectParams(
            auth=ConnectAuth(token=self.settings.token, password=self.settings.password)
        )
        self._handshake_id = str(uuid.uuid4())
        logger.debug(f"Answering connect challenge (nonce present: {bool(nonce)})")
        await self._send(
            GatewayRequest(
                id=self._handshake_id,
                method="connect",
                params=params.model_dump(exclude_none=True),
            )
        )

    async def _recv_loop(self, ws) -> None:
        try:
            while True:
                raw = await ws.recv()
                await self._handle_message(raw)
        except asyncio.CancelledError:
            raise
        except ConnectionClosed as e:
            logger.warning(f"Gateway connection closed: {e}")
        except Exception as e:
            logger.error(f"Error in gateway receive loop: {e}", exc_info=True)
        finally:
            if ws is self.ws:
                self._connected = False
                self._settle_outstanding("Gateway connection closed")

    async def _handle_message(self, raw: Any) -> None:
        try:
            msg = json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            logger.error(f"Failed to parse gateway message: {str(raw)[:200]}")
            return
        if not isinstance(msg, dict):
            return

        try:
            if msg.get("type") == FrameType.EVENT.value:
                await self._handle_event(GatewayEvent.model_validate(msg))
            elif msg.get("type") == FrameType.RESPONSE.value:
                self._handle_response(GatewayResponse.model_validate(msg))
        except ValidationError as e:
            logger.error(f"Invalid gateway frame: {e}")

    async def _handle_event(self, event: GatewayEvent) -> None:
        logger.debug(f"Event received: {event.event} payload={json.dumps(event.payload)[:200]}")

        if event.event == "connect.challenge":
            await self._send_handshake(event.payload.get("nonce"))
            return

        if event.event != "agent":
            return

        payload = event.payload
        run_id = payload.get("runId")
        run = self._runs.get(run_id) if run_id else None
        if run is None:
            return

        data = payload.get("data") or {}
        stream = payload.get("stream")

        if stream == AgentStream.ASSISTANT.value and data.get("text"):
            run.update_text(data["text"])
        elif stream == AgentStream.LIFECYCLE.value and data.get("phase") in TERMINAL_PHASES:
            self._runs.pop(run_id, None)
            if run.finish(data["phase"]):
                logger.debug(f"Run {run_id} finished with phase {data['phase']}")

    def _handle_response(self, res: GatewayResponse) -> None:
        hello = self._hello
        if hello is not None and not hello.done():
            is_hello = (res.payload or {}).get("type") == "hello-ok"
            if res.id == self._handshake_id or is_hello:
                if res.ok and is_hello:
                    hello.set_result(res.payload)
                else:
                    hello.set_exception(
                        GatewayConnectionError(res.error_message or "Connection rejected")
                    )
                return

        pending = self._pending_requests.pop(res.id, None) if res.id else None
        if pending is None or pending.future.done():
            return

        if not res.ok:
            pending.future.set_exception(GatewayRequestError(res.error_message or "Request failed"))
            return

        payload = res.payload or {}
        # Register the run before anything else is read so its stream events are never missed
        run_id = payload.get("runId")
        if pending.run is not None and run_id:
            pending.run.run_id = run_id
            pending.run.session_id = payload.get("sessionId")
            self._runs[run_id] = pending.run
        pending.future.set_result(payload)

    def _settle_outstanding(self, reason: str) -> None:
        if self._hello is not None and not self._hello.done():
            self._hello.set_exception(GatewayConnectionError(reason))

        requests, self._pending_requests = self._pending_requests, {}
        for pending in requests.values():
            if not pending.future.done():
                pending.future.set_exception(GatewayRequestError(reason))

        runs, self._runs = self._runs, {}
        for run in runs.values():
            run.fail()

    async def _close_socket(self) -> None:
        ws, self.ws = self.ws, None
        self._connected = False

        task, self._recv_task = self._recv_task, None
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if ws is not None:
            try:
                await ws.close()
            except (OSError, WebSocketException) as e:
                logger.warning(f"Error closing gateway socket: {e}")

        self._settle_outstanding("Gateway client closed")
