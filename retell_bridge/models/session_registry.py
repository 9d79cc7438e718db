"""
Session registry for the Retell bridge.

The registry keeps two kinds of state:

- the live CallSession of every open connection, keyed by call id, which goes
  away when the connection closes;
- a durable SessionHandle per session key, which maps the key to the agent
  gateway's session and survives reconnects (and, with a store path, restarts).
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from retell_bridge.config.constants import LOGGER_NAME
from retell_bridge.models.call_session import CallSession

logger = logging.getLogger(LOGGER_NAME)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionHandle(BaseModel):
    """Mapping from a session key to the gateway conversation it continues."""

    session_key: str
    backend_session_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    turns: int = 0


class SessionRegistry:
    """
    Tracks live calls and the durable session handles behind them.

    Args:
        store_path: Optional JSON file the handles are persisted to. Without it
            handles only live as long as the process.
    """

    def __init__(self, store_path: Optional[Path] = None):
        self.store_path = Path(store_path) if store_path else None
        self.active_calls: Dict[str, CallSession] = {}
        self.handles: Dict[str, SessionHandle] = {}
        self._load()

    # Live calls

    def open_call(self, call_id: str, authorized: bool = False) -> CallSession:
        """
        Register a new call connection.

        Args:
            call_id: Identifier taken from the connection path
            authorized: Start authorized (used when the allowlist is empty)

        Returns:
            The new CallSession
        """
        if call_id in self.active_calls:
            logger.warning(f"Replacing live session for call: {call_id}")
        session = CallSession(call_id=call_id, authorized=authorized)
        self.active_calls[call_id] = session
        return session

    def get_call(self, call_id: str) -> Optional[CallSession]:
        return self.active_calls.get(call_id)

    def close_call(self, call_id: str, session: Optional[CallSession] = None) -> None:
        """
        Forget a call; its session handle is kept.

        Args:
            call_id: Identifier of the call
            session: The connection's own session. When given, the call is only
                forgotten if it is still the live one, so an older connection of a
                reconnected call cannot end the newer session.
        """
        live = self.active_calls.get(call_id)
        if session is not None:
            session.end()
            if live is not session:
                return
        if live is not None:
            del self.active_calls[call_id]
            live.end()

    def get_all_calls(self) -> Dict[str, CallSession]:
        return self.active_calls

    # Durable handles

    def get_handle(self, session_key: str) -> Optional[SessionHandle]:
        return self.handles.get(session_key)

    def resolve_handle(self, session_key: str) -> SessionHandle:
        """Return the handle for a key, creating it on first use."""
        handle = self.handles.get(session_key)
        if handle is None:
            handle = SessionHandle(session_key=session_key)
            self.handles[session_key] = handle
            logger.info(f"New backend session {handle.backend_session_id} for {session_key}")
            self._save()
        return handle

    def record_turn(self, session_key: str, backend_session_id: Optional[str] = None) -> SessionHandle:
        """
        Note that a turn was sent for a key.

        Args:
            session_key: Key the turn was sent under
            backend_session_id: Session id reported by the gateway, if any

        Returns:
            The updated handle
        """
        handle = self.resolve_handle(session_key)
        if backend_session_id and backend_session_id != handle.backend_session_id:
            logger.info(
                f"Gateway session for {session_key} is {backend_session_id} "
                f"(was {handle.backend_session_id})"
            )
            handle.backend_session_id = backend_session_id
        handle.turns += 1
        handle.updated_at = _utcnow()
        self._save()
        return handle

    def list_handles(self) -> List[SessionHandle]:
        return sorted(self.handles.values(), key=lambda h: h.updated_at, reverse=True)

    # Persistence

    def _load(self) -> None:
        if not self.store_path or not self.store_path.exists():
            return
        try:
            raw = json.loads(self.store_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Could not read session store {self.store_path}: {e}")
            return
        if not isinstance(raw, dict):
            logger.error(f"Ignoring session store {self.store_path}: expected a JSON object")
            return

        for key, value in raw.items():
            try:
                self.handles[key] = SessionHandle(session_key=key, **value)
            except (TypeError, ValidationError) as e:
                logger.warning(f"Skipping invalid session entry {key}: {e}")
        logger.info(f"Loaded {len(self.handles)} session handles from {self.store_path}")

    def _save(self) -> None:
        if not self.store_path:
            return
        data = {
            key: handle.model_dump(mode="json", exclude={"session_key"})
            for key, handle in self.handles.items()
        }
        tmp_path = self.store_path.with_name(self.store_path.name + ".tmp")
        try:
            self.store_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            tmp_path.replace(self.store_path)
        except OSError as e:
            logger.error(f"Could not write session store {self.store_path}: {e}")
