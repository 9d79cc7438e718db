"""
Voice agent for Retell calls.

Wraps the agent backend with what a phone conversation needs: a voice-specific
system prompt carrying the recent transcript, bookkeeping of the caller's
durable session, and spoken fallbacks when the backend returns nothing usable.
"""

import logging

from retell_bridge.config.constants import (
    EMPTY_REPLY_TEXT,
    LOGGER_NAME,
    RAN_OUT_OF_TIME_TEXT,
)
from retell_bridge.models.call_session import CallSession
from retell_bridge.models.session_registry import SessionRegistry
from retell_bridge.services.agent_backend import AgentBackend

logger = logging.getLogger(LOGGER_NAME)

VOICE_PROMPT_TEMPLATE = """You are speaking on a phone call. The caller's number is {caller}.

VOICE CALL GUIDELINES:
- Keep responses SHORT and conversational (1-3 sentences max)
- Be concise - the caller may be driving or multitasking
- Use natural speech patterns, not formal writing
- Don't use markdown, bullet points, or formatting - just speak naturally
- You have full access to tools - use them when helpful
- If you need to do something that takes time, say so briefly

Be helpful, direct, and sound like a friend - not a corporate assistant."""


def build_voice_prompt(session: CallSession) -> str:
    """
    Build the system context sent with every turn.

    The current turn is the last transcript entry and is sent as the message
    itself, so only the entries before it are included as history.
    """
    prompt = VOICE_PROMPT_TEMPLATE.format(caller=session.caller_number or "unknown")

    if len(session.transcript) > 1:
        history = "\n".join(
            f"{'You' if entry.role == 'agent' else 'Caller'}: {entry.content}"
            for entry in session.transcript[:-1]
        )
        prompt = f"{prompt}\n\nRecent conversation:\n{history}"

    return prompt


class VoiceAgent:
    """
    Produces spoken replies for call turns.

    Args:
        backend: Agent backend the turns are sent to
        registry: Registry holding the durable session handles
        timeout_ms: Budget for one turn
    """

    def __init__(self, backend: AgentBackend, registry: SessionRegistry, timeout_ms: int):
        self.backend = backend
        self.registry = registry
        self.timeout_ms = timeout_ms

    async def generate_reply(self, session: CallSession, user_message: str) -> str:
        """
        Run one turn against the agent.

        Args:
            session: The call the turn belongs to
            user_message: What the caller just said

        Returns:
            Text to speak; never empty

        Raises:
            GatewayError: If the backend cannot be reached at all
        """
        handle = self.registry.resolve_handle(session.session_key)
        logger.debug(
            f"Turn for {session.session_key} (backend session {handle.backend_session_id})"
        )

        result = await self.backend.send(
            session.session_key,
            user_message,
            system_context=build_voice_prompt(session),
            timeout_ms=self.timeout_ms,
        )
        self.registry.record_turn(session.session_key, result.session_id)

        if result.error:
            logger.warning(f"Agent reported an error for call {session.call_id}")
        if not result.text:
            if result.aborted:
                return RAN_OUT_OF_TIME_TEXT
            return EMPTY_REPLY_TEXT
        return result.text

