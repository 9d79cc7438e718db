"""
Handles the turn-producing frames from Retell.

response_required and reminder_required both ask the bridge for something to
say. Every branch that can answer without the agent (holding message, empty
input) does so before the backend is touched; the rest go through the voice
agent and come back as a single complete response.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from retell_bridge.config.constants import (
    FAREWELL_PHRASES,
    HICCUP_TEXT,
    HOLDING_TEXT,
    LOGGER_NAME,
    PROMPT_FOR_INPUT_TEXT,
)
from retell_bridge.handlers.context import HandlerContext
from retell_bridge.models.call_session import CallSession
from retell_bridge.models.message_schemas import AgentResponse, ResponseRequiredMessage
from retell_bridge.services.gateway_client import GatewayError

logger = logging.getLogger(LOGGER_NAME)


def should_end_call(reply: str) -> bool:
    """Whether the agent's reply is a farewell that should end the call after playback."""
    lowered = reply.lower()
    return any(phrase in lowered for phrase in FAREWELL_PHRASES)


def _preview(text: str, limit: int = 50) -> str:
    return text if len(text) <= limit else f"{text[:limit]}..."


async def handle_response_required(
    message: Dict[str, Any],
    session: CallSession,
    context: HandlerContext,
) -> Optional[AgentResponse]:
    """
    Handle response_required and reminder_required frames.

    Args:
        message: The turn frame, including Retell's transcript
        session: State of the call the frame arrived on
        context: Handler dependencies

    Returns:
        The response for the frame's response_id, or None when the call is
        already over or the frame is invalid
    """
    if session.is_terminal:
        logger.debug(f"Ignoring turn on finished call: {session.call_id}")
        return None

    try:
        turn = ResponseRequiredMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid {message.get('interaction_type')} message: {e}")
        return None

    if not session.authorized and context.allowlist_enforced:
        return AgentResponse(response_id=turn.response_id, content=HOLDING_TEXT)

    last_user = turn.last_user_utterance()
    if last_user is None or not last_user.content:
        return AgentResponse(response_id=turn.response_id, content=PROMPT_FOR_INPUT_TEXT)

    session.update_transcript(turn.transcript)
    logger.info(f"User: {_preview(last_user.content)}")

    try:
        reply = await context.agent.generate_reply(session, last_user.content)
    except GatewayError as e:
        logger.error(f"Agent error: {e}")
        return AgentResponse(response_id=turn.response_id, content=HICCUP_TEXT)
    except Exception as e:
        logger.error(f"Unexpected error generating reply: {e}", exc_info=True)
        return AgentResponse(response_id=turn.response_id, content=HICCUP_TEXT)

    logger.info(f"Response: {_preview(reply)}")
    return AgentResponse(
        response_id=turn.response_id,
        content=reply,
        end_call=should_end_call(reply),
    )
