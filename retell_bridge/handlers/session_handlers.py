"""
Handles call setup and keepalive frames from Retell.

This module processes the call_details frame, which carries the phone numbers
the bridge authorizes against the allowlist, and the ping_pong heartbeat.
Neither ever waits on the agent backend.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from retell_bridge.caller_auth import is_allowed_caller
from retell_bridge.config.constants import LOGGER_NAME, REJECTED_CALLER_TEXT
from retell_bridge.handlers.context import HandlerContext
from retell_bridge.models.call_session import CallSession
from retell_bridge.models.message_schemas import (
    AgentResponse,
    CallDetailsMessage,
    PingPongResponse,
)

logger = logging.getLogger(LOGGER_NAME)

# Greeting and rejection are not answers to a turn
UNSOLICITED_RESPONSE_ID = 0


async def handle_call_details(
    message: Dict[str, Any],
    session: CallSession,
    context: HandlerContext,
) -> Optional[AgentResponse]:
    """
    Handle the call_details frame.

    For inbound calls the caller is ``from_number``; for outbound calls the
    person on the line is the dialed ``to_number``. That number is checked
    against the allowlist. A rejected caller is told so and the call is ended.
    An admitted caller's session moves to the caller-scoped session key and
    gets the configured greeting, without a backend round trip.

    Args:
        message: The call_details frame
        session: State of the call the frame arrived on
        context: Handler dependencies

    Returns:
        The rejection or greeting response, or None if the frame is ignored
    """
    if session.is_terminal:
        return None

    if session.details_received:
        logger.info(f"Ignoring repeated call details for call: {session.call_id}")
        return None

    try:
        details = CallDetailsMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid call_details message: {e}")
        return None

    call = details.call
    session.details_received = True
    number = call.party_number
    logger.info(
        f"Call: {call.direction} | from: {call.from_number} | to: {call.to_number}"
    )

    if not is_allowed_caller(number, context.config.allow_from):
        logger.warning(f"Unauthorized: {number}")
        session.reject()
        return AgentResponse(
            response_id=UNSOLICITED_RESPONSE_ID,
            content=REJECTED_CALLER_TEXT,
            end_call=True,
        )

    session.authorize(number)
    logger.info(f"Authorized: {number} ({call.direction}) as {session.session_key}")

    return AgentResponse(
        response_id=UNSOLICITED_RESPONSE_ID,
        content=context.config.greeting,
        end_call=False,
    )


async def handle_ping_pong(
    message: Dict[str, Any],
    session: CallSession,
    context: HandlerContext,
) -> PingPongResponse:
    """
    Handle the ping_pong keepalive by echoing its timestamp unchanged.

    Args:
        message: The ping_pong frame
        session: State of the call the frame arrived on (unchanged)
        context: Handler dependencies (unused)

    Returns:
        The ping_pong echo
    """
    return PingPongResponse(timestamp=message.get("timestamp"))

