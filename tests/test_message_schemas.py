import json

import pytest
from pydantic import ValidationError

from retell_bridge.models.message_schemas import (
    AgentResponse,
    CallDetailsMessage,
    CallInfo,
    ConfigResponse,
    PingPongMessage,
    PingPongResponse,
    ResponseRequiredMessage,
    UpdateOnlyMessage,
    Utterance,
)


def test_config_response_wire_format():
    assert json.loads(ConfigResponse().model_dump_json()) == {
        "response_type": "config",
        "config": {"auto_reconnect": True, "call_details": True},
    }


def test_agent_response_defaults():
    response = AgentResponse(response_id=3, content="Hi")
    assert response.model_dump() == {
        "response_type": "response",
        "response_id": 3,
        "content": "Hi",
        "content_complete": True,
        "end_call": False,
    }


def test_ping_pong_echoes_any_timestamp():
    assert PingPongResponse(timestamp=1700000000000).timestamp == 1700000000000
    assert PingPongResponse(timestamp="1700000000000").timestamp == "1700000000000"
    assert PingPongMessage(interaction_type="ping_pong").timestamp is None


def test_call_details_inbound_party_is_caller():
    message = CallDetailsMessage(
        interaction_type="call_details",
        call={"call_id": "abc", "from_number": "+15551234567", "to_number": "+15550000000"},
    )
    assert message.call.direction == "inbound"
    assert message.call.party_number == "+15551234567"


def test_call_details_outbound_party_is_dialed_number():
    call = CallInfo(from_number="+15550000000", to_number="+15551234567", direction="outbound")
    assert call.is_outbound
    assert call.party_number == "+15551234567"


def test_unknown_direction_is_inbound():
    call = CallInfo(from_number="+15551234567", direction="sideways")
    assert call.direction == "inbound"
    assert call.party_number == "+15551234567"


def test_call_details_without_call_block():
    message = CallDetailsMessage(interaction_type="call_details")
    assert message.call.party_number is None


def test_call_details_keeps_unknown_fields():
    message = CallDetailsMessage(
        interaction_type="call_details",
        call={"from_number": "+15551234567", "agent_id": "agent_1"},
    )
    assert message.call.model_extra["agent_id"] == "agent_1"


def test_response_required_last_user_utterance():
    message = ResponseRequiredMessage(
        interaction_type="response_required",
        response_id=4,
        transcript=[
            {"role": "agent", "content": "How can I help?"},
            {"role": "user", "content": "Book a table"},
            {"role": "agent", "content": "For how many?"},
        ],
    )
    assert message.last_user_utterance().content == "Book a table"


def test_response_required_without_user_turn():
    message = ResponseRequiredMessage(
        interaction_type="reminder_required",
        response_id=5,
        transcript=None,
    )
    assert message.transcript == []
    assert message.last_user_utterance() is None


def test_null_utterance_content_becomes_empty():
    assert Utterance(role="user", content=None).content == ""


def test_response_required_needs_response_id():
    with pytest.raises(ValidationError):
        ResponseRequiredMessage(interaction_type="response_required", transcript=[])


def test_interaction_type_is_checked():
    with pytest.raises(ValidationError):
        ResponseRequiredMessage(interaction_type="update_only", response_id=1)
    assert UpdateOnlyMessage(interaction_type="update_only").transcript == []
