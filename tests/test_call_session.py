from retell_bridge.models.call_session import (
    CallSession,
    CallState,
    call_session_key,
    caller_session_key,
)
from retell_bridge.models.message_schemas import Utterance


def test_new_session_is_pending():
    session = CallSession(call_id="call_1")
    assert session.state == CallState.PENDING
    assert session.authorized is False
    assert session.session_key == "retell:call_1"
    assert session.transcript == []


def test_session_authorized_from_start():
    session = CallSession(call_id="call_1", authorized=True)
    assert session.state == CallState.AUTHORIZED


def test_generated_call_id():
    assert CallSession().call_id != CallSession().call_id


def test_authorize_moves_to_caller_key():
    session = CallSession(call_id="call_1")
    session.authorize("(555) 123-4567")

    assert session.authorized is True
    assert session.state == CallState.AUTHORIZED
    assert session.caller_number == "(555) 123-4567"
    assert session.session_key == "retell:+15551234567"


def test_authorize_without_number_uses_call_id():
    session = CallSession(call_id="call_1")
    session.authorize(None)
    assert session.session_key == "retell:call_1"


def test_same_caller_gets_same_key_across_calls():
    first = CallSession(call_id="call_1")
    second = CallSession(call_id="call_2")
    first.authorize("+15551234567")
    second.authorize("15551234567")
    assert first.session_key == second.session_key


def test_reject_is_terminal():
    session = CallSession(call_id="call_1")
    session.reject()
    assert session.state == CallState.REJECTED
    assert session.is_terminal


def test_authorized_never_reverts():
    session = CallSession(call_id="call_1", authorized=True)
    session.reject()
    session.end()
    assert session.authorized is True
    assert session.state == CallState.ENDED


def test_transcript_window_keeps_latest_ten():
    session = CallSession(call_id="call_1")
    utterances = [
        Utterance(role="user" if i % 2 else "agent", content=f"line {i}")
        for i in range(15)
    ]
    session.update_transcript(utterances)

    assert len(session.transcript) == 10
    assert session.transcript[0].content == "line 5"
    assert session.transcript[-1].content == "line 14"


def test_transcript_roles_normalized():
    session = CallSession(call_id="call_1")
    session.update_transcript([
        Utterance(role="agent", content="Hi"),
        Utterance(role="user", content="Hello"),
        Utterance(role="transfer_target", content="Hey"),
    ])
    assert [entry.role for entry in session.transcript] == ["agent", "user", "user"]


def test_key_helpers():
    assert call_session_key("abc") == "retell:abc"
    assert caller_session_key("5551234567", "abc") == "retell:+15551234567"
    assert caller_session_key("", "abc") == "retell:abc"
