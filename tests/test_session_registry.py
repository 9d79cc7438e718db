import json

from retell_bridge.models.call_session import CallState
from retell_bridge.models.session_registry import SessionRegistry


def test_open_and_close_call():
    registry = SessionRegistry()
    session = registry.open_call("call_1")

    assert registry.get_call("call_1") is session
    assert registry.get_all_calls() == {"call_1": session}

    registry.close_call("call_1")

    assert registry.get_call("call_1") is None
    assert session.state == CallState.ENDED


def test_close_unknown_call_is_noop():
    registry = SessionRegistry()
    registry.close_call("missing")
    assert registry.active_calls == {}


def test_open_call_authorized():
    registry = SessionRegistry()
    assert registry.open_call("call_1", authorized=True).authorized is True


def test_resolve_handle_creates_once():
    registry = SessionRegistry()
    first = registry.resolve_handle("retell:+15551234567")
    second = registry.resolve_handle("retell:+15551234567")

    assert first is second
    assert first.turns == 0
    assert registry.get_handle("retell:+15551234567") is first


def test_record_turn_counts_and_adopts_gateway_session():
    registry = SessionRegistry()
    handle = registry.resolve_handle("retell:abc")
    created = handle.updated_at

    registry.record_turn("retell:abc")
    registry.record_turn("retell:abc", "gw-session-9")

    assert handle.turns == 2
    assert handle.backend_session_id == "gw-session-9"
    assert handle.updated_at >= created


def test_handles_survive_call_close():
    registry = SessionRegistry()
    registry.open_call("call_1")
    registry.record_turn("retell:+15551234567")
    registry.close_call("call_1")

    assert registry.get_handle("retell:+15551234567").turns == 1


def test_handles_persist_to_store(tmp_path):
    store = tmp_path / "state" / "sessions.json"
    registry = SessionRegistry(store)
    handle = registry.record_turn("retell:+15551234567", "gw-1")

    data = json.loads(store.read_text())
    assert data["retell:+15551234567"]["backend_session_id"] == "gw-1"

    reloaded = SessionRegistry(store)
    restored = reloaded.get_handle("retell:+15551234567")
    assert restored.backend_session_id == "gw-1"
    assert restored.turns == 1
    assert restored.created_at == handle.created_at


def test_unreadable_store_is_ignored(tmp_path):
    store = tmp_path / "sessions.json"
    store.write_text("{not json")

    registry = SessionRegistry(store)

    assert registry.handles == {}


def test_invalid_entries_are_skipped(tmp_path):
    store = tmp_path / "sessions.json"
    store.write_text(json.dumps({
        "retell:good": {"backend_session_id": "gw-1", "turns": 3},
        "retell:bad": {"turns": "many"},
    }))

    registry = SessionRegistry(store)

    assert list(registry.handles) == ["retell:good"]
    assert registry.get_handle("retell:good").turns == 3


def test_list_handles_most_recent_first():
    registry = SessionRegistry()
    registry.record_turn("retell:a")
    registry.record_turn("retell:b")
    registry.record_turn("retell:a")

    assert [h.session_key for h in registry.list_handles()][0] == "retell:a"


def test_stale_connection_does_not_close_replacement():
    registry = SessionRegistry()
    old = registry.open_call("call_1")
    new = registry.open_call("call_1")

    registry.close_call("call_1", old)

    assert old.state == CallState.ENDED
    assert registry.get_call("call_1") is new
    assert new.state == CallState.PENDING

    registry.close_call("call_1", new)

    assert registry.get_call("call_1") is None
    assert new.state == CallState.ENDED


def test_store_with_wrong_shape_is_ignored(tmp_path):
    store = tmp_path / "sessions.json"
    store.write_text("[]")

    registry = SessionRegistry(store)

    assert registry.handles == {}
    registry.record_turn("retell:abc")
    assert "retell:abc" in json.loads(store.read_text())
