import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock

from retell_bridge.bridge_server import BridgeServer
from retell_bridge.config.settings import BridgeConfig
from retell_bridge.main import WS_CLOSE_TRY_AGAIN_LATER, create_app
from retell_bridge.models.gateway_schemas import ChatResponse
from retell_bridge.models.session_registry import SessionRegistry

ALLOWED_NUMBER = "+15551234567"


@pytest.fixture
def gateway():
    gateway = MagicMock()
    gateway.connect = AsyncMock()
    gateway.close = AsyncMock()
    gateway.send = AsyncMock(return_value=ChatResponse(text="Talk to you later!"))
    gateway.is_connected = MagicMock(return_value=True)
    return gateway


@pytest.fixture
def server(gateway):
    return BridgeServer(
        BridgeConfig(allow_from=[ALLOWED_NUMBER], greeting="Hey! What's up?"),
        gateway=gateway,
        registry=SessionRegistry(),
    )


@pytest.fixture
def client(server):
    with TestClient(create_app(server)) as client:
        yield client


def test_lifespan_starts_and_stops_bridge(server, gateway):
    with TestClient(create_app(server)):
        assert server.running is True
        gateway.connect.assert_awaited_once()

    assert server.running is False
    gateway.close.assert_awaited_once()


def test_status(client):
    response = client.get("/status")
    assert response.status_code == 200
    assert response.json() == {
        "running": True,
        "port": 8765,
        "path": "/llm-websocket",
        "allow_from": [ALLOWED_NUMBER],
    }


def test_health_check(client):
    """Test the health check endpoint returns correct response"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "running": True,
        "gateway_connected": True,
        "active_calls": 0,
    }


def test_root_endpoint(client):
    """Test the root endpoint returns the correct API information"""
    response = client.get("/")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["name"] == "Retell Voice Bridge"
    assert response_json["version"] == "1.0.0"
    assert "/llm-websocket/{call_id}" in response_json["endpoints"]
    assert "/health" in response_json["endpoints"]


def test_websocket_routes_registered(server):
    paths = {route.path for route in create_app(server).routes}
    assert "/llm-websocket/{call_id}" in paths
    assert "/llm-websocket" in paths


def test_call_over_websocket(client, gateway):
    with client.websocket_connect("/llm-websocket/call_abc") as websocket:
        assert websocket.receive_json() == {
            "response_type": "config",
            "config": {"auto_reconnect": True, "call_details": True},
        }

        websocket.send_json({
            "interaction_type": "call_details",
            "call": {"call_id": "call_abc", "from_number": ALLOWED_NUMBER},
        })
        assert websocket.receive_json()["content"] == "Hey! What's up?"

        websocket.send_json({"interaction_type": "ping_pong", "timestamp": 1703302407333})
        assert websocket.receive_json() == {"response_type": "ping_pong", "timestamp": 1703302407333}

        assert client.get("/health").json()["active_calls"] == 1

        websocket.send_json({
            "interaction_type": "response_required",
            "response_id": 1,
            "transcript": [{"role": "user", "content": "That's all, thanks"}],
        })
        reply = websocket.receive_json()
        assert reply["response_id"] == 1
        assert reply["content"] == "Talk to you later!"
        assert reply["end_call"] is True

    assert gateway.send.call_args[0][0] == f"retell:{ALLOWED_NUMBER}"


def test_call_without_call_id(client):
    with client.websocket_connect("/llm-websocket") as websocket:
        assert websocket.receive_json()["response_type"] == "config"


def test_call_refused_when_not_running(server):
    # No lifespan: the bridge was never started
    client = TestClient(create_app(server))

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/llm-websocket/call_abc") as websocket:
            websocket.receive_json()

    assert exc_info.value.code == WS_CLOSE_TRY_AGAIN_LATER


def test_disabled_bridge_reports_stopped(gateway):
    server = BridgeServer(BridgeConfig(enabled=False), gateway=gateway, registry=SessionRegistry())

    with TestClient(create_app(server)) as client:
        health = client.get("/health").json()

    assert health["status"] == "stopped"
    assert health["running"] is False
    gateway.connect.assert_not_called()


def test_module_app():
    from retell_bridge.main import app, bridge_server

    assert app.state.bridge_server is bridge_server
    assert any(route.path == "/health" for route in app.routes)
