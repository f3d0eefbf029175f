import pytest
from starlette.websockets import WebSocketDisconnect

import auth as auth_module
from conftest import auth


def test_connect_and_ping(client, customer_id):
    with client.websocket_connect(f"/api/ws?user_id={customer_id}") as ws:
        assert ws.receive_json() == {"type": "connected", "message": "Connected to notification service"}

        ws.send_text('{"type": "ping"}')
        assert ws.receive_json() == {"type": "pong"}


def test_connect_with_header(client, customer_id):
    with client.websocket_connect("/api/ws", headers={"x-user-id": customer_id}) as ws:
        assert ws.receive_json()["type"] == "connected"


def test_unknown_user_rejected_after_handshake(client):
    with client.websocket_connect("/api/ws?user_id=ghost") as ws:
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_json()
    assert exc.value.code == 4001


def test_banned_user_rejected_after_handshake(client, make_user):
    banned = make_user("user", banned=True)
    with client.websocket_connect(f"/api/ws?user_id={banned}") as ws:
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_json()
    assert exc.value.code == 4001


def test_malformed_messages_keep_connection_open(client, customer_id):
    with client.websocket_connect(f"/api/ws?user_id={customer_id}") as ws:
        ws.receive_json()
        ws.send_text("not json")
        ws.send_text('{"type": "subscribe"}')
        ws.send_text('{"type": "ping"}')
        assert ws.receive_json() == {"type": "pong"}


def test_admin_send_reaches_connected_user(client, admin_id, customer_id):
    with client.websocket_connect(f"/api/ws?user_id={customer_id}") as ws:
        ws.receive_json()

        res = client.post(
            "/api/notifications/admin/send",
            json={"userId": customer_id, "title": "Live", "message": "Pushed"},
            headers=auth(admin_id),
        )
        assert res.json()["delivered"] is True

        pushed = ws.receive_json()
        assert pushed["type"] == "notification"
        assert pushed["payload"]["title"] == "Live"
        assert pushed["payload"]["id"] == res.json()["notification"]["id"]


def test_registry_tracks_open_connection(client, customer_id):
    registry = client.app.state.connections
    with client.websocket_connect(f"/api/ws?user_id={customer_id}") as ws:
        ws.receive_json()
        assert registry.is_online(customer_id)
        assert registry.snapshot() == {"onlineUsers": 1, "connections": 1}


def test_user_lookup_runs_off_the_event_loop(client, customer_id, session_opens):
    on_loop = session_opens(auth_module)

    with client.websocket_connect(f"/api/ws?user_id={customer_id}") as ws:
        assert ws.receive_json()["type"] == "connected"

    assert on_loop == [False]
