import pytest
import redis
from starlette.websockets import WebSocketDisconnect

from conftest import auth


def create_room(client):
    response = client.post("/rooms/")
    assert response.status_code == 201
    return response.json()


def test_create_room(client):
    body = create_room(client)
    assert body["room_id"]
    assert body["token"]
    assert body["ttl_seconds"] == 600
    assert body["ws_url"].startswith("ws://")
    assert body["ws_url"].endswith(f"/rooms/ws?token={body['token']}")


def test_room_details_and_ttl(client):
    room = create_room(client)

    details = client.get("/rooms/", headers=auth(room["token"]))
    assert details.status_code == 200
    assert details.json()["room_id"] == room["room_id"]
    assert details.json()["expires_at"] == room["expires_at"]

    ttl = client.get("/rooms/ttl", headers=auth(room["token"]))
    assert ttl.status_code == 200
    assert 0 < ttl.json()["seconds"] <= 600


def test_scenario_post_and_list(client):
    room = create_room(client)
    headers = auth(room["token"])

    posted = client.post("/messages/", json={"sender": "anonymous-fox-ab12c", "text": "hello"}, headers=headers)
    assert posted.status_code == 201

    listed = client.get("/messages/", headers=headers)
    assert listed.status_code == 200
    messages = listed.json()["messages"]
    assert len(messages) == 1
    assert messages[0]["sender"] == "anonymous-fox-ab12c"
    assert messages[0]["text"] == "hello"
    assert messages[0]["room_id"] == room["room_id"]
    assert messages[0]["id"]
    assert messages[0]["timestamp"]
    assert messages[0]["is_own"] is True
    assert "token_hash" not in messages[0]
    assert "token" not in messages[0]


def test_text_over_limit_is_rejected(client):
    room = create_room(client)
    headers = auth(room["token"])

    ok = client.post("/messages/", json={"sender": "a", "text": "x" * 1000}, headers=headers)
    too_long = client.post("/messages/", json={"sender": "a", "text": "x" * 1001}, headers=headers)
    assert ok.status_code == 201
    assert too_long.status_code == 422


@pytest.mark.parametrize("headers", [{}, auth("not-a-token")])
def test_requests_without_valid_token(client, headers):
    assert client.get("/rooms/ttl", headers=headers).status_code == 401
    assert client.get("/messages/", headers=headers).status_code == 401
    assert client.post("/messages/", json={"sender": "a", "text": "b"}, headers=headers).status_code == 401
    assert client.delete("/rooms/", headers=headers).status_code == 401


def test_scenario_destroy(client):
    room = create_room(client)
    headers = auth(room["token"])
    client.post("/messages/", json={"sender": "a", "text": "bye"}, headers=headers)

    first = client.delete("/rooms/", headers=headers)
    second = client.delete("/rooms/", headers=headers)
    assert first.status_code == 200
    assert second.status_code == 200

    assert client.get("/messages/", headers=headers).status_code == 404
    assert client.post("/messages/", json={"sender": "a", "text": "b"}, headers=headers).status_code == 404
    assert client.get("/rooms/", headers=headers).status_code == 404
    assert client.get("/rooms/ttl", headers=headers).json() == {"seconds": 0}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_websocket_rejects_bad_token(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/rooms/ws?token=nope"):
            pass
    assert exc_info.value.code == 1008


def test_websocket_rejects_destroyed_room(client):
    room = create_room(client)
    client.delete("/rooms/", headers=auth(room["token"]))

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"/rooms/ws?token={room['token']}"):
            pass
    assert exc_info.value.code == 1008


def test_websocket_closes_when_store_is_down(client, backend, monkeypatch):
    room = create_room(client)

    def broken_exists(room_id):
        raise redis.ConnectionError("store down")

    monkeypatch.setattr(backend, "room_exists", broken_exists)
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"/rooms/ws?token={room['token']}"):
            pass
    assert exc_info.value.code == 1011


def test_websocket_relays_message_appended(client):
    room = create_room(client)
    headers = auth(room["token"])

    with client.websocket_connect(f"/rooms/ws?token={room['token']}") as websocket:
        assert websocket.receive_json()["type"] == "system"

        posted = client.post("/messages/", json={"sender": "anonymous-fox-ab12c", "text": "hi"}, headers=headers)
        assert posted.status_code == 201

        event = websocket.receive_json()
        assert event["type"] == "message-appended"
        assert event["message"]["text"] == "hi"
        assert event["message"]["sender"] == "anonymous-fox-ab12c"
        assert event["message"]["room_id"] == room["room_id"]
        assert "token_hash" not in event["message"]


def test_websocket_relays_room_destroyed(client):
    room = create_room(client)

    with client.websocket_connect(f"/rooms/ws?token={room['token']}") as websocket:
        welcome = websocket.receive_json()
        assert welcome["type"] == "system"
        assert welcome["room_id"] == room["room_id"]
        assert 0 < welcome["ttl_seconds"] <= 600

        client.delete("/rooms/", headers=auth(room["token"]))

        assert websocket.receive_json() == {"type": "room-destroyed", "is_destroyed": True}
