import pytest
from fastapi.testclient import TestClient

from main import create_app
from models.room_catalog import RoomCatalog
from utils.settings import ChatSettings


@pytest.fixture
def client(tmp_path):
    settings = ChatSettings(database_dir=str(tmp_path), rooms=RoomCatalog(["devops", "sports"]))
    with TestClient(create_app(settings)) as test_client:
        yield test_client


def _send(ws, event, data=None):
    ws.send_json({"event": event, "data": data if data is not None else {}})


def _register(ws, username):
    _send(ws, "register_user", {"username": username})


def _sync(ws, username):
    """Round-trip a private note to self so earlier frames are known to be processed."""
    assert _drain_until_sync(ws, username) == []


def _drain_until_sync(ws, username):
    """Collect frames already routed to `ws`, stopping at a private note to self."""
    _send(ws, "send_private_message", {"to_user": username, "message": "sync"})
    frames = []
    while True:
        frame = ws.receive_json()
        if frame["event"] == "receive_private_message" and frame["data"]["to_user"] == username:
            return frames
        frames.append(frame)


def test_signup_then_login(client):
    payload = {"username": "alice", "firstname": "Alice", "lastname": "Liddell", "password": "pw"}

    resp = client.post("/api/auth/signup", json=payload)
    assert resp.status_code == 201
    assert resp.json() == {"success": True, "username": "alice"}

    resp = client.post("/api/auth/signup", json=payload)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Username already exists"}

    resp = client.post("/api/auth/login", json={"username": "alice", "password": "pw"})
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "username": "alice", "firstname": "Alice", "lastname": "Liddell"}

    resp = client.post("/api/auth/login", json={"username": "alice", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid credentials"}


def test_signup_requires_fields(client):
    assert client.post("/api/auth/signup", json={"username": "bob"}).status_code == 422
    resp = client.post("/api/auth/signup", json={"username": "  ", "password": "pw"})
    assert resp.status_code == 400


def test_rooms_and_health(client):
    assert client.get("/api/rooms").json() == {"rooms": ["devops", "sports"]}
    health = client.get("/health").json()
    assert health["ok"] is True
    assert health["db_initialized"] is True
    assert health["online_users"] == 0


def test_group_chat_typing_and_disconnect_over_websocket(client):
    with client.websocket_connect("/ws") as alice:
        _register(alice, "alice")
        assert alice.receive_json() == {"event": "online_users", "data": ["alice"]}

        with client.websocket_connect("/ws") as bob:
            _register(bob, "bob")
            assert bob.receive_json() == {"event": "online_users", "data": ["alice", "bob"]}
            assert alice.receive_json() == {"event": "online_users", "data": ["alice", "bob"]}

            _send(alice, "join_room", {"room": "devops", "username": "alice"})
            _sync(alice, "alice")
            _send(bob, "join_room", {"room": "devops", "username": "bob"})
            _sync(bob, "bob")

            _send(alice, "send_group_message", {"room": "devops", "from_user": "alice", "message": "hi"})
            for ws in (alice, bob):
                frame = ws.receive_json()
                assert frame["event"] == "receive_group_message"
                assert frame["data"]["from_user"] == "alice"
                assert frame["data"]["message"] == "hi"

            _send(bob, "typing", {"room": "devops", "username": "bob", "isTyping": True})
            assert alice.receive_json() == {
                "event": "typing_indicator",
                "data": {"username": "bob", "isTyping": True},
            }

        sessions = client.app.state.session_manager
        assert sessions.presence.snapshot() == ["alice"]
        assert sessions.rooms.members_of("devops") == {sessions.presence.lookup_session("alice")}

        frames = _drain_until_sync(alice, "alice")
        assert {"event": "typing_indicator", "data": {"username": "bob", "isTyping": False}} in frames


def test_private_message_and_logout_over_websocket(client):
    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
        _register(alice, "alice")
        assert alice.receive_json()["data"] == ["alice"]
        assert bob.receive_json()["data"] == ["alice"]
        _register(bob, "bob")
        assert bob.receive_json()["data"] == ["alice", "bob"]
        assert alice.receive_json()["data"] == ["alice", "bob"]

        _send(alice, "send_private_message", {"from_user": "alice", "to_user": "bob", "message": "psst"})
        for ws in (alice, bob):
            frame = ws.receive_json()
            assert frame["event"] == "receive_private_message"
            assert frame["data"]["to_user"] == "bob"
            assert frame["data"]["message"] == "psst"

        _send(bob, "logout_user", {"username": "bob"})
        assert alice.receive_json() == {"event": "online_users", "data": ["alice"]}
        assert bob.receive_json() == {"event": "online_users", "data": ["alice"]}

        _send(alice, "send_private_message", {"to_user": "bob", "message": "gone?"})
        frame = alice.receive_json()
        assert frame["event"] == "receive_private_message"
        assert frame["data"]["message"] == "gone?"


def test_malformed_frames_are_ignored(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("not json")
        ws.send_json(["a", "list"])
        ws.send_json({"event": "disconnect"})
        ws.send_json({"event": "no_such_event", "data": {}})
        _register(ws, "alice")
        assert ws.receive_json() == {"event": "online_users", "data": ["alice"]}
