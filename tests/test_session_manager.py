import pytest

from services.realtime.session_manager import SessionManager


def test_connect_creates_unregistered_session():
    manager = SessionManager()
    session = manager.connect()

    assert manager.get(session.session_id) is session
    assert session.username is None
    assert session.current_room is None
    assert not session.registered and not session.in_room


def test_each_connection_gets_a_new_session_id():
    manager = SessionManager()
    ids = {manager.connect().session_id for _ in range(5)}
    assert len(ids) == 5
    assert manager.session_ids() == ids


def test_get_unknown_session_raises_key_error():
    with pytest.raises(KeyError):
        SessionManager().get("missing")


def test_reregister_under_new_name_releases_old_name():
    manager = SessionManager()
    session = manager.connect()
    manager.register(session.session_id, "alice")
    manager.register(session.session_id, "alicia")

    assert manager.presence.snapshot() == ["alicia"]
    assert session.username == "alicia"


def test_enter_room_moves_between_rooms():
    manager = SessionManager()
    session = manager.connect()

    assert manager.enter_room(session.session_id, "devops") is None
    assert manager.enter_room(session.session_id, "sports") == "devops"
    assert session.current_room == "sports"
    assert manager.rooms.members_of("devops") == set()
    assert manager.rooms.members_of("sports") == {session.session_id}


def test_disconnect_leaves_no_dangling_entries():
    manager = SessionManager()
    session = manager.connect()
    manager.register(session.session_id, "alice")
    manager.enter_room(session.session_id, "sports")
    assert manager.presence.snapshot() == ["alice"]
    assert manager.rooms.occupied_rooms() == {"sports": 1}

    outcome = manager.disconnect(session.session_id)

    assert outcome.left_room == "sports"
    assert outcome.presence_changed is True
    assert manager.presence.snapshot() == []
    assert manager.rooms.occupied_rooms() == {}
    assert manager.rooms.room_of(session.session_id) is None
    assert manager.find(session.session_id) is None
    assert manager.disconnect(session.session_id) is None


def test_stale_disconnect_keeps_newer_registration():
    manager = SessionManager()
    old = manager.connect()
    new = manager.connect()
    manager.register(old.session_id, "bob")
    manager.register(new.session_id, "bob")

    outcome = manager.disconnect(old.session_id)

    assert outcome.presence_changed is False
    assert manager.presence.lookup_session("bob") == new.session_id


def test_logout_clears_username_but_keeps_room():
    manager = SessionManager()
    session = manager.connect()
    manager.register(session.session_id, "alice")
    manager.enter_room(session.session_id, "devops")

    assert manager.logout(session.session_id) is True
    assert session.username is None
    assert session.current_room == "devops"
    assert manager.logout(session.session_id) is False


def test_close_drops_everything():
    manager = SessionManager()
    session = manager.connect()
    manager.register(session.session_id, "alice")
    manager.enter_room(session.session_id, "devops")

    manager.close()

    assert len(manager) == 0
    assert manager.presence.snapshot() == []
    assert manager.rooms.occupied_rooms() == {}
