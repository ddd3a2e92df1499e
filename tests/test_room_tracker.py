import pytest

from models.errors import RoomMembershipError
from services.realtime.room_tracker import RoomMembershipTracker


def test_join_and_lookup():
    tracker = RoomMembershipTracker()
    tracker.join("s1", "devops")
    tracker.join("s2", "devops")

    assert tracker.room_of("s1") == "devops"
    assert tracker.members_of("devops") == {"s1", "s2"}
    assert tracker.members_of("sports") == set()


def test_join_other_room_without_leaving_is_rejected():
    tracker = RoomMembershipTracker()
    tracker.join("s1", "devops")

    with pytest.raises(RoomMembershipError):
        tracker.join("s1", "sports")
    assert tracker.members_of("sports") == set()


def test_rejoining_same_room_is_noop():
    tracker = RoomMembershipTracker()
    tracker.join("s1", "devops")
    tracker.join("s1", "devops")
    assert tracker.members_of("devops") == {"s1"}


def test_leave_is_idempotent():
    tracker = RoomMembershipTracker()
    tracker.join("s1", "devops")

    assert tracker.leave("s1") == "devops"
    assert tracker.leave("s1") is None
    assert tracker.room_of("s1") is None
    assert tracker.occupied_rooms() == {}


def test_session_is_in_at_most_one_room_after_moves():
    tracker = RoomMembershipTracker()
    moves = [("s1", "devops"), ("s2", "sports"), ("s1", "sports"), ("s1", "covid19"), ("s2", "devops")]
    for session_id, room in moves:
        tracker.leave(session_id)
        tracker.join(session_id, room)
        for sid in ("s1", "s2"):
            rooms_with_sid = [r for r in ("devops", "sports", "covid19") if sid in tracker.members_of(r)]
            assert len(rooms_with_sid) <= 1
            if rooms_with_sid:
                assert tracker.room_of(sid) == rooms_with_sid[0]

    assert tracker.occupied_rooms() == {"covid19": 1, "devops": 1}


def test_members_of_returns_a_copy():
    tracker = RoomMembershipTracker()
    tracker.join("s1", "devops")
    tracker.members_of("devops").add("intruder")
    assert tracker.members_of("devops") == {"s1"}
