import pytest

from models.errors import PersistenceError
from models.message_record import GroupMessage, PrivateMessage
from models.room_catalog import RoomCatalog
from services.realtime.event_router import EventRouter
from services.realtime.session_manager import SessionManager


class InMemoryMessageStore:
    """Message store double that records writes and can be told to fail."""

    def __init__(self):
        self.group_messages = []
        self.private_messages = []
        self.fail = False

    async def save_group_message(self, room, from_user, text):
        return await self.insert_group_message(GroupMessage(room=room, from_user=from_user, message=text))

    async def save_private_message(self, from_user, to_user, text):
        return await self.insert_private_message(PrivateMessage(from_user=from_user, to_user=to_user, message=text))

    async def insert_group_message(self, record):
        if self.fail:
            raise PersistenceError("store offline")
        self.group_messages.append(record)
        return record

    async def insert_private_message(self, record):
        if self.fail:
            raise PersistenceError("store offline")
        self.private_messages.append(record)
        return record


@pytest.fixture
def catalog():
    return RoomCatalog(["devops", "sports", "covid19"])


@pytest.fixture
def sessions():
    return SessionManager()


@pytest.fixture
def store():
    return InMemoryMessageStore()


@pytest.fixture
def router(sessions, catalog, store):
    return EventRouter(sessions, catalog, store)


def deliveries_for(outbound, session_id):
    """Return `(event, payload)` pairs that reach `session_id`."""
    return [(item.event.value, item.payload) for item in outbound if session_id in item.recipients]
