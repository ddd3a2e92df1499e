from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4


def _new_id() -> str:
    return uuid4().hex


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class GroupMessage:
    """In-memory representation of a row in the GROUP_MESSAGE table.

    Attributes:
        room: Catalog room the message was sent to.
        from_user: Username of the sender.
        message: Trimmed message text.
        id: Primary key, a uuid4 hex string assigned on creation.
        date_sent: UTC timestamp of when the message was stored.
    """

    room: str
    from_user: str
    message: str
    id: str = field(default_factory=_new_id)
    date_sent: datetime = field(default_factory=_utc_now)

    def to_payload(self) -> Dict[str, Any]:
        """Return the wire shape delivered with `receive_group_message`."""
        return {
            "_id": self.id,
            "room": self.room,
            "from_user": self.from_user,
            "message": self.message,
            "date_sent": self.date_sent.isoformat(),
        }


@dataclass
class PrivateMessage:
    """In-memory representation of a row in the PRIVATE_MESSAGE table.

    Attributes:
        from_user: Username of the sender.
        to_user: Username of the addressee (may be offline or unknown).
        message: Trimmed message text.
        id: Primary key, a uuid4 hex string assigned on creation.
        date_sent: UTC timestamp of when the message was stored.
    """

    from_user: str
    to_user: str
    message: str
    id: str = field(default_factory=_new_id)
    date_sent: datetime = field(default_factory=_utc_now)

    def to_payload(self) -> Dict[str, Any]:
        """Return the wire shape delivered with `receive_private_message`."""
        return {
            "_id": self.id,
            "from_user": self.from_user,
            "to_user": self.to_user,
            "message": self.message,
            "date_sent": self.date_sent.isoformat(),
        }


@dataclass
class UserRecord:
    """Row of the USERS table. `password_hash` is never sent to clients."""

    username: str
    firstname: str
    lastname: str
    password_hash: str = ""
    created_at: Optional[int] = None

    def to_public(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "firstname": self.firstname,
            "lastname": self.lastname,
        }
