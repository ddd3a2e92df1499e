"""Event names exchanged over the chat websocket."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, Optional


class EventType(str, Enum):
	"""Inbound events understood by the event router.

	`DISCONNECT` never arrives as a frame; the websocket route raises it
	when the transport closes.
	"""

	REGISTER_USER = "register_user"
	JOIN_ROOM = "join_room"
	LEAVE_ROOM = "leave_room"
	SEND_GROUP_MESSAGE = "send_group_message"
	SEND_PRIVATE_MESSAGE = "send_private_message"
	TYPING = "typing"
	LOGOUT_USER = "logout_user"
	DISCONNECT = "disconnect"

	@classmethod
	def from_wire(cls, name: Any) -> Optional["EventType"]:
		"""Return the event for a client-supplied name, or None if unknown."""
		if not isinstance(name, str) or name == cls.DISCONNECT.value:
			return None
		try:
			return cls(name)
		except ValueError:
			return None


class OutboundEvent(str, Enum):
	ONLINE_USERS = "online_users"
	TYPING_INDICATOR = "typing_indicator"
	RECEIVE_GROUP_MESSAGE = "receive_group_message"
	RECEIVE_PRIVATE_MESSAGE = "receive_private_message"
	MESSAGE_ERROR = "message_error"


@dataclass(frozen=True)
class Outbound:
	"""One routed delivery: an event and payload for a set of sessions."""

	recipients: FrozenSet[str]
	event: OutboundEvent
	payload: Any = field(default=None)

	def frame(self) -> dict:
		return {"event": self.event.value, "data": self.payload}
