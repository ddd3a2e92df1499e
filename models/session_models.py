"""Session domain models for realtime chat."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ChatSession:
	"""In-memory state for one live client connection.

	The session is created when the transport connects and released on
	disconnect. `username` is bound by registration and `current_room`
	mirrors the room membership tracker. `last_username` survives logout so
	room-mates can still be told the user stopped typing.
	"""

	session_id: str
	username: Optional[str] = None
	last_username: Optional[str] = None
	current_room: Optional[str] = None
	connected_at: float = field(default_factory=lambda: time.time())

	@property
	def registered(self) -> bool:
		return self.username is not None

	@property
	def in_room(self) -> bool:
		return self.current_room is not None
