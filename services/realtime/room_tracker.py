"""Room membership bookkeeping for connected sessions."""

from __future__ import annotations

from typing import Dict, Optional, Set

from models.errors import RoomMembershipError


class RoomMembershipTracker:
	"""Keep `session -> room` and `room -> sessions` consistent.

	A session belongs to at most one room. Callers must `leave` before
	joining a different room; `join` refuses to move a session implicitly.
	"""

	def __init__(self) -> None:
		self._room_by_session: Dict[str, str] = {}
		self._members: Dict[str, Set[str]] = {}

	def join(self, session_id: str, room: str) -> None:
		"""Add the session to `room`.

		Raises:
			RoomMembershipError: if the session is still in another room.
		"""
		current = self._room_by_session.get(session_id)
		if current == room:
			return
		if current is not None:
			raise RoomMembershipError(
				f"Session {session_id} is still in room {current!r}; leave it before joining {room!r}."
			)
		self._room_by_session[session_id] = room
		self._members.setdefault(room, set()).add(session_id)

	def leave(self, session_id: str) -> Optional[str]:
		"""Remove the session from its room and return that room, if any."""
		room = self._room_by_session.pop(session_id, None)
		if room is None:
			return None
		members = self._members.get(room)
		if members is not None:
			members.discard(session_id)
			if not members:
				del self._members[room]
		return room

	def members_of(self, room: str) -> Set[str]:
		return set(self._members.get(room, ()))

	def room_of(self, session_id: str) -> Optional[str]:
		return self._room_by_session.get(session_id)

	def occupied_rooms(self) -> Dict[str, int]:
		"""Return member counts for rooms that currently have members."""
		return {room: len(members) for room, members in self._members.items()}

	def clear(self) -> None:
		self._room_by_session.clear()
		self._members.clear()
