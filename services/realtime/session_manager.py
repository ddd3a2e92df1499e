"""Own the lifecycle of realtime chat sessions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Set
from uuid import uuid4

from models.session_models import ChatSession
from services.realtime.presence_registry import PresenceRegistry
from services.realtime.room_tracker import RoomMembershipTracker

logger = logging.getLogger(__name__)


@dataclass
class DisconnectOutcome:
	"""What a disconnect tore down, for the router to announce."""

	session: ChatSession
	left_room: Optional[str]
	presence_changed: bool


class SessionManager:
	"""State container for sessions, presence and room membership.

	One instance is created per process at startup and handed to the event
	router. None of its methods await, so each call is atomic on the event
	loop.
	"""

	def __init__(
		self,
		presence: Optional[PresenceRegistry] = None,
		rooms: Optional[RoomMembershipTracker] = None,
	) -> None:
		self.presence = presence or PresenceRegistry()
		self.rooms = rooms or RoomMembershipTracker()
		self._sessions: Dict[str, ChatSession] = {}

	def connect(self) -> ChatSession:
		"""Create a fresh, unregistered session for a new transport connection."""
		session = ChatSession(session_id=uuid4().hex)
		self._sessions[session.session_id] = session
		logger.info("Session %s connected", session.session_id)
		return session

	def get(self, session_id: str) -> ChatSession:
		"""Return a session or raise KeyError if missing."""
		session = self._sessions.get(session_id)
		if session is None:
			raise KeyError(f"Session {session_id} not found")
		return session

	def find(self, session_id: str) -> Optional[ChatSession]:
		return self._sessions.get(session_id)

	def session_ids(self) -> Set[str]:
		return set(self._sessions)

	def register(self, session_id: str, username: str) -> None:
		"""Bind `username` to the session, releasing a different earlier name."""
		session = self.get(session_id)
		if session.username is not None and session.username != username:
			self.presence.unregister(session.username, session_id)
		session.username = username
		session.last_username = username
		self.presence.register(username, session_id)

	def logout(self, session_id: str) -> bool:
		"""Unbind the session's username. Returns True if presence changed."""
		session = self.get(session_id)
		if session.username is None:
			return False
		removed = self.presence.unregister(session.username, session_id)
		session.username = None
		return removed

	def enter_room(self, session_id: str, room: str) -> Optional[str]:
		"""Move the session into `room` and return the room it left, if any."""
		session = self.get(session_id)
		previous = self.rooms.room_of(session_id)
		if previous == room:
			return None
		if previous is not None:
			self.rooms.leave(session_id)
		self.rooms.join(session_id, room)
		session.current_room = room
		return previous

	def exit_room(self, session_id: str) -> Optional[str]:
		"""Take the session out of its room and return that room, if any."""
		session = self.get(session_id)
		room = self.rooms.leave(session_id)
		session.current_room = None
		return room

	def disconnect(self, session_id: str) -> Optional[DisconnectOutcome]:
		"""Tear down all state held for the session and release it.

		Returns None when the session is already gone.
		"""
		session = self._sessions.get(session_id)
		if session is None:
			return None
		left_room = self.rooms.leave(session_id)
		session.current_room = None
		presence_changed = False
		if session.username is not None:
			presence_changed = self.presence.unregister(session.username, session_id)
		del self._sessions[session_id]
		logger.info("Session %s disconnected (user=%s)", session_id, session.username)
		return DisconnectOutcome(session=session, left_room=left_room, presence_changed=presence_changed)

	def close(self) -> None:
		"""Drop every session at shutdown."""
		self._sessions.clear()
		self.presence.clear()
		self.rooms.clear()

	def __len__(self) -> int:
		return len(self._sessions)
