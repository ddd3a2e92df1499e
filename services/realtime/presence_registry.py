"""Track which session currently speaks for each online username."""

from __future__ import annotations

from typing import Dict, List, Optional


class PresenceRegistry:
	"""Map usernames to the session that registered them most recently."""

	def __init__(self) -> None:
		self._sessions: Dict[str, str] = {}

	def register(self, username: str, session_id: str) -> None:
		"""Bind `username` to `session_id`, replacing any earlier binding.

		The earlier session keeps its connection; it simply stops receiving
		traffic addressed to the username.
		"""
		self._sessions.pop(username, None)
		self._sessions[username] = session_id

	def unregister(self, username: str, session_id: str) -> bool:
		"""Remove the binding only if `session_id` still owns it.

		Returns True when an entry was removed. A disconnect arriving after a
		newer registration for the same username is a no-op.
		"""
		if self._sessions.get(username) != session_id:
			return False
		del self._sessions[username]
		return True

	def lookup_session(self, username: str) -> Optional[str]:
		return self._sessions.get(username)

	def snapshot(self) -> List[str]:
		"""Return registered usernames, oldest registration first."""
		return list(self._sessions)

	def __len__(self) -> int:
		return len(self._sessions)

	def clear(self) -> None:
		self._sessions.clear()
