"""Validate inbound chat events and compute who receives what."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Set

from models.errors import EventValidationError, PersistenceError
from models.events import EventType, Outbound, OutboundEvent
from models.message_record import GroupMessage, PrivateMessage
from models.room_catalog import RoomCatalog
from models.session_models import ChatSession
from services.realtime.session_manager import SessionManager

logger = logging.getLogger(__name__)

Handler = Callable[[ChatSession, Dict[str, Any]], Awaitable[List[Outbound]]]


class MessageStore(Protocol):
	"""Persistence collaborator for chat messages.

	Every method raises `PersistenceError` when the write does not happen.
	"""

	async def save_group_message(self, room: str, from_user: str, text: str) -> GroupMessage: ...

	async def save_private_message(self, from_user: str, to_user: str, text: str) -> PrivateMessage: ...

	async def insert_group_message(self, record: GroupMessage) -> GroupMessage: ...

	async def insert_private_message(self, record: PrivateMessage) -> PrivateMessage: ...


class EventRouter:
	"""Dispatch one inbound event for one session.

	`handle` mutates the session manager and returns the deliveries the
	transport should perform. With `deliver_after_write` (the default) a
	message is only delivered once the store has acknowledged the write;
	otherwise the write is submitted in the background and the message is
	delivered immediately.
	"""

	def __init__(
		self,
		sessions: SessionManager,
		catalog: RoomCatalog,
		store: MessageStore,
		deliver_after_write: bool = True,
	) -> None:
		self.sessions = sessions
		self.catalog = catalog
		self.store = store
		self.deliver_after_write = deliver_after_write
		self._pending_writes: Set[asyncio.Task] = set()
		self._handlers: Dict[EventType, Handler] = {
			EventType.REGISTER_USER: self._register_user,
			EventType.JOIN_ROOM: self._join_room,
			EventType.LEAVE_ROOM: self._leave_room,
			EventType.SEND_GROUP_MESSAGE: self._send_group_message,
			EventType.SEND_PRIVATE_MESSAGE: self._send_private_message,
			EventType.TYPING: self._typing,
			EventType.LOGOUT_USER: self._logout_user,
			EventType.DISCONNECT: self._disconnect,
		}

	async def handle(self, session_id: str, event: EventType, payload: Any = None) -> List[Outbound]:
		"""Process a single inbound event and return the resulting deliveries."""
		session = self.sessions.find(session_id)
		if session is None:
			logger.debug("Ignoring %s for unknown session %s", event.value, session_id)
			return []
		data = payload if isinstance(payload, dict) else {}
		try:
			return await self._handlers[event](session, data)
		except EventValidationError as exc:
			logger.debug("Dropped %s from session %s: %s", event.value, session_id, exc)
			return []

	async def drain(self) -> None:
		"""Wait for background message writes submitted in relaxed mode."""
		if self._pending_writes:
			await asyncio.gather(*self._pending_writes, return_exceptions=True)

	# Event handlers

	async def _register_user(self, session: ChatSession, data: Dict[str, Any]) -> List[Outbound]:
		username = _required_text(data, "username")
		self.sessions.register(session.session_id, username)
		logger.info("Session %s registered as %s", session.session_id, username)
		return [self._presence_broadcast()]

	async def _join_room(self, session: ChatSession, data: Dict[str, Any]) -> List[Outbound]:
		username = _require_registered(session)
		_check_claimed_user(data, "username", username)
		room = data.get("room")
		if room not in self.catalog:
			raise EventValidationError(f"Unknown room {room!r}")
		previous = self.sessions.enter_room(session.session_id, room)
		if previous is None:
			return []
		return self._typing_stopped(previous, username)

	async def _leave_room(self, session: ChatSession, data: Dict[str, Any]) -> List[Outbound]:
		room = self.sessions.exit_room(session.session_id)
		if room is None:
			raise EventValidationError("Session is not in a room")
		if session.last_username is None:
			return []
		return self._typing_stopped(room, session.last_username)

	async def _send_group_message(self, session: ChatSession, data: Dict[str, Any]) -> List[Outbound]:
		username = _require_registered(session)
		room = self._require_room(session, data)
		_check_claimed_user(data, "from_user", username)
		text = _required_message(data)

		if self.deliver_after_write:
			try:
				record = await self.store.save_group_message(room, username, text)
			except PersistenceError as exc:
				return self._persistence_failed(session, EventType.SEND_GROUP_MESSAGE, exc)
		else:
			record = GroupMessage(room=room, from_user=username, message=text)
			self._submit(self.store.insert_group_message(record))

		# Recipients are the members at delivery time, not at send time.
		recipients = self.sessions.rooms.members_of(room)
		return [Outbound(frozenset(recipients), OutboundEvent.RECEIVE_GROUP_MESSAGE, record.to_payload())]

	async def _send_private_message(self, session: ChatSession, data: Dict[str, Any]) -> List[Outbound]:
		username = _require_registered(session)
		_check_claimed_user(data, "from_user", username)
		to_user = _required_text(data, "to_user")
		text = _required_message(data)

		if self.deliver_after_write:
			try:
				record = await self.store.save_private_message(username, to_user, text)
			except PersistenceError as exc:
				return self._persistence_failed(session, EventType.SEND_PRIVATE_MESSAGE, exc)
		else:
			record = PrivateMessage(from_user=username, to_user=to_user, message=text)
			self._submit(self.store.insert_private_message(record))

		recipients = {session.session_id}
		target = self.sessions.presence.lookup_session(to_user)
		if target is not None:
			recipients.add(target)
		return [Outbound(frozenset(recipients), OutboundEvent.RECEIVE_PRIVATE_MESSAGE, record.to_payload())]

	async def _typing(self, session: ChatSession, data: Dict[str, Any]) -> List[Outbound]:
		username = _require_registered(session)
		room = self._require_room(session, data)
		_check_claimed_user(data, "username", username)
		is_typing = data.get("isTyping")
		if not isinstance(is_typing, bool):
			raise EventValidationError(f"isTyping must be a boolean, got {is_typing!r}")
		recipients = self.sessions.rooms.members_of(room) - {session.session_id}
		if not recipients:
			return []
		payload = {"username": username, "isTyping": is_typing}
		return [Outbound(frozenset(recipients), OutboundEvent.TYPING_INDICATOR, payload)]

	async def _logout_user(self, session: ChatSession, data: Dict[str, Any]) -> List[Outbound]:
		username = _require_registered(session)
		_check_claimed_user(data, "username", username)
		if not self.sessions.logout(session.session_id):
			return []
		logger.info("Session %s logged out %s", session.session_id, username)
		return [self._presence_broadcast()]

	async def _disconnect(self, session: ChatSession, data: Dict[str, Any]) -> List[Outbound]:
		outcome = self.sessions.disconnect(session.session_id)
		if outcome is None:
			return []
		outbound: List[Outbound] = []
		if outcome.left_room is not None and outcome.session.last_username is not None:
			outbound.extend(self._typing_stopped(outcome.left_room, outcome.session.last_username))
		if outcome.presence_changed:
			outbound.append(self._presence_broadcast())
		return outbound

	# Helpers

	def _require_room(self, session: ChatSession, data: Dict[str, Any]) -> str:
		room = self.sessions.rooms.room_of(session.session_id)
		if room is None:
			raise EventValidationError("Session is not in a room")
		claimed = data.get("room")
		if claimed is not None and claimed != room:
			raise EventValidationError(f"Session is in {room!r}, not {claimed!r}")
		return room

	def _presence_broadcast(self) -> Outbound:
		return Outbound(
			frozenset(self.sessions.session_ids()),
			OutboundEvent.ONLINE_USERS,
			self.sessions.presence.snapshot(),
		)

	def _typing_stopped(self, room: str, username: str) -> List[Outbound]:
		recipients = self.sessions.rooms.members_of(room)
		if not recipients:
			return []
		payload = {"username": username, "isTyping": False}
		return [Outbound(frozenset(recipients), OutboundEvent.TYPING_INDICATOR, payload)]

	def _persistence_failed(self, session: ChatSession, event: EventType, exc: Exception) -> List[Outbound]:
		logger.error("Message from session %s not stored: %s", session.session_id, exc)
		payload = {"event": event.value, "detail": "Message could not be saved; it was not delivered."}
		return [Outbound(frozenset({session.session_id}), OutboundEvent.MESSAGE_ERROR, payload)]

	def _submit(self, write: Awaitable[Any]) -> None:
		task = asyncio.ensure_future(write)
		self._pending_writes.add(task)
		task.add_done_callback(self._write_finished)

	def _write_finished(self, task: asyncio.Task) -> None:
		self._pending_writes.discard(task)
		if task.cancelled():
			return
		exc = task.exception()
		if exc is not None:
			logger.error("Background message write failed: %s", exc)


def _required_text(data: Dict[str, Any], key: str) -> str:
	value = data.get(key)
	if not isinstance(value, str) or not value.strip():
		raise EventValidationError(f"{key} is required")
	return value.strip()


def _required_message(data: Dict[str, Any]) -> str:
	"""Return the message text unchanged; blank text is rejected."""
	value = data.get("message")
	if not isinstance(value, str) or not value.strip():
		raise EventValidationError("message is required")
	return value


def _require_registered(session: ChatSession) -> str:
	if session.username is None:
		raise EventValidationError("Session is not registered")
	return session.username


def _check_claimed_user(data: Dict[str, Any], key: str, username: str) -> None:
	claimed: Optional[Any] = data.get(key)
	if isinstance(claimed, str):
		claimed = claimed.strip()
	if claimed is not None and claimed != username:
		raise EventValidationError(f"{key} {claimed!r} does not match registered user {username!r}")
