"""Deliver routed chat events to live websocket connections."""
from __future__ import annotations

import json
import logging
from typing import Dict, Iterable, List

from fastapi import WebSocket

from models.events import Outbound

logger = logging.getLogger(__name__)


class ConnectionHub:
	"""Map session ids to their websockets and fan out outbound events.

	A session is reserved before its websocket is accepted. Frames routed to
	it in that window are buffered and flushed, in order, by `attach`.
	"""

	def __init__(self) -> None:
		self._sockets: Dict[str, WebSocket] = {}
		self._pending: Dict[str, List[str]] = {}

	def reserve(self, session_id: str) -> None:
		self._pending.setdefault(session_id, [])

	async def attach(self, session_id: str, websocket: WebSocket) -> None:
		"""Flush frames buffered since `reserve`, then start live delivery."""
		backlog = self._pending.get(session_id)
		while backlog:
			await websocket.send_text(backlog.pop(0))
		self._pending.pop(session_id, None)
		self._sockets[session_id] = websocket

	def detach(self, session_id: str) -> None:
		self._sockets.pop(session_id, None)
		self._pending.pop(session_id, None)

	def __len__(self) -> int:
		return len(self._sockets)

	async def deliver(self, outbound: Iterable[Outbound]) -> None:
		"""Send each delivery to every recipient that is still connected.

		A failed send is logged and skipped so the other recipients still
		receive the event.
		"""
		for item in outbound:
			text = json.dumps(item.frame())
			for session_id in sorted(item.recipients):
				backlog = self._pending.get(session_id)
				if backlog is not None:
					backlog.append(text)
					continue
				websocket = self._sockets.get(session_id)
				if websocket is None:
					continue
				try:
					await websocket.send_text(text)
				except Exception as exc:
					logger.warning("Failed to send %s to session %s: %s", item.event.value, session_id, exc)

	async def close_all(self) -> None:
		for session_id, websocket in list(self._sockets.items()):
			try:
				await websocket.close()
			except Exception as exc:
				logger.debug("Ignoring close error for session %s: %s", session_id, exc)
		self._sockets.clear()
		self._pending.clear()
