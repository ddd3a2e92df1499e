"""WebSocket endpoint carrying the realtime chat protocol."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, WebSocket
from starlette.websockets import WebSocketDisconnect

from models.events import EventType
from services.realtime.connection_hub import ConnectionHub
from services.realtime.event_router import EventRouter

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_event_router(websocket: WebSocket) -> EventRouter:
	event_router = getattr(websocket.app.state, "event_router", None)
	if event_router is None:
		raise HTTPException(status_code=500, detail="Chat router unavailable")
	return event_router


def _decode_frame(raw: str) -> Optional[Tuple[EventType, Any]]:
	"""Return `(event, data)` for a `{"event": ..., "data": ...}` frame, or None."""
	try:
		frame = json.loads(raw)
	except ValueError:
		logger.debug("Dropping non-JSON frame")
		return None
	if not isinstance(frame, dict):
		logger.debug("Dropping frame that is not an object")
		return None
	event = EventType.from_wire(frame.get("event"))
	if event is None:
		logger.debug("Dropping frame with unknown event %r", frame.get("event"))
		return None
	return event, frame.get("data")


@router.websocket("/ws")
async def chat_socket(websocket: WebSocket, event_router: EventRouter = Depends(_require_event_router)):
	"""Run one client connection from accept to disconnect cleanup."""
	hub: ConnectionHub = websocket.app.state.connection_hub
	# The session exists before the handshake completes so no broadcast can miss it.
	session = event_router.sessions.connect()
	hub.reserve(session.session_id)

	try:
		await websocket.accept()
		await hub.attach(session.session_id, websocket)
		while True:
			try:
				raw = await websocket.receive_text()
			except WebSocketDisconnect:
				break
			except KeyError:
				logger.debug("Dropping binary frame from session %s", session.session_id)
				continue
			decoded = _decode_frame(raw)
			if decoded is None:
				continue
			event, data = decoded
			try:
				outbound = await event_router.handle(session.session_id, event, data)
			except Exception:
				logger.exception("Failed to handle %s for session %s", event.value, session.session_id)
				continue
			await hub.deliver(outbound)
	finally:
		hub.detach(session.session_id)
		outbound = await event_router.handle(session.session_id, EventType.DISCONNECT)
		await hub.deliver(outbound)
