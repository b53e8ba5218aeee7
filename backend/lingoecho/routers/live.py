from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import get_gate, get_persistence
from ..exceptions import AuthError, PersistenceError
from ..gate import AuthGate
from ..persistence import PersistenceClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/live", tags=["live"])

KINDS = ("sessions", "messages", "quiz_scores")


@router.websocket("/{kind}")
async def live_feed(
	websocket: WebSocket,
	kind: str,
	token: str,
	session_id: Optional[str] = None,
	db: Session = Depends(get_db),
	gate: AuthGate = Depends(get_gate),
	persistence: PersistenceClient = Depends(get_persistence),
):
	"""Forward every snapshot of one of the caller's collections until the client goes away."""
	if kind not in KINDS:
		await websocket.close(code=4404, reason=f"Unknown feed '{kind}'")
		return
	if kind == "messages" and (not session_id or "/" in session_id):
		await websocket.close(code=4400, reason="A valid session_id is required")
		return
	try:
		identity, _ = gate.identities.resolve(db, token)
	except AuthError:
		await websocket.close(code=4001, reason="Invalid token")
		return

	await websocket.accept()
	loop = asyncio.get_running_loop()
	queue: asyncio.Queue[List[Any]] = asyncio.Queue()

	def _forward(records: List[BaseModel]) -> None:
		payload = [r.model_dump(mode="json") for r in records]
		loop.call_soon_threadsafe(queue.put_nowait, payload)

	try:
		if kind == "sessions":
			unsubscribe = persistence.subscribe_sessions(identity.id, _forward)
		elif kind == "messages":
			unsubscribe = persistence.subscribe_messages(identity.id, session_id, _forward)
		else:
			unsubscribe = persistence.subscribe_quiz_scores(identity.id, _forward)
	except ValueError as exc:
		await websocket.close(code=4400, reason=str(exc))
		return
	except PersistenceError as exc:
		logger.error("Could not open %s feed for %s: %s", kind, identity.id, exc.message)
		await websocket.close(code=1011, reason="Store unavailable")
		return
	logger.info("Live %s feed opened for %s", kind, identity.id)

	async def _send() -> None:
		while True:
			payload = await queue.get()
			await websocket.send_json({"type": kind, "data": payload})

	async def _receive() -> None:
		# Incoming frames are ignored; this only notices the disconnect
		while True:
			await websocket.receive_text()

	tasks = [asyncio.create_task(_send()), asyncio.create_task(_receive())]
	try:
		done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
		for task in done:
			exc = task.exception()
			if exc is not None and not isinstance(exc, WebSocketDisconnect):
				logger.warning("Live %s feed for %s ended: %s", kind, identity.id, exc)
	finally:
		for task in tasks:
			task.cancel()
		unsubscribe()
		logger.info("Live %s feed closed for %s", kind, identity.id)
