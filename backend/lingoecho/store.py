"""
Hierarchical realtime key-value store on top of SQLAlchemy.

Every node lives at a slash-separated path and holds a JSON value. Writers
either ``set`` a path or ``push`` a child under a parent with a generated,
time-ordered key. Readers ``subscribe`` to a parent path and receive the full
snapshot of its direct children right away and after every committed write
below that parent (snapshots, never deltas).
"""

from __future__ import annotations

import copy
import json
import logging
import random
import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .exceptions import PersistenceError
from .models import StoreNode

logger = logging.getLogger(__name__)

Snapshot = Dict[str, Any]
Listener = Callable[[Snapshot], None]
Unsubscribe = Callable[[], None]

# ASCII-ordered, so comparing keys as strings compares creation order
PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"


def now_ms() -> int:
	return int(time.time() * 1000)


class PushIdGenerator:
	"""20-char keys: 8 chars of millisecond timestamp + 12 random chars.

	Keys generated within the same millisecond increment the random part so
	they still sort after the previous one.
	"""

	def __init__(self, clock: Optional[Callable[[], int]] = None, rng: Optional[random.Random] = None) -> None:
		self._clock = clock or now_ms
		self._rng = rng or random.SystemRandom()
		self._lock = threading.Lock()
		self._last_time = 0
		self._last_rand: List[int] = [0] * 12

	def _fresh_rand(self) -> List[int]:
		return [self._rng.randrange(64) for _ in range(12)]

	def __call__(self) -> str:
		with self._lock:
			now = max(self._clock(), self._last_time)
			if now == self._last_time:
				i = 11
				while i >= 0 and self._last_rand[i] == 63:
					self._last_rand[i] = 0
					i -= 1
				if i < 0:
					now += 1
					self._last_rand = self._fresh_rand()
				else:
					self._last_rand[i] += 1
			else:
				self._last_rand = self._fresh_rand()
			self._last_time = now

			ts_chars: List[str] = []
			for _ in range(8):
				ts_chars.append(PUSH_CHARS[now % 64])
				now //= 64
			return "".join(reversed(ts_chars)) + "".join(PUSH_CHARS[r] for r in self._last_rand)


class _Subscription:
	def __init__(self, parent: str, listener: Listener) -> None:
		self.parent = parent
		self.listener = listener
		self.active = True

	def deliver(self, snapshot: Snapshot) -> None:
		if not self.active:
			return
		try:
			self.listener(copy.deepcopy(snapshot))
		except Exception:
			logger.exception("Store listener for %s failed", self.parent)


class StoreBatch:
	"""Writes collected here are committed together when the batch exits."""

	def __init__(self, store: "RealtimeStore") -> None:
		self._store = store
		self.writes: List[Tuple[str, str, str, Any]] = []

	def push(self, parent: str, value: Any) -> str:
		key = self._store.push_id()
		self.set(f"{parent}/{key}", value)
		return key

	def set(self, path: str, value: Any) -> None:
		parent, _, key = path.rpartition("/")
		if not parent or not key:
			raise ValueError(f"Invalid store path: {path!r}")
		self.writes.append((path, parent, key, value))


class RealtimeStore:
	def __init__(self, session_factory: sessionmaker, root: str = "lingoecho", push_ids: Optional[PushIdGenerator] = None) -> None:
		self._session_factory = session_factory
		self.root = root.strip("/")
		self._push_id = push_ids or PushIdGenerator()
		self._listeners: Dict[str, List[_Subscription]] = {}
		self._lock = threading.RLock()

	def ref(self, *parts: str) -> str:
		for part in parts:
			if not part or "/" in part:
				raise ValueError(f"Invalid path segment: {part!r}")
		return "/".join((self.root, *parts))

	def push_id(self) -> str:
		return self._push_id()

	def push(self, parent: str, value: Any) -> str:
		with self.batch() as batch:
			key = batch.push(parent, value)
		return key

	def set(self, path: str, value: Any) -> None:
		with self.batch() as batch:
			batch.set(path, value)

	def get(self, path: str) -> Optional[Any]:
		try:
			with self._session_factory() as db:
				row = db.get(StoreNode, path)
				return json.loads(row.value_json) if row is not None else None
		except SQLAlchemyError as exc:
			raise PersistenceError(f"Failed to read {path}", details=str(exc)) from exc

	def children(self, parent: str) -> Snapshot:
		try:
			with self._session_factory() as db:
				rows = db.execute(select(StoreNode).where(StoreNode.parent == parent)).scalars().all()
				return {row.key: json.loads(row.value_json) for row in rows}
		except SQLAlchemyError as exc:
			raise PersistenceError(f"Failed to read {parent}", details=str(exc)) from exc

	@contextmanager
	def batch(self) -> Iterator[StoreBatch]:
		# An exception inside the with-block skips the commit entirely
		batch = StoreBatch(self)
		yield batch
		if batch.writes:
			self._commit(batch.writes)

	def _commit(self, writes: List[Tuple[str, str, str, Any]]) -> None:
		try:
			with self._session_factory() as db:
				with db.begin():
					for path, parent, key, value in writes:
						db.merge(StoreNode(path=path, parent=parent, key=key, value_json=json.dumps(value)))
		except SQLAlchemyError as exc:
			raise PersistenceError("Failed to write to the store", details=str(exc)) from exc
		for parent in dict.fromkeys(w[1] for w in writes):
			self._notify(parent)

	def _notify(self, parent: str) -> None:
		with self._lock:
			subs = list(self._listeners.get(parent, ()))
		if not subs:
			return
		try:
			snapshot = self.children(parent)
		except PersistenceError:
			logger.exception("Could not refresh listeners of %s after write", parent)
			return
		for sub in subs:
			sub.deliver(snapshot)

	def subscribe(self, parent: str, listener: Listener) -> Unsubscribe:
		sub = _Subscription(parent, listener)
		with self._lock:
			self._listeners.setdefault(parent, []).append(sub)
		try:
			snapshot = self.children(parent)
		except PersistenceError:
			self._remove(sub)
			raise
		sub.deliver(snapshot)
		return lambda: self._remove(sub)

	def _remove(self, sub: _Subscription) -> None:
		sub.active = False
		with self._lock:
			subs = self._listeners.get(sub.parent)
			if subs and sub in subs:
				subs.remove(sub)
				if not subs:
					del self._listeners[sub.parent]

	def listener_count(self, parent: Optional[str] = None) -> int:
		with self._lock:
			if parent is not None:
				return len(self._listeners.get(parent, ()))
			return sum(len(v) for v in self._listeners.values())
