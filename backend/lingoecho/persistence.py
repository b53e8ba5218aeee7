"""
User-scoped records on the realtime store.

Layout under the store root:

    users/{identity}/sessions/{session}
    users/{identity}/messages/{session}/{message}
    users/{identity}/quiz_scores/{score}
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from .exceptions import PersistenceError
from .records import Message, Mode, QuizScore, TranslationSession, derive_title, parse_snapshot
from .store import RealtimeStore, Unsubscribe, now_ms

logger = logging.getLogger(__name__)

MODES = ("casual", "formal")


class PersistenceClient:
	def __init__(self, store: RealtimeStore, clock: Optional[Callable[[], int]] = None) -> None:
		self.store = store
		self._clock = clock or now_ms

	def _sessions_ref(self, identity_id: str) -> str:
		return self.store.ref("users", identity_id, "sessions")

	def _messages_ref(self, identity_id: str, session_id: str) -> str:
		return self.store.ref("users", identity_id, "messages", session_id)

	def _scores_ref(self, identity_id: str) -> str:
		return self.store.ref("users", identity_id, "quiz_scores")

	def session_exists(self, identity_id: str, session_id: str) -> bool:
		if not session_id or "/" in session_id:
			return False
		return self.store.get(self.store.ref("users", identity_id, "sessions", session_id)) is not None

	def append_message(
		self,
		identity_id: str,
		session_id: Optional[str],
		source_text: str,
		translated_text: str,
		explanation: str,
		mode: Mode,
	) -> str:
		"""Append one translation turn and return its session id.

		Without a session id a new session is created in the same batch as
		its first message, so a session never exists without that message.
		"""
		if mode not in MODES:
			raise ValueError(f"mode must be one of {', '.join(MODES)}")
		sessions_ref = self._sessions_ref(identity_id)
		if session_id is not None and not self.session_exists(identity_id, session_id):
			raise PersistenceError(f"Session '{session_id}' does not exist")

		with self.store.batch() as batch:
			sid = session_id
			if sid is None:
				sid = batch.push(sessions_ref, {"title": derive_title(source_text), "timestamp": self._clock()})
				logger.info("Creating session %s for %s", sid, identity_id)
			batch.push(
				self._messages_ref(identity_id, sid),
				{
					"indonesian": source_text,
					"english": translated_text,
					"explanation": explanation,
					"mode": mode,
					"timestamp": self._clock(),
				},
			)
		return sid

	def subscribe_sessions(self, identity_id: str, callback: Callable[[List[TranslationSession]], None]) -> Unsubscribe:
		return self.store.subscribe(
			self._sessions_ref(identity_id),
			lambda snapshot: callback(parse_snapshot(TranslationSession, snapshot, newest_first=True)),
		)

	def subscribe_messages(self, identity_id: str, session_id: str, callback: Callable[[List[Message]], None]) -> Unsubscribe:
		return self.store.subscribe(
			self._messages_ref(identity_id, session_id),
			lambda snapshot: callback(parse_snapshot(Message, snapshot, newest_first=False)),
		)

	def append_quiz_score(self, identity_id: str, theme: str, score: int, total: int) -> None:
		if total <= 0 or not 0 <= score <= total:
			raise ValueError(f"invalid quiz score {score}/{total}")
		self.store.push(
			self._scores_ref(identity_id),
			{"theme": theme, "score": score, "total": total, "timestamp": self._clock()},
		)

	def subscribe_quiz_scores(self, identity_id: str, callback: Callable[[List[QuizScore]], None]) -> Unsubscribe:
		return self.store.subscribe(
			self._scores_ref(identity_id),
			lambda snapshot: callback(parse_snapshot(QuizScore, snapshot, newest_first=True)),
		)
