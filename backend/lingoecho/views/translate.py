from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional

from pydantic import BaseModel

from ..exceptions import GenerationError, PersistenceError, ViewBusyError
from ..generation import ContentGenerator
from ..persistence import MODES, PersistenceClient
from ..records import Message, Mode
from ..store import Unsubscribe

logger = logging.getLogger(__name__)


class TranslateState(str, Enum):
	IDLE = "idle"
	PENDING = "pending"


class TranslateViewState(BaseModel):
	state: TranslateState
	session_id: Optional[str]
	input: str
	mode: Mode
	messages: List[Message]
	error: Optional[str] = None
	notice: Optional[str] = None


class TranslateView:
	"""Chat-like translation loop for one session of one identity."""

	def __init__(
		self,
		identity_id: str,
		persistence: PersistenceClient,
		generator: ContentGenerator,
		on_session_created: Optional[Callable[[str], None]] = None,
	) -> None:
		self.identity_id = identity_id
		self.persistence = persistence
		self.generator = generator
		self.on_session_created = on_session_created
		self.state = TranslateState.IDLE
		self.input = ""
		self.mode: Mode = "casual"
		self.session_id: Optional[str] = None
		self.messages: List[Message] = []
		self.error: Optional[str] = None
		self.notice: Optional[str] = None
		self._unsubscribe: Optional[Unsubscribe] = None
		# Bumped on every session switch; callbacks carrying an older value are stale
		self._subscription_token = 0

	def set_draft(self, text: Optional[str] = None, mode: Optional[str] = None) -> None:
		if text is not None:
			self.input = text
		if mode is not None:
			if mode not in MODES:
				raise ValueError(f"mode must be one of {', '.join(MODES)}")
			self.mode = mode  # type: ignore[assignment]

	def open_session(self, session_id: Optional[str]) -> None:
		"""Detach the current message feed and attach the one for ``session_id``."""
		self._detach()
		self._subscription_token += 1
		token = self._subscription_token
		self.session_id = session_id
		self.messages = []
		self.error = None
		if session_id is None:
			return

		def _on_messages(messages: List[Message]) -> None:
			if token != self._subscription_token:
				logger.debug("Ignoring stale message snapshot for session %s", session_id)
				return
			self.messages = messages

		self._unsubscribe = self.persistence.subscribe_messages(self.identity_id, session_id, _on_messages)
		logger.debug("Attached message feed for session %s", session_id)

	def _detach(self) -> None:
		if self._unsubscribe is not None:
			self._unsubscribe()
			self._unsubscribe = None
			logger.debug("Detached message feed for session %s", self.session_id)

	def close(self) -> None:
		self._detach()
		self._subscription_token += 1

	async def submit(self, text: Optional[str] = None, mode: Optional[str] = None) -> bool:
		"""Translate the draft and append it to the session.

		Returns False when nothing was appended; on failure the submitted text
		is put back into the draft.
		"""
		if self.state is TranslateState.PENDING:
			raise ViewBusyError("A translation is already in progress")
		self.set_draft(text, mode)
		if not self.input.strip():
			return False

		submitted = self.input
		submitted_mode = self.mode
		session_id = self.session_id
		token = self._subscription_token
		self.state = TranslateState.PENDING
		self.input = ""
		self.error = None
		self.notice = None
		try:
			result = await self.generator.translate(submitted, submitted_mode)
			sid = self.persistence.append_message(
				self.identity_id,
				session_id,
				submitted,
				result.translation,
				result.explanation,
				submitted_mode,
			)
		except GenerationError as exc:
			logger.warning("Translation failed for %s: %s", self.identity_id, exc.message, exc_info=True)
			self.input = submitted
			self.error = exc.message
			return False
		except PersistenceError as exc:
			logger.error("Could not save translation for %s: %s", self.identity_id, exc.message, exc_info=True)
			self.input = submitted
			self.error = exc.message
			self.notice = "Your translation could not be saved. Please try again."
			return False
		finally:
			self.state = TranslateState.IDLE

		if session_id is None and token == self._subscription_token:
			if self.on_session_created is not None:
				self.on_session_created(sid)
			else:
				self.open_session(sid)
		return True

	def snapshot(self) -> TranslateViewState:
		return TranslateViewState(
			state=self.state,
			session_id=self.session_id,
			input=self.input,
			mode=self.mode,
			messages=self.messages,
			error=self.error,
			notice=self.notice,
		)
