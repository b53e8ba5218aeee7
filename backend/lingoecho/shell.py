from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel

from .exceptions import SessionNotFoundError
from .generation import ContentGenerator
from .persistence import PersistenceClient
from .records import Identity, TranslationSession
from .store import Unsubscribe
from .views.matching import MatchingView
from .views.progress import ProgressView
from .views.quiz import QuizView
from .views.translate import TranslateView

logger = logging.getLogger(__name__)


class Tab(str, Enum):
	TRANSLATE = "translate"
	QUIZ = "quiz"
	MATCHING = "matching"
	PROGRESS = "progress"


class ShellState(BaseModel):
	identity: Identity
	active_tab: Tab
	current_session_id: Optional[str]
	sessions: List[TranslationSession]


class AppShell:
	"""Everything one signed-in client sees: the session list plus the four views.

	The translate and progress views hold live subscriptions only while their
	tab is active.
	"""

	def __init__(self, identity: Identity, persistence: PersistenceClient, generator: ContentGenerator, *, clear_delay: float = 0.5) -> None:
		self.identity = identity
		self.persistence = persistence
		self.active_tab = Tab.TRANSLATE
		self.current_session_id: Optional[str] = None
		self.sessions: List[TranslationSession] = []
		self.translate = TranslateView(identity.id, persistence, generator, on_session_created=self.select_session)
		self.quiz = QuizView(identity.id, persistence, generator)
		self.matching = MatchingView(generator, clear_delay=clear_delay)
		self.progress = ProgressView(identity.id, persistence)
		self._unsubscribe_sessions: Optional[Unsubscribe] = None
		self.closed = False

	def open(self) -> None:
		def _on_sessions(sessions: List[TranslationSession]) -> None:
			self.sessions = sessions

		self._unsubscribe_sessions = self.persistence.subscribe_sessions(self.identity.id, _on_sessions)
		self._mount(self.active_tab)

	def _mount(self, tab: Tab) -> None:
		if tab is Tab.TRANSLATE:
			self.translate.open_session(self.current_session_id)
		elif tab is Tab.PROGRESS:
			self.progress.open()

	def _unmount(self, tab: Tab) -> None:
		if tab is Tab.TRANSLATE:
			self.translate.close()
		elif tab is Tab.PROGRESS:
			self.progress.close()

	def activate(self, tab: Tab) -> None:
		if tab is self.active_tab:
			return
		self._unmount(self.active_tab)
		self.active_tab = tab
		self._mount(tab)

	def new_chat(self) -> None:
		self.current_session_id = None
		self.activate(Tab.TRANSLATE)
		self.translate.open_session(None)

	def select_session(self, session_id: str) -> None:
		# A freshly created session may not have reached the list yet
		if session_id not in {s.id for s in self.sessions} and not self.persistence.session_exists(self.identity.id, session_id):
			raise SessionNotFoundError(session_id)
		self.current_session_id = session_id
		if self.active_tab is Tab.TRANSLATE:
			self.translate.open_session(session_id)
		else:
			self.activate(Tab.TRANSLATE)

	def close(self) -> None:
		if self.closed:
			return
		self.closed = True
		if self._unsubscribe_sessions is not None:
			self._unsubscribe_sessions()
			self._unsubscribe_sessions = None
		self.translate.close()
		self.progress.close()
		self.quiz.reset()
		self.matching.reset()
		self.sessions = []
		logger.info("Closed shell for %s", self.identity.id)

	def snapshot(self) -> ShellState:
		return ShellState(
			identity=self.identity,
			active_tab=self.active_tab,
			current_session_id=self.current_session_id,
			sessions=self.sessions,
		)


class ShellRegistry:
	"""Open shells keyed by auth session id."""

	def __init__(self) -> None:
		self._shells: Dict[str, AppShell] = {}

	def get(self, auth_session_id: str) -> Optional[AppShell]:
		return self._shells.get(auth_session_id)

	def add(self, auth_session_id: str, shell: AppShell) -> None:
		previous = self._shells.pop(auth_session_id, None)
		if previous is not None:
			previous.close()
		self._shells[auth_session_id] = shell

	def close(self, auth_session_id: str) -> bool:
		shell = self._shells.pop(auth_session_id, None)
		if shell is None:
			return False
		shell.close()
		return True

	def close_all(self) -> None:
		for key in list(self._shells):
			self.close(key)

	def __len__(self) -> int:
		return len(self._shells)
