"""
Pytest fixtures: an in-memory store and a scripted content generator.
"""

import asyncio
from typing import Any, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lingoecho import models  # noqa: F401  (registers tables)
from lingoecho.db import Base, get_db
from lingoecho.deps import get_gate, get_persistence
from lingoecho.gate import AuthGate
from lingoecho.generation import MatchingPair, QuizQuestion, TranslationResult
from lingoecho.identity import IdentityService
from lingoecho.persistence import PersistenceClient
from lingoecho.shell import AppShell
from lingoecho.store import RealtimeStore


def make_questions(n: int) -> List[QuizQuestion]:
	return [
		QuizQuestion(
			question=f"Question {i}?",
			options=[f"right {i}", f"wrong {i}a", f"wrong {i}b", f"wrong {i}c"],
			correctAnswer=f"right {i}",
			explanation=f"Penjelasan {i}",
		)
		for i in range(n)
	]


def make_pairs(n: int) -> List[MatchingPair]:
	return [MatchingPair(indonesian=f"kata{i}", english=f"word{i}") for i in range(n)]


class FakeGenerator:
	"""Scripted stand-in for ContentGenerator.

	Queue results (or exceptions) per kind; set ``hold`` to an Event to keep
	calls pending until it is set.
	"""

	def __init__(self) -> None:
		self.translations: List[Any] = []
		self.quizzes: List[Any] = []
		self.games: List[Any] = []
		self.calls: List[tuple] = []
		self.hold: Optional[asyncio.Event] = None

	async def _next(self, queue: List[Any], default: Any) -> Any:
		if self.hold is not None:
			await self.hold.wait()
		item = queue.pop(0) if queue else default
		if isinstance(item, Exception):
			raise item
		return item

	async def translate(self, text: str, mode: str = "casual") -> TranslationResult:
		self.calls.append(("translation", text, mode))
		return await self._next(self.translations, TranslationResult(translation=f"EN {text}", explanation="Grammar note"))

	async def quiz(self, theme: str, count: Optional[int] = None) -> List[QuizQuestion]:
		self.calls.append(("quiz", theme))
		return await self._next(self.quizzes, make_questions(count or 3))

	async def matching(self, theme: str, count: Optional[int] = None) -> List[MatchingPair]:
		self.calls.append(("matching", theme))
		return await self._next(self.games, make_pairs(count or 4))


@pytest.fixture
def engine():
	engine = create_engine(
		"sqlite://",
		connect_args={"check_same_thread": False},
		poolclass=StaticPool,
		future=True,
	)
	Base.metadata.create_all(bind=engine)
	yield engine
	engine.dispose()


@pytest.fixture
def session_factory(engine):
	return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture
def db(session_factory):
	session = session_factory()
	yield session
	session.close()


@pytest.fixture
def store(session_factory):
	return RealtimeStore(session_factory, root="test")


@pytest.fixture
def persistence(store):
	return PersistenceClient(store)


@pytest.fixture
def generator():
	return FakeGenerator()


@pytest.fixture
def gate(persistence, generator):
	gate = AuthGate(
		IdentityService(),
		lambda identity: AppShell(identity, persistence, generator, clear_delay=0),
	)
	yield gate
	gate.close()


@pytest.fixture
def client(session_factory, persistence, gate):
	from lingoecho.main import app

	def override_get_db():
		session = session_factory()
		try:
			yield session
		finally:
			session.close()

	app.dependency_overrides[get_db] = override_get_db
	app.dependency_overrides[get_gate] = lambda: gate
	app.dependency_overrides[get_persistence] = lambda: persistence
	# Not used as a context manager, so the startup hooks do not touch the real database
	yield TestClient(app)
	app.dependency_overrides.clear()
