from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel

from ..exceptions import GenerationError, InvalidActionError, InvalidTransitionError, PersistenceError, ViewBusyError
from ..generation import ContentGenerator, QuizQuestion
from ..persistence import PersistenceClient

logger = logging.getLogger(__name__)


class QuizPhase(str, Enum):
	ENTRY = "entry"
	PENDING = "pending"
	ANSWERING = "answering"
	FINISHED = "finished"


class QuizViewState(BaseModel):
	phase: QuizPhase
	theme: str
	questions: List[QuizQuestion]
	answers: Dict[int, str]
	can_finish: bool
	score: Optional[int] = None
	total: int = 0
	scroll_to_top: bool = False
	error: Optional[str] = None
	notice: Optional[str] = None


def score_answers(questions: List[QuizQuestion], answers: Dict[int, str]) -> int:
	return sum(1 for idx, answer in answers.items() if answer == questions[idx].correct_answer)


class QuizView:
	def __init__(self, identity_id: str, persistence: PersistenceClient, generator: ContentGenerator) -> None:
		self.identity_id = identity_id
		self.persistence = persistence
		self.generator = generator
		self.reset()

	def reset(self) -> None:
		self.phase = QuizPhase.ENTRY
		self.theme = ""
		self.questions: List[QuizQuestion] = []
		self.answers: Dict[int, str] = {}
		self.score: Optional[int] = None
		self.scroll_to_top = False
		self.error: Optional[str] = None
		self.notice: Optional[str] = None

	async def start(self, theme: str) -> bool:
		if self.phase is QuizPhase.PENDING:
			raise ViewBusyError("A quiz is already being generated")
		if not (theme or "").strip():
			return False
		self.reset()
		self.theme = theme
		self.phase = QuizPhase.PENDING
		try:
			questions = await self.generator.quiz(theme)
		except GenerationError as exc:
			logger.warning("Quiz generation failed for %s: %s", self.identity_id, exc.message, exc_info=True)
			self.phase = QuizPhase.ENTRY
			self.error = exc.message
			return False
		self.questions = questions
		self.phase = QuizPhase.ANSWERING
		return True

	def answer(self, index: int, option: str) -> bool:
		"""Record the first answer to a question; later answers are ignored."""
		if self.phase is not QuizPhase.ANSWERING:
			raise InvalidTransitionError(f"Cannot answer while the quiz is {self.phase.value}")
		if not 0 <= index < len(self.questions):
			raise InvalidActionError(f"No question at index {index}")
		if option not in self.questions[index].options:
			raise InvalidActionError(f"'{option}' is not an option of question {index}")
		if index in self.answers:
			return False
		self.answers[index] = option
		return True

	@property
	def can_finish(self) -> bool:
		return self.phase is QuizPhase.ANSWERING and len(self.answers) == len(self.questions)

	def finish(self) -> int:
		if not self.can_finish:
			raise InvalidTransitionError("Every question needs an answer before finishing")
		self.score = score_answers(self.questions, self.answers)
		self.phase = QuizPhase.FINISHED
		self.scroll_to_top = True
		try:
			self.persistence.append_quiz_score(self.identity_id, self.theme, self.score, len(self.questions))
		except PersistenceError as exc:
			logger.error("Could not save quiz score for %s: %s", self.identity_id, exc.message, exc_info=True)
			self.notice = "Your score could not be saved."
		return self.score

	def snapshot(self) -> QuizViewState:
		return QuizViewState(
			phase=self.phase,
			theme=self.theme,
			questions=self.questions,
			answers=self.answers,
			can_finish=self.can_finish,
			score=self.score,
			total=len(self.questions),
			scroll_to_top=self.scroll_to_top,
			error=self.error,
			notice=self.notice,
		)
