from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from pydantic import BaseModel

from ..persistence import PersistenceClient
from ..records import QuizScore
from ..store import Unsubscribe


class ProgressStats(BaseModel):
	count: int
	total_points: int
	# Mean of score/total over all attempts, as a percentage with one decimal
	average_percentage: float


class ScoreEntry(BaseModel):
	id: str
	theme: str
	score: int
	total: int
	timestamp: int
	percentage: int


class ProgressViewState(BaseModel):
	loading: bool
	empty: bool
	stats: ProgressStats
	scores: List[ScoreEntry]


def round_half_up(value: float, places: str = "1") -> Decimal:
	"""Round the way displayed percentages are rounded: halves go up, not to even."""
	return Decimal(str(value)).quantize(Decimal(places), rounding=ROUND_HALF_UP)


def summarize(scores: List[QuizScore]) -> ProgressStats:
	if not scores:
		return ProgressStats(count=0, total_points=0, average_percentage=0.0)
	average = sum(s.score / s.total for s in scores) / len(scores) * 100
	return ProgressStats(
		count=len(scores),
		total_points=sum(s.score for s in scores),
		average_percentage=float(round_half_up(average, "0.1")),
	)


class ProgressView:
	def __init__(self, identity_id: str, persistence: PersistenceClient) -> None:
		self.identity_id = identity_id
		self.persistence = persistence
		self.scores: List[QuizScore] = []
		self.loading = True
		self._unsubscribe: Optional[Unsubscribe] = None

	def open(self) -> None:
		if self._unsubscribe is not None:
			return
		self.loading = True

		def _on_scores(scores: List[QuizScore]) -> None:
			self.scores = scores
			self.loading = False

		self._unsubscribe = self.persistence.subscribe_quiz_scores(self.identity_id, _on_scores)

	def close(self) -> None:
		if self._unsubscribe is not None:
			self._unsubscribe()
			self._unsubscribe = None

	@property
	def stats(self) -> ProgressStats:
		return summarize(self.scores)

	def snapshot(self) -> ProgressViewState:
		return ProgressViewState(
			loading=self.loading,
			empty=not self.loading and not self.scores,
			stats=self.stats,
			scores=[
				ScoreEntry(
					id=s.id,
					theme=s.theme,
					score=s.score,
					total=s.total,
					timestamp=s.timestamp,
					percentage=int(round_half_up(s.percentage)),
				)
				for s in self.scores
			],
		)
