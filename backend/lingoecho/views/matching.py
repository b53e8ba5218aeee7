from __future__ import annotations

import asyncio
import logging
import random
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel

from ..exceptions import GenerationError, InvalidActionError, InvalidTransitionError, ViewBusyError
from ..generation import ContentGenerator, MatchingPair

logger = logging.getLogger(__name__)

Side = Literal["left", "right"]


class MatchingPhase(str, Enum):
	ENTRY = "entry"
	PENDING = "pending"
	PLAYING = "playing"
	COMPLETE = "complete"


@dataclass
class _Item:
	id: str
	term: str
	pair_index: int


class MatchItem(BaseModel):
	id: str
	term: str
	matched: bool
	selected: bool


class PickResult(BaseModel):
	accepted: bool
	evaluated: bool = False
	matched: bool = False


class MatchingViewState(BaseModel):
	phase: MatchingPhase
	theme: str
	left: List[MatchItem]
	right: List[MatchItem]
	matched_count: int
	pair_count: int
	error: Optional[str] = None


class MatchingView:
	"""Two shuffled columns; a left and a right pick are checked against the generated pairs."""

	def __init__(self, generator: ContentGenerator, *, clear_delay: float = 0.5, rng: Optional[random.Random] = None) -> None:
		self.generator = generator
		self.clear_delay = clear_delay
		self._rng = rng or random.Random()
		self._round = 0
		self.reset()

	def reset(self) -> None:
		# Invalidates any pending clear scheduled for the previous game
		self._round += 1
		self.phase = MatchingPhase.ENTRY
		self.theme = ""
		self.pairs: List[MatchingPair] = []
		self.left: List[_Item] = []
		self.right: List[_Item] = []
		self.matched: set[int] = set()
		self.left_pick: Optional[_Item] = None
		self.right_pick: Optional[_Item] = None
		self.error: Optional[str] = None

	async def start(self, theme: str) -> bool:
		if self.phase is MatchingPhase.PENDING:
			raise ViewBusyError("A game is already being generated")
		if not (theme or "").strip():
			return False
		self.reset()
		self.theme = theme
		self.phase = MatchingPhase.PENDING
		try:
			pairs = await self.generator.matching(theme)
		except GenerationError as exc:
			logger.warning("Matching generation failed: %s", exc.message, exc_info=True)
			self.phase = MatchingPhase.ENTRY
			self.error = exc.message
			return False
		self.pairs = pairs
		self.left = [_Item(uuid.uuid4().hex[:12], p.source, i) for i, p in enumerate(pairs)]
		self.right = [_Item(uuid.uuid4().hex[:12], p.target, i) for i, p in enumerate(pairs)]
		self._rng.shuffle(self.left)
		self._rng.shuffle(self.right)
		self.phase = MatchingPhase.PLAYING
		return True

	def _find(self, side: Side, item_id: str) -> _Item:
		column = self.left if side == "left" else self.right
		for item in column:
			if item.id == item_id:
				return item
		raise InvalidActionError(f"No {side} item with id '{item_id}'")

	def pick(self, side: Side, item_id: str) -> PickResult:
		if self.phase is not MatchingPhase.PLAYING:
			raise InvalidTransitionError(f"Cannot pick while the game is {self.phase.value}")
		item = self._find(side, item_id)
		if item.pair_index in self.matched:
			return PickResult(accepted=False)
		# Both picks set means the pair is waiting to be cleared
		if self.left_pick is not None and self.right_pick is not None:
			return PickResult(accepted=False)
		if side == "left":
			self.left_pick = item
		else:
			self.right_pick = item
		if self.left_pick is None or self.right_pick is None:
			return PickResult(accepted=True)

		is_match = self.left_pick.pair_index == self.right_pick.pair_index
		if is_match:
			self.matched.add(self.left_pick.pair_index)
			if len(self.matched) == len(self.pairs):
				self.phase = MatchingPhase.COMPLETE
		self._schedule_clear()
		return PickResult(accepted=True, evaluated=True, matched=is_match)

	def _schedule_clear(self) -> None:
		if self.clear_delay <= 0:
			self._clear_picks(self._round)
			return
		asyncio.get_running_loop().call_later(self.clear_delay, self._clear_picks, self._round)

	def _clear_picks(self, round_: int) -> None:
		if round_ != self._round:
			return
		self.left_pick = None
		self.right_pick = None

	def _column(self, items: List[_Item], pick: Optional[_Item]) -> List[MatchItem]:
		return [
			MatchItem(id=i.id, term=i.term, matched=i.pair_index in self.matched, selected=pick is i)
			for i in items
		]

	def snapshot(self) -> MatchingViewState:
		return MatchingViewState(
			phase=self.phase,
			theme=self.theme,
			left=self._column(self.left, self.left_pick),
			right=self._column(self.right, self.right_pick),
			matched_count=len(self.matched),
			pair_count=len(self.pairs),
			error=self.error,
		)
