from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

logger = logging.getLogger(__name__)

Mode = Literal["casual", "formal"]

TITLE_LIMIT = 30


def derive_title(source_text: str) -> str:
	"""First 30 characters of the first input, with an ellipsis when cut."""
	if len(source_text) > TITLE_LIMIT:
		return source_text[:TITLE_LIMIT] + "..."
	return source_text


class Identity(BaseModel):
	id: str
	display_name: str
	email: str
	photo_url: Optional[str] = None


class _StoreRecord(BaseModel):
	# Store keys come from the wire shape; API output uses the field names
	model_config = ConfigDict(populate_by_name=True)

	id: str
	timestamp: int = Field(ge=0)


class TranslationSession(_StoreRecord):
	title: str


class Message(_StoreRecord):
	source_text: str = Field(validation_alias="indonesian")
	translated_text: str = Field(validation_alias="english")
	explanation: str
	mode: Mode


class QuizScore(_StoreRecord):
	theme: str
	score: int = Field(ge=0)
	total: int = Field(gt=0)

	@model_validator(mode="after")
	def _score_within_total(self) -> "QuizScore":
		if self.score > self.total:
			raise ValueError("score exceeds total")
		return self

	@property
	def percentage(self) -> float:
		return self.score / self.total * 100


R = TypeVar("R", bound=_StoreRecord)


def parse_snapshot(model: Type[R], snapshot: Dict[str, Any], *, newest_first: bool) -> List[R]:
	"""Validate every child of a store snapshot, skipping malformed ones, and sort by time."""
	records: List[R] = []
	for key, value in (snapshot or {}).items():
		if not isinstance(value, dict):
			logger.warning("Skipping malformed %s %s: not an object", model.__name__, key)
			continue
		try:
			records.append(model.model_validate({**value, "id": key}))
		except ValidationError as exc:
			logger.warning("Skipping malformed %s %s: %s", model.__name__, key, exc.errors())
	# Push ids are time-ordered, so they break timestamp ties in creation order
	records.sort(key=lambda r: (r.timestamp, r.id), reverse=newest_first)
	return records
