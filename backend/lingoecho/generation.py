from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, List, Literal, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from .exceptions import GenerationError
from .gemini_client import GeminiClient
from .settings import settings

logger = logging.getLogger(__name__)

Kind = Literal["translation", "quiz", "matching"]


TRANSLATION_SCHEMA: Dict[str, Any] = {
	"type": "OBJECT",
	"properties": {
		"translation": {"type": "STRING"},
		"explanation": {"type": "STRING", "description": "Grammar explanation for the translation"},
	},
	"required": ["translation", "explanation"],
}

QUIZ_SCHEMA: Dict[str, Any] = {
	"type": "ARRAY",
	"items": {
		"type": "OBJECT",
		"properties": {
			"question": {"type": "STRING"},
			"options": {"type": "ARRAY", "items": {"type": "STRING"}},
			"correctAnswer": {"type": "STRING"},
			"explanation": {"type": "STRING"},
		},
		"required": ["question", "options", "correctAnswer", "explanation"],
	},
}

MATCHING_SCHEMA: Dict[str, Any] = {
	"type": "ARRAY",
	"items": {
		"type": "OBJECT",
		"properties": {
			"indonesian": {"type": "STRING"},
			"english": {"type": "STRING"},
		},
		"required": ["indonesian", "english"],
	},
}


class TranslationResult(BaseModel):
	translation: str = Field(min_length=1)
	explanation: str


class QuizQuestion(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	question: str = Field(min_length=1)
	options: List[str] = Field(min_length=2)
	correct_answer: str = Field(validation_alias="correctAnswer")
	explanation: str

	@model_validator(mode="after")
	def _answer_is_an_option(self) -> "QuizQuestion":
		if self.correct_answer not in self.options:
			raise ValueError("correctAnswer must equal one of the options")
		return self


class MatchingPair(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	source: str = Field(validation_alias="indonesian", min_length=1)
	target: str = Field(validation_alias="english", min_length=1)


_QUESTIONS = TypeAdapter(List[QuizQuestion])
_PAIRS = TypeAdapter(List[MatchingPair])


def build_translation_prompt(text: str, mode: str) -> str:
	return (
		f"Terjemahkan teks Indonesia berikut ke Bahasa Inggris dengan nada {mode}. "
		"Berikan terjemahan dan penjelasan tata bahasa (grammar) singkat dalam Bahasa Indonesia.\n"
		f'Teks: "{text}"'
	)


def build_quiz_prompt(theme: str, count: int) -> str:
	return (
		f'Buat {count} soal kuis pilihan ganda dalam Bahasa Inggris berdasarkan tema: "{theme}". '
		"Sertakan pilihan jawaban, jawaban yang benar, dan penjelasan singkat dalam Bahasa Indonesia untuk setiap soal."
	)


def build_matching_prompt(theme: str, count: int) -> str:
	return f'Generate {count} Indonesian-English matching pairs based on the theme: "{theme}".'


def _extract_json_block(text: str) -> Any:
	try:
		return json.loads(text)
	except ValueError:
		pass
	# Models occasionally wrap the payload in prose or a code fence
	match = re.search(r"(\{[\s\S]*\}|\[[\s\S]*\])", text)
	if match:
		try:
			return json.loads(match.group(0))
		except ValueError:
			pass
	raise ValueError("Failed to parse JSON from Gemini output")


def _require_text(value: str, what: str) -> str:
	value = (value or "").strip()
	if not value:
		raise ValueError(f"{what} must not be blank")
	return value


class ContentGenerator:
	"""Single-shot, schema-constrained completions for the three game shapes.

	Every failure surfaces once as GenerationError; nothing is retried.
	"""

	def __init__(self, client_factory: Optional[Callable[[], GeminiClient]] = None, *, quiz_count: Optional[int] = None, matching_count: Optional[int] = None) -> None:
		self._client_factory = client_factory or GeminiClient
		self.quiz_count = quiz_count or settings.quiz_question_count
		self.matching_count = matching_count or settings.matching_pair_count

	async def _request(self, prompt: str, schema: Dict[str, Any]) -> Any:
		try:
			client = self._client_factory()
		except ValueError as exc:
			raise GenerationError(str(exc)) from exc
		try:
			raw = await client.generate(prompt, response_schema=schema)
		except httpx.HTTPStatusError as exc:
			raise GenerationError(f"Gemini returned HTTP {exc.response.status_code}") from exc
		except httpx.HTTPError as exc:
			raise GenerationError(f"Gemini request failed: {exc}") from exc
		except RuntimeError as exc:
			raise GenerationError(str(exc)) from exc
		finally:
			await client.aclose()
		if not raw or not raw.strip():
			raise GenerationError("Gemini returned an empty response")
		try:
			return _extract_json_block(raw)
		except ValueError as exc:
			raise GenerationError(str(exc), details=raw[:500]) from exc

	async def translate(self, text: str, mode: str = "casual") -> TranslationResult:
		text = _require_text(text, "text")
		data = await self._request(build_translation_prompt(text, mode), TRANSLATION_SCHEMA)
		try:
			return TranslationResult.model_validate(data)
		except ValidationError as exc:
			raise GenerationError("Translation did not match the expected shape", details=exc.errors()) from exc

	async def quiz(self, theme: str, count: Optional[int] = None) -> List[QuizQuestion]:
		theme = _require_text(theme, "theme")
		count = count or self.quiz_count
		data = await self._request(build_quiz_prompt(theme, count), QUIZ_SCHEMA)
		try:
			questions = _QUESTIONS.validate_python(data)
		except ValidationError as exc:
			raise GenerationError("Quiz did not match the expected shape", details=exc.errors()) from exc
		if len(questions) < count:
			raise GenerationError(f"Expected {count} quiz questions, got {len(questions)}")
		return questions[:count]

	async def matching(self, theme: str, count: Optional[int] = None) -> List[MatchingPair]:
		theme = _require_text(theme, "theme")
		count = count or self.matching_count
		data = await self._request(build_matching_prompt(theme, count), MATCHING_SCHEMA)
		try:
			pairs = _PAIRS.validate_python(data)
		except ValidationError as exc:
			raise GenerationError("Matching pairs did not match the expected shape", details=exc.errors()) from exc
		if len(pairs) < 2:
			raise GenerationError(f"Expected {count} matching pairs, got {len(pairs)}")
		return pairs[:count]

	async def generate(self, kind: Kind, theme_or_text: str, mode: Optional[str] = None) -> Union[TranslationResult, List[QuizQuestion], List[MatchingPair]]:
		if kind == "translation":
			return await self.translate(theme_or_text, mode or "casual")
		if kind == "quiz":
			return await self.quiz(theme_or_text)
		if kind == "matching":
			return await self.matching(theme_or_text)
		raise ValueError(f"Unknown generation kind: {kind!r}")
