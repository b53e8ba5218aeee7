from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..deps import get_shell, http_error
from ..exceptions import GenerationError, LingoEchoError
from ..shell import AppShell, Tab
from ..views.quiz import QuizView, QuizViewState

router = APIRouter(prefix="/quiz", tags=["quiz"])


class StartRequest(BaseModel):
	theme: str


class AnswerRequest(BaseModel):
	index: int = Field(ge=0)
	option: str


def _quiz_view(shell: AppShell) -> QuizView:
	shell.activate(Tab.QUIZ)
	return shell.quiz


@router.get("", response_model=QuizViewState)
async def get_state(shell: AppShell = Depends(get_shell)):
	return _quiz_view(shell).snapshot()


@router.post("/start", response_model=QuizViewState)
async def start(req: StartRequest, shell: AppShell = Depends(get_shell)):
	view = _quiz_view(shell)
	try:
		await view.start(req.theme)
	except LingoEchoError as exc:
		raise http_error(exc)
	if view.error:
		raise http_error(GenerationError(view.error), phase=view.phase.value, theme=view.theme)
	return view.snapshot()


@router.post("/answer", response_model=QuizViewState)
async def answer(req: AnswerRequest, shell: AppShell = Depends(get_shell)):
	view = _quiz_view(shell)
	try:
		view.answer(req.index, req.option)
	except LingoEchoError as exc:
		raise http_error(exc)
	return view.snapshot()


@router.post("/finish", response_model=QuizViewState)
async def finish(shell: AppShell = Depends(get_shell)):
	view = _quiz_view(shell)
	try:
		view.finish()
	except LingoEchoError as exc:
		raise http_error(exc)
	return view.snapshot()


@router.post("/reset", response_model=QuizViewState)
async def reset(shell: AppShell = Depends(get_shell)):
	view = _quiz_view(shell)
	view.reset()
	return view.snapshot()
