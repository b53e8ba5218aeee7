from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..deps import get_shell, http_error
from ..exceptions import GenerationError, LingoEchoError
from ..shell import AppShell, Tab
from ..views.matching import MatchingView, MatchingViewState, Side

router = APIRouter(prefix="/matching", tags=["matching"])


class StartRequest(BaseModel):
	theme: str


class PickRequest(BaseModel):
	side: Side
	item_id: str


class PickResponse(BaseModel):
	accepted: bool
	evaluated: bool
	matched: bool
	state: MatchingViewState


def _matching_view(shell: AppShell) -> MatchingView:
	shell.activate(Tab.MATCHING)
	return shell.matching


@router.get("", response_model=MatchingViewState)
async def get_state(shell: AppShell = Depends(get_shell)):
	return _matching_view(shell).snapshot()


@router.post("/start", response_model=MatchingViewState)
async def start(req: StartRequest, shell: AppShell = Depends(get_shell)):
	view = _matching_view(shell)
	try:
		await view.start(req.theme)
	except LingoEchoError as exc:
		raise http_error(exc)
	if view.error:
		raise http_error(GenerationError(view.error), phase=view.phase.value, theme=view.theme)
	return view.snapshot()


@router.post("/pick", response_model=PickResponse)
async def pick(req: PickRequest, shell: AppShell = Depends(get_shell)):
	view = _matching_view(shell)
	try:
		result = view.pick(req.side, req.item_id)
	except LingoEchoError as exc:
		raise http_error(exc)
	return PickResponse(accepted=result.accepted, evaluated=result.evaluated, matched=result.matched, state=view.snapshot())


@router.post("/reset", response_model=MatchingViewState)
async def reset(shell: AppShell = Depends(get_shell)):
	view = _matching_view(shell)
	view.reset()
	return view.snapshot()
