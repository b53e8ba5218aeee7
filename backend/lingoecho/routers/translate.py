from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..deps import get_shell, http_error
from ..exceptions import LingoEchoError
from ..records import Mode, TranslationSession
from ..shell import AppShell, Tab
from ..views.translate import TranslateViewState

router = APIRouter(prefix="/translate", tags=["translate"])


class SubmitRequest(BaseModel):
	text: str
	mode: Optional[Mode] = None


class DraftRequest(BaseModel):
	text: Optional[str] = None
	mode: Optional[Mode] = None


def _translate_view(shell: AppShell):
	try:
		shell.activate(Tab.TRANSLATE)
	except LingoEchoError as exc:
		raise http_error(exc)
	return shell.translate


@router.get("", response_model=TranslateViewState)
async def get_state(shell: AppShell = Depends(get_shell)):
	return _translate_view(shell).snapshot()


@router.put("/draft", response_model=TranslateViewState)
async def update_draft(req: DraftRequest, shell: AppShell = Depends(get_shell)):
	view = _translate_view(shell)
	view.set_draft(req.text, req.mode)
	return view.snapshot()


@router.post("", response_model=TranslateViewState)
async def submit(req: SubmitRequest, shell: AppShell = Depends(get_shell)):
	view = _translate_view(shell)
	try:
		await view.submit(req.text, req.mode)
	except LingoEchoError as exc:
		raise http_error(exc)
	state = view.snapshot()
	if state.error:
		# The view is idle again with the text restored; report the failed upstream call
		raise HTTPException(
			status_code=503 if state.notice else 502,
			detail={"error": state.error, "notice": state.notice, "input": state.input, "mode": state.mode},
		)
	return state


@router.post("/new", response_model=TranslateViewState)
async def new_chat(shell: AppShell = Depends(get_shell)):
	try:
		shell.new_chat()
	except LingoEchoError as exc:
		raise http_error(exc)
	return shell.translate.snapshot()


@router.get("/sessions", response_model=List[TranslationSession])
async def list_sessions(shell: AppShell = Depends(get_shell)):
	return shell.sessions


@router.post("/sessions/{session_id}/select", response_model=TranslateViewState)
async def select_session(session_id: str, shell: AppShell = Depends(get_shell)):
	try:
		shell.select_session(session_id)
	except LingoEchoError as exc:
		raise http_error(exc)
	return shell.translate.snapshot()
