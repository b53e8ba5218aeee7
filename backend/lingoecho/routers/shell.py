from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..deps import get_shell, http_error
from ..exceptions import LingoEchoError
from ..shell import AppShell, ShellState, Tab

router = APIRouter(prefix="/shell", tags=["shell"])


class TabRequest(BaseModel):
	tab: Tab


@router.get("", response_model=ShellState)
async def get_state(shell: AppShell = Depends(get_shell)):
	return shell.snapshot()


@router.post("/tab", response_model=ShellState)
async def select_tab(req: TabRequest, shell: AppShell = Depends(get_shell)):
	try:
		shell.activate(req.tab)
	except LingoEchoError as exc:
		raise http_error(exc)
	return shell.snapshot()
