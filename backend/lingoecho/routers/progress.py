from fastapi import APIRouter, Depends

from ..deps import get_shell, http_error
from ..exceptions import LingoEchoError
from ..shell import AppShell, Tab
from ..views.progress import ProgressViewState

router = APIRouter(prefix="/progress", tags=["progress"])


@router.get("", response_model=ProgressViewState)
async def get_progress(shell: AppShell = Depends(get_shell)):
	try:
		shell.activate(Tab.PROGRESS)
	except LingoEchoError as exc:
		raise http_error(exc)
	return shell.progress.snapshot()
