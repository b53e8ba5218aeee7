import asyncio
import logging

from fastapi import FastAPI

from .db import Base, engine, get_db, ensure_schema
from .cleanup import purge_idle_auth_sessions
from .deps import get_gate
from .settings import settings
from .routers import auth
from .routers import shell
from .routers import translate
from .routers import quiz
from .routers import matching
from .routers import progress
from .routers import live

logging.basicConfig(
	level=settings.log_level.upper(),
	format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="LingoEcho API")
app.include_router(auth.router)
app.include_router(shell.router)
app.include_router(translate.router)
app.include_router(quiz.router)
app.include_router(matching.router)
app.include_router(progress.router)
app.include_router(live.router)


@app.get("/info")
def root():
	return {"status": "ok", "gemini_configured": bool(settings.gemini_api_key)}


def _purge_once() -> None:
	db = next(get_db())
	try:
		purged = purge_idle_auth_sessions(db)
	finally:
		db.close()
	gate = get_gate()
	for session_id in purged:
		gate.registry.close(session_id)
	if purged:
		logger.info("Purged %d idle auth sessions", len(purged))


async def _cleanup_watcher():
	# Runs daily; the first pass happens at startup
	while True:
		await asyncio.sleep(24 * 60 * 60)
		try:
			_purge_once()
		except Exception:
			logger.exception("Auth session cleanup failed")


@app.on_event("startup")
async def startup_event():
	Base.metadata.create_all(bind=engine)
	ensure_schema()
	try:
		_purge_once()
	except Exception:
		logger.exception("Auth session cleanup failed")
	asyncio.create_task(_cleanup_watcher())


@app.on_event("shutdown")
async def shutdown_event():
	get_gate().close()
