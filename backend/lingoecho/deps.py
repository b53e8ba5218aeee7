from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from .db import SessionLocal, get_db
from .exceptions import AuthError, LingoEchoError
from .gate import AuthGate
from .generation import ContentGenerator
from .identity import IdentityService
from .persistence import PersistenceClient
from .records import Identity
from .settings import settings
from .shell import AppShell
from .store import RealtimeStore

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")

_store: Optional[RealtimeStore] = None
_gate: Optional[AuthGate] = None


def get_store() -> RealtimeStore:
	global _store
	if _store is None:
		_store = RealtimeStore(SessionLocal, root=settings.store_root)
	return _store


def get_persistence() -> PersistenceClient:
	return PersistenceClient(get_store())


def build_gate(store: RealtimeStore, generator: ContentGenerator) -> AuthGate:
	persistence = PersistenceClient(store)
	clear_delay = settings.matching_clear_delay_ms / 1000
	return AuthGate(
		IdentityService(),
		lambda identity: AppShell(identity, persistence, generator, clear_delay=clear_delay),
	)


def get_gate() -> AuthGate:
	global _gate
	if _gate is None:
		_gate = build_gate(get_store(), ContentGenerator())
	return _gate


@dataclass
class Principal:
	identity: Identity
	session_id: str


def get_principal(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db), gate: AuthGate = Depends(get_gate)) -> Principal:
	try:
		identity, session_id = gate.identities.resolve(db, token)
	except AuthError as exc:
		raise HTTPException(status_code=401, detail=exc.message, headers={"WWW-Authenticate": "Bearer"})
	return Principal(identity=identity, session_id=session_id)


def get_shell(principal: Principal = Depends(get_principal), gate: AuthGate = Depends(get_gate)) -> AppShell:
	try:
		return gate.shell_for(principal.identity, principal.session_id)
	except LingoEchoError as exc:
		raise http_error(exc)


_STATUS_BY_ERROR = {
	"ViewBusyError": 409,
	"InvalidTransitionError": 409,
	"InvalidActionError": 400,
	"SessionNotFoundError": 404,
	"PersistenceError": 503,
	"GenerationError": 502,
}


def http_error(exc: LingoEchoError, **extra) -> HTTPException:
	status = _STATUS_BY_ERROR.get(type(exc).__name__, 400)
	detail = {"error": exc.message, **extra} if extra else exc.message
	return HTTPException(status_code=status, detail=detail)
