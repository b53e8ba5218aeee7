"""
Email + password identity service.

Accounts and auth sessions live in SQL tables; access tokens are JWTs whose
``jti`` names the server-side auth session, so deleting that row revokes the
token. Listeners are told about every sign-in, sign-out and restore.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Literal, Optional, Tuple

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .exceptions import AuthError
from .models import AuthSession, AuthUser
from .records import Identity
from .settings import settings

logger = logging.getLogger(__name__)

logging.getLogger('passlib').setLevel(logging.ERROR)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MIN_PASSWORD_LENGTH = 6
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass
class IdentityEvent:
	kind: Literal["signed_in", "signed_out", "restored"]
	identity: Identity
	session_id: str


IdentityListener = Callable[[IdentityEvent], None]


def _to_identity(row: AuthUser) -> Identity:
	return Identity(id=row.id, display_name=row.display_name, email=row.email, photo_url=row.photo_url)


def _hash_password(password: str) -> str:
	# bcrypt only looks at the first 72 bytes
	password_bytes = password.encode('utf-8')[:72]
	return pwd_context.hash(password_bytes.decode('utf-8', errors='ignore'))


def _verify_password(password: str, hashed: str) -> bool:
	password_bytes = password.encode('utf-8')[:72]
	return pwd_context.verify(password_bytes.decode('utf-8', errors='ignore'), hashed)


def _resolve_expiry(expires_delta: Optional[timedelta]) -> datetime:
	delta = expires_delta
	if delta is None:
		minutes = settings.access_token_expire_minutes
		delta = timedelta(minutes=minutes) if minutes > 0 else timedelta(days=30)
	now = datetime.now(timezone.utc)
	try:
		return now + delta
	except OverflowError:
		return datetime.max.replace(tzinfo=timezone.utc)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	to_encode.update({"exp": _resolve_expiry(expires_delta)})
	return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


class IdentityService:
	def __init__(self) -> None:
		self._listeners: List[IdentityListener] = []

	def add_listener(self, listener: IdentityListener) -> None:
		self._listeners.append(listener)

	def remove_listener(self, listener: IdentityListener) -> None:
		if listener in self._listeners:
			self._listeners.remove(listener)

	def _emit(self, event: IdentityEvent) -> None:
		logger.info("Identity %s: %s (session %s)", event.kind, event.identity.id, event.session_id)
		for listener in list(self._listeners):
			listener(event)

	def _start_session(self, db: Session, row: AuthUser) -> Tuple[Identity, str, str]:
		session_id = uuid.uuid4().hex
		db.add(AuthSession(session_id=session_id, user_id=row.id))
		db.commit()
		token = create_access_token({"sub": row.id, "jti": session_id})
		identity = _to_identity(row)
		self._emit(IdentityEvent("signed_in", identity, session_id))
		return identity, token, session_id

	def register(self, db: Session, email: str, password: str, display_name: str) -> Tuple[Identity, str, str]:
		email = (email or "").strip().lower()
		display_name = (display_name or "").strip()
		if not _EMAIL_RE.match(email):
			raise AuthError("invalid-email", "Please enter a valid email address")
		if len(password or "") < MIN_PASSWORD_LENGTH:
			raise AuthError("weak-password", f"Password should be at least {MIN_PASSWORD_LENGTH} characters")
		if not display_name:
			raise AuthError("missing-display-name", "Please enter your name")
		if db.query(AuthUser).filter(AuthUser.email == email).first() is not None:
			raise AuthError("email-already-in-use", "An account with this email already exists")
		row = AuthUser(id=uuid.uuid4().hex, email=email, display_name=display_name, password_hash=_hash_password(password))
		db.add(row)
		try:
			db.commit()
		except IntegrityError:
			db.rollback()
			raise AuthError("email-already-in-use", "An account with this email already exists")
		return self._start_session(db, row)

	def login(self, db: Session, email: str, password: str) -> Tuple[Identity, str, str]:
		email = (email or "").strip().lower()
		row = db.query(AuthUser).filter(func.lower(AuthUser.email) == email).first()
		if row is None or not _verify_password(password or "", row.password_hash):
			raise AuthError("invalid-credential", "Incorrect email or password")
		return self._start_session(db, row)

	def logout(self, db: Session, session_id: str) -> None:
		row = db.get(AuthSession, session_id)
		if row is None:
			return
		user = db.get(AuthUser, row.user_id)
		db.delete(row)
		db.commit()
		if user is not None:
			self._emit(IdentityEvent("signed_out", _to_identity(user), session_id))

	def resolve(self, db: Session, token: str) -> Tuple[Identity, str]:
		"""Identity and auth session id behind a token, touching the session."""
		try:
			payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
		except JWTError:
			raise AuthError("invalid-token", "Could not validate credentials")
		user_id: str | None = payload.get("sub")
		session_id: str | None = payload.get("jti")
		if user_id is None or session_id is None:
			raise AuthError("invalid-token", "Could not validate credentials")
		row = db.get(AuthSession, session_id)
		if row is None or row.user_id != user_id:
			raise AuthError("invalid-token", "Session has ended, please sign in again")
		user = db.get(AuthUser, user_id)
		if user is None:
			raise AuthError("invalid-token", "Account no longer exists")
		row.last_activity_at = datetime.utcnow()
		db.add(row)
		db.commit()
		return _to_identity(user), session_id

	def notify_restored(self, identity: Identity, session_id: str) -> None:
		self._emit(IdentityEvent("restored", identity, session_id))
