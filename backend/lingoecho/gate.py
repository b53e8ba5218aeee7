from __future__ import annotations

import logging
from typing import Callable, Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from .exceptions import AuthError
from .identity import IdentityEvent, IdentityService
from .records import Identity
from .shell import AppShell, ShellRegistry

logger = logging.getLogger(__name__)

ShellFactory = Callable[[Identity], AppShell]


class AuthForm(BaseModel):
	email: str
	password: str
	name: Optional[str] = None
	registering: bool = False


class AuthOutcome(BaseModel):
	identity: Optional[Identity] = None
	access_token: Optional[str] = None
	token_type: str = "bearer"
	error: Optional[str] = None
	error_code: Optional[str] = None
	# Echoed back on failure so the form stays filled in; the password is never echoed
	email: str = ""
	name: Optional[str] = None
	registering: bool = False


class AuthGate:
	"""Owns sign-in state: opens a shell on every sign-in or restore and closes it on sign-out."""

	def __init__(self, identities: IdentityService, shell_factory: ShellFactory, registry: Optional[ShellRegistry] = None) -> None:
		self.identities = identities
		self.shell_factory = shell_factory
		self.registry = registry or ShellRegistry()
		identities.add_listener(self._on_identity_change)

	def _on_identity_change(self, event: IdentityEvent) -> None:
		if event.kind == "signed_out":
			self.registry.close(event.session_id)
			return
		shell = self.shell_factory(event.identity)
		shell.open()
		self.registry.add(event.session_id, shell)

	def submit(self, db: Session, form: AuthForm) -> AuthOutcome:
		try:
			if form.registering:
				identity, token, _ = self.identities.register(db, form.email, form.password, form.name or "")
			else:
				identity, token, _ = self.identities.login(db, form.email, form.password)
		except AuthError as exc:
			logger.info("Authentication failed for %s: %s", form.email, exc.code)
			return AuthOutcome(
				error=exc.message,
				error_code=exc.code,
				email=form.email,
				name=form.name,
				registering=form.registering,
			)
		return AuthOutcome(identity=identity, access_token=token, email=identity.email, name=identity.display_name)

	def sign_out(self, db: Session, session_id: str) -> None:
		self.identities.logout(db, session_id)
		# Covers sessions whose account row has already gone
		self.registry.close(session_id)

	def shell_for(self, identity: Identity, session_id: str) -> AppShell:
		"""The shell of an auth session, restoring it for a token issued before this process started."""
		shell = self.registry.get(session_id)
		if shell is None:
			self.identities.notify_restored(identity, session_id)
			shell = self.registry.get(session_id)
			if shell is None:
				raise RuntimeError(f"No shell was opened for session {session_id}")
		return shell

	def close(self) -> None:
		self.identities.remove_listener(self._on_identity_change)
		self.registry.close_all()
