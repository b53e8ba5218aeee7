"""
Application exceptions.

Views catch GenerationError and PersistenceError where the external call is
made; routers map everything else onto HTTP status codes.
"""

from __future__ import annotations

from typing import Any


class LingoEchoError(Exception):
	def __init__(self, message: str, details: Any = None):
		self.message = message
		self.details = details
		super().__init__(message)


class AuthError(LingoEchoError):
	"""Identity service failure, carrying a short machine-readable code."""

	def __init__(self, code: str, message: str):
		super().__init__(message)
		self.code = code


class GenerationError(LingoEchoError):
	"""The content-generation call produced no usable result."""


class PersistenceError(LingoEchoError):
	"""A read or write against the realtime store failed."""


class ViewBusyError(LingoEchoError):
	"""A request is already in flight for this view."""


class InvalidTransitionError(LingoEchoError):
	"""The view is not in a state that allows the requested action."""


class InvalidActionError(LingoEchoError):
	"""The action refers to something the view does not hold."""


class SessionNotFoundError(LingoEchoError):
	def __init__(self, session_id: str):
		super().__init__(f"Session '{session_id}' not found")
		self.session_id = session_id
