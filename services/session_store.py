"""Simple in-memory store for review sessions."""

from __future__ import annotations

import logging
from typing import Dict
from uuid import uuid4

from models.session_models import SessionOptions
from models.user_context import UserContext
from services.backend_client import BackendClient
from services.workflow import SessionWorkflow

LOGGER = logging.getLogger(__name__)


class SessionStore:
	"""Manage live review sessions keyed by session id."""

	def __init__(self, canonical_language: str = "English") -> None:
		self.canonical_language = canonical_language
		self._sessions: Dict[str, SessionWorkflow] = {}

	def create(self, user: UserContext, backend: BackendClient) -> SessionWorkflow:
		"""Open a new session for a signed-in user."""
		session_id = uuid4().hex
		options = SessionOptions(canonical_language=self.canonical_language)
		workflow = SessionWorkflow(session_id, user, backend, options)
		workflow.sync_mode()
		self._sessions[session_id] = workflow
		LOGGER.info("Opened review session %s for %s", session_id, user.username)
		return workflow

	def get(self, session_id: str) -> SessionWorkflow:
		"""Return a session or raise KeyError if missing."""
		workflow = self._sessions.get(session_id)
		if workflow is None:
			raise KeyError(f"Session {session_id} not found")
		return workflow

	def close(self, session_id: str) -> SessionWorkflow:
		"""Forget a session; its records are dropped with it."""
		workflow = self.get(session_id)
		del self._sessions[session_id]
		LOGGER.info("Closed review session %s", session_id)
		return workflow

	def __len__(self) -> int:
		return len(self._sessions)
