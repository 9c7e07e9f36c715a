"""Review session helpers bridging HTTP requests and session workflows."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import asdict
from typing import Any, Dict, Iterator, Optional

from fastapi import HTTPException, Request, UploadFile

from models.user_context import UserContext
from services.backend_client import BackendClient
from services.errors import BackendAuthError, BackendError, PermissionDeniedError, WorkflowValidationError
from services.session_store import SessionStore
from services.workflow import SessionWorkflow
from utils.media_validation import normalize_content_type, read_image_upload


def _store(request: Request) -> SessionStore:
	store = getattr(request.app.state, "session_store", None)
	if store is None:
		raise HTTPException(status_code=500, detail="Session store unavailable")
	return store


def _session(request: Request, session_id: str) -> SessionWorkflow:
	try:
		return _store(request).get(session_id)
	except KeyError as exc:
		raise HTTPException(status_code=404, detail=str(exc)) from exc


@contextmanager
def _workflow_errors() -> Iterator[None]:
	"""Translate workflow exceptions into HTTP errors."""
	try:
		yield
	except WorkflowValidationError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc
	except PermissionDeniedError as exc:
		raise HTTPException(status_code=403, detail=str(exc)) from exc
	except BackendAuthError as exc:
		raise HTTPException(status_code=401, detail=exc.detail) from exc
	except BackendError as exc:
		raise HTTPException(status_code=502, detail=str(exc)) from exc
	except ValueError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc


async def start_session(request: Request, user_payload: Dict[str, Any]) -> Dict[str, Any]:
	"""Open a review session for the user handed over by the auth service."""
	user = UserContext.from_payload(user_payload)
	if not user.username:
		raise HTTPException(status_code=400, detail="A username is required.")
	http_client = getattr(request.app.state, "http_client", None)
	if http_client is None:
		raise HTTPException(status_code=500, detail="Backend client not initialized.")
	workflow = _store(request).create(user, BackendClient(http_client, user.access_token))
	return workflow.snapshot()


async def get_session(request: Request, session_id: str) -> Dict[str, Any]:
	return _session(request, session_id).snapshot()


async def end_session(request: Request, session_id: str) -> Dict[str, Any]:
	try:
		_store(request).close(session_id)
	except KeyError as exc:
		raise HTTPException(status_code=404, detail=str(exc)) from exc
	return {"session_id": session_id, "closed": True}


async def toggle_language(request: Request, session_id: str, language: str) -> Dict[str, Any]:
	workflow = _session(request, session_id)
	selected = workflow.toggle_language(language)
	return {"language": language, "selected": selected, "session": workflow.snapshot()}


async def set_active_tab(request: Request, session_id: str, language: Optional[str]) -> Dict[str, Any]:
	workflow = _session(request, session_id)
	with _workflow_errors():
		workflow.set_active_tab(language)
	return workflow.snapshot()


async def update_common_data(request: Request, session_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
	workflow = _session(request, session_id)
	with _workflow_errors():
		workflow.update_common_fields(changes)
	return workflow.snapshot()


async def update_language_result(
	request: Request, session_id: str, language: str, changes: Dict[str, Any]
) -> Dict[str, Any]:
	workflow = _session(request, session_id)
	with _workflow_errors():
		updated = workflow.update_language_fields(language, changes)
	if not updated:
		raise HTTPException(status_code=404, detail=f"No translation for {language}")
	return workflow.snapshot()


async def toggle_edit(request: Request, session_id: str, language: str) -> Dict[str, Any]:
	workflow = _session(request, session_id)
	with _workflow_errors():
		editing = workflow.toggle_edit(language)
	return {"language": language, "editing": editing, "session": workflow.snapshot()}


async def cancel_edit(request: Request, session_id: str, language: str) -> Dict[str, Any]:
	workflow = _session(request, session_id)
	workflow.cancel_edit(language)
	return workflow.snapshot()


async def upload_image(request: Request, session_id: str, image: UploadFile) -> Dict[str, Any]:
	"""Stage an uploaded image for the next identify or save."""
	workflow = _session(request, session_id)
	content = await read_image_upload(image)
	with _workflow_errors():
		workflow.set_image(content, image.filename, normalize_content_type(image.content_type))
	return workflow.snapshot()


async def identify(request: Request, session_id: str) -> Dict[str, Any]:
	workflow = _session(request, session_id)
	with _workflow_errors():
		outcome = await workflow.identify()
	return {"outcome": asdict(outcome), "session": workflow.snapshot()}


async def quick_save(request: Request, session_id: str, ui_action: str) -> Dict[str, Any]:
	workflow = _session(request, session_id)
	with _workflow_errors():
		outcome = await workflow.quick_save(ui_action)
	return {"outcome": asdict(outcome), "session": workflow.snapshot()}


async def refresh_tab(request: Request, session_id: str, language: str) -> Dict[str, Any]:
	workflow = _session(request, session_id)
	if language not in workflow.store.selected_languages:
		raise HTTPException(status_code=404, detail=f"Language {language} is not selected")
	with _workflow_errors():
		refreshed = await workflow.refresh_tab(language)
	return {"refreshed": refreshed, "session": workflow.snapshot()}


async def fetch_worklist(request: Request, session_id: str, language: str) -> Dict[str, Any]:
	workflow = _session(request, session_id)
	with _workflow_errors():
		loaded = await workflow.fetch_worklist(language)
	return {"loaded": loaded, "session": workflow.snapshot()}


async def skip(request: Request, session_id: str) -> Dict[str, Any]:
	workflow = _session(request, session_id)
	with _workflow_errors():
		skipped = await workflow.skip()
	return {"skipped": skipped, "session": workflow.snapshot()}


async def reset(request: Request, session_id: str) -> Dict[str, Any]:
	workflow = _session(request, session_id)
	workflow.reset()
	return workflow.snapshot()


async def permissions(request: Request, session_id: str) -> Dict[str, Any]:
	"""Report, per UI action, whether each state axis currently allows it."""
	workflow = _session(request, session_id)
	checks = workflow.permission_checks()
	return {
		"mode": workflow.sync_mode().value,
		"actions": {
			action: {"metadata": check.metadata, "language": check.language, "allowed": check.allowed}
			for action, check in checks.items()
		},
	}


async def list_recent(request: Request, session_id: str) -> Dict[str, Any]:
	workflow = _session(request, session_id)
	with _workflow_errors():
		items = await workflow.fetch_recent_translations()
	return {"items": [asdict(item) for item in items]}


async def open_recent(request: Request, session_id: str, index: int) -> Dict[str, Any]:
	workflow = _session(request, session_id)
	with _workflow_errors():
		outcome = await workflow.open_recent_translation(index)
	return {"outcome": asdict(outcome), "session": workflow.snapshot()}
