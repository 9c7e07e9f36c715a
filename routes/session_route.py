"""FastAPI routes for review sessions."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from pydantic import BaseModel, Field

from controllers import session_controller as controller

router = APIRouter(prefix="/sessions", tags=["sessions"])


class PermissionRulePayload(BaseModel):
	metadata: List[Optional[str]] = Field(default_factory=list)
	language: List[Optional[str]] = Field(default_factory=list)


class UserContextPayload(BaseModel):
	access_token: str
	username: str
	token_type: str = "bearer"
	roles: List[str] = Field(default_factory=list)
	permissions: List[str] = Field(default_factory=list)
	languages_allowed: List[str] = Field(default_factory=list)
	permission_rules: Dict[str, PermissionRulePayload] = Field(default_factory=dict)


class ActiveTabPayload(BaseModel):
	language: Optional[str] = None


class FieldChangesPayload(BaseModel):
	changes: Dict[str, Any]


class SavePayload(BaseModel):
	ui_action: str = "saveToDatabase"


class WorklistPayload(BaseModel):
	language: str = "ALL"


async def _guard(call):
	"""Await a controller call, keeping HTTP errors and wrapping anything else as 500."""
	try:
		return await call
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc)) from exc


@router.post("")
async def start_session_route(request: Request, payload: UserContextPayload):
	return await _guard(controller.start_session(request, payload.model_dump()))


@router.get("/{session_id}")
async def get_session_route(request: Request, session_id: str):
	return await _guard(controller.get_session(request, session_id))


@router.delete("/{session_id}")
async def end_session_route(request: Request, session_id: str):
	return await _guard(controller.end_session(request, session_id))


@router.post("/{session_id}/languages/{language}")
async def toggle_language_route(request: Request, session_id: str, language: str):
	return await _guard(controller.toggle_language(request, session_id, language))


@router.put("/{session_id}/active-tab")
async def active_tab_route(request: Request, session_id: str, payload: ActiveTabPayload):
	return await _guard(controller.set_active_tab(request, session_id, payload.language))


@router.patch("/{session_id}/common-data")
async def common_data_route(request: Request, session_id: str, payload: FieldChangesPayload):
	return await _guard(controller.update_common_data(request, session_id, payload.changes))


@router.patch("/{session_id}/results/{language}")
async def language_result_route(request: Request, session_id: str, language: str, payload: FieldChangesPayload):
	return await _guard(controller.update_language_result(request, session_id, language, payload.changes))


@router.post("/{session_id}/results/{language}/edit")
async def toggle_edit_route(request: Request, session_id: str, language: str):
	return await _guard(controller.toggle_edit(request, session_id, language))


@router.post("/{session_id}/results/{language}/edit/cancel")
async def cancel_edit_route(request: Request, session_id: str, language: str):
	return await _guard(controller.cancel_edit(request, session_id, language))


@router.post("/{session_id}/image")
async def upload_image_route(request: Request, session_id: str, image: UploadFile = File(...)):
	"""Stage the image that identify and save will send."""
	return await _guard(controller.upload_image(request, session_id, image))


@router.post("/{session_id}/identify")
async def identify_route(request: Request, session_id: str):
	return await _guard(controller.identify(request, session_id))


@router.post("/{session_id}/save")
async def save_route(request: Request, session_id: str, payload: SavePayload):
	return await _guard(controller.quick_save(request, session_id, payload.ui_action))


@router.post("/{session_id}/refresh/{language}")
async def refresh_route(request: Request, session_id: str, language: str):
	return await _guard(controller.refresh_tab(request, session_id, language))


@router.post("/{session_id}/worklist")
async def worklist_route(request: Request, session_id: str, payload: WorklistPayload):
	return await _guard(controller.fetch_worklist(request, session_id, payload.language))


@router.post("/{session_id}/skip")
async def skip_route(request: Request, session_id: str):
	return await _guard(controller.skip(request, session_id))


@router.post("/{session_id}/reset")
async def reset_route(request: Request, session_id: str):
	return await _guard(controller.reset(request, session_id))


@router.get("/{session_id}/permissions")
async def permissions_route(request: Request, session_id: str):
	return await _guard(controller.permissions(request, session_id))


@router.get("/{session_id}/recent")
async def list_recent_route(request: Request, session_id: str):
	return await _guard(controller.list_recent(request, session_id))


@router.post("/{session_id}/recent/{index}")
async def open_recent_route(request: Request, session_id: str, index: int):
	return await _guard(controller.open_recent(request, session_id, index))
