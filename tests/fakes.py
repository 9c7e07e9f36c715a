"""In-memory stand-ins for the translation backend used across the tests."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from models.user_context import PermissionRule, UserContext

STATES: List[Optional[str]] = [None, "draft", "review", "verified", "approved", "released"]


def make_user(
    permissions: Optional[List[str]] = None,
    rules: Optional[Dict[str, PermissionRule]] = None,
    username: str = "reviewer1",
) -> UserContext:
    """A user whose permissions apply in every state unless `rules` says otherwise."""
    if permissions is None:
        permissions = ["UploadPictures", "SaveText", "SwitchToEditMode", "ViewWorkList", "SkipToNextContributor"]
    if rules is None:
        rules = {name: PermissionRule(metadata=list(STATES), language=list(STATES)) for name in permissions}
    return UserContext(
        access_token="token-123",
        username=username,
        roles=["contributor"],
        permissions=permissions,
        languages_allowed=["English", "French", "German"],
        permission_rules=rules,
    )


def identify_payload(language: str, **overrides: Any) -> Dict[str, Any]:
    payload = {
        "object_name_en": f"apple ({language})",
        "object_category": "fruit",
        "tags": ["food", "red"],
        "field_of_study": "biology",
        "age_appropriate": "all",
        "image_status": "",
        "object_id": "obj-1",
        "image_base64": "aGVsbG8=",
        "flag_object": False,
        "filename": "apple.jpg",
        "size": "1024",
        "mime_type": "image/jpeg",
        "dimensions": "100x100",
        "created_at": "2024-01-01",
        "created_by": "reviewer1",
        "updated_at": "2024-01-02",
        "updated_by": "reviewer1",
        "object_name": f"name-{language}",
        "object_description": f"description-{language}",
        "object_hint": f"hint-{language}",
        "object_short_hint": f"short-{language}",
        "translation_status": "",
        "translation_id": "",
        "flag_translation": False,
    }
    payload.update(overrides)
    return payload


def worklist_item(language: str, **overrides: Any) -> Dict[str, Any]:
    item = identify_payload(language)
    item.pop("mime_type")
    item.pop("flag_translation")
    item.update(
        {
            "requested_language": language,
            "mimeType": "image/png",
            "object_id": f"obj-{language}",
            "translation_id": f"tr-{language}",
            "translation_status": "draft",
            "quiz_qa": [],
            "translation": False,
        }
    )
    item.update(overrides)
    return item


def backend_record(translation_id: str, **overrides: Any) -> Dict[str, Any]:
    """Nested payload returned by a lookup of one translation by id."""
    record = {
        "common_data": {
            "object_name_en": "apple",
            "metadata": {
                "object_category": "fruit",
                "tags": ["food"],
                "field_of_study": "biology",
                "age_appropriate": "all",
            },
            "image_status": "review",
            "_id": "obj-1",
            "image_base64": "",
            "flag_object": False,
        },
        "file_info": {
            "filename": "apple.jpg",
            "size": "1024",
            "mime_type": "image/jpeg",
            "dimensions": "100x100",
            "created_by": "reviewer1",
            "created_at": "2024-01-01",
            "updated_by": "reviewer1",
            "updated_at": "2024-01-03",
        },
        "translations": {
            "object_name": "saved name",
            "object_description": "saved description",
            "object_hint": "saved hint",
            "object_short_hint": "saved short",
            "translation_status": "review",
            "_id": translation_id,
        },
        "flag_translation": False,
    }
    record.update(overrides)
    return record


class FakeBackend:
    """Scriptable replacement for `BackendClient`.

    Identify calls for a language listed in `gates` wait until the test
    releases that language, so completion order can be chosen per test.
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[Any, ...]] = []
        self.identify_responses: Dict[str, Any] = {}
        self.gates: Dict[str, asyncio.Event] = {}
        self.save_response: Any = [{"object_id": "obj-1", "translation_id": "tr-1"}]
        self.save_gate: Optional[asyncio.Event] = None
        self.records: Dict[str, Any] = {}
        self.worklist_responses: List[Any] = []
        self.skip_error: Optional[Exception] = None
        self.thumbnails: Any = []

    def hold(self, *languages: str) -> None:
        for language in languages:
            self.gates[language] = asyncio.Event()

    def release(self, language: str) -> None:
        self.gates[language].set()

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    async def identify(self, language, image=None, image_hash=None):
        self.calls.append(("identify", language, image, image_hash))
        gate = self.gates.get(language)
        if gate is not None:
            await gate.wait()
        response = self.identify_responses.get(language, identify_payload(language))
        if isinstance(response, Exception):
            raise response
        return dict(response)

    async def save(self, common_attributes, language_attributes, permission_action, image=None):
        self.calls.append(("save", common_attributes, language_attributes, permission_action, image))
        if self.save_gate is not None:
            await self.save_gate.wait()
        if isinstance(self.save_response, Exception):
            raise self.save_response
        return self.save_response

    async def get_translation_by_id(self, translation_id):
        self.calls.append(("get_translation_by_id", translation_id))
        response = self.records.get(translation_id, backend_record(translation_id))
        if isinstance(response, Exception):
            raise response
        return response

    async def skip_to_unlock(self, translation_id):
        self.calls.append(("skip_to_unlock", translation_id))
        if self.skip_error is not None:
            raise self.skip_error

    async def fetch_worklist(self, languages):
        self.calls.append(("fetch_worklist", list(languages)))
        response = self.worklist_responses.pop(0) if self.worklist_responses else []
        if isinstance(response, Exception):
            raise response
        return response

    async def fetch_thumbnails(self, username):
        self.calls.append(("fetch_thumbnails", username))
        if isinstance(self.thumbnails, Exception):
            raise self.thumbnails
        return self.thumbnails


async def settle(rounds: int = 5) -> None:
    """Let pending tasks run until they block again."""
    for _ in range(rounds):
        await asyncio.sleep(0)
