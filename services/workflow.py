"""End-to-end review actions for one signed-in user.

`SessionWorkflow` checks permissions, mutates the session's `RecordStore`
and calls the translation backend. Responses that arrive after their
language was deselected or re-requested are discarded.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

from models.session_models import (
    IdentifyOutcome,
    ImageUpload,
    LanguageFailure,
    RecentTranslation,
    SaveOutcome,
    SessionOptions,
)
from models.translation import (
    CommonData,
    CommonDataMode,
    FileInfo,
    SaveStatus,
    TranslationRecord,
    check_field_names,
)
from models.user_context import UserContext
from services import messages
from services.backend_client import BackendClient, ImageFile
from services.errors import BackendAuthError, BackendError, PermissionDeniedError, WorkflowValidationError
from services.permissions import (
    PermissionCheck,
    UI_ACTIONS,
    determine_common_data_mode,
    make_action_checks,
    resolve_permission_action,
)
from services.record_store import RecordStore
from services.worklist import ALL_LANGUAGES, WorklistReconciler

LOGGER = logging.getLogger(__name__)

SAVE_TO_DATABASE = "saveToDatabase"


def _language_state(status: Optional[str]) -> Optional[str]:
    return None if status in ("", None, "null") else status


class SessionWorkflow:
    """Review session state plus the actions a user can take on it."""

    def __init__(
        self,
        session_id: str,
        user: UserContext,
        backend: BackendClient,
        options: Optional[SessionOptions] = None,
    ) -> None:
        if user is None:
            raise ValueError("A signed-in user is required.")
        self.session_id = session_id
        self.user = user
        self.backend = backend
        self.store = RecordStore(options)
        self.worklist = WorklistReconciler(self.store)
        self.upload = ImageUpload()
        self.recent_translations: List[RecentTranslation] = []

        self.error: Optional[str] = None
        self.is_loading = False
        self.is_redirecting = False
        self.worklist_fetched = False

    # -- permissions ---------------------------------------------------------

    @property
    def metadata_state(self) -> Optional[str]:
        return self.store.current_common.image_status or None

    def language_state(self, language: Optional[str] = None) -> Optional[str]:
        language = language or self.store.active_tab
        record = self.store.results.get(language) if language else None
        return _language_state(record.translation_status if record else None)

    def check(self, action: str, language: Optional[str] = None) -> PermissionCheck:
        return make_action_checks(action, self.metadata_state, self.language_state(language), self.user)

    def permission_checks(self) -> Dict[str, PermissionCheck]:
        return {action: self.check(action) for action in UI_ACTIONS}

    def require(self, action: str, language: Optional[str] = None) -> None:
        """Raise unless `action` is allowed on both state axes.

        The language axis uses `language`, or the active tab when omitted.
        """
        if not self.check(action, language).allowed:
            raise PermissionDeniedError(action, self.metadata_state, self.language_state(language))

    def sync_mode(self) -> CommonDataMode:
        """Re-derive the common-data mode from the user's current permissions."""
        mode = determine_common_data_mode(self.metadata_state, self.language_state(), self.user)
        if mode is not self.store.options.mode:
            LOGGER.info("Session %s switches common data mode to %s", self.session_id, mode.value)
            self.store.options.mode = mode
        return mode

    def _fail(self, message: str) -> None:
        self.error = message
        raise WorkflowValidationError(message)

    # -- direct edits --------------------------------------------------------

    def set_image(self, content: bytes, filename: Optional[str] = None, content_type: Optional[str] = None) -> None:
        """Stage a new image; any previously known content hash no longer applies."""
        if not content:
            raise WorkflowValidationError(messages.NO_FILE)
        self.upload.content = content
        self.upload.filename = filename or "upload"
        self.upload.content_type = content_type or "image/jpeg"
        self.upload.image_hash = None

    def toggle_language(self, language: str) -> bool:
        self.sync_mode()
        return self.store.toggle_language(language)

    def set_active_tab(self, language: Optional[str]) -> None:
        if language is not None and language not in self.store.selected_languages:
            raise WorkflowValidationError(f"Language '{language}' is not selected.")
        self.sync_mode()
        self.store.set_active_tab(language)

    def update_common_data(self, name: str, value: Any) -> None:
        self.sync_mode()
        self.store.update_common_data(name, value)

    def update_language_result(self, language: str, name: str, value: Any) -> bool:
        return self.store.update_language_result(language, name, value)

    def update_common_fields(self, changes: Dict[str, Any]) -> None:
        """Apply several image-level edits, or none when any field name is unknown."""
        check_field_names(CommonData, changes)
        for name, value in changes.items():
            self.update_common_data(name, value)

    def update_language_fields(self, language: str, changes: Dict[str, Any]) -> bool:
        """Apply several edits to one language's record, all or none.

        Returns False when the language has no record.
        """
        check_field_names(TranslationRecord, changes)
        if language not in self.store.results:
            return False
        for name, value in changes.items():
            self.store.update_language_result(language, name, value)
        return True

    def toggle_edit(self, language: str) -> bool:
        """Enter edit mode (permission permitting) or cancel the current edit."""
        if not self.store.is_editing.get(language):
            self.require("switchToEditMode", language)
        return self.store.toggle_edit(language)

    def cancel_edit(self, language: str) -> None:
        self.sync_mode()
        self.store.cancel_edit(language)

    def reset(self) -> None:
        """Forget every record and the staged image. The selection is kept."""
        self.store.clear_results()
        self.upload.clear()
        self.error = None
        self.is_loading = False
        self.is_redirecting = False
        self.worklist_fetched = False

    # -- identify ------------------------------------------------------------

    def _image_file(self) -> Optional[ImageFile]:
        if not self.upload.has_file:
            return None
        return (self.upload.filename, self.upload.content, self.upload.content_type)

    async def identify(self) -> IdentifyOutcome:
        """Request text for the staged image in every selected language at once.

        Each language succeeds or fails on its own. Image-level data comes from
        whichever response completes first and is copied to every tab.
        """
        store = self.store
        store.save_messages.clear()
        self.error = None

        if not self.upload.has_file and not self.upload.image_hash:
            self._fail(messages.NO_IMAGE)
        languages = list(store.selected_languages)
        if not languages:
            self._fail(messages.NO_LANGUAGES)
        self.sync_mode()
        self.require("identifyImage")

        self.is_loading = True
        store.results.clear()
        store.original_results.clear()
        store.mark_loading(languages)
        store.is_editing = {lang: False for lang in languages}
        store.available_tabs = list(languages)
        store.set_active_tab(languages[0])
        store.database_view = {lang: True for lang in languages}
        tokens = {lang: store.begin_request(lang) for lang in languages}

        image_hash = self.upload.image_hash
        image = None if image_hash else self._image_file()
        outcome = IdentifyOutcome(languages=languages)
        failures: Dict[str, str] = {}
        shared_written = False

        async def identify_one(language: str) -> None:
            nonlocal shared_written
            try:
                data = await self.backend.identify(language, image=image, image_hash=image_hash)
            except BackendAuthError:
                raise
            except BackendError as exc:
                if not store.is_current(language, tokens[language]):
                    outcome.discarded.append(language)
                    return
                if exc.is_content_policy:
                    LOGGER.warning("Identify for %s rejected as inappropriate", language)
                    outcome.content_policy_violation = True
                    self.is_redirecting = True
                    store.results[language] = TranslationRecord()
                    return
                LOGGER.warning("Identify for %s failed: %s", language, exc)
                failures[language] = str(exc)
                store.results[language] = TranslationRecord(error=str(exc))
                return

            if not store.is_current(language, tokens[language]):
                LOGGER.warning("Discarding identify response for superseded language %s", language)
                outcome.discarded.append(language)
                return

            if not shared_written:
                shared_written = True
                self._broadcast_image_data(CommonData.from_payload(data), FileInfo.from_payload(data))

            record = TranslationRecord.from_payload(data)
            store.results[language] = record
            store.original_results[language] = record.copy()
            store.save_status[language] = SaveStatus.UNSAVED
            outcome.succeeded.append(language)

        try:
            results = await asyncio.gather(*(identify_one(lang) for lang in languages), return_exceptions=True)
        finally:
            self.upload.image_hash = None
            self.is_loading = False

        for result in results:
            if isinstance(result, BaseException):
                raise result

        outcome.failures = [LanguageFailure(lang, failures[lang]) for lang in languages if lang in failures]
        if outcome.content_policy_violation:
            self.error = messages.INAPPROPRIATE_CONTENT
        else:
            self.error = outcome.error_message()
        return outcome

    def _broadcast_image_data(self, common: CommonData, file_info: FileInfo) -> None:
        store = self.store
        store.current_common = common.copy()
        store.original_common = common.copy()
        store.current_file_info = file_info.copy()
        for language in store.selected_languages:
            store.per_language_common[language] = common.copy()
            store.per_language_file_info[language] = file_info.copy()

    # -- save / refresh ------------------------------------------------------

    async def quick_save(self, ui_action: str = SAVE_TO_DATABASE) -> SaveOutcome:
        """Save the active tab, then reload it from the backend.

        On failure the tab keeps its edits, editing flag and save status; only
        its save message changes.
        """
        store = self.store
        tab = store.active_tab
        if not tab or tab not in store.results:
            raise WorkflowValidationError(messages.NO_ACTIVE_RECORD)
        if ui_action == SAVE_TO_DATABASE and not self.upload.has_file:
            raise WorkflowValidationError(messages.NO_FILE)
        self.sync_mode()
        self.require(ui_action)
        permission_action = resolve_permission_action(ui_action, self.user)

        store.is_saving[tab] = ui_action
        store.save_messages[tab] = None
        try:
            return await self._save_tab(tab, permission_action)
        finally:
            if tab in store.selected_languages:
                store.is_saving[tab] = None

    async def _save_tab(self, tab: str, permission_action: str) -> SaveOutcome:
        store = self.store
        common = store.common_data_for(tab)
        record = store.results[tab]
        token = store.begin_request(tab)

        common_attributes = {
            "object_name_en": common.object_name_en,
            "object_category": common.object_category,
            "tags": list(common.tags),
            "field_of_study": common.field_of_study,
            "age_appropriate": common.age_appropriate,
            "userid": self.user.username or "system",
            "image_status": common.image_status,
            "object_id": common.object_id,
            "flag_object": common.flag_object,
        }
        language_attributes = [
            {
                "language": tab,
                "object_name": record.object_name,
                "object_description": record.object_description,
                "object_hint": record.object_hint,
                "object_short_hint": record.object_short_hint,
                "quiz_qa": list(record.quiz_qa),
                "translation_status": record.translation_status,
                "translation_id": record.translation_id,
                "flag_translation": record.flag_translation,
            }
        ]

        try:
            returned = await self.backend.save(
                common_attributes, language_attributes, permission_action, image=self._image_file()
            )
        except BackendAuthError:
            raise
        except BackendError as exc:
            message = messages.save_error_message(tab, str(exc))
            if store.is_current(tab, token):
                store.save_messages[tab] = message
            return SaveOutcome(language=tab, saved=False, message=message)

        if not store.is_current(tab, token):
            LOGGER.warning("Discarding save response for superseded tab %s", tab)
            return SaveOutcome(language=tab, saved=False)

        first = returned[0] if returned else {}
        translation_id = first.get("translation_id") or record.translation_id
        object_id = first.get("object_id") or common.object_id
        store.results[tab] = store.results[tab].with_field("translation_id", translation_id)
        store.current_common = store.current_common.with_field("object_id", object_id)
        if store.mode is CommonDataMode.PER_TAB and tab in store.per_language_common:
            store.per_language_common[tab] = store.per_language_common[tab].with_field("object_id", object_id)

        refreshed = bool(first.get("translation_id")) and await self.refresh_tab(tab, translation_id)
        if tab not in store.selected_languages:
            return SaveOutcome(language=tab, saved=False)
        if not refreshed:
            # the saved text is the revert target even when the reload failed
            store.original_results[tab] = replace(store.results[tab], is_loading=False, error=None).copy()

        store.original_common = store.common_data_for(tab)
        message = messages.saved_message(tab)
        store.mark_saved(tab, message)
        return SaveOutcome(
            language=tab, saved=True, message=message, translation_id=translation_id, object_id=object_id
        )

    async def refresh_tab(self, tab: str, translation_id: Optional[str] = None) -> bool:
        """Reload one tab's record from the backend by translation id."""
        store = self.store
        current = store.results.get(tab)
        translation_id = translation_id or (current.translation_id if current else "")
        if not translation_id:
            return False

        existing_image = store.common_data_for(tab).image_base64
        store.results[tab] = replace(current or TranslationRecord(), is_loading=True, error=None)
        token = store.begin_request(tab)

        try:
            data = await self.backend.get_translation_by_id(translation_id)
        except BackendAuthError:
            raise
        except BackendError as exc:
            LOGGER.warning("Refresh of %s failed: %s", tab, exc)
            if store.is_current(tab, token):
                store.results[tab] = replace(store.results[tab], is_loading=False, error=str(exc))
            return False

        if not store.is_current(tab, token):
            LOGGER.warning("Discarding refresh response for superseded tab %s", tab)
            return False

        common = CommonData.from_backend_record(data, fallback_image_base64=existing_image)
        file_info = FileInfo.from_payload(data.get("file_info") or {})
        if store.mode is CommonDataMode.SHARED:
            store.current_common = common
            store.current_file_info = file_info
        else:
            store.per_language_common[tab] = common
            store.per_language_file_info[tab] = file_info
            if tab == store.active_tab:
                store.current_common = common.copy()
                store.current_file_info = file_info.copy()

        record = TranslationRecord.from_backend_record(data)
        store.results[tab] = record
        store.original_results[tab] = record.copy()
        store.save_status[tab] = SaveStatus.SAVED
        return True

    # -- work queue ----------------------------------------------------------

    async def fetch_worklist(self, language: str = ALL_LANGUAGES) -> bool:
        """Load the next queued item for one language, or for all of them."""
        if not self.store.selected_languages:
            self._fail(messages.NO_LANGUAGES)
        if language != ALL_LANGUAGES and language not in self.store.selected_languages:
            self._fail(f"Language '{language}' is not selected.")
        self.sync_mode()
        self.require("viewWorkListWindow")
        return await self._load_worklist(language)

    async def _load_worklist(self, language: str) -> bool:
        self.worklist_fetched = False
        self.is_loading = True
        self.error = None
        request = self.worklist.prepare(language)
        try:
            items = await self.backend.fetch_worklist(request.languages)
        except BackendAuthError:
            raise
        except BackendError as exc:
            LOGGER.warning("Worklist fetch for %s failed: %s", language, exc)
            self.error = str(exc)
            for lang in request.languages:
                if self.store.is_current(lang, request.tokens[lang]):
                    self.store.results[lang] = TranslationRecord(error=str(exc))
            return False
        finally:
            self.is_loading = False

        message = self.worklist.apply(request, items)
        if message:
            self.error = message
        self.worklist_fetched = True
        return message is None

    async def skip(self) -> bool:
        """Hand the active tab's queued item back and load the next one."""
        tab = self.store.active_tab
        record = self.store.results.get(tab) if tab else None
        translation_id = record.translation_id if record else ""
        if not translation_id:
            self._fail(messages.NO_TRANSLATION_ID)
        self.sync_mode()
        self.require("skipData")

        self.error = None
        try:
            await self.backend.skip_to_unlock(translation_id)
        except BackendAuthError:
            raise
        except BackendError as exc:
            LOGGER.warning("Skip of %s failed: %s", translation_id, exc)
            self.error = str(exc) or messages.SKIP_FAILED
            return False
        return await self._load_worklist(tab)

    # -- recent translations -------------------------------------------------

    async def fetch_recent_translations(self) -> List[RecentTranslation]:
        try:
            data = await self.backend.fetch_thumbnails(self.user.username)
        except BackendAuthError:
            raise
        except BackendError as exc:
            LOGGER.warning("%s: %s", messages.RECENT_FAILED, exc)
            self.recent_translations = []
            return []
        self.recent_translations = [RecentTranslation.from_payload(item) for item in data]
        return self.recent_translations

    async def open_recent_translation(self, index: int) -> IdentifyOutcome:
        """Reload a recent translation's image for its language and identify it."""
        if not 0 <= index < len(self.recent_translations):
            self._fail(messages.INVALID_THUMBNAIL)
        item = self.recent_translations[index]
        if not item.filename or not item.image_base64 or not item.language:
            self._fail(messages.INVALID_THUMBNAIL)

        encoded = item.image_base64.split(",", 1)[1] if "," in item.image_base64 else item.image_base64
        try:
            content = base64.b64decode(encoded, validate=True)
        except binascii.Error:
            self._fail(messages.INVALID_THUMBNAIL)

        file_info = FileInfo.from_payload(item.file_info)
        self.set_image(content, item.filename, file_info.mime_type or None)
        self.upload.image_hash = item.image_hash

        store = self.store
        store.restrict_selection(item.language)
        store.per_language_file_info[item.language] = file_info
        if store.active_tab == item.language:
            store.current_file_info = file_info.copy()
        store.is_editing[item.language] = False
        store.current_common = store.current_common.with_field("image_base64", encoded)
        return await self.identify()

    # -- views ----------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "username": self.user.username,
            "error": self.error,
            "is_loading": self.is_loading,
            "is_redirecting": self.is_redirecting,
            "worklist_fetched": self.worklist_fetched,
            "has_image": self.upload.has_file,
            "image_hash": self.upload.image_hash,
            **self.store.to_dict(),
        }
