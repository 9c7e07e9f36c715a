"""In-memory store of per-language translation tabs for one review session.

Every language-keyed map is listed in `RecordStore.PER_LANGUAGE_MAPS`; a
language leaves the store by being removed from all of them at once.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import asdict
from typing import Any, Dict, Iterable, List, Optional

from models.session_models import SessionOptions
from models.translation import CommonData, CommonDataMode, FileInfo, SaveStatus, TranslationRecord

LOGGER = logging.getLogger(__name__)


class RecordStore:
    """Hold translation records, image-level snapshots and tab state.

    Image-level data (`CommonData`, `FileInfo`) exists both as one current
    value and as a per-language snapshot map. `options.mode` decides which of
    the two an edit or a tab switch touches.
    """

    PER_LANGUAGE_MAPS = (
        "results",
        "original_results",
        "save_status",
        "save_messages",
        "per_language_common",
        "per_language_file_info",
        "is_editing",
        "is_saving",
        "database_view",
        "_generations",
    )

    def __init__(self, options: Optional[SessionOptions] = None) -> None:
        self.options = options or SessionOptions()
        self.selected_languages: List[str] = []
        self.available_tabs: List[str] = []
        self.active_tab: Optional[str] = None

        self.results: Dict[str, TranslationRecord] = {}
        self.original_results: Dict[str, TranslationRecord] = {}
        self.save_status: Dict[str, SaveStatus] = {}
        self.save_messages: Dict[str, Optional[str]] = {}
        self.per_language_common: Dict[str, CommonData] = {}
        self.per_language_file_info: Dict[str, FileInfo] = {}
        self.is_editing: Dict[str, bool] = {}
        self.is_saving: Dict[str, Optional[str]] = {}
        self.database_view: Dict[str, bool] = {}

        self.current_common = CommonData()
        self.original_common = CommonData()
        self.current_file_info = FileInfo()

        self._generations: Dict[str, int] = {}
        self._generation_counter = itertools.count(1)

    @property
    def mode(self) -> CommonDataMode:
        return self.options.mode

    # -- language selection -------------------------------------------------

    def select_language(self, language: str) -> None:
        """Add a language to the selection; the first selection becomes active."""
        if language in self.selected_languages:
            return
        self.selected_languages.append(language)
        if len(self.selected_languages) == 1:
            self.set_active_tab(language)

    def deselect_language(self, language: str) -> None:
        """Remove a language and every piece of state kept for it."""
        if language not in self.selected_languages:
            return
        self.selected_languages.remove(language)
        self.available_tabs = [tab for tab in self.available_tabs if tab != language]
        self.discard_languages([language])
        if self.active_tab == language:
            self.set_active_tab(self.selected_languages[0] if self.selected_languages else None)

    def toggle_language(self, language: str) -> bool:
        """Select or deselect a language; returns True when it ends selected."""
        if language in self.selected_languages:
            self.deselect_language(language)
            return False
        self.select_language(language)
        return True

    def restrict_selection(self, language: str) -> None:
        """Make `language` the only selected language."""
        for other in [lang for lang in self.selected_languages if lang != language]:
            self.deselect_language(other)
        self.select_language(language)

    def discard_languages(self, languages: Iterable[str]) -> None:
        """Delete the given languages from every language-keyed map."""
        languages = list(languages)
        for name in self.PER_LANGUAGE_MAPS:
            mapping = getattr(self, name)
            for language in languages:
                mapping.pop(language, None)

    def set_active_tab(self, language: Optional[str]) -> None:
        """Activate a tab; in per-tab mode the current view follows the tab."""
        self.active_tab = language or None
        if self.mode is not CommonDataMode.PER_TAB or self.active_tab is None:
            return
        common = self.per_language_common.get(self.active_tab)
        if common is not None:
            self.current_common = common.copy()
        file_info = self.per_language_file_info.get(self.active_tab)
        self.current_file_info = file_info.copy() if file_info is not None else FileInfo()

    # -- edits ---------------------------------------------------------------

    def update_language_result(self, language: str, name: str, value: Any) -> bool:
        """Set one field of a language's record. Save status is left alone.

        Returns False when the language has no record.
        """
        record = self.results.get(language)
        if record is None:
            LOGGER.warning("No record for %s when updating %s", language, name)
            return False
        self.results[language] = record.with_field(name, value)
        return True

    def update_common_data(self, name: str, value: Any) -> None:
        """Set one image-level field on the current view.

        In per-tab mode the active tab's snapshot gets the same change.
        """
        self.current_common = self.current_common.with_field(name, value)
        if self.mode is CommonDataMode.PER_TAB and self.active_tab:
            base = self.per_language_common.get(self.active_tab) or CommonData()
            self.per_language_common[self.active_tab] = base.with_field(name, value)

    def common_data_for(self, language: str) -> CommonData:
        """Return the image-level data a save of `language` should send."""
        if self.mode is CommonDataMode.SHARED:
            return self.current_common.copy()
        return (self.per_language_common.get(language) or self.current_common).copy()

    def enter_edit(self, language: str) -> None:
        if self.is_editing.get(language):
            return
        if language not in self.original_results and language in self.results:
            self.original_results[language] = self.results[language].copy()
        self.is_editing[language] = True

    def cancel_edit(self, language: str) -> None:
        """Leave edit mode and restore the last saved values.

        A no-op when the language is not being edited.
        """
        if not self.is_editing.get(language):
            return
        self.is_editing[language] = False

        original = self.original_results.get(language)
        if original is not None:
            self.results[language] = original.copy()

        if language != self.options.canonical_language:
            return
        restored = self.original_common.copy()
        if self.mode is CommonDataMode.SHARED:
            self.current_common = restored
            return
        self.per_language_common[language] = restored
        if self.active_tab == language:
            self.current_common = restored.copy()

    def toggle_edit(self, language: str) -> bool:
        """Enter edit mode, or cancel it when already editing.

        Returns the new editing flag.
        """
        if self.is_editing.get(language):
            self.cancel_edit(language)
            return False
        self.enter_edit(language)
        return True

    # -- request bookkeeping --------------------------------------------------

    def begin_request(self, language: str) -> int:
        """Issue a generation token for a request about to be sent for `language`."""
        token = next(self._generation_counter)
        self._generations[language] = token
        return token

    def is_current(self, language: str, token: int) -> bool:
        """True if `token` is still the latest request for a selected language."""
        return language in self.selected_languages and self._generations.get(language) == token

    def mark_loading(self, languages: Iterable[str]) -> None:
        """Replace the records of `languages` with loading placeholders."""
        for language in languages:
            self.results[language] = TranslationRecord.placeholder()

    def mark_saved(self, language: str, message: Optional[str] = None) -> None:
        self.save_status[language] = SaveStatus.SAVED
        self.is_editing[language] = False
        if message is not None:
            self.save_messages[language] = message

    def status_of(self, language: str) -> SaveStatus:
        return self.save_status.get(language, SaveStatus.UNSET)

    # -- resets ----------------------------------------------------------------

    def clear_results(self) -> None:
        """Reset every map and snapshot to its default. The selection is kept."""
        for name in self.PER_LANGUAGE_MAPS:
            getattr(self, name).clear()
        self.current_common = CommonData()
        self.original_common = CommonData()
        self.current_file_info = FileInfo()
        self.available_tabs = []
        self.active_tab = None

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view of the store for clients."""
        return {
            "mode": self.mode.value,
            "canonical_language": self.options.canonical_language,
            "selected_languages": list(self.selected_languages),
            "available_tabs": list(self.available_tabs),
            "active_tab": self.active_tab,
            "results": {lang: asdict(rec) for lang, rec in self.results.items()},
            "original_results": {lang: asdict(rec) for lang, rec in self.original_results.items()},
            "current_common_data": asdict(self.current_common),
            "original_common_data": asdict(self.original_common),
            "per_language_common_data": {lang: asdict(c) for lang, c in self.per_language_common.items()},
            "current_file_info": asdict(self.current_file_info),
            "per_language_file_info": {lang: asdict(f) for lang, f in self.per_language_file_info.items()},
            "is_editing": dict(self.is_editing),
            "save_status": {lang: status.value for lang, status in self.save_status.items()},
            "save_messages": dict(self.save_messages),
            "is_saving": dict(self.is_saving),
            "database_view": dict(self.database_view),
        }
