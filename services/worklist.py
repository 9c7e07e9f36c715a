"""Merge work-queue fetch results into a session's record store."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from models.translation import CommonData, FileInfo, SaveStatus, TranslationRecord
from services import messages
from services.record_store import RecordStore

LOGGER = logging.getLogger(__name__)

ALL_LANGUAGES = "ALL"


@dataclass
class WorklistRequest:
    """Languages covered by one queue fetch and the tokens issued for them."""

    language: str
    languages: List[str]
    is_full_refresh: bool
    tokens: Dict[str, int] = field(default_factory=dict)


@dataclass
class WorklistBatch:
    """Per-language values built from one queue response."""

    results: Dict[str, TranslationRecord] = field(default_factory=dict)
    common: Dict[str, CommonData] = field(default_factory=dict)
    file_info: Dict[str, FileInfo] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.results)


class WorklistReconciler:
    """Apply queue fetches to a `RecordStore`.

    A full refresh ("ALL") replaces the state of every selected language. A
    partial refresh touches one language and leaves its siblings as they were.
    """

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def prepare(self, language: str) -> WorklistRequest:
        """Reset the affected state and show loading placeholders.

        Args:
            language: A single language, or "ALL" for every selected language.
        """
        is_full = language == ALL_LANGUAGES
        languages = list(self.store.selected_languages) if is_full else [language]

        if is_full:
            self.store.clear_results()
        else:
            self.store.save_messages[language] = None

        request = WorklistRequest(language=language, languages=languages, is_full_refresh=is_full)
        for lang in languages:
            request.tokens[lang] = self.store.begin_request(lang)
        self.store.mark_loading(languages)
        return request

    def apply(self, request: WorklistRequest, items: Any) -> Optional[str]:
        """Merge the fetched items into the store.

        Returns:
            The message to surface when the queue had nothing for the live
            requested languages, otherwise None. A request superseded for
            every language changes nothing and returns None.
        """
        live = [lang for lang in request.languages if self.store.is_current(lang, request.tokens[lang])]
        stale = [lang for lang in request.languages if lang not in live]
        if stale:
            LOGGER.warning("Discarding worklist results for superseded languages: %s", stale)
        if not live:
            return None

        if not isinstance(items, list) or not items:
            return self._apply_empty(request, live)

        batch = self._build_batch(items, live)
        if not batch:
            LOGGER.info("Worklist response for %s had no items for live languages", request.language)
            return self._apply_empty(request, live)

        if request.is_full_refresh:
            self.store.discard_languages(lang for lang in live if lang not in batch.results)

        self.store.results.update(batch.results)
        self.store.original_results.update({lang: rec.copy() for lang, rec in batch.results.items()})
        self.store.per_language_common.update(batch.common)
        self.store.per_language_file_info.update(batch.file_info)
        for lang in batch.results:
            self.store.save_status[lang] = SaveStatus.SAVED
            self.store.is_editing[lang] = False

        self._update_tabs(request.is_full_refresh)
        LOGGER.info("Worklist updated for %s: %s", request.language, list(batch.results))
        return None

    def reconcile(self, language: str, items: Any) -> Optional[str]:
        """Prepare and apply in one step, for results already in hand."""
        return self.apply(self.prepare(language), items)

    def _build_batch(self, items: List[Dict[str, Any]], live: List[str]) -> WorklistBatch:
        batch = WorklistBatch()
        for item in items:
            lang = item.get("requested_language")
            if lang not in live:
                LOGGER.warning("Ignoring worklist item for unrequested language %r", lang)
                continue
            batch.results[lang] = TranslationRecord.from_payload(item, flag_key="translation")
            batch.common[lang] = CommonData.from_payload(item)
            batch.file_info[lang] = FileInfo.from_payload(item)
        return batch

    def _apply_empty(self, request: WorklistRequest, live: List[str]) -> str:
        """Drop the languages that came back empty and pick a new active tab."""
        self.store.discard_languages(live)
        self.store.available_tabs = [tab for tab in self.store.available_tabs if tab not in live]
        if self.store.active_tab not in self.store.available_tabs:
            self.store.set_active_tab(self.store.available_tabs[0] if self.store.available_tabs else None)

        if request.is_full_refresh:
            return messages.WORKLIST_EMPTY
        return messages.no_worklist_data_message(request.language)

    def _update_tabs(self, is_full_refresh: bool) -> None:
        store = self.store
        store.available_tabs = list(store.results)
        if not store.available_tabs:
            return
        tab = store.available_tabs[0]
        store.active_tab = tab

        common = store.per_language_common.get(tab)
        if common is not None:
            store.current_common = common.copy()
            if is_full_refresh:
                store.original_common = common.copy()
        file_info = store.per_language_file_info.get(tab)
        if file_info is not None:
            store.current_file_info = file_info.copy()
