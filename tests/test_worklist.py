import unittest

from models.session_models import SessionOptions
from models.translation import CommonData, CommonDataMode, SaveStatus, TranslationRecord
from services import messages
from services.record_store import RecordStore
from services.worklist import WorklistReconciler
from tests.fakes import worklist_item


def _loaded_store(languages=("English", "French")):
    store = RecordStore(SessionOptions(mode=CommonDataMode.PER_TAB))
    reconciler = WorklistReconciler(store)
    for language in languages:
        store.select_language(language)
    reconciler.reconcile("ALL", [worklist_item(language) for language in languages])
    return store, reconciler


class FullRefreshTests(unittest.TestCase):
    def test_full_refresh_loads_every_language(self):
        store, _ = _loaded_store()
        self.assertEqual(store.available_tabs, ["English", "French"])
        self.assertEqual(store.active_tab, "English")
        self.assertEqual(store.current_common.object_id, "obj-English")
        self.assertEqual(store.original_common.object_id, "obj-English")
        self.assertEqual(store.current_file_info.mime_type, "image/png")
        for language in ("English", "French"):
            self.assertEqual(store.status_of(language), SaveStatus.SAVED)
            self.assertFalse(store.is_editing[language])
            self.assertEqual(store.results[language], store.original_results[language])

    def test_english_only_item_for_all_request(self):
        store = RecordStore()
        reconciler = WorklistReconciler(store)
        store.select_language("English")
        message = reconciler.reconcile("ALL", [worklist_item("English", object_name="Apple")])
        self.assertIsNone(message)
        self.assertEqual(store.results["English"].object_name, "Apple")
        self.assertEqual(store.available_tabs, ["English"])
        self.assertEqual(store.active_tab, "English")

    def test_full_refresh_drops_languages_missing_from_response(self):
        store, reconciler = _loaded_store()
        reconciler.reconcile("ALL", [worklist_item("French")])
        self.assertEqual(list(store.results), ["French"])
        self.assertNotIn("English", store.save_status)
        self.assertEqual(store.active_tab, "French")

    def test_empty_full_refresh_clears_everything(self):
        store, reconciler = _loaded_store()
        message = reconciler.reconcile("ALL", [])
        self.assertEqual(message, messages.WORKLIST_EMPTY)
        self.assertEqual(store.results, {})
        self.assertEqual(store.available_tabs, [])
        self.assertIsNone(store.active_tab)

    def test_non_list_response_counts_as_empty(self):
        store, reconciler = _loaded_store()
        self.assertEqual(reconciler.reconcile("ALL", {"detail": "nothing"}), messages.WORKLIST_EMPTY)
        self.assertEqual(store.results, {})

    def test_items_for_unrequested_languages_are_ignored(self):
        store = RecordStore()
        reconciler = WorklistReconciler(store)
        store.select_language("English")
        reconciler.reconcile("ALL", [worklist_item("English"), worklist_item("Klingon")])
        self.assertEqual(list(store.results), ["English"])


class PartialRefreshTests(unittest.TestCase):
    def test_partial_refresh_leaves_siblings_untouched(self):
        store, reconciler = _loaded_store()
        english_before = store.results["English"].copy()
        english_common = store.per_language_common["English"].copy()
        reconciler.reconcile("French", [worklist_item("French", object_name="nouveau")])
        self.assertEqual(store.results["English"], english_before)
        self.assertEqual(store.per_language_common["English"], english_common)
        self.assertEqual(store.results["French"].object_name, "nouveau")

    def test_partial_refresh_clears_only_its_message(self):
        store, reconciler = _loaded_store()
        store.save_messages["English"] = "English data saved successfully!"
        store.save_messages["French"] = "French data saved successfully!"
        reconciler.reconcile("French", [worklist_item("French")])
        self.assertIsNone(store.save_messages["French"])
        self.assertEqual(store.save_messages["English"], "English data saved successfully!")

    def test_empty_partial_refresh_removes_only_that_language(self):
        store, reconciler = _loaded_store()
        store.set_active_tab("French")
        message = reconciler.reconcile("French", [])
        self.assertEqual(message, "No worklist data found for French")
        self.assertNotIn("French", store.results)
        self.assertNotIn("French", store.available_tabs)
        self.assertIn("English", store.results)
        self.assertEqual(store.active_tab, "English")

    def test_response_with_only_foreign_items_counts_as_empty(self):
        store, reconciler = _loaded_store()
        message = reconciler.reconcile("French", [worklist_item("English", object_name="other")])
        self.assertEqual(message, "No worklist data found for French")
        self.assertNotIn("French", store.results)
        self.assertEqual(store.results["English"].object_name, "name-English")
        self.assertFalse(any(record.is_loading for record in store.results.values()))

    def test_full_refresh_with_only_foreign_items_reports_empty_queue(self):
        store = RecordStore()
        reconciler = WorklistReconciler(store)
        store.select_language("English")
        message = reconciler.reconcile("ALL", [worklist_item("Klingon")])
        self.assertEqual(message, messages.WORKLIST_EMPTY)
        self.assertEqual(store.results, {})

    def test_empty_partial_refresh_moves_current_view_to_remaining_tab(self):
        store, reconciler = _loaded_store()
        self.assertEqual(store.current_common.object_id, "obj-English")
        reconciler.reconcile("English", [])
        self.assertEqual(store.active_tab, "French")
        self.assertEqual(store.current_common.object_id, "obj-French")
        self.assertEqual(store.current_file_info, store.per_language_file_info["French"])

    def test_response_for_superseded_request_is_dropped(self):
        store, reconciler = _loaded_store()
        request = reconciler.prepare("French")
        store.toggle_language("French")
        message = reconciler.apply(request, [worklist_item("French")])
        self.assertIsNone(message)
        self.assertNotIn("French", store.results)
        self.assertIn("English", store.results)

    def test_prepare_shows_loading_placeholder(self):
        store, reconciler = _loaded_store()
        reconciler.prepare("French")
        self.assertEqual(store.results["French"], TranslationRecord.placeholder())
        self.assertFalse(store.results["English"].is_loading)

    def test_partial_refresh_keeps_original_common(self):
        store, reconciler = _loaded_store()
        store.original_common = CommonData(object_name_en="stale")
        reconciler.reconcile("French", [worklist_item("French")])
        self.assertEqual(store.original_common.object_name_en, "stale")


if __name__ == "__main__":
    unittest.main()
