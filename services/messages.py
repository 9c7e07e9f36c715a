"""User-facing messages shared by the review workflow."""

NO_IMAGE = "Please upload an image or provide an image hash."
NO_FILE = "Please upload an image first."
NO_LANGUAGES = "Please select at least one language."
NO_ACTIVE_RECORD = "There is no translation to save for the active tab."
NO_TRANSLATION_ID = "No translation ID found for this record"
WORKLIST_EMPTY = "Relax! Your worklist is empty"
NO_WORKLIST_DATA = "No worklist data found for"
INAPPROPRIATE_CONTENT = "Inappropriate content. Redirecting.."
SKIP_FAILED = "Failed to skip record"
RECENT_FAILED = "Failed to fetch recent translations"
INVALID_THUMBNAIL = "Invalid thumbnail data structure."
DATA_SAVED = "data saved successfully!"


def saved_message(language: str) -> str:
    return f"{language} {DATA_SAVED}"


def save_error_message(language: str, detail: str) -> str:
    return f"Error saving {language}: {detail}"


def no_worklist_data_message(language: str) -> str:
    return f"{NO_WORKLIST_DATA} {language}"
