"""Per-language translation records and the image-level data they share."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class SaveStatus(str, Enum):
    """Save state of one language tab."""

    UNSET = "unset"
    UNSAVED = "unsaved"
    SAVED = "saved"


class CommonDataMode(str, Enum):
    """How image-level data is viewed across language tabs.

    SHARED: every tab edits the single current value.
    PER_TAB: each tab edits its own snapshot; switching tabs swaps current.
    """

    SHARED = "shared"
    PER_TAB = "per-tab"


def _text(value: Any) -> str:
    """Coerce a possibly-missing backend value to a string."""
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def check_field_names(cls: Any, names: Iterable[str]) -> None:
    """Raise ValueError naming the first of `names` that `cls` does not define."""
    known = {f.name for f in fields(cls)}
    for name in names:
        if name not in known:
            raise ValueError(f"Unknown field '{name}' for {cls.__name__}")


def _assign(instance: Any, name: str, value: Any) -> Any:
    """Return a copy of a dataclass instance with one field replaced."""
    check_field_names(type(instance), [name])
    return replace(instance, **{name: value})


@dataclass
class TranslationRecord:
    """Machine-generated (then human-edited) text for one image in one language.

    Attributes:
        object_name: Name of the identified object in the target language.
        object_description: Longer description in the target language.
        object_hint: Hint text for learners.
        object_short_hint: Abbreviated hint.
        quiz_qa: Optional quiz question/answer pairs attached to the translation.
        translation_status: Lifecycle state of this translation ("" when none).
        translation_id: Backend identifier ("" before the first save).
        flag_translation: Whether the translation has been flagged for review.
        is_loading: True while a request for this language is in flight.
        error: Last failure message for this language, if any.
    """

    object_name: str = ""
    object_description: str = ""
    object_hint: str = ""
    object_short_hint: str = ""
    quiz_qa: List[Any] = field(default_factory=list)
    translation_status: str = ""
    translation_id: str = ""
    flag_translation: bool = False
    is_loading: bool = False
    error: Optional[str] = None

    @classmethod
    def placeholder(cls) -> "TranslationRecord":
        """Empty record shown while a request for the language is pending."""
        return cls(is_loading=True)

    @classmethod
    def from_payload(cls, data: Dict[str, Any], flag_key: str = "flag_translation") -> "TranslationRecord":
        """Build a populated record from a flat identify/worklist payload."""
        return cls(
            object_name=_text(data.get("object_name")),
            object_description=_text(data.get("object_description")),
            object_hint=_text(data.get("object_hint")),
            object_short_hint=_text(data.get("object_short_hint")),
            quiz_qa=list(data.get("quiz_qa") or []),
            translation_status=_text(data.get("translation_status")),
            translation_id=_text(data.get("translation_id")),
            flag_translation=bool(data.get(flag_key) or False),
        )

    @classmethod
    def from_backend_record(cls, data: Dict[str, Any]) -> "TranslationRecord":
        """Build a record from the nested shape returned by a lookup by id."""
        translations = data.get("translations") or {}
        return cls(
            object_name=_text(translations.get("object_name")),
            object_description=_text(translations.get("object_description")),
            object_hint=_text(translations.get("object_hint")),
            object_short_hint=_text(translations.get("object_short_hint")),
            quiz_qa=list(translations.get("quiz_qa") or []),
            translation_status=_text(translations.get("translation_status")),
            translation_id=_text(translations.get("_id")),
            flag_translation=bool(data.get("flag_translation") or False),
        )

    def copy(self) -> "TranslationRecord":
        return replace(self, quiz_qa=list(self.quiz_qa))

    def with_field(self, name: str, value: Any) -> "TranslationRecord":
        return _assign(self, name, value)


@dataclass
class CommonData:
    """Image-level, language-independent metadata."""

    object_name_en: str = ""
    object_category: str = ""
    tags: List[str] = field(default_factory=list)
    field_of_study: str = ""
    age_appropriate: str = ""
    image_status: str = ""
    object_id: str = ""
    image_base64: str = ""
    flag_object: bool = False

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "CommonData":
        """Build from a flat identify/worklist payload."""
        return cls(
            object_name_en=_text(data.get("object_name_en")),
            object_category=_text(data.get("object_category")),
            tags=list(data.get("tags") or []),
            field_of_study=_text(data.get("field_of_study")),
            age_appropriate=_text(data.get("age_appropriate")),
            image_status=_text(data.get("image_status")),
            object_id=_text(data.get("object_id")),
            image_base64=_text(data.get("image_base64")),
            flag_object=bool(data.get("flag_object") or False),
        )

    @classmethod
    def from_backend_record(cls, data: Dict[str, Any], fallback_image_base64: str = "") -> "CommonData":
        """Build from the nested `common_data` section of a lookup by id.

        The backend may omit the image; `fallback_image_base64` keeps the one
        already on screen in that case.
        """
        common = data.get("common_data") or {}
        metadata = common.get("metadata") or {}
        return cls(
            object_name_en=_text(common.get("object_name_en")),
            object_category=_text(metadata.get("object_category")),
            tags=list(metadata.get("tags") or []),
            field_of_study=_text(metadata.get("field_of_study")),
            age_appropriate=_text(metadata.get("age_appropriate")),
            image_status=_text(common.get("image_status")),
            object_id=_text(common.get("_id")),
            image_base64=_text(common.get("image_base64")) or fallback_image_base64,
            flag_object=bool(common.get("flag_object") or False),
        )

    def copy(self) -> "CommonData":
        return replace(self, tags=list(self.tags))

    def with_field(self, name: str, value: Any) -> "CommonData":
        return _assign(self, name, value)


@dataclass
class FileInfo:
    """Descriptive information about the uploaded image file."""

    filename: str = ""
    size: str = ""
    mime_type: str = ""
    dimensions: str = ""
    created_by: str = ""
    created_at: str = ""
    updated_by: str = ""
    updated_at: str = ""

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "FileInfo":
        """Build from a payload; accepts both `mimeType` and `mime_type`."""
        return cls(
            filename=_text(data.get("filename")),
            size=_text(data.get("size")),
            mime_type=_text(data.get("mimeType") or data.get("mime_type")),
            dimensions=_text(data.get("dimensions")),
            created_by=_text(data.get("created_by")),
            created_at=_text(data.get("created_at")),
            updated_by=_text(data.get("updated_by")),
            updated_at=_text(data.get("updated_at")),
        )

    def copy(self) -> "FileInfo":
        return replace(self)
