"""Session domain models for review workflows."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from models.translation import CommonDataMode


@dataclass
class ImageUpload:
	"""Image waiting to be identified or attached to a save."""

	content: Optional[bytes] = None
	filename: str = "upload"
	content_type: str = "image/jpeg"
	image_hash: Optional[str] = None

	@property
	def has_file(self) -> bool:
		return bool(self.content)

	def clear(self) -> None:
		self.content = None
		self.filename = "upload"
		self.content_type = "image/jpeg"
		self.image_hash = None


@dataclass
class RecentTranslation:
	"""Thumbnail entry from the user's recent translations list."""

	filename: str
	image_base64: str
	language: str
	image_hash: Optional[str] = None
	file_info: Dict[str, Any] = field(default_factory=dict)

	@classmethod
	def from_payload(cls, data: Dict[str, Any]) -> "RecentTranslation":
		"""Accept both the nested and the older flat thumbnail shapes."""
		obj = data.get("object") or {}
		translation = data.get("translation") or {}
		file_info = data.get("file_info") or {}
		return cls(
			filename=file_info.get("filename") or data.get("filename") or "",
			image_base64=obj.get("image_base64") or data.get("image_base64") or "",
			language=(
				translation.get("requested_language")
				or data.get("language")
				or data.get("requested_language")
				or ""
			),
			image_hash=obj.get("image_hash") or data.get("image_hash"),
			file_info=dict(file_info) or {
				"filename": data.get("filename") or "",
				"size": data.get("size") or "",
				"mime_type": data.get("mime_type") or "",
				"dimensions": data.get("dimensions") or "",
				"created_by": data.get("created_by") or "",
				"created_at": data.get("created_at") or "",
				"updated_by": data.get("updated_by") or "",
				"updated_at": data.get("updated_at") or "",
			},
		)


@dataclass
class LanguageFailure:
	"""One failed per-language request."""

	language: str
	message: str


@dataclass
class IdentifyOutcome:
	"""Aggregate result of one identify fan-out."""

	languages: List[str] = field(default_factory=list)
	succeeded: List[str] = field(default_factory=list)
	failures: List[LanguageFailure] = field(default_factory=list)
	content_policy_violation: bool = False
	discarded: List[str] = field(default_factory=list)

	@property
	def ok(self) -> bool:
		return not self.failures and not self.content_policy_violation

	def error_message(self) -> Optional[str]:
		if not self.failures:
			return None
		return "Error: " + "; ".join(f"{f.language}: {f.message}" for f in self.failures)


@dataclass
class SaveOutcome:
	"""Result of a quick save for one tab."""

	language: str
	saved: bool
	message: Optional[str] = None
	translation_id: Optional[str] = None
	object_id: Optional[str] = None
	finished_at: float = field(default_factory=lambda: time.time())


@dataclass
class SessionOptions:
	"""Per-session settings that change how the record store behaves.

	Attributes:
		mode: Whether image-level data is shared by all tabs or kept per tab.
		canonical_language: Language whose cancel-edit also reverts image-level data.
	"""

	mode: CommonDataMode = CommonDataMode.SHARED
	canonical_language: str = "English"
