"""Exceptions raised by the review workflow and its backend client."""

from __future__ import annotations

from typing import Optional


class WorkflowError(Exception):
    """Base class for review workflow failures."""


class WorkflowValidationError(WorkflowError):
    """A precondition failed before any request was sent."""


class PermissionDeniedError(WorkflowError):
    """The user may not perform an action in the current record states."""

    def __init__(self, action: str, metadata_state: Optional[str], language_state: Optional[str]) -> None:
        self.action = action
        self.metadata_state = metadata_state
        self.language_state = language_state
        super().__init__(
            f"Action '{action}' is not permitted "
            f"(image state={metadata_state!r}, language state={language_state!r})"
        )


class BackendError(WorkflowError):
    """The translation backend answered with an error status.

    Attributes:
        status_code: HTTP status returned by the backend (0 for transport errors).
        detail: Error detail reported by the backend, or the reason phrase.
    """

    def __init__(self, status_code: int, detail: str) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"HTTP Error ({status_code}): {detail}")

    @property
    def is_content_policy(self) -> bool:
        """A 400 means the image was refused as inappropriate."""
        return self.status_code == 400


class BackendAuthError(BackendError):
    """The access token was rejected; the session is no longer usable."""

    def __init__(self, detail: str = "Invalid authentication token. Session expired.") -> None:
        super().__init__(401, detail)
