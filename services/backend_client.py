"""HTTP client for the translation backend (identify, save, worklist, skip)."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from services.errors import BackendAuthError, BackendError

LOGGER = logging.getLogger(__name__)

# (filename, bytes, content type) as accepted by httpx multipart uploads.
ImageFile = Tuple[str, bytes, str]


class BackendClient:
    """Call the translation backend on behalf of one signed-in user.

    The underlying `httpx.AsyncClient` is shared by the whole application and
    is expected to carry the backend base URL; this wrapper only adds the
    user's bearer token and error translation.
    """

    def __init__(self, http_client: httpx.AsyncClient, access_token: Optional[str] = None) -> None:
        if http_client is None:
            raise ValueError("An httpx.AsyncClient is required.")
        self.http = http_client
        self.access_token = access_token

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            BackendAuthError: On 401 responses.
            BackendError: On any other error status or transport failure.
        """
        try:
            response = await self.http.request(method, endpoint, headers=self._headers(), **kwargs)
        except httpx.HTTPError as exc:
            raise BackendError(0, str(exc) or type(exc).__name__) from exc

        if response.status_code == 401:
            raise BackendAuthError()
        if not response.is_success:
            try:
                detail = response.json().get("detail")
            except (ValueError, AttributeError):
                detail = None
            raise BackendError(response.status_code, detail or response.reason_phrase)

        if not response.content:
            return None
        return response.json()

    async def identify(
        self,
        language: str,
        image: Optional[ImageFile] = None,
        image_hash: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Request machine-generated text for one image in one language.

        A known content hash is sent instead of the file when available.
        """
        data: Dict[str, str] = {"language": language}
        files = None
        if image_hash:
            data["image_hash"] = image_hash
        elif image:
            files = {"image": image}
        else:
            raise ValueError("Please provide either an image file or an image hash.")
        LOGGER.info("Identify request for %s (hash=%s)", language, bool(image_hash))
        return await self._request("POST", "identify/object", data=data, files=files)

    async def save(
        self,
        common_attributes: Dict[str, Any],
        language_attributes: List[Dict[str, Any]],
        permission_action: str,
        image: Optional[ImageFile] = None,
    ) -> List[Dict[str, Any]]:
        """Persist image-level attributes plus one language's attributes."""
        data = {
            "common_attributes": json.dumps(common_attributes),
            "language_attributes": json.dumps(language_attributes),
            "permission_action": permission_action,
        }
        files = {"image": image} if image else None
        LOGGER.info("Save request with action %s", permission_action)
        result = await self._request("POST", "update/object", data=data, files=files)
        return result or []

    async def get_translation_by_id(self, translation_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"translations/{translation_id}")

    async def skip_to_unlock(self, translation_id: str) -> None:
        """Release the lock on a queued translation so it goes to the next user."""
        await self._request("PUT", "translations/skipToUnlock", json={"translation_id": translation_id})

    async def fetch_worklist(self, languages: List[str]) -> List[Dict[str, Any]]:
        result = await self._request("GET", "worklist/queue", params={"languages": ",".join(languages)})
        return result if isinstance(result, list) else []

    async def fetch_thumbnails(self, username: str) -> List[Dict[str, Any]]:
        """Return the user's recent translations as thumbnail entries."""
        result = await self._request("POST", "thumbnail", data={"username": username})
        return result if isinstance(result, list) else []
