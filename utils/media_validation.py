"""Validation helpers for uploaded images."""

from fastapi import HTTPException, UploadFile

DEFAULT_IMAGE_TYPE = "image/jpeg"


def normalize_content_type(content_type: str | None) -> str:
    """Return a bare lower-case MIME type, falling back to JPEG when missing."""
    mime = (content_type or "").lower().split(";", 1)[0].strip()
    return mime or DEFAULT_IMAGE_TYPE


async def read_image_upload(image: UploadFile) -> bytes:
    """Read uploaded image bytes, rejecting unreadable or empty uploads."""
    try:
        raw = await image.read()
    except Exception as exc:  # pylint: disable=broad-exception-caught
        raise HTTPException(status_code=400, detail="Unable to read uploaded image.") from exc
    if not raw:
        raise HTTPException(status_code=400, detail="Uploaded image is empty.")
    return raw
