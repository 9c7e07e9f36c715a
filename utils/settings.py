import os
from dataclasses import dataclass

DEFAULT_BACKEND_URL = "http://localhost:8000/"
DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_CANONICAL_LANGUAGE = "English"


@dataclass(frozen=True)
class Settings:
    """
    Runtime configuration read from the environment.

    - BACKEND_URL: base URL of the translation backend (trailing slash added).
    - BACKEND_TIMEOUT_SECONDS: per-request timeout; must be a positive number.
    - CANONICAL_LANGUAGE: language whose cancel-edit also reverts image-level data.

    Misconfiguration raises RuntimeError so the app refuses to start.
    """

    backend_url: str = DEFAULT_BACKEND_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    canonical_language: str = DEFAULT_CANONICAL_LANGUAGE

    @classmethod
    def from_env(cls) -> "Settings":
        backend_url = (os.getenv("BACKEND_URL") or DEFAULT_BACKEND_URL).strip()
        if not backend_url.endswith("/"):
            backend_url += "/"

        raw_timeout = os.getenv("BACKEND_TIMEOUT_SECONDS")
        timeout = DEFAULT_TIMEOUT_SECONDS
        if raw_timeout is not None and raw_timeout.strip():
            try:
                timeout = float(raw_timeout)
            except ValueError as exc:
                raise RuntimeError(
                    f"BACKEND_TIMEOUT_SECONDS={raw_timeout!r} is not a number."
                ) from exc
            if timeout <= 0:
                raise RuntimeError("BACKEND_TIMEOUT_SECONDS must be greater than zero.")

        canonical = os.getenv("CANONICAL_LANGUAGE")
        if canonical is not None and not canonical.strip():
            raise RuntimeError("CANONICAL_LANGUAGE is set but empty.")

        return cls(
            backend_url=backend_url,
            timeout_seconds=timeout,
            canonical_language=(canonical or DEFAULT_CANONICAL_LANGUAGE).strip(),
        )
