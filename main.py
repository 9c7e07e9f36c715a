import logging
from contextlib import asynccontextmanager

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Request

from routes.session_route import router as session_router
from services.session_store import SessionStore
from utils.settings import Settings

load_dotenv()  # Load environment variables from .env file if present

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the runtime settings (from the environment)
      - the shared httpx client pointed at the translation backend
      - the in-memory review session store
    and attach them to `app.state`.
    """
    settings = Settings.from_env()
    app.state.settings = settings

    try:
        http_client = httpx.AsyncClient(base_url=settings.backend_url, timeout=settings.timeout_seconds)
    except Exception as exc:
        raise RuntimeError("Failed to initialize the backend HTTP client") from exc

    app.state.http_client = http_client
    app.state.session_store = SessionStore(canonical_language=settings.canonical_language)
    LOGGER.info("Review service ready (backend=%s)", settings.backend_url)

    try:
        yield
    finally:
        try:
            await http_client.aclose()
        except httpx.HTTPError:
            LOGGER.warning("Backend HTTP client did not close cleanly", exc_info=True)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check reporting the backend client and live session count.
        """
        has_backend = getattr(request.app.state, "http_client", None) is not None
        store = getattr(request.app.state, "session_store", None)
        return {
            "ok": True,
            "backend_available": has_backend,
            "sessions": len(store) if store is not None else 0,
        }

    # Register application routers
    app.include_router(session_router)

    return app


app = create_app()
