import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles

from routes.analysis_route import router as analysis_router
from routes.auth_route import router as auth_router
from routes.page_route import router as page_router
from routes.report_route import router as report_router
from routes.settings_route import router as settings_router
from services.app_context import AppContext
from utils.settings import Settings, log_level_from_env

BASE_DIR = Path(__file__).resolve().parent
PUBLIC_DIR = BASE_DIR / "public"

load_dotenv()  # Load environment variables from .env file if present

logging.basicConfig(level=log_level_from_env())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the SQLite database at DATABASE_DIR/app.db
      - the OpenAI async client and the classifier HTTP client
    and attach them to `app.state.context`.

    A context already placed on `app.state` (tests do this) is used as is.
    """
    context: Optional[AppContext] = getattr(app.state, "context", None)
    owns_context = context is None
    if owns_context:
        if not os.getenv("OPENAI_API_KEY"):
            raise RuntimeError("OPENAI_API_KEY environment variable is not set")
        context = await AppContext.initialize(Settings.from_env())
        app.state.context = context

    try:
        yield
    finally:
        if owns_context:
            await context.teardown()
            app.state.context = None


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Args:
        context: Optional pre-built application context; when omitted the
            lifespan builds one from the environment.
    """
    app = FastAPI(title="Crop Disease Detector", lifespan=lifespan)
    app.state.context = context

    # Serve static assets from the public directory, if it exists.
    if PUBLIC_DIR.exists():
        app.mount("/public", StaticFiles(directory=PUBLIC_DIR), name="public")

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that verifies the context and its clients are present.
        """
        context = getattr(request.app.state, "context", None)
        return {
            "ok": context is not None,
            "db_initialized": context is not None and context.db_initializer is not None,
            "openai_available": context is not None and context.openai_client is not None,
        }

    # Register application routers; the page router's catch-all goes last.
    app.include_router(auth_router)
    app.include_router(analysis_router)
    app.include_router(report_router)
    app.include_router(settings_router)
    app.include_router(page_router)

    return app


app = create_app()
