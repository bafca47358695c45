"""Runtime configuration read from environment variables.

`main.py` calls `load_dotenv()` before `Settings.from_env()`, so values may
come from a local `.env` file as well as the process environment.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_CLASSIFIER_URL = "https://agrosaviour-backend-947103695812.europe-west1.run.app/predict/"


def _timeout_from_env(name: str, default: float) -> Optional[float]:
    """Return a timeout in seconds; zero or negative means unbounded (None)."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number of seconds, got {raw!r}") from exc
    return value if value > 0 else None


def log_level_from_env() -> str:
    """Return the validated `LOG_LEVEL` name (default INFO) for `logging.basicConfig`."""
    level = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
    if not isinstance(logging.getLevelName(level), int):
        raise RuntimeError(f"LOG_LEVEL must be a logging level name, got {level!r}")
    return level


@dataclass(frozen=True)
class Settings:
    """Application settings.

    Attributes:
        database_dir: Directory holding the SQLite file (and stored images).
        openai_model: Model name used for narrative and history reports.
        classifier_url: Full URL of the classifier `/predict/` endpoint.
        classifier_timeout: Seconds before the classifier call is abandoned (None = unbounded).
        llm_timeout: Seconds before an LLM call is abandoned (None = unbounded).
        jwt_secret: HS256 signing secret for session tokens.
        jwt_expire_seconds: Token lifetime.
        image_storage: "inline" (data URI in the report) or "disk".
    """

    database_dir: str
    openai_model: str = "gpt-4o-mini"
    classifier_url: str = DEFAULT_CLASSIFIER_URL
    classifier_timeout: Optional[float] = 60.0
    llm_timeout: Optional[float] = 60.0
    jwt_secret: str = "dev_secret_change_me"
    jwt_expire_seconds: int = 604800
    image_storage: str = "inline"

    @classmethod
    def from_env(cls) -> "Settings":
        database_dir = os.getenv("DATABASE_DIR")
        if database_dir is None or not database_dir.strip():
            raise RuntimeError(
                "DATABASE_DIR environment variable must be set to a writable "
                "directory path where the SQLite database file will be stored."
            )

        image_storage = os.getenv("IMAGE_STORAGE", "inline").strip().lower()
        if image_storage not in ("inline", "disk"):
            raise RuntimeError(f"IMAGE_STORAGE must be 'inline' or 'disk', got {image_storage!r}")

        return cls(
            database_dir=database_dir,
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            classifier_url=os.getenv("CLASSIFIER_URL", DEFAULT_CLASSIFIER_URL),
            classifier_timeout=_timeout_from_env("CLASSIFIER_TIMEOUT_SECONDS", 60.0),
            llm_timeout=_timeout_from_env("LLM_TIMEOUT_SECONDS", 60.0),
            jwt_secret=os.getenv("JWT_SECRET", "dev_secret_change_me"),
            jwt_expire_seconds=int(os.getenv("JWT_EXPIRE_SECONDS", "604800")),
            image_storage=image_storage,
        )
