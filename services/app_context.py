"""Shared resources created on startup and closed on shutdown.

One `AppContext` lives on `app.state.context`; routes and controllers receive
it explicitly instead of reaching for module-level globals.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from openai import AsyncOpenAI

from dal.report_dal import ScanReportDAL
from dal.user_dal import UserAccountDAL
from services.analysis_orchestrator import AnalysisOrchestrator
from services.auth.identity_provider import IdentityProvider
from services.classifier_client import ClassifierClient
from services.image_store import ImageStore
from services.openai.analytics_report import AnalyticsReportGenerator
from services.openai.narrative_generator import NarrativeGenerator
from services.preview_generator import PreviewGenerator
from utils.database_init import AsyncDatabaseInitializer
from utils.settings import Settings

LOGGER = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    db_initializer: AsyncDatabaseInitializer
    openai_client: Any
    http_client: httpx.AsyncClient
    reports: ScanReportDAL
    accounts: UserAccountDAL
    identity: IdentityProvider
    images: ImageStore
    previews: PreviewGenerator

    @classmethod
    async def initialize(
        cls,
        settings: Settings,
        *,
        openai_client: Optional[Any] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "AppContext":
        """Create the database schema and the outbound clients.

        `openai_client` and `http_client` may be injected (tests do this);
        otherwise they are built from `settings`.
        """
        db_initializer = AsyncDatabaseInitializer(settings.database_dir)
        await db_initializer.ensure_database()

        if openai_client is None:
            try:
                # Every external call is attempted once per request.
                openai_client = AsyncOpenAI(timeout=settings.llm_timeout, max_retries=0)
            except Exception as exc:
                raise RuntimeError("Failed to initialize OpenAI Async client") from exc

        if http_client is None:
            http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.classifier_timeout))

        reports = ScanReportDAL(db_initializer)
        accounts = UserAccountDAL(db_initializer)
        LOGGER.info("Application context ready (database at %s)", db_initializer.db_path)
        return cls(
            settings=settings,
            db_initializer=db_initializer,
            openai_client=openai_client,
            http_client=http_client,
            reports=reports,
            accounts=accounts,
            identity=IdentityProvider(accounts, settings.jwt_secret, settings.jwt_expire_seconds),
            images=ImageStore(db_initializer.image_dir, settings.image_storage),
            previews=PreviewGenerator(),
        )

    async def teardown(self) -> None:
        """Close outbound clients; shutdown errors are logged, not raised."""
        await self.http_client.aclose()

        aclose = getattr(self.openai_client, "close", None) or getattr(self.openai_client, "aclose", None)
        if aclose is None:
            return
        try:
            result = aclose()
            if inspect.isawaitable(result):
                await result
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.warning("Error while closing the OpenAI client: %s", exc)

    def orchestrator(self) -> AnalysisOrchestrator:
        return AnalysisOrchestrator(
            classifier=ClassifierClient(self.http_client, self.settings.classifier_url),
            narrator=NarrativeGenerator(self.openai_client, self.settings.openai_model),
            reports=self.reports,
            images=self.images,
        )

    def analytics(self) -> AnalyticsReportGenerator:
        return AnalyticsReportGenerator(self.openai_client, self.settings.openai_model)
