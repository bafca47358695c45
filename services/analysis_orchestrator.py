"""Run one uploaded image through classification, narrative generation and persistence.

`AnalysisOrchestrator.run_analysis` returns a tagged outcome instead of
raising for the expected failure modes:

- `AnalysisSucceeded`: the report was built and saved.
- `ClassificationFailed`: the classifier call failed; nothing was built or saved.
- `PersistenceFailed`: the report was built but not saved; `.report` holds it.

Only `Unauthenticated` is raised, before any remote call is made. The LLM
stage never fails the pipeline: its failure is replaced by the fallback
narrative.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Optional, Union

from dal.report_dal import ScanReportDAL
from models.auth_models import Identity
from models.scan_report import ModelChoice, ScanReport, UploadedImage
from services.classifier_client import ClassifierClient
from services.errors import ClassificationFailed, PersistenceFailed, StoreUnavailable, Unauthenticated
from services.image_store import ImageStore
from services.openai.narrative_generator import NarrativeGenerator

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisSucceeded:
    report: ScanReport


AnalysisOutcome = Union[AnalysisSucceeded, ClassificationFailed, PersistenceFailed]


class AnalysisOrchestrator:
    """Sequence the classifier, LLM and store calls for a single upload."""

    def __init__(
        self,
        classifier: ClassifierClient,
        narrator: NarrativeGenerator,
        reports: ScanReportDAL,
        images: ImageStore,
    ) -> None:
        self.classifier = classifier
        self.narrator = narrator
        self.reports = reports
        self.images = images

    async def run_analysis(
        self,
        image: UploadedImage,
        model_choice: ModelChoice,
        caller: Optional[Identity],
    ) -> AnalysisOutcome:
        if caller is None or caller.is_expired():
            raise Unauthenticated("Authentication is required to perform this action.")

        start = time.time()
        LOGGER.info("Starting analysis for user %s with model %s", caller.user_id, model_choice.value)

        try:
            prediction = await self.classifier.classify(image, model_choice)
        except ClassificationFailed as failure:
            LOGGER.warning("Analysis aborted for user %s: %s", caller.user_id, failure)
            return failure

        narrative = await self.narrator.generate_or_fallback(model_choice, prediction)

        report_id = uuid.uuid4().hex
        created_at = time.time()
        try:
            image_reference = await self.images.store(caller.user_id, report_id, image)
        except OSError as exc:
            LOGGER.error("Failed to store image for report %s: %s", report_id, exc)
            report = self._build(report_id, caller, image.to_data_uri(), model_choice, prediction, narrative, created_at)
            return PersistenceFailed(report, f"image storage failed: {exc}")

        report = self._build(report_id, caller, image_reference, model_choice, prediction, narrative, created_at)
        try:
            await self.reports.save(report)
        except StoreUnavailable as exc:
            LOGGER.error("Report %s was not saved: %s", report.id, exc)
            if report.image_reference != image.to_data_uri():
                # The stored-image URL only resolves through a saved row.
                await self._discard_image(caller.user_id, report_id)
                report = self._build(report_id, caller, image.to_data_uri(), model_choice, prediction, narrative, created_at)
            return PersistenceFailed(report, str(exc))

        LOGGER.info("Analysis %s finished in %.3fs", report.id, time.time() - start)
        return AnalysisSucceeded(report)

    async def _discard_image(self, owner_id: str, report_id: str) -> None:
        try:
            await self.images.discard(owner_id, report_id)
        except OSError as exc:
            LOGGER.warning("Could not remove image for unsaved report %s: %s", report_id, exc)

    @staticmethod
    def _build(report_id, caller, image_reference, model_choice, prediction, narrative, created_at) -> ScanReport:
        return ScanReport(
            id=report_id,
            owner_id=caller.user_id,
            image_reference=image_reference,
            model_used=model_choice,
            prediction=prediction,
            narrative_report=narrative,
            created_at=created_at,
        )
