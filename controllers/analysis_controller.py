from typing import Any, Dict

from fastapi import HTTPException, UploadFile

from models.auth_models import Identity
from models.scan_report import ModelChoice
from services.analysis_orchestrator import AnalysisSucceeded
from services.app_context import AppContext
from services.errors import ClassificationFailed, InvalidImage, PersistenceFailed, Unauthenticated
from services.insights import severity_for
from utils.media_validation import read_image_upload


async def analyze_image(
    context: AppContext,
    caller: Identity,
    file: UploadFile,
    model: ModelChoice,
) -> Dict[str, Any]:
    """Handle an image upload: validate, preview, classify, narrate, and store.

    Args:
        context: Shared application resources.
        caller: Identity resolved for the request.
        file: Uploaded JPEG, PNG or WebP image.
        model: Classifier model selected by the user.

    Returns:
        The report fields plus `severity`, `preview` (PNG data URI) and
        `saved`. When the store write failed, `saved` is False and `warning`
        explains why; the result is still returned so it can be displayed.

    Raises:
        HTTPException(400/413/415) for unusable uploads, 401 when the caller
        is not authenticated, and 502 when the classifier call failed.
    """
    image = await read_image_upload(file)

    try:
        context.previews.verify(image.data, image.mime_type)
        preview = context.previews.create_preview(image.data)
    except InvalidImage as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    try:
        outcome = await context.orchestrator().run_analysis(image, model, caller)
    except Unauthenticated as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    if isinstance(outcome, ClassificationFailed):
        raise HTTPException(
            status_code=502,
            detail={
                "error": "classification_failed",
                "status_code": outcome.status_code,
                "body": outcome.body[:500],
            },
        )

    if isinstance(outcome, PersistenceFailed):
        report, saved, warning = outcome.report, False, "The result could not be saved to your history."
    elif isinstance(outcome, AnalysisSucceeded):
        report, saved, warning = outcome.report, True, None
    else:  # pragma: no cover - exhaustive over AnalysisOutcome
        raise HTTPException(status_code=500, detail="Unexpected analysis outcome.")

    result = report.to_public_dict()
    result.update(
        severity=severity_for(report.prediction.confidence),
        preview=preview,
        saved=saved,
    )
    if warning:
        result["warning"] = warning
    return result
