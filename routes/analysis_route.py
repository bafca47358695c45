"""FastAPI route for plant image analysis."""

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from controllers.analysis_controller import analyze_image
from models.auth_models import Identity
from models.scan_report import ModelChoice
from routes.dependencies import get_context, require_identity
from services.app_context import AppContext

router = APIRouter(prefix="/api", tags=["analysis"])


@router.post("/analyze", summary="Classify a plant image and generate advice")
async def analyze(
    file: UploadFile = File(...),
    model: ModelChoice = Form(ModelChoice.EFFICIENTNET),
    caller: Identity = Depends(require_identity),
    context: AppContext = Depends(get_context),
):
    """Run the full analysis pipeline for one uploaded image.

    Args:
        file: JPEG, PNG or WebP image of the plant.
        model: `mobilenet` (fast) or `efficientnet` (accurate).

    Returns:
        The scan report, its severity, a preview image and whether it was saved.
    """
    try:
        return await analyze_image(context, caller, file, model)
    except HTTPException:
        raise
    except Exception as exc:  # pylint: disable=broad-exception-caught
        raise HTTPException(status_code=500, detail="Failed to analyze image.") from exc
