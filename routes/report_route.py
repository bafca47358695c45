from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from controllers.report_controller import (
    dashboard,
    get_report_image,
    insights_report,
    insights_summary,
    list_reports,
)
from models.auth_models import Identity
from routes.dependencies import get_context, require_identity
from services.app_context import AppContext

router = APIRouter(prefix="/api", tags=["reports"])


@router.get("/reports")
async def get_reports(
    limit: Optional[int] = Query(None, ge=1, le=500),
    caller: Identity = Depends(require_identity),
    context: AppContext = Depends(get_context),
):
    """Return the caller's scan history, newest first."""
    try:
        return await list_reports(context, caller, limit)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.get("/reports/{report_id}/image")
async def get_image(
    report_id: str,
    caller: Identity = Depends(require_identity),
    context: AppContext = Depends(get_context),
):
    """Return the uploaded image for one of the caller's reports."""
    try:
        return await get_report_image(context, caller, report_id)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.get("/dashboard")
async def get_dashboard(caller: Identity = Depends(require_identity), context: AppContext = Depends(get_context)):
    try:
        return await dashboard(context, caller)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.get("/insights")
async def get_insights(caller: Identity = Depends(require_identity), context: AppContext = Depends(get_context)):
    try:
        return await insights_summary(context, caller)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.get("/insights/report")
async def get_insights_report(caller: Identity = Depends(require_identity), context: AppContext = Depends(get_context)):
    """Return an AI-generated HTML summary of the caller's scan history."""
    try:
        return await insights_report(context, caller)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))
