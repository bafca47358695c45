"""History, dashboard and insight views over the caller's stored reports."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import HTTPException
from fastapi.responses import Response

from models.auth_models import Identity
from services import insights
from services.app_context import AppContext
from services.errors import StoreUnavailable

RECENT_SCANS = 5


async def list_reports(context: AppContext, caller: Identity, limit: Optional[int] = None) -> Dict[str, Any]:
    """Return the caller's reports, newest first, optionally only the most recent `limit`."""
    try:
        reports = await context.reports.list_by_owner(caller.user_id, limit=limit).all()
    except StoreUnavailable as exc:
        raise HTTPException(status_code=503, detail="Report store unavailable.") from exc
    return {
        "reports": [
            dict(r.to_public_dict(), severity=insights.severity_for(r.prediction.confidence)) for r in reports
        ]
    }


async def get_report_image(context: AppContext, caller: Identity, report_id: str) -> Response:
    """Return the image bytes stored for one of the caller's reports.

    Raises:
        HTTPException(404) if the report does not exist for this caller or
        its image cannot be resolved.
    """
    try:
        report = await context.reports.get_for_owner(caller.user_id, report_id)
    except StoreUnavailable as exc:
        raise HTTPException(status_code=503, detail="Report store unavailable.") from exc
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")

    try:
        loaded = await context.images.load(caller.user_id, report.id, report.image_reference)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail="Image not available for this report") from exc
    if loaded is None:
        raise HTTPException(status_code=404, detail="Image not available for this report")

    data, mime_type = loaded
    return Response(content=data, media_type=mime_type)


async def dashboard(context: AppContext, caller: Identity) -> Dict[str, Any]:
    try:
        history = await context.reports.list_by_owner(caller.user_id).all()
        recent = await context.reports.list_by_owner(caller.user_id, limit=RECENT_SCANS).all()
    except StoreUnavailable as exc:
        raise HTTPException(status_code=503, detail="Report store unavailable.") from exc
    return insights.dashboard_summary(history, recent)


async def insights_summary(context: AppContext, caller: Identity) -> Dict[str, Any]:
    try:
        history = await context.reports.list_by_owner(caller.user_id).all()
    except StoreUnavailable as exc:
        raise HTTPException(status_code=503, detail="Report store unavailable.") from exc
    return insights.summarize(history).to_dict()


async def insights_report(context: AppContext, caller: Identity) -> Dict[str, Any]:
    """Return the AI-written HTML summary of the caller's history."""
    try:
        history = await context.reports.list_by_owner(caller.user_id).all()
    except StoreUnavailable as exc:
        raise HTTPException(status_code=503, detail="Report store unavailable.") from exc
    html = await context.analytics().generate(history)
    return {"report_html": html, "scans_considered": len(history)}
