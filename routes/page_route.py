"""Browser entry points: protected pages redirect to sign-in when signed out."""

from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse, RedirectResponse

from services.auth.auth_gate import AuthGate
from routes.dependencies import get_auth_gate

PUBLIC_DIR = Path(__file__).resolve().parent.parent / "public"

PROTECTED_PAGES = ("dashboard", "analyze", "insights", "settings")

router = APIRouter(include_in_schema=False)


def _serve_page(name: str) -> FileResponse:
    page_path = PUBLIC_DIR / f"{name}.html"
    if not page_path.exists():
        raise HTTPException(status_code=404, detail="Frontend not found")
    return FileResponse(page_path)


@router.get("/")
async def serve_index():
    return _serve_page("index")


@router.get("/signin")
async def serve_signin():
    return _serve_page("signin")


@router.get("/{page}")
async def serve_protected_page(page: str, gate: AuthGate = Depends(get_auth_gate)):
    """Serve a protected page, or redirect signed-out visitors to the sign-in page."""
    if page not in PROTECTED_PAGES:
        raise HTTPException(status_code=404, detail="Page not found")
    target = gate.redirect_target()
    if target is not None:
        return RedirectResponse(url=target, status_code=303)
    if gate.identity is None:
        raise HTTPException(status_code=503, detail="Authentication state is not known yet.")
    return _serve_page(page)
