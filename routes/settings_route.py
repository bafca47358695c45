"""FastAPI routes for account settings and destructive data management."""

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel

from controllers.account_controller import (
	change_password,
	delete_account,
	delete_history,
	set_theme,
	update_profile,
)
from models.auth_models import Identity, Theme
from routes.dependencies import SESSION_COOKIE, get_context, require_identity
from services.app_context import AppContext

router = APIRouter(prefix="/api/settings", tags=["settings"])


class ProfilePayload(BaseModel):
	display_name: str


class PasswordPayload(BaseModel):
	new_password: str
	confirm_password: str


class ThemePayload(BaseModel):
	theme: Theme


@router.patch("/profile")
async def update_profile_route(
	payload: ProfilePayload,
	caller: Identity = Depends(require_identity),
	context: AppContext = Depends(get_context),
):
	try:
		return await update_profile(context, caller, payload.display_name)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/password")
async def change_password_route(
	payload: PasswordPayload,
	caller: Identity = Depends(require_identity),
	context: AppContext = Depends(get_context),
):
	try:
		return await change_password(context, caller, payload.new_password, payload.confirm_password)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.put("/theme")
async def set_theme_route(
	payload: ThemePayload,
	caller: Identity = Depends(require_identity),
	context: AppContext = Depends(get_context),
):
	try:
		return await set_theme(context, caller, payload.theme)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.delete("/history")
async def delete_history_route(caller: Identity = Depends(require_identity), context: AppContext = Depends(get_context)):
	"""Delete every scan report of the caller."""
	try:
		return await delete_history(context, caller)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.delete("/account")
async def delete_account_route(
	response: Response,
	caller: Identity = Depends(require_identity),
	context: AppContext = Depends(get_context),
):
	"""Delete the caller's history and account, and end the browser session."""
	try:
		result = await delete_account(context, caller)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
	response.delete_cookie(SESSION_COOKIE)
	return result
