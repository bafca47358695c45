"""Sign-up/sign-in and account settings."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import HTTPException

from models.auth_models import Identity, Theme, UserAccount
from services.app_context import AppContext
from services.errors import AccountConflict, StoreUnavailable, Unauthenticated

LOGGER = logging.getLogger(__name__)


def _session_payload(account: UserAccount, token: str) -> Dict[str, Any]:
    return {"token": token, "user": account.to_public_dict()}


async def sign_up(context: AppContext, email: str, password: str, display_name: str) -> Dict[str, Any]:
    try:
        account, token = await context.identity.sign_up(email, password, display_name)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except AccountConflict as exc:
        raise HTTPException(status_code=409, detail="Email already registered") from exc
    except StoreUnavailable as exc:
        raise HTTPException(status_code=503, detail="Account store unavailable.") from exc
    return _session_payload(account, token)


async def sign_in(context: AppContext, email: str, password: str) -> Dict[str, Any]:
    try:
        account, token = await context.identity.sign_in(email, password)
    except Unauthenticated as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except StoreUnavailable as exc:
        raise HTTPException(status_code=503, detail="Account store unavailable.") from exc
    return _session_payload(account, token)


async def current_account(context: AppContext, caller: Identity) -> UserAccount:
    """Load the caller's account; a token for a deleted account is treated as signed out."""
    try:
        account = await context.accounts.get_by_id(caller.user_id)
    except StoreUnavailable as exc:
        raise HTTPException(status_code=503, detail="Account store unavailable.") from exc
    if account is None:
        raise HTTPException(status_code=401, detail="Account no longer exists.")
    return account


async def update_profile(context: AppContext, caller: Identity, display_name: str) -> Dict[str, Any]:
    display_name = (display_name or "").strip()
    if not display_name:
        raise HTTPException(status_code=400, detail="Display name must not be empty.")
    await current_account(context, caller)
    await context.accounts.update_account(caller.user_id, display_name=display_name)
    return (await current_account(context, caller)).to_public_dict()


async def change_password(context: AppContext, caller: Identity, new_password: str, confirm_password: str) -> Dict[str, Any]:
    if new_password != confirm_password:
        raise HTTPException(status_code=400, detail="Please make sure both passwords are identical.")
    await current_account(context, caller)
    try:
        await context.identity.change_password(caller.user_id, new_password)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"ok": True}


async def set_theme(context: AppContext, caller: Identity, theme: Theme) -> Dict[str, Any]:
    await current_account(context, caller)
    await context.accounts.update_account(caller.user_id, theme=theme)
    return {"theme": theme.value}


async def delete_history(context: AppContext, caller: Identity) -> Dict[str, Any]:
    """Delete every stored report (and stored image) of the caller."""
    try:
        deleted = await context.reports.delete_all_by_owner(caller.user_id)
    except StoreUnavailable as exc:
        raise HTTPException(status_code=503, detail="History could not be fully deleted; please retry.") from exc
    context.images.remove_owner_images(caller.user_id)
    return {"message": "History cleared successfully", "entries_deleted": deleted}


async def delete_account(context: AppContext, caller: Identity) -> Dict[str, Any]:
    """Delete the caller's history, then the account itself."""
    history = await delete_history(context, caller)
    try:
        removed = await context.accounts.delete_account(caller.user_id)
    except StoreUnavailable as exc:
        raise HTTPException(status_code=503, detail="Account could not be deleted; please retry.") from exc
    LOGGER.info("Deleted account %s (%d reports)", caller.user_id, history["entries_deleted"])
    return {"account_deleted": removed, "entries_deleted": history["entries_deleted"]}
