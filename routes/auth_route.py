"""FastAPI routes for sign-up, sign-in and session inspection."""

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel

from controllers.account_controller import current_account, sign_in, sign_up
from models.auth_models import Identity
from routes.dependencies import SESSION_COOKIE, get_context, require_identity
from services.app_context import AppContext

router = APIRouter(prefix="/api/auth", tags=["auth"])


class SignUpPayload(BaseModel):
    email: str
    password: str
    display_name: str


class SignInPayload(BaseModel):
    email: str
    password: str


def _set_session_cookie(response: Response, token: str, max_age: int) -> None:
    response.set_cookie(SESSION_COOKIE, token, max_age=max_age, httponly=True, samesite="lax")


@router.post("/signup")
async def signup_route(payload: SignUpPayload, response: Response, context: AppContext = Depends(get_context)):
    try:
        result = await sign_up(context, payload.email, payload.password, payload.display_name)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    _set_session_cookie(response, result["token"], context.settings.jwt_expire_seconds)
    return result


@router.post("/signin")
async def signin_route(payload: SignInPayload, response: Response, context: AppContext = Depends(get_context)):
    try:
        result = await sign_in(context, payload.email, payload.password)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    _set_session_cookie(response, result["token"], context.settings.jwt_expire_seconds)
    return result


@router.post("/signout")
async def signout_route(response: Response):
    response.delete_cookie(SESSION_COOKIE)
    return {"ok": True}


@router.get("/me")
async def me_route(caller: Identity = Depends(require_identity), context: AppContext = Depends(get_context)):
    account = await current_account(context, caller)
    return account.to_public_dict()
