"""FastAPI dependencies shared by the routers."""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from models.auth_models import Identity
from services.app_context import AppContext
from services.auth.auth_gate import AuthGate
from services.errors import AuthPending, StoreUnavailable, Unauthenticated

LOGGER = logging.getLogger(__name__)

SESSION_COOKIE = "session"

bearer_scheme = HTTPBearer(auto_error=False)


def get_context(request: Request) -> AppContext:
    """Retrieve the shared application context from the app state."""
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise HTTPException(status_code=503, detail="Application is still starting up.")
    return context


async def get_auth_gate(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthGate:
    """Build the request's auth gate and feed it the provider's verdict.

    The token comes from the `Authorization: Bearer` header, or from the
    session cookie for browser page navigations. A valid token whose account
    no longer exists counts as signed out. While the application context is
    missing, or the account store cannot be reached, the gate stays UNKNOWN.
    """
    gate = AuthGate()
    context = getattr(request.app.state, "context", None)
    if context is None:
        return gate
    token = credentials.credentials if credentials else request.cookies.get(SESSION_COOKIE)
    identity = context.identity.verify_token(token)
    if identity is not None:
        try:
            account = await context.accounts.get_by_id(identity.user_id)
        except StoreUnavailable as exc:
            LOGGER.error("Could not resolve account %s: %s", identity.user_id, exc)
            return gate
        if account is None:
            LOGGER.info("Rejected token for deleted account %s", identity.user_id)
            identity = None
    gate.on_auth_state_changed(identity)
    return gate


def require_identity(gate: AuthGate = Depends(get_auth_gate)) -> Identity:
    try:
        return gate.require_identity()
    except AuthPending as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except Unauthenticated as exc:
        raise HTTPException(
            status_code=401, detail=str(exc), headers={"WWW-Authenticate": "Bearer"}
        ) from exc
