"""Per-request auth state machine.

A gate starts UNKNOWN and moves to AUTHENTICATED or UNAUTHENTICATED when the
identity provider reports a state through `on_auth_state_changed`. Protected
API calls use `require_identity()`; protected pages use `redirect_target()`.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional

from models.auth_models import Identity
from services.errors import AuthPending, Unauthenticated

LOGGER = logging.getLogger(__name__)

SIGN_IN_PATH = "/signin"

Listener = Callable[["AuthState", Optional[Identity]], None]


class AuthState(str, Enum):
    UNKNOWN = "unknown"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


class AuthGate:
    """Track the current identity and notify subscribers on every transition."""

    def __init__(self) -> None:
        self.state = AuthState.UNKNOWN
        self.identity: Optional[Identity] = None
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def on_auth_state_changed(self, identity: Optional[Identity]) -> None:
        """Apply a provider notification; an expired identity counts as signed out."""
        if identity is not None and identity.is_expired():
            identity = None
        self.identity = identity
        self.state = AuthState.AUTHENTICATED if identity is not None else AuthState.UNAUTHENTICATED
        for listener in list(self._listeners):
            listener(self.state, self.identity)

    def require_identity(self) -> Identity:
        if self.state is AuthState.UNKNOWN:
            raise AuthPending("Authentication state is not known yet.")
        if self.state is AuthState.UNAUTHENTICATED or self.identity is None:
            raise Unauthenticated("Authentication is required to perform this action.")
        if self.identity.is_expired():
            self.on_auth_state_changed(None)
            raise Unauthenticated("Session has expired.")
        return self.identity

    def redirect_target(self) -> Optional[str]:
        """Return the sign-in path if a protected view must redirect, else None."""
        if self.state is AuthState.UNAUTHENTICATED:
            LOGGER.debug("Redirecting unauthenticated visitor to %s", SIGN_IN_PATH)
            return SIGN_IN_PATH
        return None
