"""Local identity provider: bcrypt-hashed accounts and HS256 session tokens."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Optional, Tuple

import bcrypt
import jwt

from dal.user_dal import UserAccountDAL
from models.auth_models import Identity, UserAccount
from services.errors import Unauthenticated

LOGGER = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def hash_password(plain: str) -> bytes:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt())


def verify_password(plain: str, hashed: bytes) -> bool:
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed)
    except ValueError:
        return False


def validate_new_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")


class IdentityProvider:
    """Sign users up and in, and turn session tokens back into identities."""

    ALGORITHM = "HS256"

    def __init__(self, accounts: UserAccountDAL, secret: str, expire_seconds: int = 604800) -> None:
        if not secret:
            raise ValueError("A JWT secret is required.")
        self.accounts = accounts
        self.secret = secret
        self.expire_seconds = expire_seconds

    async def sign_up(self, email: str, password: str, display_name: str) -> Tuple[UserAccount, str]:
        """Create an account and return it with a fresh token.

        Raises:
            ValueError: If a field is missing or the password is too short.
            AccountConflict: If the email is already registered.
        """
        email = (email or "").strip().lower()
        display_name = (display_name or "").strip()
        if not email or "@" not in email or not display_name:
            raise ValueError("A valid email and a display name are required.")
        validate_new_password(password or "")

        account = UserAccount(
            id=uuid.uuid4().hex,
            email=email,
            display_name=display_name,
            password_hash=hash_password(password),
        )
        await self.accounts.create_account(account)
        LOGGER.info("Created account %s", account.id)
        return account, self.issue_token(account)

    async def sign_in(self, email: str, password: str) -> Tuple[UserAccount, str]:
        """Return the account and a fresh token, or raise Unauthenticated."""
        email = (email or "").strip().lower()
        account = await self.accounts.get_by_email(email) if email else None
        if account is None or not verify_password(password or "", account.password_hash):
            raise Unauthenticated("Invalid credentials")
        return account, self.issue_token(account)

    def issue_token(self, account: UserAccount) -> str:
        payload = {
            "sub": account.id,
            "email": account.email,
            "exp": int(time.time()) + self.expire_seconds,
        }
        return jwt.encode(payload, self.secret, algorithm=self.ALGORITHM)

    def verify_token(self, token: Optional[str]) -> Optional[Identity]:
        """Return the identity carried by `token`, or None if it is missing, invalid or expired."""
        if not token:
            return None
        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.ALGORITHM], options={"require": ["sub", "exp"]})
        except jwt.ExpiredSignatureError:
            LOGGER.info("Rejected expired session token")
            return None
        except jwt.InvalidTokenError as exc:
            LOGGER.info("Rejected invalid session token: %s", exc)
            return None
        return Identity(user_id=str(claims["sub"]), email=claims.get("email", ""), expires_at=float(claims["exp"]))

    async def change_password(self, user_id: str, new_password: str) -> None:
        validate_new_password(new_password)
        await self.accounts.update_account(user_id, password_hash=hash_password(new_password))
