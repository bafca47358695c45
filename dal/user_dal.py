"""Async Data Access Layer for the USER_ACCOUNT table."""

from __future__ import annotations

import sqlite3
from typing import Optional, Sequence

from models.auth_models import Theme, UserAccount
from services.errors import AccountConflict, StoreUnavailable
from utils.database_init import AsyncDatabaseInitializer


class UserAccountDAL:
    """CRUD helpers for local user accounts."""

    _COLUMN_LIST = "id, email, display_name, password_hash, theme, created_at"

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def create_account(self, account: UserAccount) -> str:
        """Insert a new account. Raises AccountConflict if the email is taken."""
        try:
            async with self._db.connection() as conn:
                await conn.execute(
                    f"INSERT INTO USER_ACCOUNT ({self._COLUMN_LIST}) VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        account.id,
                        account.email,
                        account.display_name,
                        account.password_hash,
                        account.theme.value,
                        account.created_at,
                    ),
                )
                await conn.commit()
        except sqlite3.IntegrityError as exc:
            raise AccountConflict(f"Email already registered: {account.email}") from exc
        except (sqlite3.Error, OSError) as exc:
            raise StoreUnavailable(str(exc)) from exc
        return account.id

    async def get_by_email(self, email: str) -> Optional[UserAccount]:
        return await self._fetch_one("email = ?", (email,))

    async def get_by_id(self, user_id: str) -> Optional[UserAccount]:
        return await self._fetch_one("id = ?", (user_id,))

    async def update_account(
        self,
        user_id: str,
        *,
        display_name: Optional[str] = None,
        password_hash: Optional[bytes] = None,
        theme: Optional[Theme] = None,
    ) -> bool:
        """Update fields of an account. Returns True if a row was changed."""
        updates = {
            "display_name": display_name,
            "password_hash": password_hash,
            "theme": theme.value if theme is not None else None,
        }
        fields = [f"{col} = ?" for col, val in updates.items() if val is not None]
        if not fields:
            return False

        params = [val for val in updates.values() if val is not None]
        params.append(user_id)
        sql = f"UPDATE USER_ACCOUNT SET {', '.join(fields)} WHERE id = ?"

        try:
            async with self._db.connection() as conn:
                cur = await conn.execute(sql, tuple(params))
                await conn.commit()
                return cur.rowcount > 0
        except (sqlite3.Error, OSError) as exc:
            raise StoreUnavailable(str(exc)) from exc

    async def delete_account(self, user_id: str) -> bool:
        """Delete an account row. Returns True if a row was deleted."""
        try:
            async with self._db.connection() as conn:
                cur = await conn.execute("DELETE FROM USER_ACCOUNT WHERE id = ?", (user_id,))
                await conn.commit()
                return cur.rowcount > 0
        except (sqlite3.Error, OSError) as exc:
            raise StoreUnavailable(str(exc)) from exc

    async def _fetch_one(self, where: str, params: tuple) -> Optional[UserAccount]:
        try:
            async with self._db.connection() as conn:
                cur = await conn.execute(f"SELECT {self._COLUMN_LIST} FROM USER_ACCOUNT WHERE {where}", params)
                row = await cur.fetchone()
        except (sqlite3.Error, OSError) as exc:
            raise StoreUnavailable(str(exc)) from exc
        return self._row_to_account(row) if row else None

    @staticmethod
    def _row_to_account(row: Sequence[object]) -> UserAccount:
        password_hash = row[3]
        if isinstance(password_hash, str):
            password_hash = password_hash.encode("latin1")
        return UserAccount(
            id=row[0],
            email=row[1],
            display_name=row[2],
            password_hash=password_hash,
            theme=Theme(row[4]),
            created_at=float(row[5]),
        )
