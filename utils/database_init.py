import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite


class AsyncDatabaseInitializer:
    """
    Manage the async SQLite database backing reports and accounts.

    - The database file is located at: <database_dir>/app.db
    - The directory is created if missing; a RuntimeError is raised if it
      points to a file or cannot be created.
    - On the first call to `ensure_database()` for a given instance the
      SCAN_REPORT and USER_ACCOUNT tables (and their indexes) are created if
      they do not exist yet. Existing data is kept across restarts.
    - Subsequent calls to `ensure_database()` on the same instance are no-ops,
      so it is safe for `connection()` to call it.
    """

    def __init__(self, database_dir: Path | str) -> None:
        db_dir = Path(database_dir).expanduser()

        if db_dir.exists() and not db_dir.is_dir():
            raise RuntimeError(
                f"DATABASE_DIR={str(database_dir)!r} points to a file, not a directory "
                f"({db_dir}). Please set DATABASE_DIR to a directory path."
            )

        try:
            db_dir.mkdir(parents=True, exist_ok=True)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to create or access database directory at {db_dir}"
            ) from exc

        self.db_dir = db_dir
        self.db_path = self.db_dir / "app.db"
        self.image_dir = self.db_dir / "images"

        self._initialized = False

    async def ensure_database(self) -> None:
        """
        Ensure the SQLite schema exists at `self.db_path`.

        Subsequent calls on the same instance are no-ops.
        """
        if self._initialized:
            return

        max_attempts = 3
        for attempt in range(1, max_attempts + 1):
            try:
                async with aiosqlite.connect(self.db_path) as db:
                    await db.execute(
                        """
                        CREATE TABLE IF NOT EXISTS SCAN_REPORT (
                            id TEXT PRIMARY KEY,
                            owner_id TEXT NOT NULL,
                            image_reference TEXT NOT NULL,
                            model_used TEXT NOT NULL,
                            class_index INTEGER NOT NULL,
                            label TEXT NOT NULL,
                            confidence REAL NOT NULL,
                            narrative_report TEXT,
                            created_at REAL NOT NULL
                        )
                        """
                    )
                    await db.execute(
                        "CREATE INDEX IF NOT EXISTS idx_scan_report_owner_created "
                        "ON SCAN_REPORT(owner_id, created_at DESC)"
                    )
                    await db.execute(
                        """
                        CREATE TABLE IF NOT EXISTS USER_ACCOUNT (
                            id TEXT PRIMARY KEY,
                            email TEXT NOT NULL UNIQUE,
                            display_name TEXT NOT NULL,
                            password_hash BLOB NOT NULL,
                            theme TEXT NOT NULL DEFAULT 'system',
                            created_at REAL NOT NULL
                        )
                        """
                    )
                    await db.commit()
                break
            except FileNotFoundError:
                # On some platforms a transient missing file error may occur; retry a few times.
                if attempt >= max_attempts:
                    raise
                await asyncio.sleep(0.1 * attempt)

        self.image_dir.mkdir(parents=True, exist_ok=True)
        self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Async context manager yielding an `aiosqlite.Connection`.

        The schema is created on first use via `ensure_database()`.
        """
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path)
        try:
            yield conn
        finally:
            await conn.close()
