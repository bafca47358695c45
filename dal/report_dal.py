"""Async Data Access Layer for the SCAN_REPORT table.

Every statement is filtered by `owner_id`: reports form one collection per
owner and there is no query path that crosses owners.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import AsyncIterator, List, Optional, Sequence

from models.scan_report import ModelChoice, Prediction, ScanReport
from services.errors import StoreUnavailable
from utils.database_init import AsyncDatabaseInitializer

LOGGER = logging.getLogger(__name__)


class OwnerReports:
    """Lazy, restartable view over one owner's reports, newest first.

    Nothing is read until iteration starts; each `async for` (or `all()`)
    runs the query again, so the view can be re-used after new writes.
    """

    def __init__(self, dal: "ScanReportDAL", owner_id: str, limit: Optional[int] = None) -> None:
        self._dal = dal
        self.owner_id = owner_id
        self.limit = limit

    def __aiter__(self) -> AsyncIterator[ScanReport]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[ScanReport]:
        for report in await self._dal._fetch_owner_reports(self.owner_id, self.limit):
            yield report

    async def all(self) -> List[ScanReport]:
        return await self._dal._fetch_owner_reports(self.owner_id, self.limit)


class ScanReportDAL:
    """Data access layer for SCAN_REPORT records.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    _COLUMNS = (
        "id",
        "owner_id",
        "image_reference",
        "model_used",
        "class_index",
        "label",
        "confidence",
        "narrative_report",
        "created_at",
    )
    _COLUMN_LIST = ", ".join(_COLUMNS)
    _PLACEHOLDERS = ", ".join("?" for _ in _COLUMNS)

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def save(self, report: ScanReport) -> str:
        """Insert a fully formed report and return its id.

        Raises:
            StoreUnavailable: if the database cannot be reached or the insert fails.
        """
        try:
            async with self._db.connection() as conn:
                await conn.execute(
                    f"INSERT INTO SCAN_REPORT ({self._COLUMN_LIST}) VALUES ({self._PLACEHOLDERS})",
                    (
                        report.id,
                        report.owner_id,
                        report.image_reference,
                        report.model_used.value,
                        report.prediction.class_index,
                        report.prediction.label,
                        report.prediction.confidence,
                        report.narrative_report,
                        report.created_at,
                    ),
                )
                await conn.commit()
        except (sqlite3.Error, OSError) as exc:
            LOGGER.error("Failed to save report %s for owner %s: %s", report.id, report.owner_id, exc)
            raise StoreUnavailable(str(exc)) from exc
        return report.id

    def list_by_owner(self, owner_id: str, limit: Optional[int] = None) -> OwnerReports:
        """Return the owner's reports, newest first; `limit` keeps only the most recent N."""
        if limit is not None and limit < 1:
            raise ValueError("limit must be a positive integer.")
        return OwnerReports(self, owner_id, limit)

    async def get_for_owner(self, owner_id: str, report_id: str) -> Optional[ScanReport]:
        """Return one report if it exists and belongs to `owner_id`, else None."""
        try:
            async with self._db.connection() as conn:
                cur = await conn.execute(
                    f"SELECT {self._COLUMN_LIST} FROM SCAN_REPORT WHERE owner_id = ? AND id = ?",
                    (owner_id, report_id),
                )
                row = await cur.fetchone()
        except (sqlite3.Error, OSError) as exc:
            raise StoreUnavailable(str(exc)) from exc
        return self._row_to_report(row) if row else None

    async def delete_all_by_owner(self, owner_id: str) -> int:
        """Delete every report of `owner_id` one at a time and return the number removed.

        Not transactional: if a delete fails part-way the earlier deletions
        stay applied and StoreUnavailable is raised.
        """
        deleted = 0
        try:
            async with self._db.connection() as conn:
                cur = await conn.execute("SELECT id FROM SCAN_REPORT WHERE owner_id = ?", (owner_id,))
                ids = [row[0] for row in await cur.fetchall()]
                for report_id in ids:
                    await conn.execute(
                        "DELETE FROM SCAN_REPORT WHERE owner_id = ? AND id = ?",
                        (owner_id, report_id),
                    )
                    await conn.commit()
                    deleted += 1
        except (sqlite3.Error, OSError) as exc:
            LOGGER.error("History deletion for owner %s stopped after %d reports: %s", owner_id, deleted, exc)
            raise StoreUnavailable(str(exc)) from exc

        LOGGER.info("Deleted %d reports for owner %s", deleted, owner_id)
        return deleted

    async def _fetch_owner_reports(self, owner_id: str, limit: Optional[int]) -> List[ScanReport]:
        sql = f"SELECT {self._COLUMN_LIST} FROM SCAN_REPORT WHERE owner_id = ? ORDER BY created_at DESC, rowid DESC"
        params: tuple = (owner_id,)
        if limit is not None:
            sql += " LIMIT ?"
            params = (owner_id, limit)
        try:
            async with self._db.connection() as conn:
                cur = await conn.execute(sql, params)
                rows = await cur.fetchall()
        except (sqlite3.Error, OSError) as exc:
            LOGGER.error("Failed to list reports for owner %s: %s", owner_id, exc)
            raise StoreUnavailable(str(exc)) from exc
        return [self._row_to_report(r) for r in rows]

    @staticmethod
    def _row_to_report(row: Sequence[object]) -> ScanReport:
        """Convert a DB row tuple into a ScanReport."""
        return ScanReport(
            id=row[0],
            owner_id=row[1],
            image_reference=row[2],
            model_used=ModelChoice(row[3]),
            prediction=Prediction(class_index=int(row[4]), label=row[5], confidence=float(row[6])),
            narrative_report=row[7],
            created_at=float(row[8]),
        )
