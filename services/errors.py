"""Domain errors raised (or returned as outcomes) by the service layer."""

from __future__ import annotations

from typing import Optional

from models.scan_report import ScanReport


class Unauthenticated(Exception):
    """No valid, non-expired identity is attached to the call."""


class AuthPending(Exception):
    """The identity provider has not reported a state yet."""


class AccountConflict(Exception):
    """An account with the requested email already exists."""


class InvalidImage(ValueError):
    """Upload bytes do not decode as a supported image."""


class StoreUnavailable(Exception):
    """The report store could not be reached or the write/read failed."""


class NarrativeGenerationFailed(Exception):
    """The LLM stage failed; callers substitute the fallback narrative."""


class ClassificationFailed(Exception):
    """The classifier call failed or returned an unusable answer.

    `status_code` is None when no HTTP response was received.
    """

    def __init__(self, status_code: Optional[int], body: str) -> None:
        super().__init__(f"Classification failed (status={status_code}): {body[:200]}")
        self.status_code = status_code
        self.body = body


class PersistenceFailed(Exception):
    """The report was built but could not be saved; `report` holds the unsaved result."""

    def __init__(self, report: ScanReport, reason: str) -> None:
        super().__init__(f"Failed to persist report {report.id}: {reason}")
        self.report = report
        self.reason = reason
