"""History report helper using the OpenAI Responses API.

Given a user's stored scan reports, this module asks the model for a short
HTML summary: overall crop health, key trends, and recommendations. An empty
history never reaches the model, and a failed call degrades to a fixed
message instead of an error page.
"""

import logging
import time
from typing import List

from openai import AsyncOpenAI

from models.scan_report import ScanReport
from services.openai.prompts import analytics_system_prompt, analytics_user_prompt
from services.openai.response_parser import extract_text

LOGGER = logging.getLogger(__name__)

EMPTY_HISTORY_REPORT = (
    "<p>No scan data available to generate a report. Perform a new scan to get started.</p>"
)
UNAVAILABLE_REPORT = "<p>Could not generate a report at this time.</p>"


class AnalyticsReportGenerator:
    """Summarize a scan history into an HTML report."""

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-4o-mini") -> None:
        if client is None:
            raise ValueError("OpenAI AsyncOpenAI client is required.")
        self.client = client
        self.model = model

    async def generate(self, reports: List[ScanReport]) -> str:
        """Return the HTML report for `reports` (newest first)."""
        if not reports:
            return EMPTY_HISTORY_REPORT

        start = time.time()
        try:
            response = await self.client.responses.create(
                model=self.model,
                input=[
                    {
                        "type": "message",
                        "role": "system",
                        "content": [{"type": "input_text", "text": analytics_system_prompt()}],
                    },
                    {
                        "type": "message",
                        "role": "user",
                        "content": [{"type": "input_text", "text": analytics_user_prompt(reports)}],
                    },
                ],
            )
        except Exception as exc:
            LOGGER.error("OpenAI Responses API error during history report: %s", exc)
            return UNAVAILABLE_REPORT

        html = extract_text(response).strip()
        LOGGER.info("History report for %d scans generated in %.3fs", len(reports), time.time() - start)
        return html or UNAVAILABLE_REPORT
