"""Farmer-facing advice for a single classification, via the OpenAI Responses API."""

import logging
import time
from typing import Any

from openai import AsyncOpenAI

from models.scan_report import ModelChoice, Prediction
from services.errors import NarrativeGenerationFailed
from services.openai.prompts import narrative_system_prompt, narrative_user_prompt
from services.openai.response_parser import extract_text, extract_usage

LOGGER = logging.getLogger(__name__)

FALLBACK_NARRATIVE = (
    "Unable to generate recommendations at this time. Please consult with a local agricultural expert."
)


class NarrativeGenerator:
    """Turn a classifier prediction into an HTML advice report."""

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-4o-mini") -> None:
        if client is None:
            raise ValueError("OpenAI AsyncOpenAI client is required.")
        self.client = client
        self.model = model

    async def generate(self, model_used: ModelChoice, prediction: Prediction) -> str:
        """Return the generated advice.

        Raises:
            NarrativeGenerationFailed: If the call fails or returns no text.
        """
        start = time.time()
        try:
            response = await self._create_response(model_used, prediction)
        except Exception as exc:
            LOGGER.error("OpenAI Responses API error during narrative generation: %s", exc)
            raise NarrativeGenerationFailed(str(exc)) from exc

        text = extract_text(response).strip()
        if not text:
            raise NarrativeGenerationFailed("The model returned an empty narrative.")

        usage = extract_usage(response)
        LOGGER.info(
            "Narrative generated in %.3fs (input_tokens=%s, output_tokens=%s)",
            time.time() - start,
            usage["input_tokens"],
            usage["output_tokens"],
        )
        return text

    async def generate_or_fallback(self, model_used: ModelChoice, prediction: Prediction) -> str:
        """Like `generate`, but substitute FALLBACK_NARRATIVE on any failure."""
        try:
            return await self.generate(model_used, prediction)
        except NarrativeGenerationFailed as exc:
            LOGGER.warning("Using fallback narrative for %s: %s", prediction.label, exc)
            return FALLBACK_NARRATIVE

    async def _create_response(self, model_used: ModelChoice, prediction: Prediction) -> Any:
        return await self.client.responses.create(
            model=self.model,
            input=[
                {
                    "type": "message",
                    "role": "system",
                    "content": [{"type": "input_text", "text": narrative_system_prompt()}],
                },
                {
                    "type": "message",
                    "role": "user",
                    "content": [{"type": "input_text", "text": narrative_user_prompt(model_used, prediction)}],
                },
            ],
        )
