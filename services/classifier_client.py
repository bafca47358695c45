"""HTTP client for the external plant-disease classifier."""

import logging
import time
from typing import Any, Dict

import httpx

from models.scan_report import ModelChoice, Prediction, UploadedImage
from services.errors import ClassificationFailed

LOGGER = logging.getLogger(__name__)


class ClassifierClient:
    """Submit images to the classifier's `/predict/` endpoint.

    The shared `httpx.AsyncClient` is owned by the application context; this
    class only builds requests and interprets responses.
    """

    def __init__(self, http_client: httpx.AsyncClient, predict_url: str) -> None:
        if http_client is None:
            raise ValueError("An httpx.AsyncClient must be provided.")
        self.http_client = http_client
        self.predict_url = predict_url

    async def classify(self, image: UploadedImage, model: ModelChoice) -> Prediction:
        """Classify one image with the selected model.

        Raises:
            ClassificationFailed: On network errors, non-2xx responses, or a
                response body that does not carry a usable prediction.
        """
        start = time.time()
        LOGGER.info("Calling classifier for model %s", model.value)
        try:
            response = await self.http_client.post(
                self.predict_url,
                params={"model_name": model.value},
                files={"file": (image.filename, image.data, image.mime_type)},
            )
        except httpx.HTTPError as exc:
            LOGGER.error("Classifier request failed: %s", exc)
            raise ClassificationFailed(None, str(exc) or exc.__class__.__name__) from exc

        if not response.is_success:
            LOGGER.error("Classifier request failed: %s - %s", response.status_code, response.text)
            raise ClassificationFailed(response.status_code, response.text)

        prediction = self._parse_prediction(response)
        LOGGER.info(
            "Classifier answered %s (%.3f) in %.3fs",
            prediction.label,
            prediction.confidence,
            time.time() - start,
        )
        return prediction

    @staticmethod
    def _parse_prediction(response: httpx.Response) -> Prediction:
        """Read `{result: {predicted_class, label, confidence}}` from the response body."""
        try:
            payload: Dict[str, Any] = response.json()
            result = payload["result"]
            return Prediction(
                class_index=int(result["predicted_class"]),
                label=str(result["label"]),
                confidence=float(result["confidence"]),
            )
        except (ValueError, KeyError, TypeError) as exc:
            LOGGER.error("Unusable classifier response: %s", response.text)
            raise ClassificationFailed(response.status_code, response.text) from exc
