from __future__ import annotations

import base64
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ModelChoice(str, Enum):
    """Classifier models offered to the user."""

    MOBILENET = "mobilenet"  # fast
    EFFICIENTNET = "efficientnet"  # accurate


@dataclass(frozen=True)
class UploadedImage:
    """Raw image bytes as received from the client."""

    data: bytes
    mime_type: str
    filename: str = "image"

    def to_data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("utf-8")
        return f"data:{self.mime_type};base64,{encoded}"


@dataclass(frozen=True)
class Prediction:
    """Classifier answer for one image.

    Attributes:
        class_index: Index of the predicted class in the classifier's label set.
        label: Human-readable class label, e.g. "Tomato___Late_blight".
        confidence: Probability of the predicted class, in [0, 1].
    """

    class_index: int
    label: str
    confidence: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")


@dataclass(frozen=True)
class ScanReport:
    """A persisted analysis result; one row of the SCAN_REPORT table.

    Attributes:
        id: Opaque identifier assigned when the report is built.
        owner_id: Id of the user who submitted the image.
        image_reference: Inline data URI, or a stored-object URL for disk storage.
        model_used: Classifier model chosen at submission time.
        prediction: Classifier output.
        narrative_report: LLM advice (HTML), or the fallback text when generation failed.
        created_at: Unix timestamp (seconds) assigned by the server.
    """

    id: str
    owner_id: str
    image_reference: str
    model_used: ModelChoice
    prediction: Prediction
    narrative_report: Optional[str]
    created_at: float

    def to_public_dict(self) -> Dict[str, Any]:
        """Serialize for API responses."""
        return {
            "id": self.id,
            "label": self.prediction.label,
            "class_index": self.prediction.class_index,
            "confidence": self.prediction.confidence,
            "model_used": self.model_used.value,
            "narrative_report": self.narrative_report,
            "image_reference": self.image_reference,
            "created_at": self.created_at,
        }
