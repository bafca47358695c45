import io
import sqlite3
import time
import uuid
from contextlib import asynccontextmanager
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import httpx
import pytest
from PIL import Image

from dal.report_dal import ScanReportDAL
from dal.user_dal import UserAccountDAL
from models.auth_models import Identity
from models.scan_report import ModelChoice, Prediction, ScanReport, UploadedImage
from services.app_context import AppContext
from services.auth.identity_provider import IdentityProvider
from services.image_store import ImageStore
from services.preview_generator import PreviewGenerator
from utils.database_init import AsyncDatabaseInitializer
from utils.settings import Settings

LATE_BLIGHT = {
    "model_used": "efficientnet",
    "result": {"predicted_class": 30, "label": "Tomato___Late_blight", "confidence": 0.93},
}


def make_image_bytes(fmt: str = "PNG", size=(32, 32)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, (34, 139, 34)).save(buf, format=fmt)
    return buf.getvalue()


def make_report(
    owner_id: str,
    label: str = "Tomato___Late_blight",
    confidence: float = 0.9,
    created_at: Optional[float] = None,
    model: ModelChoice = ModelChoice.EFFICIENTNET,
) -> ScanReport:
    return ScanReport(
        id=uuid.uuid4().hex,
        owner_id=owner_id,
        image_reference="data:image/png;base64,AAAA",
        model_used=model,
        prediction=Prediction(class_index=1, label=label, confidence=confidence),
        narrative_report="<p>advice</p>",
        created_at=created_at if created_at is not None else time.time(),
    )


def make_identity(user_id: str = "owner-a", ttl: float = 3600) -> Identity:
    return Identity(user_id=user_id, email=f"{user_id}@example.com", expires_at=time.time() + ttl)


class FakeClassifier:
    """httpx.MockTransport handler standing in for the classifier service."""

    def __init__(self, status_code: int = 200, payload: Any = None, error: Optional[Exception] = None) -> None:
        self.status_code = status_code
        self.payload = LATE_BLIGHT if payload is None else payload
        self.error = error
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if isinstance(self.payload, (dict, list)):
            return httpx.Response(self.status_code, json=self.payload)
        return httpx.Response(self.status_code, text=str(self.payload))


class FakeResponses:
    def __init__(self, text: str = "<h3>Late blight</h3><p>Remove infected leaves.</p>", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(
            output=[],
            output_text=self.text,
            usage=SimpleNamespace(input_tokens=12, output_tokens=34),
        )


class FakeOpenAI:
    def __init__(self, **kwargs) -> None:
        self.responses = FakeResponses(**kwargs)


class BrokenDatabase:
    """Stands in for AsyncDatabaseInitializer when the database cannot be opened."""

    @asynccontextmanager
    async def connection(self):
        raise sqlite3.OperationalError("unable to open database file")
        yield  # pragma: no cover


def build_context(
    tmp_path,
    classifier: Optional[FakeClassifier] = None,
    openai_client: Optional[FakeOpenAI] = None,
    image_storage: str = "inline",
) -> AppContext:
    """Assemble an AppContext synchronously; the schema is created on first connection."""
    settings = Settings(database_dir=str(tmp_path), jwt_secret="test-secret", image_storage=image_storage)
    db = AsyncDatabaseInitializer(settings.database_dir)
    accounts = UserAccountDAL(db)
    return AppContext(
        settings=settings,
        db_initializer=db,
        openai_client=openai_client or FakeOpenAI(),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(classifier or FakeClassifier())),
        reports=ScanReportDAL(db),
        accounts=accounts,
        identity=IdentityProvider(accounts, settings.jwt_secret, settings.jwt_expire_seconds),
        images=ImageStore(db.image_dir, image_storage),
        previews=PreviewGenerator(),
    )


@pytest.fixture
def classifier() -> FakeClassifier:
    return FakeClassifier()


@pytest.fixture
def openai_client() -> FakeOpenAI:
    return FakeOpenAI()


@pytest.fixture
def context(tmp_path, classifier, openai_client) -> AppContext:
    return build_context(tmp_path, classifier, openai_client)


@pytest.fixture
def png_image() -> UploadedImage:
    return UploadedImage(data=make_image_bytes("PNG"), mime_type="image/png", filename="leaf.png")
