import pytest

from dal.report_dal import ScanReportDAL
from models.scan_report import ModelChoice
from services.analysis_orchestrator import AnalysisSucceeded
from services.errors import ClassificationFailed, PersistenceFailed, Unauthenticated
from services.openai.narrative_generator import FALLBACK_NARRATIVE
from tests.conftest import BrokenDatabase, FakeClassifier, FakeOpenAI, build_context, make_identity


async def test_successful_run_persists_classifier_label_and_confidence(context, png_image, openai_client):
    caller = make_identity("owner-a")

    outcome = await context.orchestrator().run_analysis(png_image, ModelChoice.EFFICIENTNET, caller)

    assert isinstance(outcome, AnalysisSucceeded)
    report = outcome.report
    assert report.prediction.label == "Tomato___Late_blight"
    assert report.prediction.confidence == 0.93
    assert report.owner_id == "owner-a"
    assert report.model_used is ModelChoice.EFFICIENTNET
    assert report.narrative_report == openai_client.responses.text
    assert report.image_reference.startswith("data:image/png;base64,")
    assert [r.id for r in await context.reports.list_by_owner("owner-a").all()] == [report.id]


async def test_prompt_embeds_model_label_and_confidence(context, png_image, openai_client):
    await context.orchestrator().run_analysis(png_image, ModelChoice.MOBILENET, make_identity())

    call = openai_client.responses.calls[0]
    prompt = call["input"][-1]["content"][0]["text"]
    assert "mobilenet" in prompt
    assert "Tomato___Late_blight" in prompt
    assert "93.0%" in prompt


async def test_classifier_500_aborts_and_persists_nothing(tmp_path, png_image):
    openai_client = FakeOpenAI()
    context = build_context(tmp_path, FakeClassifier(status_code=500, payload="boom"), openai_client)

    outcome = await context.orchestrator().run_analysis(png_image, ModelChoice.EFFICIENTNET, make_identity("owner-a"))

    assert isinstance(outcome, ClassificationFailed)
    assert outcome.status_code == 500
    assert openai_client.responses.calls == []
    assert await context.reports.list_by_owner("owner-a").all() == []


async def test_llm_failure_uses_fallback_and_still_persists(tmp_path, png_image):
    context = build_context(tmp_path, FakeClassifier(), FakeOpenAI(error=RuntimeError("rate limited")))

    outcome = await context.orchestrator().run_analysis(png_image, ModelChoice.EFFICIENTNET, make_identity("owner-a"))

    assert isinstance(outcome, AnalysisSucceeded)
    assert outcome.report.narrative_report == FALLBACK_NARRATIVE
    stored = await context.reports.list_by_owner("owner-a").all()
    assert [r.narrative_report for r in stored] == [FALLBACK_NARRATIVE]


async def test_empty_llm_answer_uses_fallback(tmp_path, png_image):
    context = build_context(tmp_path, FakeClassifier(), FakeOpenAI(text="   "))

    outcome = await context.orchestrator().run_analysis(png_image, ModelChoice.EFFICIENTNET, make_identity())

    assert outcome.report.narrative_report == FALLBACK_NARRATIVE


@pytest.mark.parametrize("caller", [None, make_identity(ttl=-5)])
async def test_unauthenticated_caller_makes_no_remote_calls(tmp_path, png_image, caller):
    classifier, openai_client = FakeClassifier(), FakeOpenAI()
    context = build_context(tmp_path, classifier, openai_client)

    with pytest.raises(Unauthenticated):
        await context.orchestrator().run_analysis(png_image, ModelChoice.EFFICIENTNET, caller)

    assert classifier.requests == []
    assert openai_client.responses.calls == []


async def test_store_failure_returns_unsaved_report(context, png_image):
    context.reports = ScanReportDAL(BrokenDatabase())

    outcome = await context.orchestrator().run_analysis(png_image, ModelChoice.EFFICIENTNET, make_identity("owner-a"))

    assert isinstance(outcome, PersistenceFailed)
    assert outcome.report.prediction.label == "Tomato___Late_blight"
    assert outcome.report.owner_id == "owner-a"


async def test_disk_storage_records_image_url(tmp_path, png_image):
    context = build_context(tmp_path, image_storage="disk")

    outcome = await context.orchestrator().run_analysis(png_image, ModelChoice.EFFICIENTNET, make_identity("owner-a"))

    report = outcome.report
    assert report.image_reference == f"/api/reports/{report.id}/image"
    loaded = await context.images.load("owner-a", report.id, report.image_reference)
    assert loaded == (png_image.data, "image/png")


async def test_resubmission_creates_a_second_report(context, png_image):
    caller = make_identity("owner-a")
    orchestrator = context.orchestrator()

    await orchestrator.run_analysis(png_image, ModelChoice.EFFICIENTNET, caller)
    await orchestrator.run_analysis(png_image, ModelChoice.EFFICIENTNET, caller)

    assert len(await context.reports.list_by_owner("owner-a").all()) == 2


async def test_disk_mode_store_failure_falls_back_to_inline_image(tmp_path, png_image):
    context = build_context(tmp_path, image_storage="disk")
    context.reports = ScanReportDAL(BrokenDatabase())

    outcome = await context.orchestrator().run_analysis(png_image, ModelChoice.EFFICIENTNET, make_identity("owner-a"))

    assert isinstance(outcome, PersistenceFailed)
    assert outcome.report.image_reference == png_image.to_data_uri()
    assert list((tmp_path / "images" / "owner-a").glob("*")) == []
