from types import SimpleNamespace

from models.scan_report import ModelChoice, Prediction
from services.openai.analytics_report import EMPTY_HISTORY_REPORT, UNAVAILABLE_REPORT, AnalyticsReportGenerator
from services.openai.narrative_generator import FALLBACK_NARRATIVE, NarrativeGenerator
from services.openai.response_parser import extract_text, extract_usage
from tests.conftest import FakeOpenAI, make_report


def test_extract_text_prefers_message_output():
    response = SimpleNamespace(
        output=[
            SimpleNamespace(type="reasoning", content=None),
            SimpleNamespace(type="message", content=[{"type": "output_text", "text": "<p>hello</p>"}]),
        ],
        output_text="ignored",
    )

    assert extract_text(response) == "<p>hello</p>"


def test_extract_text_and_usage_fall_back_gracefully():
    response = SimpleNamespace(output=[], output_text="plain")

    assert extract_text(response) == "plain"
    assert extract_usage(response) == {"input_tokens": None, "output_tokens": None}


async def test_narrative_generator_uses_configured_model():
    client = FakeOpenAI(text="  <h3>Rust</h3>  ")
    generator = NarrativeGenerator(client, model="gpt-test")

    text = await generator.generate(ModelChoice.EFFICIENTNET, Prediction(3, "Corn_(maize)___Common_rust_", 0.42))

    assert text == "<h3>Rust</h3>"
    assert client.responses.calls[0]["model"] == "gpt-test"


async def test_narrative_fallback_on_error():
    generator = NarrativeGenerator(FakeOpenAI(error=TimeoutError("slow")))

    text = await generator.generate_or_fallback(ModelChoice.MOBILENET, Prediction(3, "Rust", 0.42))

    assert text == FALLBACK_NARRATIVE


async def test_analytics_report_skips_model_for_empty_history():
    client = FakeOpenAI()

    assert await AnalyticsReportGenerator(client).generate([]) == EMPTY_HISTORY_REPORT
    assert client.responses.calls == []


async def test_analytics_report_lists_every_scan():
    client = FakeOpenAI(text="<h3>Overall Health Summary</h3>")
    reports = [make_report("u", "Rust", 0.91), make_report("u", "Blight", 0.55, model=ModelChoice.MOBILENET)]

    html = await AnalyticsReportGenerator(client).generate(reports)

    assert html == "<h3>Overall Health Summary</h3>"
    prompt = client.responses.calls[0]["input"][-1]["content"][0]["text"]
    assert "Disease Detected: Rust | Confidence: 0.91 | Model Used: efficientnet" in prompt
    assert "Disease Detected: Blight | Confidence: 0.55 | Model Used: mobilenet" in prompt


async def test_analytics_report_degrades_on_error():
    client = FakeOpenAI(error=RuntimeError("quota"))

    assert await AnalyticsReportGenerator(client).generate([make_report("u")]) == UNAVAILABLE_REPORT


async def test_fallback_is_logged_on_module_logger(caplog):
    generator = NarrativeGenerator(FakeOpenAI(error=RuntimeError("quota")))

    with caplog.at_level("WARNING", logger="services.openai.narrative_generator"):
        await generator.generate_or_fallback(ModelChoice.MOBILENET, Prediction(3, "Rust", 0.42))

    assert any(
        r.name == "services.openai.narrative_generator" and "fallback" in r.getMessage() for r in caplog.records
    )
