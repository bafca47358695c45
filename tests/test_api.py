import pytest
from fastapi.testclient import TestClient

from dal.report_dal import ScanReportDAL
from main import create_app
from tests.conftest import BrokenDatabase, FakeClassifier, FakeOpenAI, build_context, make_image_bytes


def _client(context) -> TestClient:
    return TestClient(create_app(context))


def _sign_up(client: TestClient, email: str = "grower@example.com") -> dict:
    response = client.post(
        "/api/auth/signup",
        json={"email": email, "password": "secret-pw", "display_name": "Grower"},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


def _analyze(client: TestClient, headers: dict, model: str = "efficientnet"):
    return client.post(
        "/api/analyze",
        headers=headers,
        files={"file": ("leaf.png", make_image_bytes("PNG"), "image/png")},
        data={"model": model},
    )


@pytest.fixture
def client(context) -> TestClient:
    return _client(context)


def test_analyze_then_read_history_dashboard_and_insights(client, openai_client):
    headers = _sign_up(client)

    result = _analyze(client, headers).json()
    assert result["label"] == "Tomato___Late_blight"
    assert result["confidence"] == 0.93
    assert result["severity"] == "high"
    assert result["saved"] is True
    assert result["preview"].startswith("data:image/png;base64,")

    reports = client.get("/api/reports", headers=headers).json()["reports"]
    assert [r["id"] for r in reports] == [result["id"]]

    dashboard = client.get("/api/dashboard", headers=headers).json()
    assert dashboard["total_scans"] == 1
    assert dashboard["most_common_label"] == "Tomato___Late_blight"

    summary = client.get("/api/insights", headers=headers).json()
    assert summary["unique_labels"] == 1

    report = client.get("/api/insights/report", headers=headers).json()
    assert report["scans_considered"] == 1
    assert report["report_html"] == openai_client.responses.text


def test_reports_are_scoped_to_the_caller(client):
    first = _sign_up(client, "first@example.com")
    second = _sign_up(client, "second@example.com")
    _analyze(client, first)

    assert client.get("/api/reports", headers=second).json() == {"reports": []}


def test_report_image_is_served_only_to_its_owner(tmp_path):
    client = _client(build_context(tmp_path, image_storage="disk"))
    owner = _sign_up(client, "owner@example.com")
    stranger = _sign_up(client, "stranger@example.com")
    report = _analyze(client, owner).json()

    image = client.get(report["image_reference"], headers=owner)
    assert image.status_code == 200
    assert image.headers["content-type"] == "image/png"
    assert client.get(report["image_reference"], headers=stranger).status_code == 404


def test_protected_endpoints_require_authentication(client):
    assert client.get("/api/reports").status_code == 401
    assert client.get("/api/dashboard", headers={"Authorization": "Bearer nonsense"}).status_code == 401
    assert _analyze(client, {}).status_code == 401


def test_classifier_failure_maps_to_bad_gateway(tmp_path):
    client = _client(build_context(tmp_path, FakeClassifier(status_code=500, payload="model crashed"), FakeOpenAI()))
    headers = _sign_up(client)

    response = _analyze(client, headers)

    assert response.status_code == 502
    assert response.json()["detail"]["status_code"] == 500
    assert client.get("/api/reports", headers=headers).json() == {"reports": []}


def test_rejects_unsupported_and_corrupt_uploads(client):
    headers = _sign_up(client)

    gif = client.post("/api/analyze", headers=headers, files={"file": ("leaf.gif", b"GIF89a", "image/gif")})
    corrupt = client.post("/api/analyze", headers=headers, files={"file": ("leaf.png", b"not an image", "image/png")})
    unknown_model = _analyze(client, headers, model="resnet")

    assert gif.status_code == 415
    assert corrupt.status_code == 400
    assert unknown_model.status_code == 422


def test_delete_history_clears_only_reports(client):
    headers = _sign_up(client)
    _analyze(client, headers)
    _analyze(client, headers)

    response = client.delete("/api/settings/history", headers=headers)

    assert response.json() == {"message": "History cleared successfully", "entries_deleted": 2}
    assert client.get("/api/reports", headers=headers).json() == {"reports": []}
    assert client.get("/api/auth/me", headers=headers).status_code == 200


def test_password_change_requires_matching_confirmation(client):
    headers = _sign_up(client)

    mismatch = client.post(
        "/api/settings/password",
        headers=headers,
        json={"new_password": "new-secret", "confirm_password": "other-secret"},
    )

    assert mismatch.status_code == 400
    assert mismatch.json()["detail"] == "Please make sure both passwords are identical."


def test_theme_and_profile_updates(client):
    headers = _sign_up(client)

    assert client.put("/api/settings/theme", headers=headers, json={"theme": "dark"}).json() == {"theme": "dark"}
    profile = client.patch("/api/settings/profile", headers=headers, json={"display_name": "Field Team"}).json()

    assert profile["display_name"] == "Field Team"
    assert profile["theme"] == "dark"


def test_delete_account_invalidates_the_session(client):
    headers = _sign_up(client)
    _analyze(client, headers)

    response = client.delete("/api/settings/account", headers=headers)

    assert response.json() == {"account_deleted": True, "entries_deleted": 1}
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_deleted_account_token_is_rejected(client):
    headers = _sign_up(client)
    client.delete("/api/settings/account", headers=headers)

    assert _analyze(client, headers).status_code == 401
    assert client.get("/api/reports", headers=headers).status_code == 401
    assert client.get("/dashboard", headers=headers, follow_redirects=False).status_code == 303


def test_unsaved_result_is_still_returned(client, context):
    headers = _sign_up(client)
    context.reports = ScanReportDAL(BrokenDatabase())

    response = _analyze(client, headers)

    assert response.status_code == 200
    body = response.json()
    assert body["saved"] is False
    assert body["warning"] == "The result could not be saved to your history."
    assert body["label"] == "Tomato___Late_blight"


def test_signed_out_page_visit_redirects_to_sign_in(client):
    response = client.get("/dashboard", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/signin"


def test_sign_in_with_wrong_password(client):
    _sign_up(client)

    response = client.post("/api/auth/signin", json={"email": "grower@example.com", "password": "nope-nope"})

    assert response.status_code == 401
