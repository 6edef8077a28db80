"""HTTP surface tests with FastAPI's TestClient and dependency overrides."""
from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from app.core.config import get_settings
from app.core.dependencies import get_report_service
from app.core.errors import UpstreamAnalysisError
from app.main import app, rate_limiter
from app.services.report_service import ReportService
from conftest import PNG_BYTES, SAMPLE_ANALYSIS


@pytest.fixture
def service(gateway, repository) -> ReportService:
    return ReportService(gateway, repository)


@pytest.fixture
def client(service):
    rate_limiter.reset()
    app.dependency_overrides[get_report_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create(client, product_payload) -> dict:
    response = client.post("/api/reports", json={"productData": product_payload, "analysis": SAMPLE_ANALYSIS})
    assert response.status_code == 201
    return response.json()


class TestHealth:
    @pytest.mark.parametrize("path", ["/health", "/api/health"])
    def test_health(self, client, path):
        response = client.get(path)
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_trace_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Trace-Id": "trace-123"})
        assert response.headers["X-Trace-Id"] == "trace-123"

    def test_unsafe_trace_id_is_replaced(self, client):
        response = client.get("/health", headers={"X-Trace-Id": "bad id; rm -rf"})
        trace_id = response.headers["X-Trace-Id"]
        assert trace_id != "bad id; rm -rf"
        assert len(trace_id) == 32


class TestReports:
    def test_create_from_json_envelope(self, client, product_payload):
        body = _create(client, product_payload)

        assert body["id"] == 1
        assert body["productName"] == "Trail Flask"
        assert body["salesChannels"] == ["Online", "Retail"]
        assert body["analysis"] == SAMPLE_ANALYSIS
        assert body["createdAt"]

    def test_create_from_flat_json(self, client, product_payload):
        response = client.post("/api/reports", json={**product_payload, "analysis": json.dumps(SAMPLE_ANALYSIS)})
        assert response.status_code == 201
        assert response.json()["analysis"] == SAMPLE_ANALYSIS

    def test_create_from_multipart_with_image(self, client, repository, product_payload):
        form = {**product_payload, "analysis": json.dumps(SAMPLE_ANALYSIS)}
        response = client.post(
            "/api/reports",
            data=form,
            files={"productImage": ("flask photo.png", PNG_BYTES, "image/png")},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["salesChannels"] == ["Online", "Retail"]
        assert body["productImage"].endswith("-flask-photo.png")
        assert repository.calls == ["upload", "create"]

    def test_multipart_rejects_non_image_file(self, client, repository, product_payload):
        response = client.post(
            "/api/reports",
            data=product_payload,
            files={"image": ("notes.txt", b"hello", "text/plain")},
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"
        assert repository.calls == []

    def test_multipart_rejects_oversized_image(self, client, settings, product_payload):
        settings.max_upload_bytes = 16
        app.dependency_overrides[get_settings] = lambda: settings

        response = client.post(
            "/api/reports",
            data=product_payload,
            files={"image": ("big.png", PNG_BYTES, "image/png")},
        )

        assert response.status_code == 400
        assert "limit" in response.json()["details"][0]["reason"]

    def test_create_validation_error_lists_fields(self, client, product_payload):
        del product_payload["productName"]

        response = client.post("/api/reports", json={"productData": product_payload})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error_code"] == "VALIDATION_ERROR"
        assert body["details"] == [{"field": "productName", "reason": "Product name is required"}]

    def test_list_newest_first(self, client, product_payload):
        for name in ("First", "Second"):
            _create(client, {**product_payload, "productName": name})

        response = client.get("/api/reports")

        assert response.status_code == 200
        assert [r["productName"] for r in response.json()] == ["Second", "First"]

    def test_get_report(self, client, product_payload):
        created = _create(client, product_payload)
        response = client.get(f"/api/reports/{created['id']}")
        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    def test_get_missing_report_is_404(self, client):
        response = client.get("/api/reports/42")
        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"
        assert response.json()["message"] == "Report not found"

    @pytest.mark.parametrize("method", ["get", "delete"])
    def test_non_integer_id_is_400(self, client, method):
        response = getattr(client, method)("/api/reports/abc")
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid report ID"

    def test_delete_is_idempotent(self, client, product_payload):
        created = _create(client, product_payload)

        for _ in range(2):
            response = client.delete(f"/api/reports/{created['id']}")
            assert response.status_code == 200
            assert response.json() == {"message": "Report deleted successfully"}

        assert client.get(f"/api/reports/{created['id']}").status_code == 404


class TestAnalysis:
    def test_analyze_returns_document(self, client, product_payload):
        response = client.post("/api/analyze", json=product_payload)

        assert response.status_code == 200
        assert response.json() == SAMPLE_ANALYSIS
        assert "X-Analysis-Warning" not in response.headers

    def test_analyze_reports_image_warning_in_header(self, client, product_payload):
        product_payload["productImage"] = "data:image/png;base64,@@@"

        response = client.post("/api/analyze", json=product_payload)

        assert response.status_code == 200
        assert response.json() == SAMPLE_ANALYSIS
        assert response.headers["X-Analysis-Warning"]

    def test_analyze_invalid_input(self, client, product_payload):
        product_payload["retailPrice"] = "free"
        response = client.post("/api/analyze", json=product_payload)
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "retailPrice"

    def test_analyze_upstream_failure(self, client, gateway, product_payload):
        gateway.analyze.side_effect = UpstreamAnalysisError("Failed to generate analysis: timed out")

        response = client.post("/api/analyze", json=product_payload)

        assert response.status_code == 500
        assert response.json()["error_code"] == "UPSTREAM_ANALYSIS_ERROR"

    def test_upload_image_returns_data_uri_and_critique(self, client):
        response = client.post("/api/upload-image", files={"image": ("flask.png", PNG_BYTES, "image/png")})

        assert response.status_code == 200
        body = response.json()
        assert body["imageUrl"].startswith("data:image/png;base64,")
        assert body["imageAnalysis"] == "Clean, outdoorsy visual identity."

    def test_upload_image_critique_failure_is_empty(self, client, gateway):
        gateway.analyze_image.side_effect = UpstreamAnalysisError("vision down")

        response = client.post("/api/upload-image", files={"image": ("flask.png", PNG_BYTES, "image/png")})

        assert response.status_code == 200
        assert response.json()["imageAnalysis"] == ""


class TestChatAndContent:
    def test_chat(self, client, gateway):
        response = client.post(
            "/api/chat",
            json={"message": "Which is best?", "conversationHistory": [{"type": "user", "content": "Hi"}]},
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Report 1 has the best margin.", "relatedReports": [1]}
        gateway.chat.assert_awaited_once()

    def test_chat_requires_message(self, client):
        response = client.post("/api/chat", json={"message": ""})
        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_generate_content(self, client, product_payload):
        created = _create(client, product_payload)
        response = client.post("/api/generate-content", json={"reportId": created["id"]})
        assert response.status_code == 200
        assert response.json()["hashtags"]["trending"] == ["#hike"]

    def test_generate_content_missing_report(self, client):
        response = client.post("/api/generate-content", json={"reportId": 99})
        assert response.status_code == 404

    def test_optimize_content(self, client, product_payload):
        created = _create(client, product_payload)
        response = client.post(
            "/api/optimize-content",
            json={"reportId": created["id"], "category": "captions", "selection": "Keeps drinks cold"},
        )
        assert response.status_code == 200
        assert response.json() == {"result": "Cold drinks, all trail long.", "optimizationFocus": "Clarity"}


def test_unexpected_error_is_internal(service, product_payload):
    service.list_reports = AsyncMock(side_effect=RuntimeError("boom"))
    app.dependency_overrides[get_report_service] = lambda: service
    try:
        response = TestClient(app, raise_server_exceptions=False).get("/api/reports")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "message": "Internal server error",
        "error_code": "INTERNAL_ERROR",
        "details": None,
    }


def test_startup_refuses_missing_configuration(monkeypatch):
    import app.main as main_module
    from app.core.config import Settings
    from app.core.errors import ConfigurationError

    monkeypatch.setattr(
        main_module,
        "settings",
        Settings(llm_api_key=None, storage_backend="rest", supabase_url=None, supabase_key=None),
    )

    with pytest.raises(ConfigurationError) as exc_info:
        with TestClient(app):
            pass

    assert "LLM_API_KEY" in str(exc_info.value)
    assert "SUPABASE_URL" in str(exc_info.value)
