"""Tests for the operations API."""

import pytest
from fastapi.testclient import TestClient

from main import create_app


@pytest.fixture
def client(context):
    app = create_app(context=context, start_consumer=False)
    with TestClient(app) as test_client:
        yield test_client


class TestOperationsAPI:
    """Test health, stats and manual runs."""

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_stats_without_consumer(self, client):
        response = client.get("/api/v1/stats")

        assert response.status_code == 200
        assert response.json() == {"is_running": False}

    def test_manual_digest(self, client, records):
        response = client.post("/api/v1/files/file-1/digest")

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["state"] == "completed"
        assert [s["stage"] for s in body["stages"]] == ["metadata", "text", "entities", "preview"]
        assert records.files["file-1"].ner is not None

    def test_manual_digest_reports_partial_failures(self, client, context):
        """Stage failures still return 200 with per-stage status."""
        context.tagger.error = RuntimeError("NER down")

        response = client.post("/api/v1/files/file-1/digest")

        assert response.status_code == 200
        stages = {s["stage"]: s["status"] for s in response.json()["stages"]}
        assert stages["entities"] == "failed"
        assert stages["preview"] == "succeeded"

    def test_manual_digest_unknown_file(self, client):
        response = client.post("/api/v1/files/missing/digest")

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["state"] == "failed"
        assert detail["error_type"] == "RecordNotFoundError"
