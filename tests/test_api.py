"""HTTP tests for the scripts API."""

from __future__ import annotations

import uuid

import pytest
from fastapi.testclient import TestClient

from scriptforge.api.main import create_app
from scriptforge.config import Settings
from scriptforge.errors import ConfigurationError, GenerationError, GenerationRateLimited
from scriptforge.ingestion.validation import UploadValidator
from scriptforge.llm.script_generator import ScriptGenerator
from scriptforge.pipeline import ScriptPipeline
from tests.doubles import GENERATED_SCRIPT, make_pdf

PDF_BYTES = make_pdf(["Quarterly revenue grew twelve percent."])


def upload(client: TestClient, data: bytes = PDF_BYTES, filename: str = "report.pdf",
           content_type: str = "application/pdf", **form):
    return client.post(
        "/api/scripts/generate-from-pdf",
        files={"pdfFile": (filename, data, content_type)},
        data=form,
    )


def assert_envelope(body: dict, status_code: int, path: str) -> None:
    assert body["statusCode"] == status_code
    assert body["path"] == path
    assert body["timestamp"]
    assert body["message"]


class TestGenerate:
    def test_success_shape(self, client, storage) -> None:
        response = upload(client, tone="upbeat", length="3")

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {"id", "_id", "pdfFilePath", "content", "createdAt", "updatedAt"}
        assert body["id"] == body["_id"]
        assert body["content"] == GENERATED_SCRIPT
        assert body["pdfFilePath"] in storage.objects
        assert body["createdAt"] == body["updatedAt"]

    def test_missing_file(self, client) -> None:
        response = client.post("/api/scripts/generate-from-pdf", data={"tone": "upbeat"})

        assert response.status_code == 400
        body = response.json()
        assert_envelope(body, 400, "/api/scripts/generate-from-pdf")
        assert body["message"] == "No file uploaded"

    def test_wrong_extension(self, client, storage) -> None:
        response = upload(client, filename="report.docx")

        assert response.status_code == 400
        assert response.json()["message"] == (
            "Invalid file format. Allowed formats: pdf. Received: docx"
        )
        assert storage.upload_calls == []

    def test_wrong_content_type(self, client) -> None:
        response = upload(client, filename="notes.txt", content_type="text/plain")

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid file type. Only pdf files are allowed."

    def test_oversized_upload_is_not_read_in_full(
        self, settings, stager, extractor, chat_client, repository, storage
    ) -> None:
        class RecordingValidator(UploadValidator):
            def validate(self, candidate):
                self.seen_size = candidate.size
                super().validate(candidate)

        validator = RecordingValidator(max_bytes=1024 * 1024)
        pipeline = ScriptPipeline(
            validator=validator,
            stager=stager,
            extractor=extractor,
            generator=ScriptGenerator(chat_client),
            repository=repository,
        )
        payload = b"%PDF-1.4\n" + b"0" * (3 * 1024 * 1024)

        with TestClient(create_app(settings, pipeline=pipeline)) as test_client:
            response = upload(test_client, data=payload)

        assert response.status_code == 400
        assert response.json()["message"] == "File size too large. Maximum size is 1MB"
        assert validator.seen_size == 1024 * 1024 + 1
        assert storage.upload_calls == []

    def test_invalid_length(self, client) -> None:
        response = upload(client, length="ten")

        assert response.status_code == 400
        assert "length" in response.json()["message"]

    def test_unreadable_pdf_is_unprocessable(self, client) -> None:
        response = upload(client, data=b"%PDF-1.4 not really a pdf")

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "parse_error"
        assert body["stage"] == "extraction"

    def test_generation_failure_reports_stage(self, client, chat_client) -> None:
        chat_client.error = GenerationError("Model call timed out")

        response = upload(client)

        assert response.status_code == 502
        body = response.json()
        assert body["message"] == "Script generation failed"
        assert body["error"] == "generation_error"
        assert body["stage"] == "generation"
        assert "timed out" in body["detail"]
        assert client.get("/api/scripts").json() == []

    def test_model_throttling_is_distinct(self, client, chat_client) -> None:
        chat_client.error = GenerationRateLimited("429 from provider")

        response = upload(client)

        assert response.status_code == 503
        assert response.json()["error"] == "generation_throttled"


class TestScripts:
    def test_list_get_delete(self, client) -> None:
        first = upload(client).json()
        second = upload(client).json()

        listed = client.get("/api/scripts").json()
        assert [s["id"] for s in listed] == [first["id"], second["id"]]

        fetched = client.get(f"/api/scripts/{first['id']}")
        assert fetched.status_code == 200
        assert fetched.json() == first

        deleted = client.delete(f"/api/scripts/{first['id']}")
        assert deleted.status_code == 200
        assert deleted.json() == first

        missing = client.get(f"/api/scripts/{first['id']}")
        assert missing.status_code == 404
        assert [s["id"] for s in client.get("/api/scripts").json()] == [second["id"]]

    def test_unknown_id(self, client) -> None:
        script_id = str(uuid.uuid4())
        response = client.get(f"/api/scripts/{script_id}")

        assert response.status_code == 404
        body = response.json()
        assert_envelope(body, 404, f"/api/scripts/{script_id}")
        assert body["message"] == f"Script {script_id} not found"

    @pytest.mark.parametrize("method", ["get", "delete"])
    def test_malformed_id(self, client, method) -> None:
        response = getattr(client, method)("/api/scripts/64f1c2e9a7b3")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_unknown_route_uses_envelope(self, client) -> None:
        response = client.get("/api/nothing-here")
        assert response.status_code == 404
        assert_envelope(response.json(), 404, "/api/nothing-here")


class TestProductionResponses:
    @pytest.fixture
    def production_client(self, settings, pipeline):
        settings.environment = "production"
        with TestClient(create_app(settings, pipeline=pipeline)) as test_client:
            yield test_client

    def test_details_are_hidden(self, production_client, chat_client) -> None:
        chat_client.error = GenerationError("provider said: invalid key sk-123")

        body = upload(production_client).json()

        assert set(body) == {"statusCode", "timestamp", "path", "message"}
        assert body["message"] == "Script generation failed"

    def test_internal_errors_collapse(self, production_client, chat_client) -> None:
        chat_client.error = KeyError("secret internals")

        response = upload(production_client)

        assert response.status_code == 500
        assert response.json()["message"] == "Internal server error"
        assert "stack" not in response.json()

    def test_internal_errors_show_detail_in_development(self, client, chat_client) -> None:
        chat_client.error = KeyError("secret internals")

        response = upload(client)

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "internal_error"
        assert "KeyError" in body["stack"]


class TestRateLimit:
    def test_fifty_first_request_is_throttled(self, client) -> None:
        statuses = [client.get("/api/scripts").status_code for _ in range(50)]
        assert statuses == [200] * 50

        response = client.get("/api/scripts")

        assert response.status_code == 429
        assert response.json() == {
            "statusCode": 429,
            "message": "Too many requests. Please try again later.",
        }
        assert 1 <= int(response.headers["Retry-After"]) <= 10
        assert response.headers["X-RateLimit-Limit"] == "50"

    def test_limit_is_per_route(self, client) -> None:
        for _ in range(51):
            client.get("/api/scripts")
        assert client.get(f"/api/scripts/{uuid.uuid4()}").status_code == 404

    def test_health_is_not_limited(self, client) -> None:
        statuses = {client.get("/health").status_code for _ in range(60)}
        assert statuses == {200}


class TestStartup:
    def test_refuses_to_start_without_credentials(self) -> None:
        settings = Settings(_env_file=None, openai_api_key=None, database_url="sqlite://")
        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
            create_app(settings)

    def test_builds_with_credentials(self, settings) -> None:
        app = create_app(settings)
        with TestClient(app) as test_client:
            assert test_client.get("/health").json() == {"status": "ok"}
            assert test_client.get("/api/scripts").json() == []

    def test_shutdown_closes_fetch_client(self, settings) -> None:
        app = create_app(settings)
        fetch_client = app.state.pipeline.extractor.client

        with TestClient(app):
            assert not fetch_client.is_closed

        assert fetch_client.is_closed

    def test_shutdown_leaves_injected_pipeline_open(self, settings, pipeline) -> None:
        with TestClient(create_app(settings, pipeline=pipeline)):
            pass
        assert not pipeline.extractor.client.is_closed

    def test_cors_allows_trusted_origin(self, client) -> None:
        response = client.options(
            "/api/scripts",
            headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "GET"},
        )
        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
