"""Shared test fixtures for pytest.

Cloudinary, the storage host and the model provider are replaced by
in-memory doubles; the repository runs on in-memory SQLite. Test PDFs are
generated with PyMuPDF so extraction runs against real documents.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from typing import List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from scriptforge.api.main import create_app
from scriptforge.config import Settings
from scriptforge.ingestion.extract_pdf import PdfTextExtractor
from scriptforge.ingestion.staging import CloudinaryStager
from scriptforge.ingestion.validation import UploadValidator
from scriptforge.llm.script_generator import ScriptGenerator
from scriptforge.models.document import UploadCandidate
from scriptforge.pipeline import ScriptPipeline
from scriptforge.storage.database import create_db_engine, create_session_factory, init_db
from scriptforge.storage.repository import ScriptRepository
from tests.doubles import FakeChatClient, StorageDouble, make_pdf


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        environment="development",
        openai_api_key="test-openai-key",
        cloudinary_name="demo",
        cloudinary_api_key="test-cloudinary-key",
        cloudinary_api_secret="test-cloudinary-secret",
        app_namespace="scriptforge-test",
        database_url="sqlite://",
        max_source_tokens=None,
    )


@pytest.fixture
def repository() -> ScriptRepository:
    engine = create_db_engine("sqlite://")
    init_db(engine)
    return ScriptRepository(create_session_factory(engine))


@pytest.fixture
def storage() -> StorageDouble:
    return StorageDouble()


@pytest.fixture
def chat_client() -> FakeChatClient:
    return FakeChatClient()


@pytest.fixture
def stager(settings: Settings, storage: StorageDouble) -> CloudinaryStager:
    return CloudinaryStager.from_settings(settings, uploader=storage.upload)


@pytest.fixture
def extractor(storage: StorageDouble) -> Generator[PdfTextExtractor, None, None]:
    client = httpx.Client(transport=httpx.MockTransport(storage.handle))
    extractor = PdfTextExtractor(cloud_name="demo", http_client=client)
    yield extractor
    extractor.close()


@pytest.fixture
def pipeline(
    settings: Settings,
    stager: CloudinaryStager,
    extractor: PdfTextExtractor,
    chat_client: FakeChatClient,
    repository: ScriptRepository,
) -> ScriptPipeline:
    return ScriptPipeline(
        validator=UploadValidator(max_bytes=settings.max_upload_bytes),
        stager=stager,
        extractor=extractor,
        generator=ScriptGenerator(chat_client),
        repository=repository,
    )


@pytest.fixture
def pdf_factory() -> Callable[..., UploadCandidate]:
    def _factory(
        pages: Optional[List[str]] = None,
        filename: str = "report.pdf",
        content_type: str = "application/pdf",
    ) -> UploadCandidate:
        data = make_pdf(pages or ["A short report about quarterly growth."])
        return UploadCandidate.from_bytes(data, content_type=content_type, filename=filename)

    return _factory


@pytest.fixture
def client(settings: Settings, pipeline: ScriptPipeline) -> Generator[TestClient, None, None]:
    app = create_app(settings, pipeline=pipeline)
    with TestClient(app) as test_client:
        yield test_client
