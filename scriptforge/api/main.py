"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from scriptforge.api.errors import install_error_handlers
from scriptforge.api.ratelimit import BlockingRateLimiter, RateLimitMiddleware
from scriptforge.config import Settings, get_settings
from scriptforge.ingestion.extract_pdf import PdfTextExtractor
from scriptforge.ingestion.staging import CloudinaryStager
from scriptforge.ingestion.validation import UploadValidator
from scriptforge.llm.openai_client import OpenAIChatClient
from scriptforge.llm.script_generator import ScriptGenerator
from scriptforge.logging_config import setup_logging
from scriptforge.models.api import ScriptResponse
from scriptforge.models.document import UploadCandidate
from scriptforge.pipeline import ScriptPipeline
from scriptforge.storage.database import create_db_engine, create_session_factory, init_db
from scriptforge.storage.repository import ScriptRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scripts", tags=["scripts"])


def get_pipeline(request: Request) -> ScriptPipeline:
    return request.app.state.pipeline


def get_repository(request: Request) -> ScriptRepository:
    return request.app.state.repository


@router.post("/generate-from-pdf", response_model=ScriptResponse)
def generate_from_pdf(
    pdf_file: Optional[UploadFile] = File(default=None, alias="pdfFile"),
    tone: Optional[str] = Form(default=None),
    length: Optional[str] = Form(default=None),
    pipeline: ScriptPipeline = Depends(get_pipeline),
) -> ScriptResponse:
    """Turn an uploaded PDF into a narration script and store it."""
    candidate = None
    if pdf_file is not None:
        # One byte past the ceiling is enough for the validator to reject it.
        candidate = UploadCandidate.from_bytes(
            pdf_file.file.read(pipeline.validator.max_bytes + 1),
            content_type=pdf_file.content_type,
            filename=pdf_file.filename,
        )
    script = pipeline.run(candidate, tone=tone, length=length)
    return ScriptResponse.from_script(script)


@router.get("", response_model=List[ScriptResponse])
def list_scripts(repository: ScriptRepository = Depends(get_repository)) -> List[ScriptResponse]:
    return [ScriptResponse.from_script(script) for script in repository.list()]


@router.get("/{script_id}", response_model=ScriptResponse)
def get_script(script_id: str, repository: ScriptRepository = Depends(get_repository)) -> ScriptResponse:
    return ScriptResponse.from_script(repository.get(script_id))


@router.delete("/{script_id}", response_model=ScriptResponse)
def delete_script(script_id: str, repository: ScriptRepository = Depends(get_repository)) -> ScriptResponse:
    return ScriptResponse.from_script(repository.delete(script_id))


def build_repository(settings: Settings) -> ScriptRepository:
    engine = create_db_engine(settings.database_url)
    init_db(engine)
    return ScriptRepository(create_session_factory(engine))


def build_pipeline(settings: Settings, repository: ScriptRepository) -> ScriptPipeline:
    """Wire the production collaborators from settings."""
    return ScriptPipeline(
        validator=UploadValidator(max_bytes=settings.max_upload_bytes),
        stager=CloudinaryStager.from_settings(settings),
        extractor=PdfTextExtractor(
            cloud_name=settings.cloudinary_name,
            resource_type=settings.cloudinary_resource_type,
            timeout=settings.fetch_timeout_seconds,
        ),
        generator=ScriptGenerator(
            OpenAIChatClient.from_settings(settings),
            max_source_tokens=settings.max_source_tokens,
            allow_tiktoken_fallback=settings.allow_tiktoken_fallback,
        ),
        repository=repository,
    )


def create_app(
    settings: Optional[Settings] = None,
    pipeline: Optional[ScriptPipeline] = None,
    repository: Optional[ScriptRepository] = None,
) -> FastAPI:
    """Build the application; fails fast when credentials are missing."""
    settings = settings or get_settings()
    setup_logging(settings)

    owns_pipeline = pipeline is None
    if owns_pipeline:
        settings.require_credentials()
    if repository is None:
        repository = pipeline.repository if pipeline is not None else build_repository(settings)
    if pipeline is None:
        pipeline = build_pipeline(settings, repository)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        if owns_pipeline:
            app.state.pipeline.extractor.close()
            logger.info("Closed document fetch client")

    app = FastAPI(
        title="scriptforge",
        description="Turns PDF documents into narrated voice-over scripts",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.pipeline = pipeline
    app.state.repository = repository

    app.add_middleware(
        RateLimitMiddleware,
        limiter=BlockingRateLimiter(
            points=settings.rate_limit_points,
            duration=settings.rate_limit_duration_seconds,
            block_duration=settings.rate_limit_block_seconds,
        ),
        trust_forwarded=settings.rate_limit_trust_forwarded,
    )
    install_error_handlers(app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.trusted_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> dict[str, str]:
        """Simple readiness probe."""
        return {"status": "ok"}

    app.include_router(router, prefix="/api")
    logger.info("scriptforge API ready (environment=%s)", settings.environment)
    return app


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "scriptforge.api.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
    )


if __name__ == "__main__":
    main()
