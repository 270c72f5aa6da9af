"""End-to-end orchestration of one PDF-to-script request.

A run moves through ``RECEIVED → VALIDATED → STAGED → EXTRACTED → PROMPTED →
GENERATED → PERSISTED → DONE``. Each stage consumes the previous stage's
output. The first failure ends the run in ``FAILED``: the originating
exception is re-raised as-is, tagged with the stage it came from, and nothing
is written to the repository.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from scriptforge.errors import InvalidParameter, ScriptForgeError
from scriptforge.ingestion.extract_pdf import PdfTextExtractor
from scriptforge.ingestion.staging import CloudinaryStager
from scriptforge.ingestion.validation import UploadValidator
from scriptforge.llm.script_generator import ScriptGenerator
from scriptforge.models.document import UploadCandidate
from scriptforge.models.script import DEFAULT_LENGTH_MINUTES, DEFAULT_TONE, GenerationRequest, Script, ScriptStyle
from scriptforge.storage.repository import ScriptRepository

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    STAGED = "staged"
    EXTRACTED = "extracted"
    PROMPTED = "prompted"
    GENERATED = "generated"
    PERSISTED = "persisted"
    DONE = "done"
    FAILED = "failed"


# Name of the work performed on the way into each state.
STAGE_LABELS = {
    PipelineStage.VALIDATED: "validation",
    PipelineStage.STAGED: "staging",
    PipelineStage.EXTRACTED: "extraction",
    PipelineStage.PROMPTED: "prompt",
    PipelineStage.GENERATED: "generation",
    PipelineStage.PERSISTED: "persistence",
}


class PipelineRun:
    """Tracks the state of a single execution."""

    def __init__(self) -> None:
        self.state = PipelineStage.RECEIVED
        self.history: List[PipelineStage] = [PipelineStage.RECEIVED]
        self.failed_stage: Optional[PipelineStage] = None

    def advance(self, state: PipelineStage) -> None:
        logger.debug("Pipeline %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def fail(self, stage: PipelineStage) -> None:
        self.failed_stage = stage
        self.advance(PipelineStage.FAILED)


def parse_style(tone: Optional[str], length: object) -> ScriptStyle:
    try:
        return ScriptStyle(tone=tone, target_length_minutes=length)
    except PydanticValidationError as exc:
        raise InvalidParameter("Invalid length. Provide a positive whole number of minutes.") from exc


class ScriptPipeline:
    """Composes validation, staging, extraction, generation and persistence."""

    def __init__(
        self,
        validator: UploadValidator,
        stager: CloudinaryStager,
        extractor: PdfTextExtractor,
        generator: ScriptGenerator,
        repository: ScriptRepository,
    ) -> None:
        self.validator = validator
        self.stager = stager
        self.extractor = extractor
        self.generator = generator
        self.repository = repository

    def run(
        self,
        candidate: Optional[UploadCandidate],
        tone: Optional[str] = DEFAULT_TONE,
        length: object = DEFAULT_LENGTH_MINUTES,
        run: Optional[PipelineRun] = None,
    ) -> Script:
        run = run or PipelineRun()
        # The stage whose work is in flight; becomes failed_stage on error.
        current = PipelineStage.VALIDATED
        try:
            self.validator.validate(candidate)
            style = parse_style(tone, length)
            run.advance(PipelineStage.VALIDATED)

            current = PipelineStage.STAGED
            staged = self.stager.stage(candidate)
            run.advance(PipelineStage.STAGED)

            current = PipelineStage.EXTRACTED
            extracted = self.extractor.extract(staged.locator)
            run.advance(PipelineStage.EXTRACTED)

            current = PipelineStage.PROMPTED
            request = GenerationRequest(
                extracted_text=extracted.text,
                tone=style.tone,
                target_length_minutes=style.target_length_minutes,
            )
            prompt = self.generator.render(request)
            run.advance(PipelineStage.PROMPTED)

            current = PipelineStage.GENERATED
            result = self.generator.generate(prompt)
            run.advance(PipelineStage.GENERATED)

            current = PipelineStage.PERSISTED
            script = self.repository.create(staged.locator, result.content)
            run.advance(PipelineStage.PERSISTED)
        except ScriptForgeError as exc:
            exc.stage = STAGE_LABELS[current]
            run.fail(current)
            logger.warning("Pipeline failed during %s: %s", STAGE_LABELS[current], exc)
            raise
        except Exception:
            run.fail(current)
            logger.exception("Pipeline failed unexpectedly during %s", STAGE_LABELS[current])
            raise

        run.advance(PipelineStage.DONE)
        logger.info(
            "Generated script %s from %s (%s pages, %s characters)",
            script.id,
            staged.locator,
            extracted.page_count,
            len(script.content),
        )
        return script
