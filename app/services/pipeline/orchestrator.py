"""Progressive document pipeline.

Stages run in a fixed order up to the requested level:
extraction (1), classification (2), metadata (3), chunking (4). Each stage
status is persisted on the document row through the validated transition
table. A stage failure is recorded on the row, halts the downstream stages
and is reported in the returned ``PipelineRunResult``; it is never raised.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ParseFailed, PipelineError, ProcessingInProgress, ValidationError
from app.database.models import Document
from app.models.document_models import ClassificationMethod, DocumentType
from app.models.pipeline_models import (
    MAX_LEVEL,
    MIN_LEVEL,
    PipelineRunResult,
    PipelineStage,
    StageOutcome,
    StageStatus,
)
from app.repositories.chunk_repository import ChunkRepository
from app.repositories.document_repository import DocumentRepository
from app.repositories.extracted_fields_repository import ExtractedFieldsRepository
from app.services.chunking import Chunker, TokenCounter
from app.services.classification import DocumentClassifier
from app.services.extraction import TextExtractionAdapter
from app.services.metadata import FieldExtractor
from app.services.metadata.validators import extract_basic_metadata
from app.services.pipeline.metrics import CostModel, StageTimer
from app.services.storage_service import StorageService
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Rough size of a classifier answer, used when the client reports no usage
CLASSIFIER_OUTPUT_TOKENS = 60

# Longest slice of an unparseable AI response kept on a failed stage
RAW_RESPONSE_LIMIT = 2000


@dataclass
class StageWork:
    """Columns a stage writes on success, plus its token usage."""

    payload: Dict[str, Any] = field(default_factory=dict)
    input_tokens: int = 0
    output_tokens: int = 0


class PipelineOrchestrator:
    """Runs and reruns the document pipeline for one database session."""

    def __init__(
        self,
        session: AsyncSession,
        storage: StorageService,
        extractor: TextExtractionAdapter,
        classifier: DocumentClassifier,
        field_extractor: FieldExtractor,
        chunker: Chunker,
        cost_model: Optional[CostModel] = None,
    ):
        self.documents = DocumentRepository(session)
        self.chunks = ChunkRepository(session)
        self.records = ExtractedFieldsRepository(session)
        self.storage = storage
        self.extractor = extractor
        self.classifier = classifier
        self.field_extractor = field_extractor
        self.chunker = chunker
        self.cost_model = cost_model or CostModel()
        self.counter = TokenCounter()

        self._handlers: Dict[PipelineStage, Callable[[Document, bool], Awaitable[StageWork]]] = {
            PipelineStage.EXTRACTION: self._run_extraction,
            PipelineStage.CLASSIFICATION: self._run_classification,
            PipelineStage.METADATA: self._run_metadata,
            PipelineStage.CHUNKING: self._run_chunking,
        }

    @staticmethod
    def _check_level(level: int) -> None:
        if not MIN_LEVEL <= level <= MAX_LEVEL:
            raise ValidationError(f"Processing level must be between {MIN_LEVEL} and {MAX_LEVEL}, got {level}")

    async def process(self, document_id: UUID, level: int, use_ai: bool = True) -> PipelineRunResult:
        """Run stages up to ``level``, skipping stages already completed.

        Args:
            document_id: Document to process
            level: Processing level (1-4)
            use_ai: Whether the classifier may call the AI model

        Returns:
            PipelineRunResult describing every stage of this run

        Raises:
            NotFound: If the document does not exist
            ValidationError: If the level is out of range
        """
        self._check_level(level)
        document = await self.documents.get_or_raise(document_id)
        return await self._run(document, level, use_ai)

    async def reprocess(
        self,
        document_id: UUID,
        level: int,
        use_ai: bool = True,
        force: bool = False,
    ) -> PipelineRunResult:
        """Reset stages up to ``level`` to pending and run them again.

        Stages above ``level`` keep their status and payload.

        Raises:
            NotFound: If the document does not exist
            ValidationError: If the level is out of range
            ProcessingInProgress: If a stage in range is running and force is False
        """
        self._check_level(level)
        document = await self.documents.get_or_raise(document_id)
        stages = PipelineStage.up_to(level)

        running = [
            stage.value
            for stage in stages
            if self.documents.get_stage_status(document, stage) == StageStatus.RUNNING
        ]
        if running and not force:
            raise ProcessingInProgress(
                f"Document {document_id} has running stages: {', '.join(running)}"
            )

        await self.documents.reset_stages(document, stages)
        LOGGER.info(
            f"Reset {len(stages)} stages of document {document_id} for reprocessing",
            extra={"document_id": str(document_id), "level": level},
        )
        return await self._run(document, level, use_ai)

    async def _run(self, document: Document, level: int, use_ai: bool) -> PipelineRunResult:
        document_id = document.id
        result = PipelineRunResult(document_id=document_id, level=level, success=True)

        for stage in PipelineStage.up_to(level):
            outcome, halted = await self._run_stage(document, stage, use_ai)
            result.stages.append(outcome)
            if outcome.status == StageStatus.COMPLETED and not outcome.skipped:
                result.completed_steps += 1
            if halted:
                result.success = False
                result.failed_stage = stage
                result.error = outcome.error
                if outcome.status == StageStatus.FAILED and not outcome.skipped:
                    result.failed_steps += 1
                break

        result.total_elapsed_ms = sum(stage.metrics.elapsed_ms for stage in result.stages)
        result.total_tokens = sum(
            stage.metrics.input_tokens + stage.metrics.output_tokens for stage in result.stages
        )
        result.estimated_cost_usd = round(sum(stage.metrics.estimated_cost_usd for stage in result.stages), 6)

        document.processing_level = max(document.processing_level or MIN_LEVEL, level)
        await self.documents.update(
            document_id,
            processing_level=document.processing_level,
            last_run_metrics=result.model_dump(mode="json"),
        )

        LOGGER.info(
            f"Pipeline run for {document_id} finished",
            extra={
                "document_id": str(document_id),
                "level": level,
                "success": result.success,
                "completed_steps": result.completed_steps,
                "failed_steps": result.failed_steps,
                "elapsed_ms": result.total_elapsed_ms,
            },
        )
        return result

    async def _run_stage(
        self, document: Document, stage: PipelineStage, use_ai: bool
    ) -> Tuple[StageOutcome, bool]:
        """Run one stage; returns its outcome and whether the run must halt."""
        status = self.documents.get_stage_status(document, stage)

        if status == StageStatus.COMPLETED:
            return StageOutcome(stage=stage, status=status, skipped=True), False
        if status == StageStatus.FAILED:
            return StageOutcome(
                stage=stage,
                status=status,
                skipped=True,
                error=f"{stage.value} failed in an earlier run; reprocess the document",
            ), True
        if status == StageStatus.RUNNING:
            return StageOutcome(
                stage=stage,
                status=status,
                skipped=True,
                error=f"{stage.value} is already running",
            ), True

        await self.documents.set_stage_status(document, stage, StageStatus.RUNNING)
        document_id = document.id
        timer = StageTimer(self.cost_model)

        try:
            work = await self._handlers[stage](document, use_ai)
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            LOGGER.error(
                f"Stage {stage.value} failed for document {document_id}: {e}",
                exc_info=True,
                extra={"document_id": str(document_id), "stage": stage.value},
            )
            outcome = StageOutcome(stage=stage, status=StageStatus.FAILED, error=error)
            failure_payload: Dict[str, Any] = {}
            if isinstance(e, ParseFailed):
                outcome.metrics = timer.finish(e.input_tokens, e.output_tokens)
                outcome.raw_response = (e.raw_response or "")[:RAW_RESPONSE_LIMIT]
                failure_payload["processing_config"] = {
                    "method": "ai",
                    "parse_errors": e.errors,
                    "raw_response": outcome.raw_response,
                }
            else:
                outcome.metrics = timer.finish()

            # The handler may have left the session rolled back with the row expired
            await self.documents.reload(document)
            await self.documents.set_stage_status(
                document, stage, StageStatus.FAILED, error=error, **failure_payload
            )
            return outcome, True

        metrics = timer.finish(work.input_tokens, work.output_tokens)
        await self.documents.set_stage_status(document, stage, StageStatus.COMPLETED, **work.payload)
        return StageOutcome(stage=stage, status=StageStatus.COMPLETED, metrics=metrics), False

    @staticmethod
    def _require_text(document: Document) -> str:
        if not document.extracted_text:
            raise PipelineError(f"Document {document.id} has no extracted text")
        return document.extracted_text

    async def _run_extraction(self, document: Document, use_ai: bool) -> StageWork:
        data = await self.storage.download(document.file_path)
        extraction = await self.extractor.extract(data)
        return StageWork(
            payload={
                "extracted_text": extraction.text,
                "page_count": extraction.page_count,
                "extraction_method": extraction.method.value,
                "text_length": extraction.char_count,
            }
        )

    async def _run_classification(self, document: Document, use_ai: bool) -> StageWork:
        text = self._require_text(document)
        classification = await self.classifier.classify(document.filename, text, use_ai=use_ai)

        work = StageWork(
            payload={
                "document_type": classification.type.value,
                "classification": classification.model_dump(mode="json"),
            }
        )
        ai_classifier = self.classifier.ai_classifier
        if classification.method == ClassificationMethod.AI and ai_classifier is not None:
            work.input_tokens = self.counter.count_tokens(ai_classifier.build_prompt(document.filename, text))
            work.output_tokens = CLASSIFIER_OUTPUT_TOKENS
        return work

    async def _run_metadata(self, document: Document, use_ai: bool) -> StageWork:
        text = self._require_text(document)
        document_type = DocumentType(document.document_type or DocumentType.UNCLASSIFIED.value)

        if document_type == DocumentType.UNCLASSIFIED:
            fields = extract_basic_metadata(text)
            return StageWork(
                payload={"processing_config": {"document_type": document_type.value, "method": "regex", "fields": fields}}
            )

        extraction = await self.field_extractor.run(document_type, text)
        await self.records.replace(document_type, document.id, document.organization_id, extraction.fields)
        return StageWork(
            payload={
                "processing_config": {
                    "document_type": document_type.value,
                    "method": "ai",
                    "template": extraction.template_name,
                    "template_version": extraction.template_version,
                    "fields": extraction.fields,
                }
            },
            input_tokens=extraction.input_tokens,
            output_tokens=extraction.output_tokens,
        )

    async def _run_chunking(self, document: Document, use_ai: bool) -> StageWork:
        text = self._require_text(document)
        chunks = self.chunker.chunk(text)
        stored = await self.chunks.replace_chunks(document.id, chunks)
        return StageWork(payload={"chunks_count": stored})
