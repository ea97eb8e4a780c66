"""Tests for the stage status transition table."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from app.core.exceptions import InvalidStatusTransition
from app.database.models import Document
from app.models.pipeline_models import PipelineStage, StageStatus, can_transition
from app.repositories.document_repository import DocumentRepository


class TestCanTransition:
    @pytest.mark.parametrize(
        "current,target",
        [
            (StageStatus.PENDING, StageStatus.RUNNING),
            (StageStatus.RUNNING, StageStatus.COMPLETED),
            (StageStatus.RUNNING, StageStatus.FAILED),
        ],
    )
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (StageStatus.PENDING, StageStatus.COMPLETED),
            (StageStatus.COMPLETED, StageStatus.RUNNING),
            (StageStatus.FAILED, StageStatus.RUNNING),
            (StageStatus.COMPLETED, StageStatus.PENDING),
        ],
    )
    def test_rejected(self, current, target):
        assert not can_transition(current, target)

    def test_reset_only_targets_pending(self):
        assert can_transition(StageStatus.COMPLETED, StageStatus.PENDING, reset=True)
        assert can_transition(StageStatus.FAILED, StageStatus.PENDING, reset=True)
        assert not can_transition(StageStatus.FAILED, StageStatus.RUNNING, reset=True)


class TestPipelineStage:
    def test_levels_follow_order(self):
        assert [stage.level for stage in PipelineStage] == [1, 2, 3, 4]

    def test_up_to(self):
        assert PipelineStage.up_to(2) == [PipelineStage.EXTRACTION, PipelineStage.CLASSIFICATION]

    def test_status_column(self):
        assert PipelineStage.METADATA.status_column == "metadata_status"


class TestDocumentRepositoryStatusWrites:
    @pytest.fixture
    def session(self):
        return AsyncMock()

    @pytest.fixture
    def document(self):
        return Document(
            id=uuid4(),
            organization_id=uuid4(),
            filename="factura.pdf",
            file_path="a/b/factura.pdf",
            extraction_status="completed",
            classification_status="pending",
            metadata_status="pending",
            chunking_status="pending",
        )

    @pytest.mark.asyncio
    async def test_invalid_write_is_rejected(self, session, document):
        repository = DocumentRepository(session)

        with pytest.raises(InvalidStatusTransition):
            await repository.set_stage_status(document, PipelineStage.EXTRACTION, StageStatus.RUNNING)

        assert document.extraction_status == "completed"
        session.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_records_error_and_payload(self, session, document):
        repository = DocumentRepository(session)
        document.classification_status = "running"

        await repository.set_stage_status(
            document, PipelineStage.CLASSIFICATION, StageStatus.FAILED, error="timeout"
        )

        assert document.classification_status == "failed"
        assert document.last_error == "timeout"
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reset_stages(self, session, document):
        repository = DocumentRepository(session)
        document.classification_status = "failed"
        document.last_error = "timeout"

        await repository.reset_stages(document, [PipelineStage.CLASSIFICATION])

        assert document.classification_status == "pending"
        assert document.extraction_status == "completed"
        assert document.last_error is None
