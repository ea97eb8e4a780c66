"""Tests for replace-by-document storage of extracted records."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import DatabaseError
from app.database.models import ExtractedInvoice, ExtractedMinutes
from app.models.document_models import DocumentType
from app.repositories.extracted_fields_repository import ExtractedFieldsRepository, _column_value


@pytest.fixture
def session():
    session = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def repository(session):
    return ExtractedFieldsRepository(session)


class TestReplace:
    @pytest.mark.asyncio
    async def test_deletes_earlier_record_then_inserts(self, repository, session):
        document_id, organization_id = uuid4(), uuid4()

        row = await repository.replace(
            DocumentType.ACTA,
            document_id,
            organization_id,
            {
                "president_in": "Juan García",
                "document_date": "2024-03-15",
                "agreements": ["Aprobar cuentas"],
                "confidence": 0.9,
                "id": "not-a-uuid",
            },
        )

        statement = session.execute.await_args.args[0]
        assert str(statement).startswith("DELETE FROM extracted_minutes")
        assert isinstance(row, ExtractedMinutes)
        session.add.assert_called_once_with(row)
        session.commit.assert_awaited_once()
        assert row.document_id == document_id
        assert row.organization_id == organization_id
        assert row.president_in == "Juan García"
        assert row.document_date == date(2024, 3, 15)
        assert row.agreements == ["Aprobar cuentas"]
        assert row.id is None

    @pytest.mark.asyncio
    async def test_date_columns_are_coerced(self, repository):
        row = await repository.replace(
            DocumentType.FACTURA,
            uuid4(),
            uuid4(),
            {"invoice_number": "F-1", "issue_date": "15/03/2024", "due_date": "2024-04-01T00:00:00Z"},
        )

        assert isinstance(row, ExtractedInvoice)
        assert row.issue_date is None
        assert row.due_date == date(2024, 4, 1)
        assert row.invoice_number == "F-1"

    @pytest.mark.asyncio
    async def test_types_without_table_store_nothing(self, repository, session):
        assert await repository.replace(DocumentType.PRESUPUESTO, uuid4(), uuid4(), {"total": 10}) is None

        session.execute.assert_not_called()
        session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_database_error_rolls_back(self, repository, session):
        session.execute.side_effect = OperationalError("DELETE", {}, Exception("connection lost"))

        with pytest.raises(DatabaseError):
            await repository.replace(DocumentType.ACTA, uuid4(), uuid4(), {"summary": "Resumen"})

        session.rollback.assert_awaited_once()
        session.commit.assert_not_called()


class TestColumnValue:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2024-03-15", date(2024, 3, 15)),
            (" 2024-03-15 ", date(2024, 3, 15)),
            ("2024-03-15T09:30:00+01:00", date(2024, 3, 15)),
            ("15 de marzo de 2024", None),
            ("", None),
        ],
    )
    def test_date_column(self, value, expected):
        assert _column_value(ExtractedMinutes, "document_date", value) == expected

    def test_non_date_columns_pass_through(self):
        assert _column_value(ExtractedMinutes, "meeting_type", "2024-03-15") == "2024-03-15"
        assert _column_value(ExtractedInvoice, "total_amount", 121.0) == 121.0
