"""Tests for backup rendering helpers."""

from datetime import datetime, timezone
from uuid import UUID

from app.services.backup_service import build_restore_sql, insert_statement, sql_literal


class TestSqlLiteral:
    def test_quotes_are_doubled(self):
        assert sql_literal("Calle O'Donnell") == "'Calle O''Donnell'"

    def test_scalars(self):
        assert sql_literal(None) == "NULL"
        assert sql_literal(True) == "TRUE"
        assert sql_literal(40) == "40"

    def test_datetimes_and_json(self):
        moment = datetime(2024, 3, 15, 10, 0, tzinfo=timezone.utc)
        assert sql_literal(moment) == "'2024-03-15T10:00:00+00:00'"
        assert sql_literal({"nota": "it's"}) == "'{\"nota\": \"it''s\"}'"

    def test_uuid(self):
        value = UUID("6f1c4c3e-8a5d-4d4e-9f53-0a3b2d5a7c11")
        assert sql_literal(value) == "'6f1c4c3e-8a5d-4d4e-9f53-0a3b2d5a7c11'"


def test_insert_statement():
    assert (
        insert_statement("communities", {"name": "Sol", "max_units": 10})
        == "INSERT INTO communities (name, max_units) VALUES ('Sol', 10);"
    )


def test_restore_sql_skips_empty_tables():
    sql = build_restore_sql(
        {"communities": [{"name": "Sol"}, {"name": "Luna"}], "incidents": []},
        created_at="2024-03-15T10:00:00",
    )

    assert sql.startswith("-- Community Hub restore script - 2024-03-15T10:00:00")
    assert "-- communities (2 records)" in sql
    assert "incidents" not in sql
    assert sql.count("INSERT INTO communities") == 2
