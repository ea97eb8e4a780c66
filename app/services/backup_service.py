"""JSON and SQL dumps of the community data tables."""

import asyncio
import json
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Type
from uuid import UUID

from sqlalchemy import select

from app.core.database import Base, DatabaseClient
from app.database.models import Community, Incident, UserRole
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

BACKUP_MODELS: Sequence[Type[Base]] = (Community, UserRole, Incident)


def sql_literal(value: Any) -> str:
    """Render a value as a PostgreSQL literal, doubling single quotes.

    >>> sql_literal("O'Donnell")
    "'O''Donnell'"
    >>> sql_literal(None)
    'NULL'
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        text = value.isoformat()
    elif isinstance(value, (dict, list)):
        text = json.dumps(value, ensure_ascii=False)
    else:
        text = str(value)
    return "'" + text.replace("'", "''") + "'"


def insert_statement(table: str, row: Dict[str, Any]) -> str:
    columns = ", ".join(row)
    values = ", ".join(sql_literal(value) for value in row.values())
    return f"INSERT INTO {table} ({columns}) VALUES ({values});"


def build_restore_sql(tables: Dict[str, List[Dict[str, Any]]], created_at: str) -> str:
    """Restore script with one INSERT per row, grouped by table."""
    lines = [f"-- Community Hub restore script - {created_at}", ""]
    for table, rows in tables.items():
        if not rows:
            continue
        lines.append(f"-- {table} ({len(rows)} records)")
        lines.extend(insert_statement(table, row) for row in rows)
        lines.append("")
    return "\n".join(lines) + "\n"


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    raise TypeError(f"Cannot serialize {type(value).__name__}")


@dataclass
class BackupResult:
    json_file: Path
    sql_file: Path
    counts: Dict[str, int]

    @property
    def total_records(self) -> int:
        return sum(self.counts.values())


class BackupService:
    def __init__(self, db_client: DatabaseClient):
        self.db = db_client

    async def _read_table(self, model: Type[Base]) -> List[Dict[str, Any]]:
        columns = list(model.__table__.columns.keys())
        async with self.db.session() as session:
            result = await session.execute(select(model))
            return [{column: getattr(row, column) for column in columns} for row in result.scalars().all()]

    async def backup(self, output_dir: Path, today: Optional[date] = None) -> BackupResult:
        """Write ``backup-YYYY-MM-DD.json`` and ``restore-YYYY-MM-DD.sql``.

        The tables are read concurrently, each in its own session.
        """
        today = today or date.today()
        output_dir.mkdir(parents=True, exist_ok=True)

        results = await asyncio.gather(*(self._read_table(model) for model in BACKUP_MODELS))
        tables = {model.__tablename__: rows for model, rows in zip(BACKUP_MODELS, results)}
        created_at = datetime.now(timezone.utc).isoformat()

        json_file = output_dir / f"backup-{today.isoformat()}.json"
        json_file.write_text(
            json.dumps({"timestamp": created_at, "project": "Community Hub", **tables}, indent=2, default=_json_default),
            encoding="utf-8",
        )
        sql_file = output_dir / f"restore-{today.isoformat()}.sql"
        sql_file.write_text(build_restore_sql(tables, created_at), encoding="utf-8")

        counts = {table: len(rows) for table, rows in tables.items()}
        LOGGER.info(f"Backup written to {output_dir}", extra={"counts": counts})
        return BackupResult(json_file=json_file, sql_file=sql_file, counts=counts)
