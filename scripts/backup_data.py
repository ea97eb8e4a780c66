#!/usr/bin/env python3
"""Back up communities, user roles and incidents.

Writes a JSON dump and an SQL restore script:
- database-backups/backup-YYYY-MM-DD.json
- database-backups/restore-YYYY-MM-DD.sql

Usage:
    python scripts/backup_data.py [--output-dir DIR]
"""

import argparse
import asyncio
import sys
from pathlib import Path

from app.core.config import settings
from app.core.database import DatabaseClient
from app.services.backup_service import BackupService
from app.utils.logging import get_logger

LOGGER = get_logger("scripts.backup_data")


async def run(output_dir: Path) -> int:
    db_client = DatabaseClient.from_settings(settings.db)
    try:
        result = await BackupService(db_client).backup(output_dir)
    finally:
        await db_client.disconnect()

    print(f"JSON: {result.json_file}")
    print(f"SQL: {result.sql_file}")
    print(f"Records: {result.total_records} {result.counts}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Back up community data")
    parser.add_argument("--output-dir", default="./database-backups", help="Directory for the backup files")
    args = parser.parse_args()

    try:
        sys.exit(asyncio.run(run(Path(args.output_dir))))
    except Exception as e:
        LOGGER.error(f"Backup failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
