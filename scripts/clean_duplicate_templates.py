#!/usr/bin/env python3
"""Deactivate duplicate active prompt templates.

For each template name with more than one active row, the newest version
stays active and the rest are deactivated.

Usage:
    python scripts/clean_duplicate_templates.py [--dry-run]
"""

import argparse
import asyncio
import sys

from app.core.config import settings
from app.core.database import DatabaseClient
from app.services.prompt_template_service import PromptTemplateService
from app.utils.logging import get_logger

LOGGER = get_logger("scripts.clean_duplicate_templates")


async def run(dry_run: bool) -> int:
    db_client = DatabaseClient.from_settings(settings.db)
    try:
        async with db_client.session() as session:
            report = await PromptTemplateService(session).deduplicate_active(dry_run=dry_run)
    finally:
        await db_client.disconnect()

    prefix = "[dry-run] would deactivate" if dry_run else "deactivated"
    for name, versions in report.deactivated.items():
        print(f"{name}: keep v{report.kept[name]}, {prefix} {versions}")
    if not report.deactivated:
        print("No duplicate active templates")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Deactivate duplicate active prompt templates")
    parser.add_argument("--dry-run", action="store_true", help="Print what would change, do not write")
    args = parser.parse_args()

    try:
        sys.exit(asyncio.run(run(args.dry_run)))
    except Exception as e:
        LOGGER.error(f"Cleanup failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
