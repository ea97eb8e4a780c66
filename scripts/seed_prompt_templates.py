#!/usr/bin/env python3
"""Publish the default extractor prompt templates.

A template is only published when its active text differs from the default.

Usage:
    python scripts/seed_prompt_templates.py
"""

import asyncio
import sys

from app.core.config import settings
from app.core.database import DatabaseClient, init_database
from app.services.prompt_template_service import PromptTemplateService
from app.utils.logging import get_logger

LOGGER = get_logger("scripts.seed_prompt_templates")


async def run() -> int:
    db_client = DatabaseClient.from_settings(settings.db)
    try:
        await init_database(db_client, create_tables=settings.db.auto_create_tables)
        async with db_client.session() as session:
            published = await PromptTemplateService(session).seed_defaults()
    finally:
        await db_client.disconnect()

    print(f"Published: {', '.join(published) if published else 'nothing, all templates up to date'}")
    return 0


def main() -> None:
    try:
        sys.exit(asyncio.run(run()))
    except Exception as e:
        LOGGER.error(f"Seeding failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
