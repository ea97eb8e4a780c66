#!/usr/bin/env python3
"""Reprocess one document from the command line.

Resets the stages up to the level and runs them again, printing the run
result as JSON. Exits 1 when the run halts on a failed stage.

Usage:
    python scripts/reprocess_document.py <document_id> [--level N] [--force] [--no-ai]
"""

import argparse
import asyncio
import json
import sys
from uuid import UUID

from app.core.config import settings
from app.core.database import DatabaseClient
from app.dependencies import build_orchestrator
from app.models.pipeline_models import MAX_LEVEL, MIN_LEVEL
from app.utils.logging import get_logger

LOGGER = get_logger("scripts.reprocess_document")


async def run(document_id: UUID, level: int, force: bool, use_ai: bool) -> int:
    db_client = DatabaseClient.from_settings(settings.db)
    try:
        async with db_client.session() as session:
            orchestrator = build_orchestrator(session, settings)
            result = await orchestrator.reprocess(document_id, level, use_ai=use_ai, force=force)
    finally:
        await db_client.disconnect()

    print(json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False))
    return 0 if result.success else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Reprocess a document")
    parser.add_argument("document_id", type=UUID, help="Document ID")
    parser.add_argument(
        "--level", type=int, default=MAX_LEVEL, choices=range(MIN_LEVEL, MAX_LEVEL + 1), help="Processing level"
    )
    parser.add_argument("--force", action="store_true", help="Reset stages even if one is running")
    parser.add_argument("--no-ai", dest="use_ai", action="store_false", help="Disable the AI classifier")
    args = parser.parse_args()

    try:
        sys.exit(asyncio.run(run(args.document_id, args.level, args.force, args.use_ai)))
    except Exception as e:
        LOGGER.error(f"Reprocess failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
