"""Maintenance of stored prompt templates."""

from dataclasses import dataclass, field
from typing import Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.repositories.prompt_repository import PromptRepository
from app.services.metadata.templates import DEFAULT_TEMPLATES, build_default_template
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

EXTRACTION_CATEGORY = "extraction"


@dataclass
class DeduplicationReport:
    kept: Dict[str, int] = field(default_factory=dict)
    deactivated: Dict[str, List[int]] = field(default_factory=dict)

    @property
    def deactivated_count(self) -> int:
        return sum(len(versions) for versions in self.deactivated.values())


class PromptTemplateService:
    def __init__(self, db_session: AsyncSession):
        self.session = db_session
        self.repository = PromptRepository(db_session)

    async def deduplicate_active(self, dry_run: bool = False) -> DeduplicationReport:
        """Keep the newest active template per name and deactivate the others.

        Args:
            dry_run: Report what would change without writing

        Returns:
            Versions kept and deactivated, per template name
        """
        report = DeduplicationReport()
        duplicates = await self.repository.find_active_duplicates()

        for name, rows in duplicates.items():
            newest, *older = rows
            report.kept[name] = newest.version
            report.deactivated[name] = [row.version for row in older]
            if not dry_run:
                for row in older:
                    row.is_active = False

        if duplicates and not dry_run:
            try:
                await self.session.commit()
            except SQLAlchemyError as e:
                await self.session.rollback()
                LOGGER.error(f"Failed to deactivate duplicate templates: {e}", exc_info=True)
                raise

        LOGGER.info(
            f"{'Would deactivate' if dry_run else 'Deactivated'} {report.deactivated_count} duplicate templates",
            extra={"names": sorted(report.kept)},
        )
        return report

    async def seed_defaults(self) -> List[str]:
        """Publish each default extractor template whose active text differs.

        Returns:
            Names of the templates that got a new version
        """
        published = []
        for name, spec in DEFAULT_TEMPLATES.items():
            text = build_default_template(name)
            active = await self.repository.get_active(name)
            if active is not None and active.template == text:
                continue
            await self.repository.publish(
                name,
                text,
                variables=["document_text"],
                category=EXTRACTION_CATEGORY,
                document_type=spec["document_type"],
            )
            published.append(name)

        LOGGER.info(f"Seeded {len(published)} prompt templates", extra={"published": published})
        return published
