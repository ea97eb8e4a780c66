"""Centralized dependency injection for the FastAPI application.

Process-wide objects (database client, event bus, page cache, JWT verifier)
are created in the lifespan and read from ``app.state``; everything else is
built per request around the injected session.
"""

from typing import Annotated, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, settings
from app.core.database import get_async_session
from app.core.events import EventBus
from app.core.exceptions import ConfigurationError
from app.core.llm_client import GeminiClient
from app.core.page_cache import PageCache
from app.repositories.prompt_repository import PromptRepository
from app.services.auth_service import AuthService
from app.services.chunking import Chunker
from app.services.classification import AIClassifier, DocumentClassifier
from app.services.community_service import CommunityService
from app.services.document_service import DocumentService
from app.services.extraction import TextExtractionAdapter
from app.services.incident_service import IncidentService
from app.services.metadata import FieldExtractor
from app.services.permission_service import PermissionService
from app.services.pipeline import CostModel, PipelineOrchestrator
from app.services.storage_service import StorageService
from app.services.user_role_service import UserRoleService


def get_settings() -> Settings:
    return settings


def get_event_bus(request: Request) -> EventBus:
    bus = getattr(request.app.state, "event_bus", None)
    if bus is None:
        raise ConfigurationError("Event bus is not initialized")
    return bus


def get_page_cache(request: Request) -> Optional[PageCache]:
    return getattr(request.app.state, "page_cache", None)


def build_gemini_client(app_settings: Settings) -> Optional[GeminiClient]:
    """Pipeline client with a single attempt per call; None when no key is set."""
    if not app_settings.gemini_api_key:
        return None
    return GeminiClient(
        api_key=app_settings.gemini_api_key,
        model=app_settings.gemini_model,
        timeout=app_settings.http_timeout,
        max_retries=1,
    )


def build_orchestrator(session: AsyncSession, app_settings: Settings) -> PipelineOrchestrator:
    """Wire a pipeline orchestrator from settings; shared by the API and the scripts."""
    client = build_gemini_client(app_settings)
    pipeline = app_settings.pipeline
    return PipelineOrchestrator(
        session=session,
        storage=StorageService.from_settings(app_settings),
        extractor=TextExtractionAdapter.from_settings(app_settings),
        classifier=DocumentClassifier(
            AIClassifier(client, preview_chars=pipeline.classifier_text_preview_chars) if client else None
        ),
        field_extractor=FieldExtractor(PromptRepository(session), client),
        chunker=Chunker(
            max_tokens=pipeline.chunk_max_tokens,
            overlap_tokens=pipeline.chunk_overlap_tokens,
            min_chars=pipeline.chunk_min_chars,
        ),
        cost_model=CostModel(
            input_price_per_1k=app_settings.llm.input_price_per_1k,
            output_price_per_1k=app_settings.llm.output_price_per_1k,
        ),
    )


async def get_storage_service(
    app_settings: Annotated[Settings, Depends(get_settings)],
) -> StorageService:
    return StorageService.from_settings(app_settings)


async def get_permission_service(
    db_session: Annotated[AsyncSession, Depends(get_async_session)],
) -> PermissionService:
    return PermissionService(db_session)


async def get_document_service(
    db_session: Annotated[AsyncSession, Depends(get_async_session)],
    storage: Annotated[StorageService, Depends(get_storage_service)],
) -> DocumentService:
    return DocumentService(db_session, storage)


async def get_community_service(
    db_session: Annotated[AsyncSession, Depends(get_async_session)],
    bus: Annotated[EventBus, Depends(get_event_bus)],
    page_cache: Annotated[Optional[PageCache], Depends(get_page_cache)],
) -> CommunityService:
    return CommunityService(db_session, bus, page_cache)


async def get_incident_service(
    db_session: Annotated[AsyncSession, Depends(get_async_session)],
    bus: Annotated[EventBus, Depends(get_event_bus)],
) -> IncidentService:
    return IncidentService(db_session, bus)


async def get_user_role_service(
    db_session: Annotated[AsyncSession, Depends(get_async_session)],
    bus: Annotated[EventBus, Depends(get_event_bus)],
) -> UserRoleService:
    return UserRoleService(db_session, bus)


async def get_auth_service(
    bus: Annotated[EventBus, Depends(get_event_bus)],
    app_settings: Annotated[Settings, Depends(get_settings)],
) -> AuthService:
    return AuthService.from_settings(app_settings, bus)


async def get_orchestrator(
    db_session: Annotated[AsyncSession, Depends(get_async_session)],
    app_settings: Annotated[Settings, Depends(get_settings)],
) -> PipelineOrchestrator:
    return build_orchestrator(db_session, app_settings)
