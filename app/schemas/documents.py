"""Request and response schemas for documents."""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.pipeline_models import MAX_LEVEL, MIN_LEVEL


class ProcessRequest(BaseModel):
    level: int = Field(default=MAX_LEVEL, ge=MIN_LEVEL, le=MAX_LEVEL, description="Processing level (1-4)")
    use_ai: bool = Field(default=True, description="Allow the AI classifier")


class ReprocessRequest(ProcessRequest):
    force: bool = Field(default=False, description="Reset stages even if one is running")


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: UUID
    community_id: Optional[UUID] = None
    filename: str
    file_size: Optional[int] = None
    file_hash: Optional[str] = None
    mime_type: Optional[str] = None
    processing_level: int
    extraction_status: str
    classification_status: str
    metadata_status: str
    chunking_status: str
    page_count: Optional[int] = None
    text_length: Optional[int] = None
    extraction_method: Optional[str] = None
    document_type: Optional[str] = None
    classification: Optional[Dict[str, Any]] = None
    processing_config: Optional[Dict[str, Any]] = None
    chunks_count: Optional[int] = None
    last_error: Optional[str] = None
    created_at: Optional[datetime] = None


class ChunkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    chunk_index: int
    content: str
    token_count: int
    start_char: int
    end_char: int
