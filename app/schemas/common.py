"""Response envelope shared by every API route."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ResponseMeta(BaseModel):
    timestamp: datetime = Field(..., description="Response creation time (UTC)")
    request_id: str = Field(..., description="Correlation ID of the request")
    api_version: str = Field(default="v1", description="API version")


class ApiResponse(BaseModel):
    status: bool = Field(..., description="Whether the operation succeeded")
    message: str = Field(..., description="Human readable summary")
    data: Dict[str, Any] = Field(default_factory=dict, description="Response payload")
    meta: ResponseMeta


class ErrorDetail(BaseModel):
    """Problem details (RFC 7807)."""

    title: str
    status: int
    detail: str
    instance: Optional[str] = None
    request_id: Optional[str] = None
    timestamp: datetime
