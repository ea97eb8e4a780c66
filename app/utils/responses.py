from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import HTTPException, Request

from app.schemas.common import ApiResponse, ErrorDetail, ResponseMeta


def _request_id(request: Optional[Request]) -> str:
    if request is not None and hasattr(request.state, "request_id"):
        return request.state.request_id
    return str(uuid4())


def create_api_response(
    data: Any,
    message: str = "Operation successful",
    status: bool = True,
    request: Optional[Request] = None,
    api_version: str = "v1",
) -> Dict[str, Any]:
    """Create a standardized API response as a dictionary.

    Models are dumped, lists are wrapped as ``{"items": [...]}`` and scalars
    as ``{"value": ...}``.
    """
    meta = ResponseMeta(
        timestamp=datetime.now(timezone.utc),
        request_id=_request_id(request),
        api_version=api_version,
    )

    if isinstance(data, dict):
        data_dict: Dict[str, Any] = data
    elif hasattr(data, "model_dump"):
        data_dict = data.model_dump(mode="json")
    elif isinstance(data, list):
        data_dict = {"items": [item.model_dump(mode="json") if hasattr(item, "model_dump") else item for item in data]}
    elif data is None:
        data_dict = {}
    else:
        data_dict = {"value": data}

    response = ApiResponse(status=status, message=message, data=data_dict, meta=meta)
    return response.model_dump(mode="json")


def create_error_detail(
    title: str,
    status: int,
    detail: str,
    request: Optional[Request] = None,
    instance: Optional[str] = None,
) -> ErrorDetail:
    """Create a standardized error detail (RFC 7807)."""
    return ErrorDetail(
        title=title,
        status=status,
        detail=detail,
        instance=instance or (request.url.path if request else None),
        request_id=_request_id(request),
        timestamp=datetime.now(timezone.utc),
    )


def http_error(title: str, status: int, detail: str, request: Optional[Request] = None) -> HTTPException:
    """Build an HTTPException whose body carries an error detail."""
    error_detail = create_error_detail(title=title, status=status, detail=detail, request=request)
    return HTTPException(status_code=status, detail=error_detail.model_dump(mode="json"))
