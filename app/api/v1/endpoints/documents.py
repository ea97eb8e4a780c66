from typing import Annotated, Optional
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, Request, Response, UploadFile, status

from app.core.auth import get_current_user
from app.core.exceptions import NotFound, TransportError
from app.dependencies import get_document_service, get_orchestrator, get_permission_service
from app.models.pipeline_models import MAX_LEVEL, MIN_LEVEL
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.schemas.documents import ChunkResponse, DocumentResponse, ProcessRequest, ReprocessRequest
from app.services.document_service import DocumentService
from app.services.permission_service import PermissionService, Role
from app.services.pipeline import PipelineOrchestrator
from app.utils.logging import get_logger
from app.utils.responses import create_api_response, http_error

LOGGER = get_logger(__name__)

router = APIRouter()

ONE_YEAR_SECONDS = 31536000
# Left unescaped in download filenames, matching encodeURIComponent in browsers
FILENAME_SAFE_CHARS = "!*'()"


def download_headers(filename: str, file_hash: Optional[str], size: int, inline: bool) -> dict:
    """Response headers for a stored file."""
    content_type = "application/pdf" if filename.lower().endswith(".pdf") else "application/octet-stream"
    disposition = "inline" if inline else "attachment"
    headers = {
        "Content-Type": content_type,
        "Content-Disposition": f'{disposition}; filename="{quote(filename, safe=FILENAME_SAFE_CHARS)}"',
        "Content-Length": str(size),
        "Cache-Control": f"public, max-age={ONE_YEAR_SECONDS}",
    }
    if file_hash:
        headers["ETag"] = f'"{file_hash}"'
    return headers


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a document",
    operation_id="upload_document",
)
async def upload_document(
    request: Request,
    file: UploadFile = File(..., description="PDF document"),
    community_id: UUID = Form(...),
    level: int = Form(MAX_LEVEL, ge=MIN_LEVEL, le=MAX_LEVEL),
    use_ai: bool = Form(True),
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    document_service: Annotated[DocumentService, Depends(get_document_service)] = None,
    orchestrator: Annotated[PipelineOrchestrator, Depends(get_orchestrator)] = None,
) -> ApiResponse:
    """Upload a document and run the pipeline up to the requested level."""
    content = await file.read()
    document = await document_service.upload(
        current_user,
        community_id,
        file.filename or "document.pdf",
        content,
        content_type=file.content_type,
        level=level,
    )
    run = await orchestrator.process(document.id, level, use_ai=use_ai)

    return create_api_response(
        data={"document_id": str(document.id), "run": run.model_dump(mode="json")},
        message="Document uploaded" if run.success else "Document uploaded; processing halted",
        request=request,
    )


@router.get(
    "",
    response_model=ApiResponse,
    summary="List documents of a community",
    operation_id="list_documents",
)
async def list_documents(
    request: Request,
    community_id: UUID = Query(...),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    document_service: Annotated[DocumentService, Depends(get_document_service)] = None,
) -> ApiResponse:
    documents = await document_service.list_documents(current_user, community_id, limit=limit, offset=offset)
    return create_api_response(
        data={"total": len(documents), "items": [DocumentResponse.model_validate(d).model_dump(mode="json") for d in documents]},
        message="Documents retrieved successfully",
        request=request,
    )


@router.get(
    "/{document_id}",
    response_model=ApiResponse,
    summary="Get document by ID",
    operation_id="get_document",
)
async def get_document(
    request: Request,
    document_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    document_service: Annotated[DocumentService, Depends(get_document_service)] = None,
) -> ApiResponse:
    """Retrieve document metadata and stage statuses by ID."""
    document = await document_service.get_document(current_user, document_id)
    return create_api_response(
        data=DocumentResponse.model_validate(document),
        message="Document details retrieved successfully",
        request=request,
    )


@router.get(
    "/{document_id}/download",
    summary="Download document file",
    operation_id="download_document",
    response_class=Response,
)
async def download_document(
    request: Request,
    document_id: UUID,
    view: Optional[str] = Query(None, description="'inline' to display in the browser"),
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    document_service: Annotated[DocumentService, Depends(get_document_service)] = None,
) -> Response:
    try:
        document, content = await document_service.download(current_user, document_id)
    except NotFound as e:
        raise http_error("Document Not Found", status.HTTP_404_NOT_FOUND, e.message, request) from e
    except TransportError as e:
        LOGGER.error(f"Download of {document_id} failed: {e.message}", extra={"document_id": str(document_id)})
        raise http_error(
            "Download Failed", status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to download file", request
        ) from e

    headers = download_headers(document.filename, document.file_hash, len(content), view == "inline")
    return Response(content=content, media_type=headers.pop("Content-Type"), headers=headers)


@router.get(
    "/{document_id}/chunks",
    response_model=ApiResponse,
    summary="List document chunks",
    operation_id="list_document_chunks",
)
async def list_document_chunks(
    request: Request,
    document_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    document_service: Annotated[DocumentService, Depends(get_document_service)] = None,
) -> ApiResponse:
    chunks = await document_service.list_chunks(current_user, document_id)
    return create_api_response(
        data=[ChunkResponse.model_validate(chunk) for chunk in chunks],
        message="Chunks retrieved successfully",
        request=request,
    )


@router.post(
    "/{document_id}/process",
    response_model=ApiResponse,
    summary="Process document",
    operation_id="process_document",
)
async def process_document(
    request: Request,
    document_id: UUID,
    body: ProcessRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    document_service: Annotated[DocumentService, Depends(get_document_service)] = None,
    orchestrator: Annotated[PipelineOrchestrator, Depends(get_orchestrator)] = None,
) -> ApiResponse:
    """Run pending stages up to the level; completed stages are skipped."""
    await document_service.get_document(current_user, document_id)
    run = await orchestrator.process(document_id, body.level, use_ai=body.use_ai)
    return create_api_response(
        data=run,
        message="Processing completed" if run.success else "Processing halted",
        status=run.success,
        request=request,
    )


@router.post(
    "/{document_id}/reprocess",
    response_model=ApiResponse,
    summary="Reprocess document",
    operation_id="reprocess_document",
)
async def reprocess_document(
    request: Request,
    document_id: UUID,
    body: ReprocessRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    document_service: Annotated[DocumentService, Depends(get_document_service)] = None,
    permission_service: Annotated[PermissionService, Depends(get_permission_service)] = None,
    orchestrator: Annotated[PipelineOrchestrator, Depends(get_orchestrator)] = None,
) -> ApiResponse:
    """Reset stages up to the level and run them again."""
    document = await document_service.get_document(current_user, document_id)
    await permission_service.require_permission(current_user, Role.MANAGER, document.community_id)
    run = await orchestrator.reprocess(document_id, body.level, use_ai=body.use_ai, force=body.force)
    return create_api_response(
        data=run,
        message="Reprocessing completed" if run.success else "Reprocessing halted",
        status=run.success,
        request=request,
    )


@router.delete(
    "/{document_id}",
    response_model=ApiResponse,
    summary="Delete document",
    operation_id="delete_document",
)
async def delete_document(
    request: Request,
    document_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    document_service: Annotated[DocumentService, Depends(get_document_service)] = None,
) -> ApiResponse:
    """Delete the document file, row, chunks and extracted records."""
    await document_service.delete_document(current_user, document_id)
    return create_api_response(data=None, message="Document deleted successfully", request=request)
