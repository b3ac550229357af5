"""Tracking document API endpoints."""

from typing import Callable, TypeVar

from fastapi import APIRouter, Depends, Path, Query, Response, status

from ..core.exceptions import FollowupError
from ..repositories.dependencies import get_application_service, get_repository_container
from ..repositories.interfaces import RepositoryContainer
from ..services.application_service import OperationResult, TrackingApplicationService
from ..utils.logging_config import get_logger
from .middleware import ProblemDetailsException
from .schemas import (
    DocumentCreatedResponse,
    DocumentListResponse,
    DocumentResponse,
    DocumentWrite,
    HeaderResponse,
    LineStatusListResponse,
    LineStatusResponse,
    NextNumberResponse,
    OpenSourceOrderListResponse,
    OpenSourceOrderResponse,
    ProblemDetails,
    SourceOrderDocumentResponse,
)

logger = get_logger('api')

router = APIRouter(prefix="/v1/documents", tags=["documents"])
lookup_router = APIRouter(prefix="/v1", tags=["lookups"])

T = TypeVar("T")


def _unwrap(result: OperationResult):
    if not result.ok:
        raise ProblemDetailsException.from_error(result.error_kind, result.error)
    return result.value


def _query(action: Callable[[], T]) -> T:
    try:
        return action()
    except FollowupError as e:
        raise ProblemDetailsException.from_error(e.kind, str(e)) from e


@router.get(
    "",
    response_model=DocumentListResponse,
    responses={200: {"description": "Headers of the counterparty, newest first"}},
)
def list_documents(
    counterparty_code: str = Query(..., min_length=1, description="Counterparty code"),
    container: RepositoryContainer = Depends(get_repository_container),
) -> DocumentListResponse:
    """List the tracking documents of a counterparty."""
    headers = _query(lambda: container.queries.find_by_counterparty(counterparty_code))
    return DocumentListResponse(
        documents=[HeaderResponse.model_validate(header) for header in headers]
    )


@router.get("/next-number", response_model=NextNumberResponse)
def next_number(
    container: RepositoryContainer = Depends(get_repository_container),
) -> NextNumberResponse:
    """
    Preview the display number of the next document.

    The number is not reserved; the store assigns the final number when
    the document is created.
    """
    return NextNumberResponse(
        display_number=_query(container.numbering.next_display_number)
    )


@router.post(
    "",
    response_model=DocumentCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "Document created"},
        409: {"model": ProblemDetails, "description": "Source order already tracked"},
        422: {"model": ProblemDetails, "description": "Validation error"},
        503: {"model": ProblemDetails, "description": "Store failure"},
    },
)
def create_document(
    payload: DocumentWrite,
    service: TrackingApplicationService = Depends(get_application_service),
) -> DocumentCreatedResponse:
    """
    Create a tracking document.

    Lines with an empty description are dropped before validation.
    """
    document_id = _unwrap(service.try_add(payload.header.to_domain(), payload.domain_lines()))
    logger.info(f"Created tracking document {document_id} via API")
    return DocumentCreatedResponse(id=document_id)


@router.get(
    "/{document_id}",
    response_model=DocumentResponse,
    responses={404: {"model": ProblemDetails, "description": "Document not found"}},
)
def get_document(
    document_id: int = Path(..., gt=0),
    service: TrackingApplicationService = Depends(get_application_service),
) -> DocumentResponse:
    """Get a tracking document with its lines."""
    document = _unwrap(service.try_get(document_id))
    return DocumentResponse.model_validate(document)


@router.put(
    "/{document_id}",
    response_model=DocumentResponse,
    responses={
        404: {"model": ProblemDetails, "description": "Document not found"},
        409: {"model": ProblemDetails, "description": "Source order already tracked"},
        422: {"model": ProblemDetails, "description": "Validation error"},
    },
)
def update_document(
    payload: DocumentWrite,
    document_id: int = Path(..., gt=0),
    service: TrackingApplicationService = Depends(get_application_service),
) -> DocumentResponse:
    """
    Replace a tracking document.

    The header is overwritten and every existing line is replaced by the
    lines in the payload; line ids are reassigned.
    """
    _unwrap(service.try_update(payload.header.to_domain(document_id), payload.domain_lines()))
    return DocumentResponse.model_validate(_unwrap(service.try_get(document_id)))


@router.delete(
    "/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={404: {"model": ProblemDetails, "description": "Document not found"}},
)
def delete_document(
    document_id: int = Path(..., gt=0),
    service: TrackingApplicationService = Depends(get_application_service),
) -> Response:
    """Delete a tracking document and all of its lines."""
    _unwrap(service.try_delete(document_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@lookup_router.get(
    "/source-orders/{source_order_id}/document",
    response_model=SourceOrderDocumentResponse,
)
def document_for_source_order(
    source_order_id: int,
    container: RepositoryContainer = Depends(get_repository_container),
) -> SourceOrderDocumentResponse:
    """Get the id of the document following a source order (0 if none)."""
    return SourceOrderDocumentResponse(
        document_id=_query(lambda: container.queries.find_by_source_order(source_order_id))
    )


@lookup_router.get(
    "/counterparties/{counterparty_code}/open-orders",
    response_model=OpenSourceOrderListResponse,
)
def open_source_orders(
    counterparty_code: str,
    container: RepositoryContainer = Depends(get_repository_container),
) -> OpenSourceOrderListResponse:
    """List the open source orders of a counterparty, newest first."""
    orders = _query(lambda: container.queries.list_open_source_orders(counterparty_code))
    return OpenSourceOrderListResponse(
        orders=[OpenSourceOrderResponse.model_validate(order) for order in orders]
    )


@lookup_router.get("/line-statuses", response_model=LineStatusListResponse)
def line_statuses(
    container: RepositoryContainer = Depends(get_repository_container),
) -> LineStatusListResponse:
    """Get the line status catalogue."""
    statuses = container.queries.list_line_statuses()
    return LineStatusListResponse(
        statuses=[LineStatusResponse.model_validate(option) for option in statuses]
    )
