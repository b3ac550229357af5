"""Problem Details (RFC 9457) error rendering for the HTTP API."""

from typing import Callable, Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..core.enums import ErrorKind
from ..utils.logging_config import log_exception

ERROR_KIND_STATUS = {
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INTEGRITY: status.HTTP_409_CONFLICT,
    ErrorKind.STORE: status.HTTP_503_SERVICE_UNAVAILABLE,
}

DEFAULT_TITLES = {
    400: "Bad Request",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


class ProblemDetailsException(HTTPException):
    """Enhanced HTTPException that includes RFC 9457 Problem Details."""

    def __init__(
        self,
        status_code: int,
        title: str,
        detail: Optional[str] = None,
        type_uri: Optional[str] = None,
        instance: Optional[str] = None,
        **extra_fields,
    ):
        super().__init__(status_code=status_code, detail=detail)
        self.title = title
        self.type_uri = type_uri or f"https://httpstatuses.com/{status_code}"
        self.instance = instance
        self.extra_fields = extra_fields

    @classmethod
    def from_error(cls, kind: Optional[ErrorKind], detail: Optional[str]) -> "ProblemDetailsException":
        """Build the exception for a failed service operation."""
        status_code = ERROR_KIND_STATUS.get(kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
        return cls(
            status_code=status_code,
            title=get_default_title(status_code),
            detail=detail,
            error_kind=kind.value if kind else None,
        )


def get_default_title(status_code: int) -> str:
    """Get default title for HTTP status codes."""
    return DEFAULT_TITLES.get(status_code, "HTTP Error")


def create_problem_response(
    status_code: int,
    title: str,
    detail: Optional[str] = None,
    type_uri: Optional[str] = None,
    instance: Optional[str] = None,
    **extra_fields,
) -> JSONResponse:
    """Create a JSON response in RFC 9457 Problem Details format."""
    problem = {
        "type": type_uri or f"https://httpstatuses.com/{status_code}",
        "title": title,
        "status": status_code,
    }

    if detail:
        problem["detail"] = detail
    if instance:
        problem["instance"] = instance

    problem.update({key: value for key, value in extra_fields.items() if value is not None})

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(problem),
        media_type="application/problem+json",
    )


async def problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    return create_problem_response(
        status_code=exc.status_code,
        title=exc.title,
        detail=exc.detail,
        type_uri=exc.type_uri,
        instance=exc.instance or str(request.url),
        **exc.extra_fields,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return create_problem_response(
        status_code=exc.status_code,
        title=get_default_title(exc.status_code),
        detail=exc.detail if isinstance(exc.detail, str) else None,
        instance=str(request.url),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return create_problem_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        title="Validation Error",
        detail="Request validation failed",
        instance=str(request.url),
        errors=exc.errors(),
    )


class ProblemDetailsMiddleware(BaseHTTPMiddleware):
    """Turns unexpected exceptions into a 500 Problem Details response."""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            log_exception('api', exc, {"method": request.method, "path": request.url.path})
            return create_problem_response(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                title="Internal Server Error",
                detail="An unexpected error occurred",
                instance=str(request.url),
            )


def register_problem_handlers(app: FastAPI) -> None:
    """Render every HTTP error raised by the routes as Problem Details."""
    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_middleware(ProblemDetailsMiddleware)
