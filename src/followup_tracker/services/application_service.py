"""
Application service for tracking documents.

Runs validation, delegates to the repository and turns every failure into
an ``OperationResult`` so callers never handle store exceptions directly.
"""

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from ..core.enums import ErrorKind
from ..core.exceptions import FollowupError
from ..domain.models import TrackingHeader, TrackingLine
from ..domain.validator import validate_document
from ..repositories.interfaces import TrackingDocumentRepository
from ..utils.logging_config import get_logger, log_exception

logger = get_logger('repository')


@dataclass(frozen=True)
class OperationResult:
    """Outcome of an application service call."""

    ok: bool
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    value: Any = None

    @classmethod
    def success(cls, value: Any = None) -> "OperationResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str, kind: ErrorKind) -> "OperationResult":
        return cls(ok=False, error=error, error_kind=kind)

    @classmethod
    def from_exception(cls, exc: FollowupError) -> "OperationResult":
        return cls.failure(str(exc), exc.kind)


def persistable_lines(lines: Optional[Iterable[TrackingLine]]) -> List[TrackingLine]:
    """Meaningful lines only, in line order, renumbered densely from 1.

    Lines sharing an order keep their submitted sequence.
    """
    meaningful = sorted(
        (line for line in (lines or []) if line is not None and line.is_meaningful),
        key=lambda line: line.order,
    )
    return [
        line.model_copy(update={"order": position})
        for position, line in enumerate(meaningful, start=1)
    ]


class TrackingApplicationService:
    """Validates and persists tracking documents."""

    def __init__(self, repository: TrackingDocumentRepository):
        self.repository = repository

    def _guard(self, operation: str, action, **context) -> OperationResult:
        try:
            return OperationResult.success(action())
        except FollowupError as e:
            logger.warning(f"{operation} failed: {e}")
            return OperationResult.from_exception(e)
        except Exception as e:
            log_exception('repository', e, {"operation": operation, **context})
            return OperationResult.failure(f"{operation} failed: {e}", ErrorKind.STORE)

    def try_add(
        self, header: TrackingHeader, lines: Optional[Iterable[TrackingLine]]
    ) -> OperationResult:
        """Validate and create a document. ``value`` is the new id on success."""
        lines = list(lines or [])
        validation = validate_document(header, lines)
        if not validation.ok:
            return OperationResult.failure(validation.error, ErrorKind.VALIDATION)

        lines = persistable_lines(lines)

        return self._guard(
            "add",
            lambda: self.repository.add(header, lines),
            counterparty_code=header.counterparty_code,
            source_order_id=header.source_order_id,
        )

    def try_update(
        self, header: TrackingHeader, lines: Optional[Iterable[TrackingLine]]
    ) -> OperationResult:
        """Validate and replace a persisted document."""
        if header is None or header.id <= 0:
            return OperationResult.failure(
                "The document has not been saved yet.", ErrorKind.NOT_FOUND
            )

        lines = list(lines or [])
        validation = validate_document(header, lines)
        if not validation.ok:
            return OperationResult.failure(validation.error, ErrorKind.VALIDATION)

        lines = persistable_lines(lines)
        return self._guard(
            "update",
            lambda: self.repository.update(header, lines),
            id=header.id,
        )

    def try_get(self, document_id: int) -> OperationResult:
        """Fetch a document. ``value`` is the ``TrackingDocument`` on success."""
        return self._guard("get", lambda: self.repository.get_by_id(document_id), id=document_id)

    def try_delete(self, document_id: int) -> OperationResult:
        """Delete a document and all of its lines."""
        return self._guard("delete", lambda: self.repository.delete(document_id), id=document_id)

