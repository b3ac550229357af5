"""Exception hierarchy for tracking document operations."""

from typing import Any, Dict, Optional

from .enums import ErrorKind


class FollowupError(Exception):
    """Base exception for follow-up tracker failures."""

    kind: ErrorKind = ErrorKind.STORE


class TrackingValidationError(FollowupError):
    """User-fixable input problem detected before a write."""

    kind = ErrorKind.VALIDATION


class DocumentNotFoundError(FollowupError):
    """Referenced tracking document does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, document_id: int):
        super().__init__(f"Tracking document {document_id} not found")
        self.document_id = document_id


class StoreError(FollowupError):
    """Backend failure wrapped with the operation context."""

    kind = ErrorKind.STORE

    def __init__(
        self,
        operation: str,
        cause: Any = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.operation = operation
        self.context = dict(context or {})
        self.cause = cause
        context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
        message = f"{operation} failed"
        if context_str:
            message += f" ({context_str})"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class IntegrityViolationError(StoreError):
    """A second tracking document was about to be created for a source order."""

    kind = ErrorKind.INTEGRITY

    def __init__(
        self,
        source_order_id: int,
        context: Optional[Dict[str, Any]] = None,
        operation: str = "add",
    ):
        ctx = {"source_order_id": source_order_id}
        ctx.update(context or {})
        super().__init__(
            operation,
            cause=f"source order {source_order_id} already has a tracking document",
            context=ctx,
        )
        self.source_order_id = source_order_id
