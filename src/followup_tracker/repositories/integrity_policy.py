"""
Classification of IntegrityError exceptions raised by the SQL store.

A unique violation on ``tracking_documents.source_order_id`` means a second
tracking document was about to be created for the same source order; every
other integrity failure is an ordinary store failure.
"""

from typing import Optional
from sqlalchemy.exc import IntegrityError  # type: ignore


SOURCE_ORDER_CONSTRAINT = "tracking_documents.source_order_id"


def _error_message(exc: IntegrityError) -> str:
    return str(exc.orig) if exc.orig else str(exc)


def is_unique_violation(exc: IntegrityError) -> bool:
    """Check if the IntegrityError is a unique constraint violation."""
    error_msg = _error_message(exc)
    # SQLite and PostgreSQL wording respectively
    return "UNIQUE constraint failed" in error_msg or "duplicate key value" in error_msg


def extract_constraint_name(exc: IntegrityError) -> Optional[str]:
    """Extract the constrained column(s) from an IntegrityError."""
    error_msg = _error_message(exc)

    # SQLite format: "UNIQUE constraint failed: table.column"
    if "UNIQUE constraint failed:" in error_msg:
        return error_msg.split("UNIQUE constraint failed:", 1)[1].strip()

    # PostgreSQL format: 'duplicate key value violates unique constraint "name"'
    if 'unique constraint "' in error_msg:
        return error_msg.split('unique constraint "', 1)[1].split('"', 1)[0]

    return None


def is_source_order_violation(exc: IntegrityError) -> bool:
    """Check if the error is the one-document-per-source-order constraint."""
    if not is_unique_violation(exc):
        return False
    constraint = extract_constraint_name(exc) or ""
    return SOURCE_ORDER_CONSTRAINT in constraint or "source_order_id" in constraint
