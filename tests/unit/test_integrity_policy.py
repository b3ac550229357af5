"""Unit tests for IntegrityError classification."""

import pytest
from sqlalchemy.exc import IntegrityError

from followup_tracker.repositories.integrity_policy import (
    extract_constraint_name,
    is_source_order_violation,
    is_unique_violation,
)


def _error(message: str) -> IntegrityError:
    return IntegrityError("INSERT INTO tracking_documents ...", {}, Exception(message))


@pytest.mark.unit
class TestIntegrityPolicy:

    def test_sqlite_source_order_violation(self):
        exc = _error("UNIQUE constraint failed: tracking_documents.source_order_id")

        assert is_unique_violation(exc)
        assert extract_constraint_name(exc) == "tracking_documents.source_order_id"
        assert is_source_order_violation(exc)

    def test_postgres_source_order_violation(self):
        exc = _error(
            'duplicate key value violates unique constraint "uq_tracking_documents_source_order_id"'
        )

        assert extract_constraint_name(exc) == "uq_tracking_documents_source_order_id"
        assert is_source_order_violation(exc)

    def test_not_null_is_not_a_unique_violation(self):
        exc = _error("NOT NULL constraint failed: tracking_lines.status")

        assert not is_unique_violation(exc)
        assert extract_constraint_name(exc) is None
        assert not is_source_order_violation(exc)

    def test_other_unique_constraint(self):
        exc = _error("UNIQUE constraint failed: line_statuses.code")

        assert is_unique_violation(exc)
        assert not is_source_order_violation(exc)
