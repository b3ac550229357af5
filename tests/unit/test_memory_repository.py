"""Unit tests for the in-memory repositories and numbering."""

from datetime import date

import pytest

from followup_tracker.core.enums import ErrorKind
from followup_tracker.core.exceptions import (
    DocumentNotFoundError,
    IntegrityViolationError,
    StoreError,
)
from followup_tracker.domain.models import LineStatusOption
from followup_tracker.repositories.memory_impl import SourceOrderRecord


@pytest.mark.unit
class TestNumbering:

    def test_empty_store_starts_at_one(self, memory_container):
        assert memory_container.numbering.next_display_number() == 1

    def test_next_number_follows_the_maximum(self, memory_container, make_header, make_lines):
        memory_container.documents.add(make_header(), make_lines())
        memory_container.documents.add(make_header(), make_lines())

        assert memory_container.numbering.next_display_number() == 3

    def test_preview_is_not_reserved(self, memory_container, make_header, make_lines):
        preview = memory_container.numbering.next_display_number()

        assert memory_container.numbering.next_display_number() == preview

    def test_add_assigns_number_at_write_time(self, memory_container, make_header, make_lines):
        document_id = memory_container.documents.add(make_header(display_number=42), make_lines())

        header = memory_container.queries.get_header(document_id)
        assert header.display_number == 1

    def test_number_is_reused_after_deleting_the_latest(self, memory_container, make_header, make_lines):
        memory_container.documents.add(make_header(), make_lines())
        latest = memory_container.documents.add(make_header(), make_lines())

        memory_container.documents.delete(latest)

        assert memory_container.numbering.next_display_number() == 2


@pytest.mark.unit
class TestDocumentRepository:

    def test_add_and_get(self, memory_container, make_header, make_lines):
        document_id = memory_container.documents.add(
            make_header(external_reference="REF-1"), make_lines("Confirmed", "Shipped")
        )

        document = memory_container.documents.get_by_id(document_id)

        assert document.header.id == document_id
        assert document.header.external_reference == "REF-1"
        assert [line.description for line in document.lines] == ["Confirmed", "Shipped"]
        assert all(line.line_id > 0 for line in document.lines)

    def test_missing_date_and_time_are_defaulted(self, memory_container, make_header, make_lines):
        document_id = memory_container.documents.add(make_header(), make_lines())

        line = memory_container.queries.get_lines(document_id)[0]

        assert line.date == date(2024, 3, 15)
        assert line.time == "09:30"

    def test_second_document_for_a_source_order_is_rejected(
        self, memory_container, make_header, make_lines
    ):
        memory_container.documents.add(make_header(source_order_id=101), make_lines())

        with pytest.raises(IntegrityViolationError) as exc_info:
            memory_container.documents.add(make_header(source_order_id=101), make_lines())

        assert exc_info.value.kind is ErrorKind.INTEGRITY
        assert exc_info.value.source_order_id == 101
        assert len(memory_container.queries.find_by_counterparty("S001")) == 1

    def test_unlinked_documents_do_not_conflict(self, memory_container, make_header, make_lines):
        memory_container.documents.add(make_header(), make_lines())
        memory_container.documents.add(make_header(), make_lines())

        assert len(memory_container.queries.find_by_counterparty("S001")) == 2

    def test_line_failure_leaves_no_header(self, memory_container, memory_store, make_header, make_lines):
        memory_store.fail_operations.add("add_lines")

        with pytest.raises(StoreError):
            memory_container.documents.add(make_header(), make_lines())

        assert memory_store.headers == {}
        assert memory_container.queries.find_by_counterparty("S001") == []

    def test_update_replaces_lines_and_keeps_number(self, memory_container, make_header, make_lines):
        document_id = memory_container.documents.add(make_header(), make_lines("One", "Two"))
        document = memory_container.documents.get_by_id(document_id)
        old_ids = {line.line_id for line in document.lines}

        header = document.header.model_copy(update={"external_reference": "NEW", "display_number": 99})
        memory_container.documents.update(header, make_lines("Only"))

        updated = memory_container.documents.get_by_id(document_id)
        assert updated.header.external_reference == "NEW"
        assert updated.header.display_number == 1
        assert [line.description for line in updated.lines] == ["Only"]
        assert not old_ids & {line.line_id for line in updated.lines}

    def test_update_missing_document(self, memory_container, make_header, make_lines):
        with pytest.raises(DocumentNotFoundError):
            memory_container.documents.update(make_header(id=77), make_lines())

    def test_update_cannot_steal_a_source_order(self, memory_container, make_header, make_lines):
        memory_container.documents.add(make_header(source_order_id=101), make_lines())
        other_id = memory_container.documents.add(make_header(), make_lines())

        with pytest.raises(IntegrityViolationError) as exc_info:
            memory_container.documents.update(
                make_header(id=other_id, source_order_id=101), make_lines()
            )
        assert exc_info.value.operation == "update"

    def test_delete_removes_lines(self, memory_container, memory_store, make_header, make_lines):
        document_id = memory_container.documents.add(make_header(), make_lines("One", "Two"))

        memory_container.documents.delete(document_id)

        assert document_id not in memory_store.lines
        with pytest.raises(DocumentNotFoundError):
            memory_container.documents.get_by_id(document_id)

    def test_delete_missing_document(self, memory_container):
        with pytest.raises(DocumentNotFoundError):
            memory_container.documents.delete(5)


@pytest.mark.unit
class TestQueryService:

    def test_find_by_source_order(self, memory_container, make_header, make_lines):
        document_id = memory_container.documents.add(make_header(source_order_id=101), make_lines())

        assert memory_container.queries.find_by_source_order(101) == document_id
        assert memory_container.queries.find_by_source_order(102) == 0
        assert memory_container.queries.find_by_source_order(0) == 0

    def test_find_by_display_number(self, memory_container, make_header, make_lines):
        memory_container.documents.add(make_header(), make_lines())
        second = memory_container.documents.add(make_header(), make_lines())

        assert memory_container.queries.find_by_display_number(2) == second
        assert memory_container.queries.find_by_display_number(9) == 0

    def test_find_by_counterparty_newest_first(self, memory_container, make_header, make_lines):
        first = memory_container.documents.add(make_header(), make_lines())
        second = memory_container.documents.add(make_header(), make_lines())
        memory_container.documents.add(make_header("S002"), make_lines())

        headers = memory_container.queries.find_by_counterparty("S001")

        assert [header.id for header in headers] == [second, first]

    def test_get_by_document_id_missing(self, memory_container):
        with pytest.raises(DocumentNotFoundError):
            memory_container.queries.get_by_document_id(3)

    def test_open_source_orders(self, memory_container, memory_store):
        memory_store.add_purchase_order(SourceOrderRecord(101, 5001, "S001", date(2024, 1, 10)))
        memory_store.add_purchase_order(SourceOrderRecord(102, 5002, "S001", date(2024, 2, 1)))
        memory_store.add_purchase_order(SourceOrderRecord(103, 5003, "S001", date(2024, 2, 20), doc_status="C"))
        memory_store.add_purchase_order(SourceOrderRecord(201, 6001, "S002", date(2024, 1, 5)))

        orders = memory_container.queries.list_open_source_orders("S001")

        assert [order.source_order_id for order in orders] == [102, 101]
        assert orders[0].source_order_number == 5002

    def test_line_statuses_fall_back_to_defaults(self, memory_container):
        statuses = memory_container.queries.list_line_statuses()

        assert LineStatusOption(code="0", name="Pending") in statuses

    def test_line_statuses_from_catalogue(self, memory_container, memory_store):
        memory_store.line_statuses = {"A": "Awaiting", "B": "Booked"}

        statuses = memory_container.queries.list_line_statuses()

        assert [status.code for status in statuses] == ["A", "B"]

    def test_read_failure_raises_store_error(self, memory_container, memory_store):
        memory_store.fail_operations.add("read")

        with pytest.raises(StoreError) as exc_info:
            memory_container.queries.get_header(1)
        assert exc_info.value.kind is ErrorKind.STORE
