"""In-memory implementations of repository interfaces for testing."""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from .interfaces import (
    NumberingService,
    RepositoryContainer,
    TrackingDocumentRepository,
    TrackingQueryService,
)
from ..config import DEFAULT_LINE_STATUSES
from ..core.enums import SourceOrderStatus
from ..core.exceptions import (
    DocumentNotFoundError,
    IntegrityViolationError,
    StoreError,
)
from ..domain.models import (
    LineStatusOption,
    OpenSourceOrder,
    TrackingDocument,
    TrackingHeader,
    TrackingLine,
)

TIME_FORMAT = "%H:%M"


@dataclass
class SourceOrderRecord:
    """Purchase order row held by the memory store."""

    id: int
    doc_number: int
    counterparty_code: str
    doc_date: date
    doc_status: str = SourceOrderStatus.OPEN.value
    counterparty_name: str = ""
    external_reference: str = ""


class MemoryDocumentStore:
    """Shared state behind the memory repositories.

    ``fail_operations`` names operations that raise ``StoreError`` when
    reached (``"add_header"``, ``"add_lines"``, ``"update"``, ``"delete"``,
    ``"read"``), for exercising failure paths.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or datetime.now
        self.headers: Dict[int, TrackingHeader] = {}
        self.lines: Dict[int, List[TrackingLine]] = {}
        self.purchase_orders: Dict[int, SourceOrderRecord] = {}
        self.line_statuses: Dict[str, str] = {}
        self.fail_operations: Set[str] = set()
        self._next_document_id = 1
        self._next_line_id = 1

    def add_purchase_order(self, record: SourceOrderRecord) -> SourceOrderRecord:
        self.purchase_orders[record.id] = record
        return record

    def check(self, operation: str, **context) -> None:
        if operation in self.fail_operations:
            raise StoreError(operation, "simulated store failure", context)

    def next_document_id(self) -> int:
        document_id = self._next_document_id
        self._next_document_id += 1
        return document_id

    def next_line_id(self) -> int:
        line_id = self._next_line_id
        self._next_line_id += 1
        return line_id


class BaseMemoryRepository:
    """Base in-memory repository implementation."""

    def __init__(self, store: MemoryDocumentStore):
        self._store = store

    def commit(self) -> None:
        """Commit the current transaction."""
        # In memory - changes are immediate
        pass

    def rollback(self) -> None:
        """Rollback the current transaction."""
        pass


class MemoryTrackingDocumentRepository(BaseMemoryRepository, TrackingDocumentRepository):
    """In-memory implementation of TrackingDocumentRepository.

    Header and lines are separate writes here; a line failure is compensated
    by deleting the header that was just written.
    """

    def _stamp(self, lines: Sequence[TrackingLine]) -> List[TrackingLine]:
        now = self._store.clock()
        stored = []
        for line in sorted(lines, key=lambda item: item.order):
            stored.append(
                line.model_copy(
                    update={
                        "line_id": self._store.next_line_id(),
                        "date": line.date or now.date(),
                        "time": (line.time or "").strip() or now.strftime(TIME_FORMAT),
                    }
                )
            )
        return stored

    def add(self, header: TrackingHeader, lines: Sequence[TrackingLine]) -> int:
        """Persist a new header and its lines; return the new id."""
        context = {"counterparty_code": header.counterparty_code, "source_order_id": header.source_order_id}
        if header.source_order_id > 0:
            for existing in self._store.headers.values():
                if existing.source_order_id == header.source_order_id:
                    raise IntegrityViolationError(header.source_order_id, context)

        self._store.check("add_header", **context)
        document_id = self._store.next_document_id()
        display_number = max((h.display_number for h in self._store.headers.values()), default=0) + 1
        self._store.headers[document_id] = header.model_copy(
            update={"id": document_id, "display_number": display_number}
        )

        try:
            self._store.check("add_lines", id=document_id, **context)
            self._store.lines[document_id] = self._stamp(lines)
        except StoreError:
            del self._store.headers[document_id]
            self._store.lines.pop(document_id, None)
            raise

        return document_id

    def update(self, header: TrackingHeader, lines: Sequence[TrackingLine]) -> None:
        """Overwrite the header and replace every line of ``header.id``."""
        existing = self._store.headers.get(header.id)
        if existing is None:
            raise DocumentNotFoundError(header.id)

        if header.source_order_id > 0:
            for other_id, other in self._store.headers.items():
                if other_id != header.id and other.source_order_id == header.source_order_id:
                    raise IntegrityViolationError(header.source_order_id, {"id": header.id}, operation="update")

        self._store.check("update", id=header.id, counterparty_code=header.counterparty_code)
        self._store.headers[header.id] = header.model_copy(
            update={"display_number": existing.display_number}
        )
        self._store.lines[header.id] = self._stamp(lines)

    def delete(self, document_id: int) -> None:
        """Delete a header and all of its lines."""
        if document_id not in self._store.headers:
            raise DocumentNotFoundError(document_id)
        self._store.check("delete", id=document_id)
        del self._store.headers[document_id]
        self._store.lines.pop(document_id, None)

    def get_by_id(self, document_id: int) -> TrackingDocument:
        """Get a full document or raise ``DocumentNotFoundError``."""
        self._store.check("read", id=document_id)
        header = self._store.headers.get(document_id)
        if header is None:
            raise DocumentNotFoundError(document_id)
        return TrackingDocument(
            header=header.model_copy(),
            lines=[line.model_copy() for line in self._store.lines.get(document_id, [])],
        )


class MemoryTrackingQueryService(BaseMemoryRepository, TrackingQueryService):
    """In-memory implementation of TrackingQueryService."""

    def __init__(self, store: MemoryDocumentStore, default_statuses: Optional[Dict[str, str]] = None):
        super().__init__(store)
        self._default_statuses = default_statuses or DEFAULT_LINE_STATUSES

    def get_header(self, document_id: int) -> Optional[TrackingHeader]:
        """Get a header by id."""
        self._store.check("read", id=document_id)
        header = self._store.headers.get(document_id)
        return header.model_copy() if header is not None else None

    def get_lines(self, document_id: int) -> List[TrackingLine]:
        """Get the lines of a document ordered by line order."""
        self._store.check("read", id=document_id)
        lines = self._store.lines.get(document_id, [])
        return [line.model_copy() for line in sorted(lines, key=lambda item: item.order)]

    def get_by_document_id(
        self, document_id: int
    ) -> Tuple[TrackingHeader, List[TrackingLine]]:
        """Get header and lines or raise ``DocumentNotFoundError``."""
        header = self.get_header(document_id)
        if header is None:
            raise DocumentNotFoundError(document_id)
        return header, self.get_lines(document_id)

    def find_by_source_order(self, source_order_id: int) -> int:
        """Get the id of the document following a source order, or 0."""
        if not source_order_id or source_order_id <= 0:
            return 0
        self._store.check("read", source_order_id=source_order_id)
        for document_id, header in self._store.headers.items():
            if header.source_order_id == source_order_id:
                return document_id
        return 0

    def find_by_display_number(self, display_number: int) -> int:
        """Get the id of the document with a display number, or 0."""
        self._store.check("read", display_number=display_number)
        matches = [
            document_id
            for document_id, header in self._store.headers.items()
            if header.display_number == display_number
        ]
        return max(matches, default=0)

    def find_by_counterparty(self, counterparty_code: str) -> List[TrackingHeader]:
        """Get the headers of a counterparty, newest first."""
        self._store.check("read", counterparty_code=counterparty_code)
        headers = [
            header.model_copy()
            for header in self._store.headers.values()
            if header.counterparty_code == counterparty_code
        ]
        return sorted(headers, key=lambda header: header.id, reverse=True)

    def list_open_source_orders(self, counterparty_code: str) -> List[OpenSourceOrder]:
        """Get the open source orders of a counterparty, newest first."""
        self._store.check("read", counterparty_code=counterparty_code)
        records = [
            record
            for record in self._store.purchase_orders.values()
            if record.counterparty_code == counterparty_code
            and record.doc_status == SourceOrderStatus.OPEN.value
        ]
        records.sort(key=lambda record: (record.doc_date, record.id), reverse=True)
        return [
            OpenSourceOrder(
                source_order_id=record.id,
                source_order_number=record.doc_number,
                date=record.doc_date,
            )
            for record in records
        ]

    def list_line_statuses(self) -> List[LineStatusOption]:
        """Get the line status catalogue, falling back to the configured defaults."""
        try:
            self._store.check("read")
            catalogue = self._store.line_statuses
        except StoreError:
            catalogue = {}
        source = catalogue or self._default_statuses
        return [LineStatusOption(code=code, name=name) for code, name in sorted(source.items())]


class MemoryNumberingService(BaseMemoryRepository, NumberingService):
    """In-memory implementation of NumberingService."""

    def next_display_number(self) -> int:
        """Get max(display numbers) + 1, or 1 for an empty store."""
        self._store.check("read")
        return max((h.display_number for h in self._store.headers.values()), default=0) + 1


def create_memory_container(
    store: Optional[MemoryDocumentStore] = None,
    default_statuses: Optional[Dict[str, str]] = None,
) -> RepositoryContainer:
    """Build a repository container over a memory store."""
    store = store or MemoryDocumentStore()
    return RepositoryContainer(
        document_repo=MemoryTrackingDocumentRepository(store),
        query_service=MemoryTrackingQueryService(store, default_statuses=default_statuses),
        numbering_service=MemoryNumberingService(store),
    )
