"""SQLAlchemy concrete implementations of repository interfaces."""

from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session, selectinload
from sqlalchemy import func, desc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError  # type: ignore

from .interfaces import (
    NumberingService,
    RepositoryContainer,
    TrackingDocumentRepository,
    TrackingQueryService,
)
from .integrity_policy import is_source_order_violation
from ..config import DEFAULT_LINE_STATUSES
from ..core.enums import DocumentStatus, SourceOrderStatus
from ..core.exceptions import (
    DocumentNotFoundError,
    IntegrityViolationError,
    StoreError,
)
from ..db.models import (
    LineStatusRow,
    PurchaseOrderRow,
    TrackingDocumentRow,
    TrackingLineRow,
)
from ..domain.models import (
    LineStatusOption,
    OpenSourceOrder,
    TrackingDocument,
    TrackingHeader,
    TrackingLine,
)
from ..utils.logging_config import get_logger, log_exception

logger = get_logger('repository')

TIME_FORMAT = "%H:%M"


def _cause(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return f"{type(exc).__name__}: {orig if orig is not None else exc}"


def header_context(header: TrackingHeader) -> Dict[str, object]:
    """Key header fields attached to store errors."""
    return {
        "id": header.id,
        "counterparty_code": header.counterparty_code,
        "counterparty_name": header.counterparty_name,
        "external_reference": header.external_reference,
        "document_date": header.document_date,
        "status": int(header.status),
        "source_order_id": header.source_order_id,
        "source_order_number": header.source_order_number,
    }


def header_from_row(row: TrackingDocumentRow) -> TrackingHeader:
    """Convert a header row to the domain model."""
    return TrackingHeader(
        id=row.id,
        display_number=row.display_number,
        counterparty_code=row.counterparty_code,
        counterparty_name=row.counterparty_name or "",
        external_reference=row.external_reference or "",
        document_date=row.document_date,
        status=DocumentStatus(row.status),
        source_order_id=row.source_order_id or 0,
        source_order_number=row.source_order_number or 0,
    )


def line_from_row(row: TrackingLineRow) -> TrackingLine:
    """Convert a line row to the domain model."""
    return TrackingLine(
        line_id=row.line_id,
        order=row.line_order,
        description=row.description,
        date=row.entry_date,
        time=row.entry_time or "",
        status=row.status or "",
        status_timestamp=row.status_timestamp,
    )


class BaseSQLAlchemyRepository:
    """Base SQLAlchemy repository implementation."""

    def __init__(self, session: Session, clock: Optional[Callable[[], datetime]] = None):
        self._session = session
        self._clock = clock or datetime.now

    def commit(self) -> None:
        """Commit the current transaction."""
        self._session.commit()

    def rollback(self) -> None:
        """Rollback the current transaction."""
        self._session.rollback()

    def _max_display_number(self) -> int:
        return self._session.query(func.max(TrackingDocumentRow.display_number)).scalar() or 0


class SQLAlchemyTrackingDocumentRepository(
    BaseSQLAlchemyRepository, TrackingDocumentRepository
):
    """SQLAlchemy implementation of TrackingDocumentRepository.

    Header and lines are written in one transaction, so a failure while
    writing lines leaves no header behind.
    """

    def _line_rows(self, lines: Sequence[TrackingLine]) -> List[TrackingLineRow]:
        now = self._clock()
        return [
            TrackingLineRow(
                line_order=line.order,
                description=line.description,
                entry_date=line.date or now.date(),
                entry_time=(line.time or "").strip() or now.strftime(TIME_FORMAT),
                status=line.status,
                status_timestamp=line.status_timestamp,
            )
            for line in lines
        ]

    def _apply_header(self, row: TrackingDocumentRow, header: TrackingHeader) -> None:
        row.counterparty_code = header.counterparty_code
        row.counterparty_name = header.counterparty_name
        row.external_reference = header.external_reference
        row.document_date = header.document_date
        row.status = int(header.status)
        row.source_order_id = header.source_order_id or None
        row.source_order_number = header.source_order_number

    def _fail(self, operation: str, exc: SQLAlchemyError, context: Dict[str, object]):
        self._session.rollback()
        log_exception('repository', exc, {"operation": operation, **context})
        if isinstance(exc, IntegrityError) and is_source_order_violation(exc):
            return IntegrityViolationError(
                context.get("source_order_id", 0), context, operation=operation
            )
        return StoreError(operation, _cause(exc), context)

    def add(self, header: TrackingHeader, lines: Sequence[TrackingLine]) -> int:
        """
        Persist a new tracking document.

        Args:
            header: Header to create; its id and display number are ignored
            lines: Lines to create, already filtered to meaningful rows

        Returns:
            The store-assigned document id

        Raises:
            IntegrityViolationError: If the source order already has a document
            StoreError: If the write fails
        """
        context = header_context(header)
        try:
            row = TrackingDocumentRow(display_number=self._max_display_number() + 1)
            self._apply_header(row, header)
            row.lines = self._line_rows(lines)

            self._session.add(row)
            self._session.flush()
            document_id = row.id
            display_number = row.display_number
            self._session.commit()

            logger.info(
                f"Created tracking document {document_id} (number {display_number}) "
                f"for {header.counterparty_code} with {len(lines)} lines"
            )
            return document_id

        except SQLAlchemyError as e:
            raise self._fail("add", e, context) from e

    def update(self, header: TrackingHeader, lines: Sequence[TrackingLine]) -> None:
        """
        Overwrite a header and replace all of its lines.

        Existing line rows are deleted and recreated from ``lines``; line ids
        are not preserved.

        Raises:
            DocumentNotFoundError: If ``header.id`` does not exist
            StoreError: If the write fails
        """
        context = header_context(header)
        try:
            row = self._session.get(TrackingDocumentRow, header.id)
            if row is None:
                raise DocumentNotFoundError(header.id)

            self._apply_header(row, header)
            # Orphaned rows are deleted by the delete-orphan cascade
            row.lines = self._line_rows(lines)

            self._session.flush()
            self._session.commit()
            logger.info(f"Updated tracking document {header.id} with {len(lines)} lines")

        except SQLAlchemyError as e:
            raise self._fail("update", e, context) from e

    def delete(self, document_id: int) -> None:
        """Delete a document; its lines go with it."""
        try:
            row = self._session.get(TrackingDocumentRow, document_id)
            if row is None:
                raise DocumentNotFoundError(document_id)

            self._session.delete(row)
            self._session.commit()
            logger.info(f"Deleted tracking document {document_id}")

        except SQLAlchemyError as e:
            raise self._fail("delete", e, {"id": document_id}) from e

    def get_by_id(self, document_id: int) -> TrackingDocument:
        """Get a full document or raise ``DocumentNotFoundError``."""
        try:
            row = (
                self._session.query(TrackingDocumentRow)
                .options(selectinload(TrackingDocumentRow.lines))
                .filter(TrackingDocumentRow.id == document_id)
                .first()
            )
            if row is None:
                raise DocumentNotFoundError(document_id)

            return TrackingDocument(
                header=header_from_row(row),
                lines=[line_from_row(line) for line in row.lines],
            )

        except SQLAlchemyError as e:
            raise self._fail("get_by_id", e, {"id": document_id}) from e


class SQLAlchemyTrackingQueryService(BaseSQLAlchemyRepository, TrackingQueryService):
    """SQLAlchemy implementation of TrackingQueryService."""

    def __init__(
        self,
        session: Session,
        default_statuses: Optional[Dict[str, str]] = None,
    ):
        super().__init__(session)
        self._default_statuses = default_statuses or DEFAULT_LINE_STATUSES

    def _read_failed(self, operation: str, exc: SQLAlchemyError, **context) -> StoreError:
        self._session.rollback()
        log_exception('repository', exc, {"operation": operation, **context})
        return StoreError(operation, _cause(exc), context)

    def get_header(self, document_id: int) -> Optional[TrackingHeader]:
        """Get a header by id."""
        try:
            row = self._session.get(TrackingDocumentRow, document_id)
            return header_from_row(row) if row is not None else None
        except SQLAlchemyError as e:
            raise self._read_failed("get_header", e, id=document_id) from e

    def get_lines(self, document_id: int) -> List[TrackingLine]:
        """Get the lines of a document ordered by line order."""
        try:
            rows = (
                self._session.query(TrackingLineRow)
                .filter(TrackingLineRow.document_id == document_id)
                .order_by(TrackingLineRow.line_order, TrackingLineRow.line_id)
                .all()
            )
            return [line_from_row(row) for row in rows]
        except SQLAlchemyError as e:
            raise self._read_failed("get_lines", e, id=document_id) from e

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
        try:
            document_id = (
                self._session.query(TrackingDocumentRow.id)
                .filter(TrackingDocumentRow.source_order_id == source_order_id)
                .scalar()
            )
            return document_id or 0
        except SQLAlchemyError as e:
            raise self._read_failed("find_by_source_order", e, source_order_id=source_order_id) from e

    def find_by_display_number(self, display_number: int) -> int:
        """Get the id of the document with a display number, or 0."""
        try:
            document_id = (
                self._session.query(TrackingDocumentRow.id)
                .filter(TrackingDocumentRow.display_number == display_number)
                .order_by(desc(TrackingDocumentRow.id))
                .limit(1)
                .scalar()
            )
            return document_id or 0
        except SQLAlchemyError as e:
            raise self._read_failed("find_by_display_number", e, display_number=display_number) from e

    def find_by_counterparty(self, counterparty_code: str) -> List[TrackingHeader]:
        """Get the headers of a counterparty, newest first."""
        try:
            rows = (
                self._session.query(TrackingDocumentRow)
                .filter(TrackingDocumentRow.counterparty_code == counterparty_code)
                .order_by(desc(TrackingDocumentRow.id))
                .all()
            )
            return [header_from_row(row) for row in rows]
        except SQLAlchemyError as e:
            raise self._read_failed("find_by_counterparty", e, counterparty_code=counterparty_code) from e

    def list_open_source_orders(self, counterparty_code: str) -> List[OpenSourceOrder]:
        """Get the open source orders of a counterparty, newest first."""
        try:
            rows = (
                self._session.query(PurchaseOrderRow)
                .filter(
                    PurchaseOrderRow.counterparty_code == counterparty_code,
                    PurchaseOrderRow.doc_status == SourceOrderStatus.OPEN.value,
                )
                .order_by(desc(PurchaseOrderRow.doc_date), desc(PurchaseOrderRow.id))
                .all()
            )
            return [
                OpenSourceOrder(
                    source_order_id=row.id,
                    source_order_number=row.doc_number,
                    date=row.doc_date,
                )
                for row in rows
            ]
        except SQLAlchemyError as e:
            raise self._read_failed("list_open_source_orders", e, counterparty_code=counterparty_code) from e

    def list_line_statuses(self) -> List[LineStatusOption]:
        """Get the line status catalogue, falling back to the configured defaults."""
        try:
            rows = self._session.query(LineStatusRow).order_by(LineStatusRow.code).all()
        except SQLAlchemyError as e:
            self._session.rollback()
            logger.warning(f"Could not read line statuses, using defaults: {e}")
            rows = []

        if rows:
            return [LineStatusOption(code=row.code, name=row.name) for row in rows]
        return [
            LineStatusOption(code=code, name=name)
            for code, name in sorted(self._default_statuses.items())
        ]


class SQLAlchemyNumberingService(BaseSQLAlchemyRepository, NumberingService):
    """Display numbers computed from the current maximum. Not reserved."""

    def next_display_number(self) -> int:
        """Get max(display numbers) + 1, or 1 for an empty store."""
        try:
            return self._max_display_number() + 1
        except SQLAlchemyError as e:
            self._session.rollback()
            raise StoreError("next_display_number", _cause(e)) from e


def create_sqlalchemy_container(
    session: Session,
    clock: Optional[Callable[[], datetime]] = None,
    default_statuses: Optional[Dict[str, str]] = None,
) -> RepositoryContainer:
    """Build a repository container bound to one session."""
    return RepositoryContainer(
        document_repo=SQLAlchemyTrackingDocumentRepository(session, clock=clock),
        query_service=SQLAlchemyTrackingQueryService(session, default_statuses=default_statuses),
        numbering_service=SQLAlchemyNumberingService(session),
    )
