"""Abstract repository interfaces for data access layer."""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

from ..domain.models import (
    LineStatusOption,
    OpenSourceOrder,
    TrackingDocument,
    TrackingHeader,
    TrackingLine,
)


class TrackingDocumentRepository(ABC):
    """Write path for tracking documents.

    Every store failure surfaces as a ``StoreError`` carrying the operation
    name and the key header fields.
    """

    @abstractmethod
    def add(self, header: TrackingHeader, lines: Sequence[TrackingLine]) -> int:
        """Persist a new header and its lines atomically; return the new id."""
        pass

    @abstractmethod
    def update(self, header: TrackingHeader, lines: Sequence[TrackingLine]) -> None:
        """Overwrite the header and replace every line of ``header.id``."""
        pass

    @abstractmethod
    def delete(self, document_id: int) -> None:
        """Delete a header and all of its lines."""
        pass

    @abstractmethod
    def get_by_id(self, document_id: int) -> TrackingDocument:
        """Get a full document or raise ``DocumentNotFoundError``."""
        pass


class TrackingQueryService(ABC):
    """Read-only lookups over tracking documents and source orders."""

    @abstractmethod
    def get_header(self, document_id: int) -> Optional[TrackingHeader]:
        """Get a header by id."""
        pass

    @abstractmethod
    def get_lines(self, document_id: int) -> List[TrackingLine]:
        """Get the lines of a document ordered by line order."""
        pass

    @abstractmethod
    def get_by_document_id(
        self, document_id: int
    ) -> Tuple[TrackingHeader, List[TrackingLine]]:
        """Get header and lines or raise ``DocumentNotFoundError``."""
        pass

    @abstractmethod
    def find_by_source_order(self, source_order_id: int) -> int:
        """Get the id of the document following a source order, or 0."""
        pass

    @abstractmethod
    def find_by_display_number(self, display_number: int) -> int:
        """Get the id of the document with a display number, or 0."""
        pass

    @abstractmethod
    def find_by_counterparty(self, counterparty_code: str) -> List[TrackingHeader]:
        """Get the headers of a counterparty, newest first."""
        pass

    @abstractmethod
    def list_open_source_orders(self, counterparty_code: str) -> List[OpenSourceOrder]:
        """Get the open source orders of a counterparty, newest first."""
        pass

    @abstractmethod
    def list_line_statuses(self) -> List[LineStatusOption]:
        """Get the line status catalogue ordered by code."""
        pass


class NumberingService(ABC):
    """Issues display numbers for new documents."""

    @abstractmethod
    def next_display_number(self) -> int:
        """Get max(display numbers) + 1, or 1 for an empty store."""
        pass


class RepositoryContainer:
    """Container for all repository interfaces to support dependency injection."""

    def __init__(
        self,
        document_repo: TrackingDocumentRepository,
        query_service: TrackingQueryService,
        numbering_service: NumberingService,
    ):
        self.documents = document_repo
        self.queries = query_service
        self.numbering = numbering_service
