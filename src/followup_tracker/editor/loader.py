"""Hydrates the editor buffer from a persisted document."""

from ..core.enums import ModeTrigger
from ..domain.models import TrackingHeader
from ..repositories.interfaces import TrackingQueryService
from .lines import LineCollectionManager
from .mode import ModeStateMachine


class DocumentLoader:
    """Loads a document into the line buffer and switches the mode to View."""

    def __init__(
        self,
        queries: TrackingQueryService,
        mode: ModeStateMachine,
        lines: LineCollectionManager,
    ):
        self._queries = queries
        self._mode = mode
        self._lines = lines

    def load(self, document_id: int, trigger: ModeTrigger = ModeTrigger.LOADED) -> TrackingHeader:
        """
        Load ``document_id`` and return its header.

        The document is fetched before anything is touched, so a failed
        fetch leaves the buffer and the mode as they were.

        Raises:
            DocumentNotFoundError: If the document does not exist
            StoreError: If the read fails
        """
        header, lines = self._queries.get_by_document_id(document_id)

        self._lines.reset(lines)
        self._mode.fire(trigger)
        return header
