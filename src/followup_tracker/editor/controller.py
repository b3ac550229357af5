"""
Tracking document editor controller.

Wires user actions coming from the host surface (field edits, cell
commits, picker selections, save and cancel) to the mode machine, the line
buffer, the loader and the application service. The buffer held here is
authoritative; the surface only displays it.
"""

from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from pydantic import ValidationError  # type: ignore

from ..config import EditorConfig, get_config
from ..core.enums import (
    CancelChoice,
    DocumentStatus,
    EditorMode,
    ErrorKind,
    ModeTrigger,
    SaveAction,
)
from ..core.exceptions import FollowupError
from ..domain.models import LineStatusOption, TrackingHeader, TrackingLine
from ..repositories.interfaces import RepositoryContainer
from ..services.application_service import OperationResult, TrackingApplicationService
from ..utils.logging_config import get_logger
from .lines import LineCollectionManager
from .loader import DocumentLoader
from .mode import ModeStateMachine, PrimaryAffordance
from .surface import EditorSurface, HEADER_FIELDS

logger = get_logger('editor')

EDITABLE_FIELDS = (
    "counterparty_code",
    "counterparty_name",
    "external_reference",
    "document_date",
    "status",
)

# Payload keys accepted from each picker
PICKER_FIELDS: Dict[str, tuple] = {
    "counterparty": (
        "counterparty_code",
        "counterparty_name",
        "source_order_id",
        "source_order_number",
        "external_reference",
    ),
    "source_order": (
        "source_order_id",
        "source_order_number",
        "external_reference",
    ),
}


def _parse_date(raw: Any) -> Optional[date]:
    if raw is None or isinstance(raw, date):
        return raw
    text = str(raw).strip()
    return date.fromisoformat(text) if text else None


class TrackingEditor:
    """Controller for one open tracking document."""

    def __init__(
        self,
        container: RepositoryContainer,
        surface: EditorSurface,
        config: Optional[EditorConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
        service: Optional[TrackingApplicationService] = None,
    ):
        self._config = config or get_config().editor
        self._clock = clock or datetime.now
        self._queries = container.queries
        self._numbering = container.numbering
        self._service = service or TrackingApplicationService(container.documents)
        self.surface = surface

        self.mode = ModeStateMachine()
        self.lines = LineCollectionManager(clock=self._clock, time_format=self._config.time_format)
        self.loader = DocumentLoader(self._queries, self.mode, self.lines)
        self.header = TrackingHeader()
        self.status_options: List[LineStatusOption] = []
        self.closed = False
        self._depth = 0

        try:
            self.save_action = SaveAction(self._config.default_save_action)
        except ValueError:
            logger.warning(f"Unknown default save action '{self._config.default_save_action}'")
            self.save_action = SaveAction.SAVE_AND_NEW

        self.mode.subscribe(self._on_mode_changed)
        self._load_status_choices()
        self._reset(ModeTrigger.NEW)

    # ------------------------------------------------------------------ state

    @property
    def current_mode(self) -> EditorMode:
        return self.mode.mode

    @property
    def has_unsaved_changes(self) -> bool:
        return self.mode.has_unsaved_changes

    @property
    def busy(self) -> bool:
        return self._depth > 0

    def _accepting_events(self) -> bool:
        return not self.closed and not self.busy

    @contextmanager
    def _mutation(self) -> Iterator[None]:
        """Freeze the surface around a multi-step buffer change."""
        self._depth += 1
        try:
            with self.surface.freeze():
                yield
        finally:
            self._depth -= 1

    def _on_mode_changed(self, mode: EditorMode, affordance: PrimaryAffordance) -> None:
        logger.debug(f"Editor mode is now {mode.value}")
        self.surface.show_primary_action(affordance)

    def _error(self, text: str) -> None:
        logger.warning(text)
        self.surface.show_message(text, is_error=True)

    def _mark_mutated(self) -> None:
        self.mode.fire(ModeTrigger.MUTATED)

    # -------------------------------------------------------------- rendering

    def _header_text(self, name: str) -> str:
        header = self.header
        if name == "document_id":
            return str(header.id) if header.id else ""
        if name == "document_date":
            return header.document_date.isoformat()
        if name == "status":
            return str(int(header.status))
        if name in ("display_number", "source_order_id", "source_order_number"):
            value = getattr(header, name)
            return str(value) if value else ""
        return getattr(header, name)

    def _cell_text(self, line: TrackingLine, column: str) -> str:
        if column == "line_id":
            return str(line.line_id) if line.line_id else ""
        if column == "order":
            return str(line.order)
        if column == "date":
            return line.date.isoformat() if line.date else ""
        if column == "status_timestamp":
            if line.status_timestamp is None:
                return ""
            return line.status_timestamp.strftime(self._config.status_timestamp_display_format)
        return getattr(line, column)

    def _render_header(self) -> None:
        for name in HEADER_FIELDS:
            self.surface.set_field(name, self._header_text(name))

    def _render_lines(self) -> None:
        target = len(self.lines)
        while self.surface.row_count() < target:
            self.surface.insert_row(self.surface.row_count())
        while self.surface.row_count() > target:
            self.surface.remove_row(self.surface.row_count() - 1)

        columns = self.surface.columns()
        for row, line in enumerate(self.lines):
            for column in columns:
                self.surface.set_cell(row, column, self._cell_text(line, column))

    def _render(self) -> None:
        self._render_header()
        self._render_lines()

    def _load_status_choices(self) -> None:
        try:
            self.status_options = self._queries.list_line_statuses()
        except FollowupError as e:
            logger.warning(f"Line statuses unavailable, using defaults: {e}")
            self.status_options = [
                LineStatusOption(code=code, name=name)
                for code, name in sorted(self._config.default_line_statuses.items())
            ]
        self.surface.set_status_choices(self.status_options)

    # ------------------------------------------------------------- documents

    def _reset(self, trigger: ModeTrigger) -> None:
        try:
            number = self._numbering.next_display_number()
        except FollowupError as e:
            number = 0
            self._error(f"Could not compute the next document number: {e}")

        with self._mutation():
            self.header = TrackingHeader(display_number=number, document_date=self._clock().date())
            self.lines.reset()
            self.mode.fire(trigger)
            self._render()

    def _open(self, document_id: int, trigger: ModeTrigger = ModeTrigger.LOADED) -> bool:
        try:
            with self._mutation():
                self.header = self.loader.load(document_id, trigger)
                self._render()
        except FollowupError as e:
            self._error(str(e))
            return False

        logger.info(f"Opened tracking document {document_id} in {self.current_mode.value} mode")
        return True

    def _close(self) -> None:
        self.surface.close()
        self.closed = True
        logger.debug("Editor closed")

    def new_document(self) -> bool:
        """Discard the buffer and start a fresh document in Create mode."""
        if not self._accepting_events():
            return False
        self._reset(ModeTrigger.NEW)
        return True

    def open_document(self, document_id: int) -> bool:
        """Load a persisted document read-only (View mode)."""
        if not self._accepting_events():
            return False
        return self._open(document_id)

    def open_by_display_number(self, display_number: int) -> bool:
        """Load the document carrying a display number."""
        if not self._accepting_events():
            return False
        try:
            document_id = self._queries.find_by_display_number(display_number)
        except FollowupError as e:
            self._error(str(e))
            return False

        if not document_id:
            self._error(f"No tracking document with number {display_number}.")
            return False
        return self._open(document_id)

    # ----------------------------------------------------------------- edits

    def on_field_changed(self, name: str, value: Any = None) -> bool:
        """Apply a header field edit. ``value`` defaults to the surface's value."""
        if not self._accepting_events():
            return False
        if name not in EDITABLE_FIELDS:
            self._error(f"Field '{name}' cannot be edited.")
            return False

        raw = self.surface.get_field(name) if value is None else value
        try:
            if name == "document_date":
                parsed = _parse_date(raw)
                if parsed is None:
                    raise ValueError("a date is required")
            elif name == "status":
                parsed = DocumentStatus(int(raw))
            else:
                parsed = str(raw)
        except ValueError as e:
            self._error(f"Invalid value for {name}: {e}")
            self._render_header()
            return False

        if getattr(self.header, name) == parsed:
            return True

        with self._mutation():
            setattr(self.header, name, parsed)
            self._mark_mutated()
            self._render_header()
        return True

    def on_cell_committed(self, row: int, column: str, value: Any = None) -> bool:
        """Apply a line cell edit. Returns False when the edit is rejected."""
        if not self._accepting_events():
            return False
        if not 0 <= row < len(self.lines):
            self._error(f"Line {row + 1} does not exist.")
            return False
        if column not in ("description", "status", "date", "time"):
            self._error(f"Column '{column}' cannot be edited.")
            return False

        raw = self.surface.get_cell(row, column) if value is None else value
        line = self.lines[row]

        if column == "date":
            try:
                parsed = _parse_date(raw)
            except ValueError as e:
                self._error(f"Invalid date on line {line.order}: {e}")
                self._render_lines()
                return False
        else:
            parsed = "" if raw is None else str(raw)

        if getattr(line, column) == parsed:
            if column == "status" and line.is_meaningful and not line.status:
                self._error(f"Line {line.order}: select a status.")
                return False
            return True

        accepted = True
        with self._mutation():
            if column == "description":
                self.lines.set_description(row, parsed)
            elif column == "status":
                accepted = self.lines.set_status(row, parsed)
            else:
                self.lines.set_cell(row, column, parsed)

            if accepted:
                self._mark_mutated()
            self._render_lines()

        if not accepted:
            self._error(f"Line {line.order}: select a status.")
        return accepted

    def insert_line(self, index: int) -> bool:
        """Insert a blank line before ``index``."""
        if not self._accepting_events():
            return False
        with self._mutation():
            self.lines.insert_line(index)
            self._mark_mutated()
            self._render_lines()
        return True

    def remove_line(self, index: int) -> bool:
        """Remove the line at ``index``."""
        if not self._accepting_events():
            return False
        if not 0 <= index < len(self.lines):
            self._error(f"Line {index + 1} does not exist.")
            return False
        with self._mutation():
            self.lines.remove_line(index)
            self._mark_mutated()
            self._render_lines()
        return True

    # ------------------------------------------------------------- selection

    def _guard_source_order(self, source_order_id: int) -> Optional[bool]:
        """
        Redirect to the existing document of a source order, if any.

        Returns True when redirected, False when the selection may proceed,
        None when the lookup or the redirect failed.
        """
        if source_order_id <= 0:
            return False
        try:
            existing = self._queries.find_by_source_order(source_order_id)
        except FollowupError as e:
            self._error(str(e))
            return None

        if existing and existing != self.header.id:
            logger.info(
                f"Source order {source_order_id} already tracked by document {existing}; opening it"
            )
            discarded = self.has_unsaved_changes
            if not self._open(existing):
                return None
            if discarded:
                self.surface.show_message(
                    f"Source order {source_order_id} is already tracked by document "
                    f"{existing}; unsaved changes were discarded."
                )
            return True
        return False

    def handle_selection(self, picker: str, payload: Mapping[str, Any]) -> bool:
        """
        Apply a choose-from-list selection.

        ``picker`` is ``"counterparty"`` (an open source order row of a
        counterparty), ``"source_order"`` or ``"document"``.
        """
        if not self._accepting_events():
            return False

        if picker == "document":
            if payload.get("document_id"):
                return self._open(int(payload["document_id"]))
            if payload.get("display_number"):
                return self.open_by_display_number(int(payload["display_number"]))
            self._error("No document selected.")
            return False

        if picker not in PICKER_FIELDS:
            self._error(f"Unknown selection '{picker}'.")
            return False

        try:
            source_order_id = int(payload.get("source_order_id") or 0)
        except (TypeError, ValueError):
            self._error(f"Invalid source order: {payload.get('source_order_id')!r}")
            return False

        guard = self._guard_source_order(source_order_id)
        if guard is None:
            return False
        if guard:
            return True

        updates = {key: payload[key] for key in PICKER_FIELDS[picker] if key in payload}
        if picker == "counterparty" and "source_order_status" in payload:
            updates["status"] = DocumentStatus.from_source_order_status(
                payload["source_order_status"]
            )

        try:
            header = TrackingHeader.model_validate({**self.header.model_dump(), **updates})
        except ValidationError as e:
            self._error(f"Invalid selection: {e.errors()[0]['msg']}")
            return False

        with self._mutation():
            self.header = header
            self._mark_mutated()
            self._render_header()
        return True

    # ------------------------------------------------------------------ save

    def select_save_action(self, action) -> SaveAction:
        """Choose the save variant used in Create mode; remembered until closed."""
        self.save_action = SaveAction(action)
        return self.save_action

    def _add(self, action: SaveAction) -> OperationResult:
        result = self._service.try_add(self.header, self.lines.to_persistable_lines())
        if not result.ok:
            self._error(result.error)
            return result

        document_id = result.value
        logger.info(f"Saved tracking document {document_id} ({action.value})")

        if action is SaveAction.SAVE_AND_NEW:
            self._reset(ModeTrigger.SAVED_AND_NEW)
        elif action is SaveAction.SAVE_AND_VIEW:
            if not self._open(document_id, ModeTrigger.SAVED_AND_VIEW):
                # Persisted but not reloaded: a later save updates it
                self.header.id = document_id
        else:
            self._close()
        return result

    def _update(self) -> OperationResult:
        result = self._service.try_update(self.header, self.lines.to_persistable_lines())
        if not result.ok:
            self._error(result.error)
            return result

        if not self._open(self.header.id, ModeTrigger.UPDATED):
            # Saved but not reloaded: leave Edit so nothing is reported as unsaved
            self.mode.fire(ModeTrigger.UPDATED)
        return OperationResult.success(self.header.id)

    def save(self) -> OperationResult:
        """Run the primary action of the current mode."""
        if not self._accepting_events():
            return OperationResult.failure("The editor is not accepting changes.", ErrorKind.VALIDATION)

        if self.current_mode is EditorMode.VIEW:
            return OperationResult.success(self.header.id)
        if self.current_mode is EditorMode.CREATE and not self.header.is_persisted:
            return self._add(self.save_action)
        return self._update()

    def delete_document(self) -> OperationResult:
        """Delete the loaded document and start a fresh one."""
        if not self._accepting_events():
            return OperationResult.failure("The editor is not accepting changes.", ErrorKind.VALIDATION)
        if not self.header.is_persisted:
            return OperationResult.failure("No saved document is loaded.", ErrorKind.NOT_FOUND)

        document_id = self.header.id
        result = self._service.try_delete(document_id)
        if not result.ok:
            self._error(result.error)
            return result

        self._reset(ModeTrigger.NEW)
        self.surface.show_message(f"Tracking document {document_id} deleted.")
        return result

    def cancel(self) -> bool:
        """Close the editor, asking first when there are unsaved changes. Returns True if closed."""
        if self.closed:
            return True
        if self.busy:
            return False

        if not self.has_unsaved_changes:
            self._close()
            return True

        choice = CancelChoice(self.surface.ask_unsaved_changes())
        if choice is CancelChoice.ABORT:
            return False
        if choice is CancelChoice.DISCARD_AND_CLOSE:
            self._close()
            return True

        if self.current_mode is EditorMode.CREATE and not self.header.is_persisted:
            self._add(SaveAction.SAVE_AND_CLOSE)
        elif self._update().ok:
            self._close()
        return self.closed
