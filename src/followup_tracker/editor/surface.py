"""Host surface contract for the editor.

The editor talks to whatever renders it (a desktop form, a terminal UI,
a test double) through ``EditorSurface``. Values crossing the boundary are
display strings.
"""

from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Protocol, Sequence, Tuple

from ..core.enums import CancelChoice
from ..domain.models import LineStatusOption
from .mode import PrimaryAffordance

HEADER_FIELDS: Tuple[str, ...] = (
    "document_id",
    "display_number",
    "counterparty_code",
    "counterparty_name",
    "external_reference",
    "document_date",
    "status",
    "source_order_id",
    "source_order_number",
)

LINE_COLUMNS: Tuple[str, ...] = (
    "line_id",
    "order",
    "description",
    "date",
    "time",
    "status",
    "status_timestamp",
)


class EditorSurface(Protocol):
    """Bound fields, a bound row grid and a few dialogs."""

    def get_field(self, name: str) -> str: ...

    def set_field(self, name: str, value: str) -> None: ...

    def columns(self) -> Sequence[str]: ...

    def row_count(self) -> int: ...

    def get_cell(self, row: int, column: str) -> str: ...

    def set_cell(self, row: int, column: str, value: str) -> None: ...

    def insert_row(self, index: int) -> None: ...

    def remove_row(self, index: int) -> None: ...

    def freeze(self):
        """Context manager suspending repaint while the editor mutates state."""
        ...

    def show_primary_action(self, affordance: PrimaryAffordance) -> None: ...

    def show_message(self, text: str, is_error: bool = False) -> None: ...

    def ask_unsaved_changes(self) -> CancelChoice: ...

    def set_status_choices(self, options: Sequence[LineStatusOption]) -> None: ...

    def close(self) -> None: ...


class HeadlessSurface:
    """In-memory surface. Records everything the editor renders."""

    def __init__(self, cancel_answers: Optional[Sequence[CancelChoice]] = None):
        self.fields: Dict[str, str] = {name: "" for name in HEADER_FIELDS}
        self.rows: List[Dict[str, str]] = []
        self.affordance: Optional[PrimaryAffordance] = None
        self.messages: List[Tuple[str, bool]] = []
        self.status_choices: List[LineStatusOption] = []
        self.cancel_answers: List[CancelChoice] = list(cancel_answers or [])
        self.prompts = 0
        self.closed = False
        self.freeze_depth = 0
        self.freeze_count = 0

    def get_field(self, name: str) -> str:
        return self.fields[name]

    def set_field(self, name: str, value: str) -> None:
        self.fields[name] = value

    def columns(self) -> Sequence[str]:
        return LINE_COLUMNS

    def row_count(self) -> int:
        return len(self.rows)

    def get_cell(self, row: int, column: str) -> str:
        return self.rows[row][column]

    def set_cell(self, row: int, column: str, value: str) -> None:
        self.rows[row][column] = value

    def insert_row(self, index: int) -> None:
        self.rows.insert(index, {column: "" for column in LINE_COLUMNS})

    def remove_row(self, index: int) -> None:
        del self.rows[index]

    @contextmanager
    def freeze(self) -> Iterator[None]:
        self.freeze_depth += 1
        self.freeze_count += 1
        try:
            yield
        finally:
            self.freeze_depth -= 1

    @property
    def frozen(self) -> bool:
        return self.freeze_depth > 0

    def show_primary_action(self, affordance: PrimaryAffordance) -> None:
        self.affordance = affordance

    def show_message(self, text: str, is_error: bool = False) -> None:
        self.messages.append((text, is_error))

    @property
    def last_message(self) -> Optional[str]:
        return self.messages[-1][0] if self.messages else None

    def ask_unsaved_changes(self) -> CancelChoice:
        self.prompts += 1
        if self.cancel_answers:
            return self.cancel_answers.pop(0)
        return CancelChoice.ABORT

    def set_status_choices(self, options: Sequence[LineStatusOption]) -> None:
        self.status_choices = list(options)

    def close(self) -> None:
        self.closed = True
