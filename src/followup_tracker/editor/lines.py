"""
In-memory line buffer of the editor.

Keeps the buffer well formed: line orders are the dense 1-based display
positions, and the buffer always ends with exactly one blank line that
serves as the slot for the next milestone.
"""

from datetime import datetime
from typing import Callable, Iterable, Iterator, List, Optional

from ..domain.models import TrackingLine


class LineCollectionManager:
    """Ordered, self-extending buffer of tracking lines."""

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        time_format: str = "%H:%M",
    ):
        self._clock = clock or datetime.now
        self._time_format = time_format
        self._lines: List[TrackingLine] = []
        self.reset()

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[TrackingLine]:
        return iter(self._lines)

    def __getitem__(self, row: int) -> TrackingLine:
        return self._lines[row]

    @property
    def lines(self) -> List[TrackingLine]:
        return list(self._lines)

    @property
    def last(self) -> TrackingLine:
        return self._lines[-1]

    def reset(self, lines: Optional[Iterable[TrackingLine]] = None) -> None:
        """Replace the buffer with copies of ``lines`` plus the trailing blank."""
        source = sorted(lines or [], key=lambda line: line.order)
        self._lines = [line.model_copy() for line in source]
        self._trim_trailing_blanks()
        self.renumber()
        self.ensure_trailing_blank()

    def ensure_trailing_blank(self) -> bool:
        """Append a blank line if the last line is meaningful. Returns True if appended."""
        if self._lines and not self._lines[-1].is_meaningful:
            return False
        next_order = self._lines[-1].order + 1 if self._lines else 1
        self._lines.append(TrackingLine(order=next_order))
        return True

    def _trim_trailing_blanks(self) -> None:
        while len(self._lines) > 1 and not self._lines[-1].is_meaningful and not self._lines[-2].is_meaningful:
            self._lines.pop()

    def renumber(self) -> None:
        """Reassign orders as 1-based display positions."""
        for position, line in enumerate(self._lines, start=1):
            if line.order != position:
                line.order = position

    def set_description(self, row: int, description: str) -> None:
        self._lines[row].description = description or ""
        self.on_description_committed(row)

    def on_description_committed(self, row: int) -> None:
        """Stamp date and time on a newly meaningful line and keep the trailing blank."""
        line = self._lines[row]
        if line.is_meaningful:
            now = self._clock()
            if line.date is None:
                line.date = now.date()
            if not line.time:
                line.time = now.strftime(self._time_format)
            if row == len(self._lines) - 1:
                self.ensure_trailing_blank()
        else:
            self._trim_trailing_blanks()
            self.ensure_trailing_blank()

    def set_status(self, row: int, status: str) -> bool:
        """Commit a status on a row. Returns False, leaving the row untouched, if rejected."""
        line = self._lines[row]
        previous = line.status
        line.status = (status or "").strip()
        if not self.on_status_committed(row):
            line.status = previous
            return False
        return True

    def on_status_committed(self, row: int) -> bool:
        """
        Validate and stamp a committed status.

        A meaningful line cannot be left without a status; that commit is
        rejected. Otherwise a non-empty status stamps the status timestamp.
        """
        line = self._lines[row]
        if line.is_meaningful and not line.status:
            return False

        if line.status:
            line.status_timestamp = self._clock()
        self.ensure_trailing_blank()
        return True

    def set_cell(self, row: int, column: str, value) -> None:
        """Set a free-form cell (date or time) without side effects."""
        if column not in ("date", "time"):
            raise KeyError(column)
        setattr(self._lines[row], column, value)

    def insert_line(self, index: int) -> TrackingLine:
        """Insert a blank line before ``index`` and renumber."""
        index = max(0, min(index, len(self._lines)))
        line = TrackingLine()
        self._lines.insert(index, line)
        self._trim_trailing_blanks()
        self.renumber()
        self.ensure_trailing_blank()
        if any(existing is line for existing in self._lines):
            return line
        return self._lines[-1]

    def remove_line(self, index: int) -> TrackingLine:
        """Remove the line at ``index`` and renumber."""
        removed = self._lines.pop(index)
        self._trim_trailing_blanks()
        if not self._lines:
            self._lines.append(TrackingLine(order=1))
        self.renumber()
        self.ensure_trailing_blank()
        return removed

    def to_persistable_lines(self) -> List[TrackingLine]:
        """Meaningful lines only, in order, renumbered densely from 1."""
        meaningful = sorted(
            (line for line in self._lines if line.is_meaningful), key=lambda line: line.order
        )
        return [
            line.model_copy(update={"order": position})
            for position, line in enumerate(meaningful, start=1)
        ]
