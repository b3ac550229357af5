"""
Pure validation of tracking documents before any write.

No store access and no side effects; callable from the editor, the
application service or the HTTP layer alike.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from .models import TrackingHeader, TrackingLine


MISSING_COUNTERPARTY = "The counterparty is required."
MISSING_LINES = "At least one tracking line is required."
MISSING_DESCRIPTION = "There are lines without a description."


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a header and its lines."""

    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __bool__(self) -> bool:
        return self.ok


VALID = ValidationResult()


def validate_document(
    header: TrackingHeader, lines: Optional[Iterable[TrackingLine]]
) -> ValidationResult:
    """
    Validate a header and its lines, stopping at the first violated rule.

    Rules, in order:
    1. counterparty code is non-empty
    2. at least one meaningful (non-empty description) line
    3. every meaningful line has a description
    4. every meaningful line has a status
    5. every meaningful line has an order greater than zero

    Never raises; a missing header or line list is reported as a failure.
    """
    if header is None or not (header.counterparty_code or "").strip():
        return ValidationResult(MISSING_COUNTERPARTY)

    meaningful = [line for line in (lines or []) if line is not None and line.is_meaningful]
    if not meaningful:
        return ValidationResult(MISSING_LINES)

    for line in meaningful:
        if not (line.description or "").strip():
            return ValidationResult(MISSING_DESCRIPTION)

        if not (line.status or "").strip():
            return ValidationResult(
                f"Line {line.order}: a status must be selected on every line."
            )

        if line.order <= 0:
            return ValidationResult(
                f"Line '{line.description.strip()}': the line order must be greater than zero."
            )

    return VALID
