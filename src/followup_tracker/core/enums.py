"""Enums for the follow-up tracker application."""

from enum import Enum, IntEnum


class DocumentStatus(IntEnum):
    """Status of a tracking document header."""

    OPEN = 0
    CLOSED = 1
    PENDING = 2

    @classmethod
    def from_source_order_status(cls, letter: str) -> "DocumentStatus":
        """Map a source order status letter (O/C/...) to a header status."""
        letter = (letter or "").strip().upper()
        if letter == "O":
            return cls.OPEN
        if letter == "C":
            return cls.CLOSED
        return cls.PENDING


class EditorMode(str, Enum):
    """Mode of the document editor."""

    CREATE = "create"
    VIEW = "view"
    EDIT = "edit"


class ModeTrigger(str, Enum):
    """Events that drive editor mode transitions."""

    NEW = "new"
    SAVED_AND_NEW = "saved_and_new"
    SAVED_AND_VIEW = "saved_and_view"
    LOADED = "loaded"
    MUTATED = "mutated"
    UPDATED = "updated"


class SaveAction(str, Enum):
    """Save variants offered by the save selector in Create mode."""

    SAVE_AND_NEW = "save_and_new"
    SAVE_AND_VIEW = "save_and_view"
    SAVE_AND_CLOSE = "save_and_close"


class CancelChoice(str, Enum):
    """Answers to the unsaved-changes prompt."""

    SAVE_AND_CLOSE = "save_and_close"
    DISCARD_AND_CLOSE = "discard_and_close"
    ABORT = "abort"


class ErrorKind(str, Enum):
    """Caller-visible error categories."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    STORE = "store"
    INTEGRITY = "integrity"


class SourceOrderStatus(str, Enum):
    """Document status letters used by the purchase order table."""

    OPEN = "O"
    CLOSED = "C"
