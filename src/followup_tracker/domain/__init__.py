"""Domain layer for the follow-up tracker.

Contains the tracking document models and pure validation rules.
This layer has no dependencies on infrastructure concerns.
"""

from .models import (
    LineStatusOption,
    OpenSourceOrder,
    TrackingDocument,
    TrackingHeader,
    TrackingLine,
)
from .validator import ValidationResult, validate_document

__all__ = [
    "LineStatusOption",
    "OpenSourceOrder",
    "TrackingDocument",
    "TrackingHeader",
    "TrackingLine",
    "ValidationResult",
    "validate_document",
]
