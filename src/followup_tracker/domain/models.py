"""Domain models for tracking documents.

A tracking document is an aggregate of one header and an ordered list of
milestone lines. These models are independent of the store and of any
rendering surface.
"""

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field  # type: ignore

from ..core.enums import DocumentStatus


class TrackingHeader(BaseModel):
    """Header of a tracking document."""

    model_config = ConfigDict(from_attributes=True, validate_assignment=True)

    id: int = 0  # 0 until persisted
    display_number: int = 0
    counterparty_code: str = ""
    counterparty_name: str = ""
    external_reference: str = ""
    document_date: dt.date = Field(default_factory=dt.date.today)
    status: DocumentStatus = DocumentStatus.OPEN
    source_order_id: int = 0  # 0 when not linked to a source order
    source_order_number: int = 0

    @property
    def is_persisted(self) -> bool:
        return self.id > 0


class TrackingLine(BaseModel):
    """One timestamped milestone of a tracking document."""

    model_config = ConfigDict(from_attributes=True, validate_assignment=True)

    line_id: int = 0  # 0 for buffer-only lines
    order: int = 0
    description: str = ""
    date: Optional[dt.date] = None
    time: str = ""
    status: str = ""
    status_timestamp: Optional[dt.datetime] = None

    @property
    def is_meaningful(self) -> bool:
        """A line is meaningful when its description is non-empty."""
        return bool(self.description and self.description.strip())


class TrackingDocument(BaseModel):
    """Header plus lines, ordered by line order."""

    model_config = ConfigDict(from_attributes=True)

    header: TrackingHeader
    lines: List[TrackingLine] = Field(default_factory=list)


class OpenSourceOrder(BaseModel):
    """An open purchase order that a tracking document can follow."""

    model_config = ConfigDict(frozen=True)

    source_order_id: int
    source_order_number: int
    date: dt.date


class LineStatusOption(BaseModel):
    """Entry of the line status catalogue."""

    model_config = ConfigDict(frozen=True)

    code: str
    name: str
