"""Pydantic models for API request/response validation."""

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, Field, ConfigDict  # type: ignore

from ..core.enums import DocumentStatus
from ..domain.models import TrackingHeader, TrackingLine


# Base response models
class BaseResponse(BaseModel):
    """Base response model with common fields."""

    model_config = ConfigDict(from_attributes=True)


class ProblemDetails(BaseModel):
    """RFC 9457 Problem Details for HTTP APIs."""

    type: str = Field(description="A URI reference that identifies the problem type")
    title: str = Field(
        description="A short, human-readable summary of the problem type"
    )
    status: int = Field(description="The HTTP status code")
    detail: Optional[str] = Field(
        None, description="A human-readable explanation specific to this occurrence"
    )
    instance: Optional[str] = Field(
        None, description="A URI reference that identifies the specific occurrence"
    )


# Document write schemas
class HeaderWrite(BaseModel):
    """Header fields accepted on create and update."""

    counterparty_code: str = Field("", description="Counterparty (supplier) code")
    counterparty_name: str = Field("", description="Counterparty name")
    external_reference: str = Field("", description="Counterparty's reference for the order")
    document_date: Optional[dt.date] = Field(None, description="Document date; today when omitted")
    status: DocumentStatus = Field(DocumentStatus.OPEN, description="0 open, 1 closed, 2 pending")
    source_order_id: int = Field(0, ge=0, description="Followed source order id, 0 for none")
    source_order_number: int = Field(0, ge=0, description="Followed source order number")

    def to_domain(self, document_id: int = 0) -> TrackingHeader:
        data = self.model_dump(exclude_none=True)
        return TrackingHeader(id=document_id, **data)


class LineWrite(BaseModel):
    """A tracking line as sent by clients."""

    order: int = Field(description="1-based line position")
    description: str = Field("", description="Milestone text; empty lines are dropped")
    date: Optional[dt.date] = Field(None, description="Entry date; today when omitted")
    time: str = Field("", description="Entry time HH:MM; now when omitted")
    status: str = Field("", description="Line status code")
    status_timestamp: Optional[dt.datetime] = Field(None, description="When the status was set")

    def to_domain(self) -> TrackingLine:
        return TrackingLine(**self.model_dump())


class DocumentWrite(BaseModel):
    """Schema for creating or replacing a tracking document."""

    header: HeaderWrite
    lines: List[LineWrite] = Field(default_factory=list)

    def domain_lines(self) -> List[TrackingLine]:
        return [line.to_domain() for line in self.lines]


# Document read schemas
class HeaderResponse(BaseResponse):
    """Schema for a tracking document header."""

    id: int
    display_number: int
    counterparty_code: str
    counterparty_name: str
    external_reference: str
    document_date: dt.date
    status: DocumentStatus
    source_order_id: int
    source_order_number: int


class LineResponse(BaseResponse):
    """Schema for a persisted tracking line."""

    line_id: int
    order: int
    description: str
    date: Optional[dt.date]
    time: str
    status: str
    status_timestamp: Optional[dt.datetime]


class DocumentResponse(BaseResponse):
    """Schema for a full tracking document."""

    header: HeaderResponse
    lines: List[LineResponse]


class DocumentListResponse(BaseResponse):
    """Schema for listing document headers."""

    documents: List[HeaderResponse]


class DocumentCreatedResponse(BaseModel):
    """Schema for the result of a create."""

    id: int = Field(description="Store-assigned document id")


class NextNumberResponse(BaseModel):
    """Schema for the next display number."""

    display_number: int


class SourceOrderDocumentResponse(BaseModel):
    """Schema for the document that follows a source order."""

    document_id: int = Field(description="Document id, 0 when the order is not tracked yet")


class OpenSourceOrderResponse(BaseResponse):
    """Schema for an open source order."""

    source_order_id: int
    source_order_number: int
    date: dt.date


class OpenSourceOrderListResponse(BaseResponse):
    """Schema for listing open source orders."""

    orders: List[OpenSourceOrderResponse]


class LineStatusResponse(BaseResponse):
    """Schema for a line status catalogue entry."""

    code: str
    name: str


class LineStatusListResponse(BaseResponse):
    """Schema for the line status catalogue."""

    statuses: List[LineStatusResponse]
