"""SQLAlchemy models for the follow-up tracker."""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    String,
    Integer,
    SmallInteger,
    Date,
    DateTime,
    ForeignKey,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TrackingDocumentRow(Base):
    """Header of a tracking document."""

    __tablename__ = "tracking_documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    display_number = Column(Integer, nullable=False)
    counterparty_code = Column(String(50), nullable=False)
    counterparty_name = Column(String(200), nullable=False, default="")
    external_reference = Column(String(100), nullable=False, default="")
    document_date = Column(Date, nullable=False)
    status = Column(SmallInteger, nullable=False, default=0)  # DocumentStatus
    # NULL when the document follows no source order; at most one document per order
    source_order_id = Column(Integer, nullable=True)
    source_order_number = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    lines = relationship(
        "TrackingLineRow",
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TrackingLineRow.line_order",
    )

    __table_args__ = (
        UniqueConstraint("source_order_id", name="uq_tracking_documents_source_order_id"),
        Index("ix_tracking_documents_counterparty", "counterparty_code"),
        Index("ix_tracking_documents_display_number", "display_number"),
    )

    def __repr__(self):
        return (
            f"<TrackingDocumentRow(id={self.id}, display_number={self.display_number}, "
            f"counterparty_code='{self.counterparty_code}')>"
        )


class TrackingLineRow(Base):
    """A milestone line of a tracking document."""

    __tablename__ = "tracking_lines"

    line_id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(
        Integer,
        ForeignKey("tracking_documents.id", ondelete="CASCADE"),
        nullable=False,
    )
    line_order = Column(Integer, nullable=False)
    description = Column(String(254), nullable=False)
    entry_date = Column(Date, nullable=False)
    entry_time = Column(String(5), nullable=False)  # HH:MM
    status = Column(String(30), nullable=False, default="")
    status_timestamp = Column(DateTime, nullable=True)

    document = relationship("TrackingDocumentRow", back_populates="lines")

    __table_args__ = (
        Index("ix_tracking_lines_document_order", "document_id", "line_order"),
        # line ids are never reused, even after the highest one is deleted
        {"sqlite_autoincrement": True},
    )

    def __repr__(self):
        return (
            f"<TrackingLineRow(line_id={self.line_id}, document_id={self.document_id}, "
            f"line_order={self.line_order})>"
        )


class PurchaseOrderRow(Base):
    """Source purchase order. Read-only for the tracker."""

    __tablename__ = "purchase_orders"

    id = Column(Integer, primary_key=True)
    doc_number = Column(Integer, nullable=False)
    counterparty_code = Column(String(50), nullable=False)
    counterparty_name = Column(String(200), nullable=False, default="")
    external_reference = Column(String(100), nullable=False, default="")
    doc_date = Column(Date, nullable=False)
    doc_status = Column(String(1), nullable=False, default="O")  # O open, C closed

    __table_args__ = (
        Index("ix_purchase_orders_counterparty_status", "counterparty_code", "doc_status"),
    )

    def __repr__(self):
        return f"<PurchaseOrderRow(id={self.id}, doc_number={self.doc_number})>"


class LineStatusRow(Base):
    """Entry of the line status catalogue."""

    __tablename__ = "line_statuses"

    code = Column(String(30), primary_key=True)
    name = Column(String(100), nullable=False)

    def __repr__(self):
        return f"<LineStatusRow(code='{self.code}', name='{self.name}')>"
