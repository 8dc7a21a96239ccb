from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Column, Date, DateTime, Index, Numeric, String, Text

from jupiter.database import Base
from jupiter.utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.utcnow()


class RejectMasterItem(Base):
    """
    Reject catalog. Kept apart from ``items``: logging a reject never moves stock.
    Up to two extra packaging units, each with a ratio to the base unit.
    """

    __tablename__ = "reject_master"
    __table_args__ = (Index("ix_reject_master_sku", "sku"),)

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    sku = Column(String(100), nullable=False)
    name = Column(String(255), nullable=False, default="Unnamed")
    base_unit = Column(String(50), nullable=False, default="Pcs")
    unit2 = Column(String(50), nullable=True)
    ratio2 = Column(Numeric(18, 4), nullable=True)
    unit3 = Column(String(50), nullable=True)
    ratio3 = Column(Numeric(18, 4), nullable=True)
    last_updated = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


class RejectLog(Base):
    __tablename__ = "reject_logs"
    __table_args__ = (Index("ix_reject_logs_date", "date"),)

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    date = Column(Date, nullable=False)
    # List of detail dicts: itemId, itemName, sku, baseUnit, quantity, unit,
    # ratio, totalBaseQuantity, reason.
    items = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
