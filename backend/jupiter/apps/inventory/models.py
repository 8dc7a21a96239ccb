from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum as SAEnum,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)

from jupiter.database import Base
from jupiter.utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.utcnow()


class ItemStatusEnum(str, enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class TransactionTypeEnum(str, enum.Enum):
    INBOUND = "Inbound"
    OUTBOUND = "Outbound"


class StockAdjustmentReasonEnum(str, enum.Enum):
    IMPORT_NEW_SKU = "IMPORT_NEW_SKU"
    IMPORT_SHORTFALL = "IMPORT_SHORTFALL"


class Item(Base):
    __tablename__ = "items"
    __table_args__ = (
        UniqueConstraint("sku", name="uq_items_sku"),
        Index("ix_items_name", "name"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    sku = Column(String(100), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False, default="Uncategorized")
    price = Column(Numeric(15, 2), nullable=False, default=0)
    location = Column(String(100), nullable=False, default="-")
    min_level = Column(Integer, nullable=False, default=0)
    # Written only by jupiter.apps.inventory.ledger.
    current_stock = Column(Numeric(18, 4), nullable=False, default=0)
    unit = Column(String(50), nullable=False, default="pcs")
    status = Column(
        SAEnum(
            ItemStatusEnum,
            name="item_status_enum",
            native_enum=False,
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
        default=ItemStatusEnum.ACTIVE,
    )
    conversion_rate = Column(Numeric(18, 4), nullable=False, default=1)
    secondary_unit = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


class StockTransaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_date", "date"),
        Index("ix_transactions_type_date", "type", "date"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7)
    transaction_id = Column(String(100), nullable=False, unique=True, index=True)
    type = Column(
        SAEnum(
            TransactionTypeEnum,
            name="transaction_type_enum",
            native_enum=False,
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
    )
    date = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    # Line items are value snapshots, never foreign keys (see schemas.CartItem).
    items = Column(JSON, nullable=False, default=list)
    supplier_name = Column(String(255), nullable=True)
    po_number = Column(String(100), nullable=True)
    ri_number = Column(String(100), nullable=True)
    sj_number = Column(String(100), nullable=True)
    total_items = Column(Numeric(18, 4), nullable=False, default=0)
    photos = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


class TransactionSequence(Base):
    """Per-year counter behind the ``TRX-<year>-<seq>`` labels."""

    __tablename__ = "transaction_sequences"

    year = Column(Integer, primary_key=True, autoincrement=False)
    last_value = Column(Integer, nullable=False, default=0)


class StockAdjustment(Base):
    __tablename__ = "stock_adjustments"
    __table_args__ = (Index("ix_stock_adjustments_item", "item_id", "created_at"),)

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(String(36), nullable=False)
    sku = Column(String(100), nullable=False)
    reason = Column(
        SAEnum(StockAdjustmentReasonEnum, name="stock_adjustment_reason_enum", native_enum=False),
        nullable=False,
    )
    transaction_type = Column(
        SAEnum(
            TransactionTypeEnum,
            name="stock_adjustment_type_enum",
            native_enum=False,
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
    )
    previous_stock = Column(Numeric(18, 4), nullable=False)
    new_stock = Column(Numeric(18, 4), nullable=False)
    quantity = Column(Numeric(18, 4), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
