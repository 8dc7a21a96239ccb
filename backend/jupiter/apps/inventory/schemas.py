from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from . import models

QUANTITY_STEP = Decimal("0.0001")


class CamelModel(BaseModel):
    """Accepts snake_case or the camelCase keys the web client sends."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


class ItemBase(CamelModel):
    sku: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    category: str = "Uncategorized"
    price: Decimal = Decimal("0")
    location: str = "-"
    min_level: int = 0
    unit: str = "pcs"
    status: models.ItemStatusEnum = models.ItemStatusEnum.ACTIVE
    conversion_rate: Optional[Decimal] = Decimal("1")
    secondary_unit: Optional[str] = None


class ItemCreate(ItemBase):
    id: Optional[str] = None
    # Opening balance, posted through the ledger as an Inbound effect.
    current_stock: Decimal = Field(default=Decimal("0"), ge=0)


class ItemUpdate(CamelModel):
    sku: Optional[str] = Field(default=None, min_length=1, max_length=100)
    name: Optional[str] = None
    category: Optional[str] = None
    price: Optional[Decimal] = None
    location: Optional[str] = None
    min_level: Optional[int] = None
    unit: Optional[str] = None
    status: Optional[models.ItemStatusEnum] = None
    conversion_rate: Optional[Decimal] = None
    secondary_unit: Optional[str] = None


class ItemRead(CamelModel):
    id: str
    sku: str
    name: str
    category: str
    price: float
    location: str
    min_level: int
    current_stock: float
    unit: str
    status: models.ItemStatusEnum
    conversion_rate: float
    secondary_unit: Optional[str] = None


class ItemBulkDelete(CamelModel):
    ids: List[str] = Field(default_factory=list)


class KpiRead(CamelModel):
    total_value: float
    total_units: float
    total_sku: int
    low_stock_count: int


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class CartItem(CamelModel):
    item_id: str
    item_name: str = ""
    sku: str = ""
    quantity: Decimal = Field(..., gt=0)  # base units
    current_stock: Optional[Decimal] = None
    input_quantity: Optional[Decimal] = None
    input_unit: Optional[str] = None

    @field_validator("quantity")
    @classmethod
    def _quantity_scale(cls, value: Decimal) -> Decimal:
        # Stock columns are Numeric(18, 4).
        value = value.quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)
        if value <= 0:
            raise ValueError("quantity must be at least 0.0001")
        return value


class TransactionDetails(CamelModel):
    date: Optional[datetime] = None
    supplier_name: Optional[str] = None
    po_number: Optional[str] = None
    ri_number: Optional[str] = None
    sj_number: Optional[str] = None
    photos: Optional[List[str]] = None


class TransactionCreate(TransactionDetails):
    type: models.TransactionTypeEnum
    items: List[CartItem] = Field(default_factory=list)


class TransactionUpdate(TransactionDetails):
    items: List[CartItem] = Field(default_factory=list)


class LineItemRead(CamelModel):
    item_id: str
    item_name: str
    sku: str
    quantity: float
    current_stock: Optional[float] = None
    input_quantity: Optional[float] = None
    input_unit: Optional[str] = None


class TransactionRead(CamelModel):
    id: str
    transaction_id: str
    type: models.TransactionTypeEnum
    date: datetime
    items: List[LineItemRead]
    supplier_name: Optional[str] = None
    po_number: Optional[str] = None
    ri_number: Optional[str] = None
    sj_number: Optional[str] = None
    total_items: float
    photos: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Bulk import
# ---------------------------------------------------------------------------


class ImportBatchRequest(CamelModel):
    type: models.TransactionTypeEnum
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    cart: List[CartItem] = Field(default_factory=list)
    auto_raise: Optional[bool] = None


class StockAdjustmentRead(CamelModel):
    id: int
    item_id: str
    sku: str
    reason: models.StockAdjustmentReasonEnum
    transaction_type: models.TransactionTypeEnum
    previous_stock: float
    new_stock: float
    quantity: float
    created_at: datetime


class ImportRowErrorRead(CamelModel):
    row_number: int
    sku: Optional[str] = None
    error_kind: str
    message: str


class ImportCounts(CamelModel):
    items_added: int = 0
    new_skus: int = 0
    stock_adjusted: int = 0
    errors: int = 0


class ImportReconciliationRead(CamelModel):
    cart: List[LineItemRead]
    new_items_created: List[ItemRead]
    stock_adjustments: List[StockAdjustmentRead]
    row_errors: List[ImportRowErrorRead]
    counts: ImportCounts
