from __future__ import annotations

from datetime import date as date_type
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from jupiter.apps.inventory.schemas import CamelModel


class RejectMasterBase(CamelModel):
    sku: str = Field(..., min_length=1, max_length=100)
    name: str = "Unnamed"
    base_unit: str = "Pcs"
    unit2: Optional[str] = None
    ratio2: Optional[Decimal] = None
    unit3: Optional[str] = None
    ratio3: Optional[Decimal] = None


class RejectMasterCreate(RejectMasterBase):
    id: Optional[str] = None


class RejectMasterUpdate(CamelModel):
    sku: Optional[str] = Field(default=None, min_length=1, max_length=100)
    name: Optional[str] = None
    base_unit: Optional[str] = None
    unit2: Optional[str] = None
    ratio2: Optional[Decimal] = None
    unit3: Optional[str] = None
    ratio3: Optional[Decimal] = None


class RejectMasterRead(CamelModel):
    id: str
    sku: str
    name: str
    base_unit: str
    unit2: Optional[str] = None
    ratio2: Optional[float] = None
    unit3: Optional[str] = None
    ratio3: Optional[float] = None
    last_updated: Optional[datetime] = None


class RejectItemDetail(CamelModel):
    item_id: str = ""
    item_name: str = ""
    sku: str
    base_unit: str = "Pcs"
    quantity: Decimal = Field(..., gt=0)
    unit: Optional[str] = None
    ratio: Optional[Decimal] = None
    total_base_quantity: Optional[Decimal] = None
    reason: str = ""


class RejectLogCreate(CamelModel):
    id: Optional[str] = None
    date: date_type
    items: List[RejectItemDetail] = Field(default_factory=list)
    notes: Optional[str] = None


class RejectLogUpdate(CamelModel):
    date: Optional[date_type] = None
    items: Optional[List[RejectItemDetail]] = None
    notes: Optional[str] = None


class RejectItemDetailRead(CamelModel):
    item_id: str = ""
    item_name: str = ""
    sku: str
    base_unit: str = "Pcs"
    quantity: float
    unit: Optional[str] = None
    ratio: float = 1
    total_base_quantity: float
    reason: str = ""


class RejectLogRead(CamelModel):
    id: str
    date: date_type
    items: List[RejectItemDetailRead]
    notes: Optional[str] = None
    timestamp: datetime


class RejectSummaryRead(CamelModel):
    text: str
