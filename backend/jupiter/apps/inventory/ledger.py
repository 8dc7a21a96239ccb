"""
Stock ledger.

The only code allowed to change ``current_stock``. Functions accept anything
exposing ``current_stock`` (ORM items or the working-copy ``StockPosition``
used while editing a transaction); persistence is the caller's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Union

from .errors import InsufficientStockError
from .models import Item, TransactionTypeEnum
from .units import to_decimal

TransactionType = Union[TransactionTypeEnum, str]


@dataclass
class StockPosition:
    item_id: str
    name: str
    current_stock: Decimal

    @classmethod
    def of(cls, item: Item) -> "StockPosition":
        return cls(item_id=item.id, name=item.name, current_stock=to_decimal(item.current_stock))


def _type(value: TransactionType) -> TransactionTypeEnum:
    return value if isinstance(value, TransactionTypeEnum) else TransactionTypeEnum(value)


def signed_quantity(type_: TransactionType, base_quantity: Any) -> Decimal:
    quantity = to_decimal(base_quantity)
    if _type(type_) == TransactionTypeEnum.INBOUND:
        return quantity
    return -quantity


def _shift(target: Any, delta: Decimal) -> None:
    target.current_stock = to_decimal(target.current_stock) + delta


def apply_effect(target: Any, type_: TransactionType, base_quantity: Any) -> None:
    """Inbound adds, Outbound subtracts. Validate Outbound first."""
    _shift(target, signed_quantity(type_, base_quantity))


def revert_effect(target: Any, type_: TransactionType, base_quantity: Any) -> None:
    _shift(target, -signed_quantity(type_, base_quantity))


def validate_outbound(target: Any, base_quantity: Any) -> None:
    required = to_decimal(base_quantity)
    available = to_decimal(target.current_stock)
    if available < required:
        raise InsufficientStockError(
            item_id=getattr(target, "id", None) or getattr(target, "item_id", ""),
            item_name=getattr(target, "name", "") or "",
            required=required,
            available=available,
        )


def settle(item: Item, position: StockPosition) -> None:
    """Carry a validated working-copy position over to the real item."""
    delta = position.current_stock - to_decimal(item.current_stock)
    if delta > 0:
        apply_effect(item, TransactionTypeEnum.INBOUND, delta)
    elif delta < 0:
        apply_effect(item, TransactionTypeEnum.OUTBOUND, -delta)
