"""
Pending cart handling shared by the interactive form and the bulk importer.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from . import ledger
from .models import Item, TransactionTypeEnum
from .schemas import CartItem
from .units import rate_for_unit, to_base, to_decimal


def build_line(item: Item, quantity: Decimal, unit: Optional[str]) -> CartItem:
    rate = rate_for_unit(item, unit)
    if rate is None:
        unit, rate = item.unit, Decimal("1")
    return CartItem(
        item_id=item.id,
        item_name=item.name,
        sku=item.sku,
        quantity=to_base(quantity, rate),
        current_stock=to_decimal(item.current_stock),
        input_quantity=to_decimal(quantity),
        input_unit=(unit or "").strip() or item.unit,
    )


def check_cart_line(item: Item, line: CartItem, type_: TransactionTypeEnum) -> None:
    """The add-to-cart pre-check; the commit re-validates under lock."""
    if TransactionTypeEnum(type_) == TransactionTypeEnum.OUTBOUND:
        ledger.validate_outbound(item, line.quantity)


def merge_line(cart: List[CartItem], line: CartItem) -> List[CartItem]:
    """
    Add ``line`` to ``cart`` in place, merging with a line for the same item.

    Base quantities always add up. The typed quantity/unit survive only while
    every merged row used the same unit; a mix clears them.
    """
    for existing in cart:
        if existing.item_id != line.item_id:
            continue
        existing.quantity = to_decimal(existing.quantity) + to_decimal(line.quantity)
        same_unit = (
            existing.input_unit is not None
            and line.input_unit is not None
            and existing.input_unit.strip().lower() == line.input_unit.strip().lower()
            and existing.input_quantity is not None
            and line.input_quantity is not None
        )
        if same_unit:
            existing.input_quantity = to_decimal(existing.input_quantity) + to_decimal(line.input_quantity)
        else:
            existing.input_quantity = None
            existing.input_unit = None
        existing.current_stock = line.current_stock
        return cart
    cart.append(line)
    return cart


def add_to_cart(
    cart: List[CartItem],
    item: Item,
    quantity: Decimal,
    unit: Optional[str] = None,
    *,
    type_: TransactionTypeEnum,
    check_stock: bool = True,
) -> List[CartItem]:
    line = build_line(item, quantity, unit)
    if check_stock:
        already = sum(
            (to_decimal(existing.quantity) for existing in cart if existing.item_id == item.id),
            Decimal("0"),
        )
        check_cart_line(item, line.model_copy(update={"quantity": line.quantity + already}), type_)
    return merge_line(cart, line)
