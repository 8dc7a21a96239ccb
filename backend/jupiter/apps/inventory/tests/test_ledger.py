from __future__ import annotations

from decimal import Decimal

import pytest

from jupiter.apps.inventory import ledger
from jupiter.apps.inventory.errors import InsufficientStockError
from jupiter.apps.inventory.models import Item, TransactionTypeEnum


def _item(stock) -> Item:
    return Item(id="item-1", sku="A", name="Bolt", current_stock=Decimal(stock))


def test_apply_and_revert_are_inverse():
    item = _item("10")
    ledger.apply_effect(item, TransactionTypeEnum.OUTBOUND, Decimal("3.5"))
    assert item.current_stock == Decimal("6.5")
    ledger.revert_effect(item, TransactionTypeEnum.OUTBOUND, Decimal("3.5"))
    assert item.current_stock == Decimal("10")

    ledger.apply_effect(item, "Inbound", 4)
    assert item.current_stock == Decimal("14")


def test_validate_outbound_names_item_and_shortfall():
    item = _item("10")
    with pytest.raises(InsufficientStockError) as excinfo:
        ledger.validate_outbound(item, 15)
    assert excinfo.value.shortfall == Decimal("5")
    assert "Bolt" in excinfo.value.message
    assert excinfo.value.detail["item_id"] == "item-1"
    ledger.validate_outbound(item, 10)


def test_settle_moves_working_copy_onto_item():
    item = _item("10")
    position = ledger.StockPosition.of(item)
    ledger.apply_effect(position, TransactionTypeEnum.INBOUND, 7)
    assert item.current_stock == Decimal("10")

    ledger.settle(item, position)
    assert item.current_stock == Decimal("17")

    position.current_stock = Decimal("2")
    ledger.settle(item, position)
    assert item.current_stock == Decimal("2")
