from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from jupiter.apps.inventory import models, schemas, services
from jupiter.apps.inventory.models import TransactionTypeEnum


def _create_item(db, sku="A", stock=0, **extra) -> models.Item:
    item = services.create_item(
        db,
        payload=schemas.ItemCreate(sku=sku, name=f"Item {sku}", current_stock=stock, **extra),
    )
    db.commit()
    return item


def _line(item, quantity, **extra) -> schemas.CartItem:
    return schemas.CartItem(item_id=item.id, item_name=item.name, sku=item.sku, quantity=quantity, **extra)


def test_commit_inbound_adds_stock_and_labels_transaction(db_session):
    item = _create_item(db_session, stock=10)
    result = services.commit_transaction(
        db_session,
        type_=TransactionTypeEnum.INBOUND,
        line_items=[_line(item, 5)],
        details=schemas.TransactionDetails(date=datetime(2024, 3, 1), supplier_name="PT Maju"),
    )
    db_session.commit()

    assert result.success
    trx = result.transaction
    assert trx.transaction_id == "TRX-2024-001"
    assert trx.total_items == Decimal("5")
    assert trx.supplier_name == "PT Maju"
    assert trx.items[0]["itemId"] == item.id
    assert trx.items[0]["currentStock"] == 10
    assert item.current_stock == Decimal("15")


def test_outbound_short_line_fails_without_mutation(db_session):
    item = _create_item(db_session, stock=10)
    result = services.commit_transaction(
        db_session, type_=TransactionTypeEnum.OUTBOUND, line_items=[_line(item, 15)]
    )

    assert result.success is False
    assert result.error_kind == "InsufficientStockError"
    assert "Item A" in result.message
    assert item.current_stock == Decimal("10")
    assert services.list_transactions(db_session) == []


def test_multi_line_outbound_is_all_or_nothing(db_session):
    first = _create_item(db_session, sku="A", stock=10)
    second = _create_item(db_session, sku="B", stock=3)
    result = services.commit_transaction(
        db_session,
        type_=TransactionTypeEnum.OUTBOUND,
        line_items=[_line(first, 4), _line(second, 5)],
    )

    assert not result.success
    assert first.current_stock == Decimal("10")
    assert second.current_stock == Decimal("3")
    assert services.list_transactions(db_session) == []


def test_duplicate_lines_are_summed_before_outbound_validation(db_session):
    item = _create_item(db_session, stock=10)
    result = services.commit_transaction(
        db_session,
        type_=TransactionTypeEnum.OUTBOUND,
        line_items=[_line(item, 6), _line(item, 6)],
    )
    assert not result.success
    assert item.current_stock == Decimal("10")


def test_empty_and_unknown_items_fail(db_session):
    empty = services.commit_transaction(db_session, type_=TransactionTypeEnum.INBOUND, line_items=[])
    assert empty.error_kind == "EmptyTransactionError"

    missing = services.commit_transaction(
        db_session,
        type_=TransactionTypeEnum.INBOUND,
        line_items=[schemas.CartItem(item_id="nope", quantity=1)],
    )
    assert missing.error_kind == "NotFoundError"


def test_commit_then_delete_restores_stock_exactly(db_session):
    item = _create_item(db_session, stock="10.3")
    result = services.commit_transaction(
        db_session,
        type_=TransactionTypeEnum.OUTBOUND,
        line_items=[_line(item, "0.1"), _line(item, "0.2")],
    )
    db_session.commit()
    assert item.current_stock == Decimal("10.0")

    services.delete_transaction(db_session, transaction_id=result.transaction.id)
    db_session.commit()
    assert item.current_stock == Decimal("10.3")
    assert services.get_transaction(db_session, transaction_id=result.transaction.id) is None


def test_delete_unknown_transaction_is_noop(db_session):
    assert services.delete_transaction(db_session, transaction_id="missing") is None


def test_edit_reverts_original_before_applying_new_lines(db_session):
    item = _create_item(db_session, stock=100)
    result = services.commit_transaction(
        db_session, type_=TransactionTypeEnum.INBOUND, line_items=[_line(item, 20)]
    )
    db_session.commit()
    assert item.current_stock == Decimal("120")

    edited = services.edit_transaction(
        db_session,
        transaction_id=result.transaction.id,
        details=schemas.TransactionDetails(po_number="PO-9"),
        line_items=[_line(item, 5)],
    )
    db_session.commit()

    assert edited.success
    assert item.current_stock == Decimal("105")
    assert edited.transaction.total_items == Decimal("5")
    assert edited.transaction.po_number == "PO-9"
    assert edited.transaction.transaction_id == result.transaction.transaction_id


def test_edit_adds_removes_and_changes_lines(db_session):
    first = _create_item(db_session, sku="A", stock=50)
    second = _create_item(db_session, sku="B", stock=50)
    third = _create_item(db_session, sku="C", stock=50)
    result = services.commit_transaction(
        db_session,
        type_=TransactionTypeEnum.OUTBOUND,
        line_items=[_line(first, 10), _line(second, 10)],
    )
    db_session.commit()

    edited = services.edit_transaction(
        db_session,
        transaction_id=result.transaction.id,
        details=None,
        line_items=[_line(first, 30), _line(third, 5)],
    )
    db_session.commit()

    assert edited.success
    assert first.current_stock == Decimal("20")
    assert second.current_stock == Decimal("50")
    assert third.current_stock == Decimal("45")
    assert [line["sku"] for line in edited.transaction.items] == ["A", "C"]


def test_edit_that_oversells_leaves_everything_unchanged(db_session):
    item = _create_item(db_session, stock=10)
    result = services.commit_transaction(
        db_session, type_=TransactionTypeEnum.OUTBOUND, line_items=[_line(item, 4)]
    )
    db_session.commit()
    before_items = list(result.transaction.items)

    edited = services.edit_transaction(
        db_session,
        transaction_id=result.transaction.id,
        details=schemas.TransactionDetails(supplier_name="changed"),
        line_items=[_line(item, 11)],
    )

    assert not edited.success
    assert edited.error_kind == "InsufficientStockError"
    assert item.current_stock == Decimal("6")
    assert result.transaction.items == before_items
    assert result.transaction.supplier_name is None


def test_edit_rejects_empty_line_items(db_session):
    item = _create_item(db_session, stock=10)
    result = services.commit_transaction(
        db_session, type_=TransactionTypeEnum.INBOUND, line_items=[_line(item, 1)]
    )
    edited = services.edit_transaction(
        db_session, transaction_id=result.transaction.id, details=None, line_items=[]
    )
    assert edited.error_kind == "EmptyTransactionError"
    assert item.current_stock == Decimal("11")


def test_labels_never_repeat_after_delete(db_session):
    item = _create_item(db_session, stock=0)
    details = schemas.TransactionDetails(date=datetime(2025, 1, 5))
    first = services.commit_transaction(
        db_session, type_=TransactionTypeEnum.INBOUND, line_items=[_line(item, 1)], details=details
    )
    second = services.commit_transaction(
        db_session, type_=TransactionTypeEnum.INBOUND, line_items=[_line(item, 1)], details=details
    )
    services.delete_transaction(db_session, transaction_id=first.transaction.id)
    third = services.commit_transaction(
        db_session, type_=TransactionTypeEnum.INBOUND, line_items=[_line(item, 1)], details=details
    )
    db_session.commit()

    assert second.transaction.transaction_id == "TRX-2025-002"
    assert third.transaction.transaction_id == "TRX-2025-003"


def test_deleting_consumed_inbound_may_go_negative(db_session):
    item = _create_item(db_session, stock=0)
    inbound = services.commit_transaction(
        db_session, type_=TransactionTypeEnum.INBOUND, line_items=[_line(item, 10)]
    )
    services.commit_transaction(db_session, type_=TransactionTypeEnum.OUTBOUND, line_items=[_line(item, 8)])
    services.delete_transaction(db_session, transaction_id=inbound.transaction.id)
    db_session.commit()

    assert item.current_stock == Decimal("-8")
    assert services.journal_balance(db_session, item_id=item.id) == Decimal("-8")


def test_stock_matches_journal_after_mixed_operations(db_session):
    item = _create_item(db_session, stock=0)
    other = _create_item(db_session, sku="B", stock=0)
    a = services.commit_transaction(
        db_session, type_=TransactionTypeEnum.INBOUND, line_items=[_line(item, 40), _line(other, 7)]
    )
    b = services.commit_transaction(db_session, type_=TransactionTypeEnum.OUTBOUND, line_items=[_line(item, 15)])
    services.edit_transaction(db_session, transaction_id=b.transaction.id, details=None, line_items=[_line(item, 12), _line(other, 2)])
    services.commit_transaction(db_session, type_=TransactionTypeEnum.OUTBOUND, line_items=[_line(item, 3)])
    services.edit_transaction(db_session, transaction_id=a.transaction.id, details=None, line_items=[_line(item, 35), _line(other, 9)])
    db_session.commit()

    for target in (item, other):
        assert target.current_stock == services.journal_balance(db_session, item_id=target.id)
    assert item.current_stock == Decimal("20")
    assert other.current_stock == Decimal("7")


def test_secondary_unit_outbound_deducts_base_units(db_session):
    item = _create_item(db_session, stock=50, secondary_unit="Box", conversion_rate=10)
    line = _line(item, 20, input_quantity=2, input_unit="Box")
    result = services.commit_transaction(db_session, type_=TransactionTypeEnum.OUTBOUND, line_items=[line])
    db_session.commit()

    assert item.current_stock == Decimal("30")
    stored = result.transaction.items[0]
    assert stored["quantity"] == 20
    assert stored["inputQuantity"] == 2
    assert stored["inputUnit"] == "Box"


def test_deleted_item_keeps_snapshot_and_edit_skips_it(db_session):
    gone = _create_item(db_session, sku="GONE", stock=0)
    kept = _create_item(db_session, sku="KEPT", stock=0)
    result = services.commit_transaction(
        db_session, type_=TransactionTypeEnum.INBOUND, line_items=[_line(gone, 3), _line(kept, 4)]
    )
    db_session.commit()
    services.delete_item(db_session, item_id=gone.id)
    db_session.commit()

    trx = services.get_transaction(db_session, transaction_id=result.transaction.id)
    assert trx.items[0]["itemName"] == "Item GONE"

    edited = services.edit_transaction(
        db_session, transaction_id=trx.id, details=None, line_items=[_line(kept, 1)]
    )
    db_session.commit()
    assert edited.success
    assert kept.current_stock == Decimal("1")


def test_label_counter_continues_after_highest_legacy_label(db_session):
    item = _create_item(db_session, stock=10)
    for label in ("TRX-2024-001", "TRX-2024-003"):
        db_session.add(
            models.StockTransaction(
                transaction_id=label,
                type=TransactionTypeEnum.INBOUND,
                date=datetime(2024, 1, 15),
                items=[],
                total_items=0,
            )
        )
    db_session.commit()

    result = services.commit_transaction(
        db_session,
        type_=TransactionTypeEnum.INBOUND,
        line_items=[_line(item, 1)],
        details=schemas.TransactionDetails(date=datetime(2024, 5, 1)),
    )
    db_session.commit()

    assert result.success
    assert result.transaction.transaction_id == "TRX-2024-004"


def test_fractional_quantities_revert_exactly(db_session):
    item = _create_item(db_session, stock=0)
    line = _line(item, Decimal("12345678901.2345"))
    result = services.commit_transaction(db_session, type_=TransactionTypeEnum.INBOUND, line_items=[line])
    db_session.commit()

    stored = result.transaction.items[0]
    assert Decimal(str(stored["quantity"])) == Decimal("12345678901.2345")
    assert item.current_stock == Decimal("12345678901.2345")

    services.delete_transaction(db_session, transaction_id=result.transaction.id)
    db_session.commit()

    assert item.current_stock == Decimal("0")
