from __future__ import annotations

from decimal import Decimal

from jupiter.apps.inventory import importer, models, schemas, services
from jupiter.apps.inventory.models import StockAdjustmentReasonEnum, TransactionTypeEnum


def _create_item(db, sku, stock=0, **extra):
    return services.create_item(
        db, payload=schemas.ItemCreate(sku=sku, name=f"Item {sku}", current_stock=stock, **extra)
    )


def test_unknown_outbound_sku_is_created_and_seeded(db_session):
    result = importer.reconcile_import_batch(
        db_session,
        type_=TransactionTypeEnum.OUTBOUND,
        rows=[{"SKU": "NEW1", "Quantity": 5, "Unit": "pcs"}],
    )
    db_session.commit()

    assert len(result.new_items_created) == 1
    created = result.new_items_created[0]
    assert created.sku == "NEW1"
    assert created.category == "Uncategorized"
    assert created.current_stock == Decimal("5")
    assert len(result.cart) == 1
    assert result.cart[0].quantity == Decimal("5")
    assert result.counts == {"items_added": 1, "new_skus": 1, "stock_adjusted": 1, "errors": 0}
    assert result.stock_adjustments[0].reason == StockAdjustmentReasonEnum.IMPORT_NEW_SKU

    committed = services.commit_transaction(
        db_session, type_=TransactionTypeEnum.OUTBOUND, line_items=result.cart
    )
    assert committed.success
    assert created.current_stock == Decimal("0")


def test_rows_for_one_sku_are_aggregated_before_raising(db_session):
    item = _create_item(db_session, "A", stock=10, secondary_unit="Box", conversion_rate=12)
    result = importer.reconcile_import_batch(
        db_session,
        type_=TransactionTypeEnum.OUTBOUND,
        rows=[
            {"Kode": "A", "Qty": 1, "Satuan": "Box"},
            {"kode": "A", "Jumlah": "3", "satuan": "pcs"},
        ],
    )

    assert len(result.cart) == 1
    line = result.cart[0]
    assert line.quantity == Decimal("15")
    assert line.input_quantity is None
    assert line.input_unit is None
    assert item.current_stock == Decimal("15")
    adjustment = result.stock_adjustments[0]
    assert adjustment.reason == StockAdjustmentReasonEnum.IMPORT_SHORTFALL
    assert adjustment.previous_stock == Decimal("10")
    assert adjustment.new_stock == Decimal("15")
    assert adjustment.quantity == Decimal("5")


def test_inbound_import_keeps_consistent_input_unit(db_session):
    item = _create_item(db_session, "A", stock=0, secondary_unit="Box", conversion_rate=10)
    result = importer.reconcile_import_batch(
        db_session,
        type_=TransactionTypeEnum.INBOUND,
        rows=[{"SKU": "A", "Quantity": 2, "Unit": "Box"}, {"SKU": "A", "Quantity": 1, "Unit": "box"}],
    )

    assert result.cart[0].quantity == Decimal("30")
    assert result.cart[0].input_quantity == Decimal("3")
    assert result.stock_adjustments == []
    assert item.current_stock == Decimal("0")


def test_bad_rows_are_reported_and_skipped(db_session):
    _create_item(db_session, "A", stock=100)
    result = importer.reconcile_import_batch(
        db_session,
        type_=TransactionTypeEnum.INBOUND,
        rows=[
            {"SKU": "A", "Quantity": 4},
            {"Quantity": 2},
            {"SKU": "A", "Quantity": "lots"},
            {"SKU": "A", "Quantity": 0},
            {"Name": "Nobody", "Quantity": 1},
        ],
    )

    assert [error.row_number for error in result.row_errors] == [3, 4, 5, 6]
    assert all(error.error_kind == "ImportRowError" for error in result.row_errors)
    assert result.counts["errors"] == 4
    assert result.cart[0].quantity == Decimal("4")


def test_row_without_sku_resolves_by_unique_name(db_session):
    item = _create_item(db_session, "A", stock=0)
    result = importer.reconcile_import_batch(
        db_session,
        type_=TransactionTypeEnum.INBOUND,
        rows=[{"Nama Barang": "Item A", "Jumlah": 2}],
    )
    assert result.cart[0].item_id == item.id
    assert result.new_items_created == []


def test_auto_raise_off_reports_shortfall(db_session):
    item = _create_item(db_session, "A", stock=1)
    result = importer.reconcile_import_batch(
        db_session,
        type_=TransactionTypeEnum.OUTBOUND,
        rows=[{"SKU": "A", "Quantity": 5}],
        auto_raise=False,
    )

    assert result.cart == []
    assert result.stock_adjustments == []
    assert result.row_errors[0].error_kind == "InsufficientStockError"
    assert result.row_errors[0].row_number == 2
    assert item.current_stock == Decimal("1")


def test_existing_cart_counts_toward_required_total(db_session):
    item = _create_item(db_session, "A", stock=10)
    cart = [schemas.CartItem(item_id=item.id, item_name=item.name, sku=item.sku, quantity=8)]
    result = importer.reconcile_import_batch(
        db_session,
        type_=TransactionTypeEnum.OUTBOUND,
        rows=[{"SKU": "A", "Quantity": 4}],
        cart=cart,
    )

    assert len(result.cart) == 1
    assert result.cart[0].quantity == Decimal("12")
    assert item.current_stock == Decimal("12")
    assert cart[0].quantity == Decimal("8")
    assert db_session.query(models.StockAdjustment).count() == 1


def test_quantity_below_stock_step_is_a_row_error(db_session):
    _create_item(db_session, "A", stock=10)
    result = importer.reconcile_import_batch(
        db_session,
        type_=TransactionTypeEnum.INBOUND,
        rows=[{"SKU": "A", "Quantity": "0.00001"}, {"SKU": "A", "Quantity": 2}],
    )

    assert [error.row_number for error in result.row_errors] == [2]
    assert result.cart[0].quantity == Decimal("2")
