"""
Bulk import reconciliation.

Turns spreadsheet rows into cart lines. Unknown SKUs become new items, and
for Outbound batches the stock of short SKUs is raised so the cart commits
("trust the import"). Every raise goes through the ledger and leaves a
``StockAdjustment`` record. Nothing is committed to the journal here.
"""

from __future__ import annotations

import logging
import os
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from . import cart as cart_ops
from . import ledger, models, schemas, services
from .errors import ImportRowError, InsufficientStockError
from .units import rate_for_unit, to_base, to_decimal

logger = logging.getLogger(__name__)

IMPORT_AUTO_RAISE_STOCK = os.getenv("IMPORT_AUTO_RAISE_STOCK", "true").strip().lower() in {
    "1",
    "true",
    "yes",
    "on",
}

COLUMN_ALIASES: Dict[str, tuple] = {
    "sku": ("sku", "kode", "kode barang", "code"),
    "name": ("name", "nama barang", "nama", "item name"),
    "quantity": ("quantity", "qty", "jumlah"),
    "unit": ("unit", "satuan"),
}

# Spreadsheet row 1 is the header.
FIRST_DATA_ROW = 2


@dataclass
class ImportRow:
    row_number: int
    sku: Optional[str]
    name: Optional[str]
    quantity: Decimal
    unit: Optional[str]


@dataclass
class ImportReconciliation:
    cart: List[schemas.CartItem] = field(default_factory=list)
    new_items_created: List[models.Item] = field(default_factory=list)
    stock_adjustments: List[models.StockAdjustment] = field(default_factory=list)
    row_errors: List[ImportRowError] = field(default_factory=list)
    items_added: int = 0

    @property
    def counts(self) -> Dict[str, int]:
        return {
            "items_added": self.items_added,
            "new_skus": len(self.new_items_created),
            "stock_adjusted": len(self.stock_adjustments),
            "errors": len(self.row_errors),
        }


def _cell(row: Dict[str, Any], column: str) -> Optional[str]:
    lowered = {str(key).strip().lower(): value for key, value in row.items()}
    for alias in COLUMN_ALIASES[column]:
        value = lowered.get(alias)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def _sku_text(value: Optional[str]) -> Optional[str]:
    # Excel hands numeric SKUs back as floats (1001 -> "1001.0").
    if value and value.endswith(".0") and value[:-2].isdigit():
        return value[:-2]
    return value


def parse_row(row: Dict[str, Any], row_number: int) -> ImportRow:
    sku = _sku_text(_cell(row, "sku"))
    name = _cell(row, "name")
    if not sku and not name:
        raise ImportRowError(f"Row {row_number}: SKU or name is required.", row_number=row_number)

    raw_quantity = _cell(row, "quantity")
    quantity = to_decimal(raw_quantity, default=None)
    if quantity is None:
        raise ImportRowError(
            f"Row {row_number}: quantity {raw_quantity!r} is not a number.",
            row_number=row_number,
            sku=sku,
        )
    if quantity <= 0:
        raise ImportRowError(
            f"Row {row_number}: quantity must be greater than zero.",
            row_number=row_number,
            sku=sku,
        )
    return ImportRow(row_number=row_number, sku=sku, name=name, quantity=quantity, unit=_cell(row, "unit"))


def _find_by_name(db: Session, name: str) -> List[models.Item]:
    return db.query(models.Item).filter(models.Item.name == name).limit(2).all()


def _resolve_item(db: Session, parsed: ImportRow, result: ImportReconciliation) -> models.Item:
    if parsed.sku:
        item = services.get_item_by_sku(db, sku=parsed.sku)
        if item:
            return item
        item = services.create_item(
            db,
            payload=schemas.ItemCreate(
                sku=parsed.sku,
                name=parsed.name or parsed.sku,
                unit=parsed.unit or "pcs",
            ),
        )
        result.new_items_created.append(item)
        logger.info("Import row %s created item %s", parsed.row_number, item.sku)
        return item

    matches = _find_by_name(db, parsed.name or "")
    if len(matches) != 1:
        raise ImportRowError(
            f"Row {parsed.row_number}: no SKU given and name {parsed.name!r} "
            f"matches {'no' if not matches else 'more than one'} item.",
            row_number=parsed.row_number,
        )
    return matches[0]


def _raise_stock(
    db: Session,
    item: models.Item,
    *,
    target: Decimal,
    reason: models.StockAdjustmentReasonEnum,
    type_: models.TransactionTypeEnum,
) -> models.StockAdjustment:
    previous = to_decimal(item.current_stock)
    delta = target - previous
    ledger.apply_effect(item, models.TransactionTypeEnum.INBOUND, delta)
    adjustment = models.StockAdjustment(
        item_id=item.id,
        sku=item.sku,
        reason=reason,
        transaction_type=type_,
        previous_stock=previous,
        new_stock=to_decimal(item.current_stock),
        quantity=delta,
        notes=f"Raised by {type_.value} import to cover {target}",
    )
    db.add(adjustment)
    logger.warning(
        "Import raised stock of %s from %s to %s (%s)", item.sku, previous, item.current_stock, reason.value
    )
    return adjustment


def reconcile_import_batch(
    db: Session,
    *,
    type_: models.TransactionTypeEnum,
    rows: Sequence[Dict[str, Any]],
    cart: Optional[Sequence[schemas.CartItem]] = None,
    auto_raise: Optional[bool] = None,
) -> ImportReconciliation:
    type_ = models.TransactionTypeEnum(type_)
    if auto_raise is None:
        auto_raise = IMPORT_AUTO_RAISE_STOCK
    result = ImportReconciliation(cart=[line.model_copy() for line in cart or []])

    items: Dict[str, models.Item] = {}
    first_row: Dict[str, int] = {}
    batch: List[schemas.CartItem] = []
    for index, row in enumerate(rows):
        row_number = index + FIRST_DATA_ROW
        try:
            parsed = parse_row(row, row_number)
            item = _resolve_item(db, parsed, result)
            base_quantity = to_base(parsed.quantity, rate_for_unit(item, parsed.unit))
            if base_quantity.quantize(schemas.QUANTITY_STEP, rounding=ROUND_HALF_UP) <= 0:
                raise ImportRowError(
                    f"Row {row_number}: quantity {parsed.quantity} is below the smallest stock step.",
                    row_number=row_number,
                    sku=item.sku,
                )
        except ImportRowError as exc:
            result.row_errors.append(exc)
            continue
        if parsed.unit and rate_for_unit(item, parsed.unit) is None:
            logger.warning(
                "Import row %s: unit %r is not known for %s; using base unit %s",
                row_number,
                parsed.unit,
                item.sku,
                item.unit,
            )
        items[item.id] = item
        first_row.setdefault(item.id, row_number)
        cart_ops.merge_line(batch, cart_ops.build_line(item, parsed.quantity, parsed.unit))

    new_ids = {item.id for item in result.new_items_created}
    already_carted: "OrderedDict[str, Decimal]" = OrderedDict()
    for line in result.cart:
        already_carted[line.item_id] = already_carted.get(line.item_id, Decimal("0")) + to_decimal(line.quantity)

    for line in batch:
        item = items[line.item_id]
        if type_ == models.TransactionTypeEnum.OUTBOUND:
            required = to_decimal(line.quantity) + already_carted.get(item.id, Decimal("0"))
            available = to_decimal(item.current_stock)
            if available < required:
                if not auto_raise:
                    shortage = InsufficientStockError(
                        item_id=item.id, item_name=item.name, required=required, available=available
                    )
                    result.row_errors.append(
                        ImportRowError(
                            shortage.message,
                            row_number=first_row[item.id],
                            sku=item.sku,
                            kind=InsufficientStockError.error_kind,
                        )
                    )
                    continue
                reason = (
                    models.StockAdjustmentReasonEnum.IMPORT_NEW_SKU
                    if item.id in new_ids
                    else models.StockAdjustmentReasonEnum.IMPORT_SHORTFALL
                )
                result.stock_adjustments.append(
                    _raise_stock(db, item, target=required, reason=reason, type_=type_)
                )
        line.current_stock = to_decimal(item.current_stock)
        cart_ops.merge_line(result.cart, line)
        result.items_added += 1

    db.flush()
    logger.info(
        "Reconciled %s import: %d row(s), %d cart line(s) added, %d new SKU(s), %d adjustment(s), %d error(s)",
        type_.value,
        len(rows),
        result.items_added,
        len(result.new_items_created),
        len(result.stock_adjustments),
        len(result.row_errors),
    )
    return result
