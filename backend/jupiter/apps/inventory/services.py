from __future__ import annotations

import json
import logging
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from jupiter.utils.identifiers import TRANSACTION_LABEL_PREFIX, format_transaction_label, generate_uuid7

from . import ledger, models, schemas
from .errors import (
    DuplicateSkuError,
    EmptyTransactionError,
    InsufficientStockError,
    LedgerResult,
    NotFoundError,
)
from .units import effective_rate, format_breakdown, to_decimal

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _normalize_sku(sku: Optional[str]) -> str:
    return (sku or "").strip()


def _json_number(value: Any) -> Any:
    if value is None:
        return None
    number = to_decimal(value)
    if number == number.to_integral_value():
        return int(number)
    # Fractions stay exact so a later revert subtracts what was applied.
    return str(number.normalize())


def safe_lines(value: Any) -> List[Dict[str, Any]]:
    """Line items as a list of dicts, whatever shape the row holds."""
    if not value:
        return []
    if isinstance(value, list):
        return [line for line in value if isinstance(line, dict)]
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return []
        return safe_lines(parsed if isinstance(parsed, list) else [parsed])
    if isinstance(value, dict):
        return [value]
    return []


def _total(lines: Iterable[Dict[str, Any]]) -> Decimal:
    return sum((to_decimal(line.get("quantity")) for line in lines), Decimal("0"))


def _line_payload(line: schemas.CartItem, item: models.Item, stock_before: Decimal) -> Dict[str, Any]:
    return {
        "itemId": item.id,
        "itemName": item.name,
        "sku": item.sku,
        "quantity": _json_number(line.quantity),
        "currentStock": _json_number(stock_before),
        "inputQuantity": _json_number(line.input_quantity if line.input_quantity is not None else line.quantity),
        "inputUnit": line.input_unit or item.unit,
    }


def _breakdown(line: Dict[str, Any], item: Optional[models.Item]) -> str:
    if item is None:
        return ""
    return format_breakdown(line.get("quantity"), item)


def _aggregate(lines: Sequence[schemas.CartItem]) -> "OrderedDict[str, Decimal]":
    totals: "OrderedDict[str, Decimal]" = OrderedDict()
    for line in lines:
        totals[line.item_id] = totals.get(line.item_id, Decimal("0")) + to_decimal(line.quantity)
    return totals


def _lock_items(db: Session, item_ids: Iterable[str]) -> Dict[str, models.Item]:
    ids = [item_id for item_id in set(item_ids) if item_id]
    if not ids:
        return {}
    rows = (
        db.query(models.Item)
        .filter(models.Item.id.in_(ids))
        .with_for_update()
        .all()
    )
    return {item.id: item for item in rows}


# ---------------------------------------------------------------------------
# Item catalog
# ---------------------------------------------------------------------------


def get_item(db: Session, *, item_id: str) -> Optional[models.Item]:
    return db.query(models.Item).filter(models.Item.id == item_id).first()


def get_item_by_sku(db: Session, *, sku: str) -> Optional[models.Item]:
    sku = _normalize_sku(sku)
    if not sku:
        return None
    return db.query(models.Item).filter(func.lower(models.Item.sku) == sku.lower()).first()


def _ensure_unique_sku(db: Session, *, sku: str, exclude_id: Optional[str] = None) -> None:
    existing = get_item_by_sku(db, sku=sku)
    if existing and existing.id != exclude_id:
        raise DuplicateSkuError(f"SKU {sku} is already used by {existing.name}.", sku=sku, item_id=existing.id)


def create_item(db: Session, *, payload: schemas.ItemCreate) -> models.Item:
    sku = _normalize_sku(payload.sku)
    _ensure_unique_sku(db, sku=sku)
    item = models.Item(
        id=payload.id or generate_uuid7(),
        sku=sku,
        name=payload.name.strip(),
        category=payload.category or "Uncategorized",
        price=to_decimal(payload.price),
        location=payload.location or "-",
        min_level=payload.min_level or 0,
        current_stock=Decimal("0"),
        unit=payload.unit or "pcs",
        status=payload.status,
        conversion_rate=effective_rate(payload.conversion_rate),
        secondary_unit=(payload.secondary_unit or "").strip() or None,
    )
    opening = to_decimal(payload.current_stock)
    if opening > 0:
        ledger.apply_effect(item, models.TransactionTypeEnum.INBOUND, opening)
    db.add(item)
    db.flush()
    logger.info("Created item %s (%s) with opening stock %s", item.sku, item.id, opening)
    return item


def create_items(db: Session, *, payloads: Sequence[schemas.ItemCreate]) -> List[models.Item]:
    return [create_item(db, payload=payload) for payload in payloads]


def update_item(db: Session, *, item_id: str, payload: schemas.ItemUpdate) -> models.Item:
    """Descriptive edits only. Stock moves exclusively through transactions."""
    item = get_item(db, item_id=item_id)
    if not item:
        raise NotFoundError(f"Item {item_id} not found.", item_id=item_id)
    data = payload.model_dump(exclude_unset=True)
    if "sku" in data:
        data["sku"] = _normalize_sku(data["sku"])
        _ensure_unique_sku(db, sku=data["sku"], exclude_id=item.id)
    if "conversion_rate" in data:
        data["conversion_rate"] = effective_rate(data["conversion_rate"])
    if "secondary_unit" in data:
        data["secondary_unit"] = (data["secondary_unit"] or "").strip() or None
    for key, value in data.items():
        if value is None and key not in {"secondary_unit"}:
            continue
        setattr(item, key, value)
    db.add(item)
    db.flush()
    return item


def delete_item(db: Session, *, item_id: str) -> bool:
    item = get_item(db, item_id=item_id)
    if not item:
        return False
    db.delete(item)
    db.flush()
    logger.info("Deleted item %s (%s); its transaction snapshots are kept", item.sku, item.id)
    return True


def bulk_delete_items(db: Session, *, ids: Sequence[str]) -> int:
    if not ids:
        return 0
    deleted = (
        db.query(models.Item)
        .filter(models.Item.id.in_(list(ids)))
        .delete(synchronize_session=False)
    )
    db.flush()
    return deleted


def list_items(
    db: Session,
    *,
    search: Optional[str] = None,
    status: Optional[models.ItemStatusEnum] = None,
) -> List[models.Item]:
    query = db.query(models.Item)
    if search:
        term = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(func.lower(models.Item.name).like(term), func.lower(models.Item.sku).like(term))
        )
    if status:
        query = query.filter(models.Item.status == status)
    return query.order_by(models.Item.name.asc()).all()


def low_stock_items(db: Session) -> List[models.Item]:
    return (
        db.query(models.Item)
        .filter(models.Item.current_stock <= models.Item.min_level)
        .order_by(models.Item.current_stock.asc())
        .all()
    )


def compute_kpis(db: Session) -> schemas.KpiRead:
    total_value = Decimal("0")
    total_units = Decimal("0")
    total_sku = 0
    low_stock = 0
    for item in db.query(models.Item).all():
        stock = to_decimal(item.current_stock)
        total_value += to_decimal(item.price) * stock
        total_units += stock
        total_sku += 1
        if stock <= (item.min_level or 0):
            low_stock += 1
    return schemas.KpiRead(
        total_value=float(total_value),
        total_units=float(total_units),
        total_sku=total_sku,
        low_stock_count=low_stock,
    )


# ---------------------------------------------------------------------------
# Transaction journal
# ---------------------------------------------------------------------------


def _highest_label_sequence(db: Session, *, year: int) -> int:
    """Largest numeric suffix among existing ``TRX-<year>-NNN`` labels, 0 if none."""
    prefix = f"{TRANSACTION_LABEL_PREFIX}-{year}-"
    labels = (
        db.query(models.StockTransaction.transaction_id)
        .filter(models.StockTransaction.transaction_id.like(f"{prefix}%"))
        .all()
    )
    highest = 0
    for (label,) in labels:
        suffix = (label or "")[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return highest


def _next_transaction_label(db: Session, *, year: int) -> str:
    sequence = (
        db.query(models.TransactionSequence)
        .filter(models.TransactionSequence.year == year)
        .with_for_update()
        .first()
    )
    if not sequence:
        # Continue after labels written before the counter existed; gaps are never refilled.
        sequence = models.TransactionSequence(year=year, last_value=_highest_label_sequence(db, year=year))
        db.add(sequence)
    sequence.last_value = (sequence.last_value or 0) + 1
    db.flush()
    return format_transaction_label(year, sequence.last_value)


def get_transaction(db: Session, *, transaction_id: str) -> Optional[models.StockTransaction]:
    return db.query(models.StockTransaction).filter(models.StockTransaction.id == transaction_id).first()


def list_transactions(
    db: Session,
    *,
    search: Optional[str] = None,
    type_: Optional[models.TransactionTypeEnum] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.StockTransaction]:
    query = db.query(models.StockTransaction)
    if search:
        term = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(
                func.lower(models.StockTransaction.transaction_id).like(term),
                func.lower(models.StockTransaction.supplier_name).like(term),
            )
        )
    if type_:
        query = query.filter(models.StockTransaction.type == type_)
    return (
        query.order_by(models.StockTransaction.date.desc(), models.StockTransaction.created_at.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def commit_transaction(
    db: Session,
    *,
    type_: models.TransactionTypeEnum,
    line_items: Sequence[schemas.CartItem],
    details: Optional[schemas.TransactionDetails] = None,
) -> LedgerResult:
    type_ = models.TransactionTypeEnum(type_)
    details = details or schemas.TransactionDetails()
    if not line_items:
        return LedgerResult.failed(EmptyTransactionError("A transaction needs at least one line item."))

    required = _aggregate(line_items)
    items = _lock_items(db, required.keys())
    for item_id in required:
        if item_id not in items:
            return LedgerResult.failed(NotFoundError(f"Item {item_id} no longer exists.", item_id=item_id))

    # All-or-nothing: every line is checked before any stock moves.
    if type_ == models.TransactionTypeEnum.OUTBOUND:
        try:
            for item_id, quantity in required.items():
                ledger.validate_outbound(items[item_id], quantity)
        except InsufficientStockError as exc:
            logger.info("Rejected outbound commit: %s", exc.message)
            return LedgerResult.failed(exc)

    stored: List[Dict[str, Any]] = []
    for line in line_items:
        item = items[line.item_id]
        stock_before = to_decimal(item.current_stock)
        ledger.apply_effect(item, type_, line.quantity)
        stored.append(_line_payload(line, item, stock_before))

    occurred_at = details.date or datetime.utcnow()
    trx = models.StockTransaction(
        id=generate_uuid7(),
        transaction_id=_next_transaction_label(db, year=occurred_at.year),
        type=type_,
        date=occurred_at,
        items=stored,
        supplier_name=details.supplier_name,
        po_number=details.po_number,
        ri_number=details.ri_number,
        sj_number=details.sj_number,
        total_items=_total(stored),
        photos=list(details.photos or []),
    )
    db.add(trx)
    db.flush()
    logger.info("Committed %s %s with %d line(s)", type_.value, trx.transaction_id, len(stored))
    return LedgerResult.ok(trx)


def edit_transaction(
    db: Session,
    *,
    transaction_id: str,
    details: Optional[schemas.TransactionDetails],
    line_items: Sequence[schemas.CartItem],
) -> LedgerResult:
    """
    Replace a committed transaction's lines and details.

    The original lines are reverted and the new ones applied on a working copy
    of the affected stock. Items and the stored row are only touched once the
    whole working copy validates.
    """
    trx = (
        db.query(models.StockTransaction)
        .filter(models.StockTransaction.id == transaction_id)
        .with_for_update()
        .first()
    )
    if not trx:
        return LedgerResult.failed(
            NotFoundError(f"Transaction {transaction_id} not found.", transaction_id=transaction_id)
        )
    if not line_items:
        return LedgerResult.failed(
            EmptyTransactionError(
                f"Transaction {trx.transaction_id} cannot be left without line items.",
                transaction_id=transaction_id,
            )
        )

    type_ = models.TransactionTypeEnum(trx.type)
    old_lines = safe_lines(trx.items)
    items = _lock_items(
        db,
        [line.get("itemId") for line in old_lines] + [line.item_id for line in line_items],
    )
    for line in line_items:
        if line.item_id not in items:
            return LedgerResult.failed(NotFoundError(f"Item {line.item_id} no longer exists.", item_id=line.item_id))

    positions = {item_id: ledger.StockPosition.of(item) for item_id, item in items.items()}
    for line in old_lines:
        position = positions.get(line.get("itemId"))
        if position is None:
            logger.warning(
                "Item %s from %s was deleted; its line cannot be reverted",
                line.get("itemId"),
                trx.transaction_id,
            )
            continue
        ledger.revert_effect(position, type_, line.get("quantity"))

    stored: List[Dict[str, Any]] = []
    try:
        for line in line_items:
            position = positions[line.item_id]
            if type_ == models.TransactionTypeEnum.OUTBOUND:
                ledger.validate_outbound(position, line.quantity)
            stock_before = position.current_stock
            ledger.apply_effect(position, type_, line.quantity)
            stored.append(_line_payload(line, items[line.item_id], stock_before))
    except InsufficientStockError as exc:
        logger.info("Rejected edit of %s: %s", trx.transaction_id, exc.message)
        return LedgerResult.failed(exc)

    for item_id, position in positions.items():
        ledger.settle(items[item_id], position)

    data = details.model_dump(exclude_unset=True, exclude={"items"}) if details else {}
    for key in ("date", "supplier_name", "po_number", "ri_number", "sj_number"):
        if key in data and not (key == "date" and data[key] is None):
            setattr(trx, key, data[key])
    if "photos" in data:
        trx.photos = list(data["photos"] or [])
    trx.items = stored
    trx.total_items = _total(stored)
    db.add(trx)
    db.flush()
    logger.info("Edited %s: %d line(s) -> %d line(s)", trx.transaction_id, len(old_lines), len(stored))
    return LedgerResult.ok(trx)


def delete_transaction(db: Session, *, transaction_id: str) -> None:
    """Revert a transaction's effect and drop it. Unknown ids are a no-op."""
    trx = (
        db.query(models.StockTransaction)
        .filter(models.StockTransaction.id == transaction_id)
        .with_for_update()
        .first()
    )
    if not trx:
        logger.info("Transaction %s not found; nothing to delete", transaction_id)
        return None

    type_ = models.TransactionTypeEnum(trx.type)
    lines = safe_lines(trx.items)
    items = _lock_items(db, [line.get("itemId") for line in lines])
    for line in lines:
        item = items.get(line.get("itemId"))
        if item is None:
            continue
        ledger.revert_effect(item, type_, line.get("quantity"))

    negative = [item for item in items.values() if to_decimal(item.current_stock) < 0]
    if negative:
        # Later outbound movements already consumed this inbound stock.
        logger.warning(
            "Deleting %s left negative stock: %s",
            trx.transaction_id,
            ", ".join(f"{item.sku}={item.current_stock}" for item in negative),
        )

    db.delete(trx)
    db.flush()
    logger.info("Deleted %s and reverted %d line(s)", trx.transaction_id, len(lines))
    return None


def journal_balance(db: Session, *, item_id: str) -> Decimal:
    """Signed base-unit sum of every stored line referencing ``item_id``."""
    balance = Decimal("0")
    for trx in db.query(models.StockTransaction).all():
        for line in safe_lines(trx.items):
            if line.get("itemId") == item_id:
                balance += ledger.signed_quantity(trx.type, line.get("quantity"))
    return balance


def transaction_export_rows(
    transactions: Sequence[models.StockTransaction],
    items_by_id: Optional[Dict[str, models.Item]] = None,
) -> List[Dict[str, Any]]:
    """One row per line item, for the history spreadsheet."""
    items_by_id = items_by_id or {}
    rows: List[Dict[str, Any]] = []
    for trx in transactions:
        for line in safe_lines(trx.items):
            rows.append(
                {
                    "Transaction": trx.transaction_id,
                    "Type": models.TransactionTypeEnum(trx.type).value,
                    "Date": trx.date.isoformat() if trx.date else "",
                    "Supplier / Customer": trx.supplier_name or "",
                    "PO": trx.po_number or "",
                    "RI": trx.ri_number or "",
                    "SJ": trx.sj_number or "",
                    "SKU": line.get("sku", ""),
                    "Item": line.get("itemName", ""),
                    "Quantity": line.get("quantity"),
                    "Input Quantity": line.get("inputQuantity"),
                    "Input Unit": line.get("inputUnit"),
                    "Breakdown": _breakdown(line, items_by_id.get(line.get("itemId"))),
                }
            )
    return rows
