from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from jupiter.apps.inventory.errors import NotFoundError
from jupiter.apps.inventory.services import safe_lines
from jupiter.apps.inventory.units import effective_rate, to_decimal
from jupiter.utils.identifiers import generate_uuid7

from . import models, schemas

logger = logging.getLogger(__name__)

SUMMARY_TITLE = "Data Reject KKL"

# Headers of the reject master spreadsheet template.
MASTER_TEMPLATE_HEADERS = ["SKU", "Nama Barang", "Unit Utama", "Unit 2", "Ratio 2", "Unit 3", "Ratio 3"]


def _number(value: Decimal) -> Any:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def _optional_rate(value: Any) -> Optional[Decimal]:
    rate = to_decimal(value, default=None)
    if rate is None or rate <= 0:
        return None
    return rate


# ---------------------------------------------------------------------------
# Reject master
# ---------------------------------------------------------------------------


def get_master_item(db: Session, *, master_id: str) -> Optional[models.RejectMasterItem]:
    return db.query(models.RejectMasterItem).filter(models.RejectMasterItem.id == master_id).first()


def list_master_items(db: Session) -> List[models.RejectMasterItem]:
    return db.query(models.RejectMasterItem).order_by(models.RejectMasterItem.sku.asc()).all()


def _master_from_payload(payload: schemas.RejectMasterCreate) -> models.RejectMasterItem:
    return models.RejectMasterItem(
        id=payload.id or generate_uuid7(),
        sku=payload.sku.strip(),
        name=(payload.name or "").strip() or "Unnamed",
        base_unit=(payload.base_unit or "").strip() or "Pcs",
        unit2=(payload.unit2 or "").strip() or None,
        ratio2=_optional_rate(payload.ratio2),
        unit3=(payload.unit3 or "").strip() or None,
        ratio3=_optional_rate(payload.ratio3),
    )


def create_master_item(db: Session, *, payload: schemas.RejectMasterCreate) -> models.RejectMasterItem:
    item = _master_from_payload(payload)
    db.add(item)
    db.flush()
    return item


def bulk_add_master_items(
    db: Session, *, payloads: Sequence[schemas.RejectMasterCreate]
) -> List[models.RejectMasterItem]:
    items = [_master_from_payload(payload) for payload in payloads]
    db.add_all(items)
    db.flush()
    logger.info("Added %d reject master item(s)", len(items))
    return items


def update_master_item(
    db: Session, *, master_id: str, payload: schemas.RejectMasterUpdate
) -> models.RejectMasterItem:
    item = get_master_item(db, master_id=master_id)
    if not item:
        raise NotFoundError(f"Reject master item {master_id} not found.", master_id=master_id)
    data = payload.model_dump(exclude_unset=True)
    for key in ("ratio2", "ratio3"):
        if key in data:
            data[key] = _optional_rate(data[key])
    for key, value in data.items():
        if isinstance(value, str):
            value = value.strip() or None
        if value is None and key in {"sku", "name", "base_unit"}:
            continue
        setattr(item, key, value)
    item.last_updated = datetime.utcnow()
    db.add(item)
    db.flush()
    return item


def delete_master_item(db: Session, *, master_id: str) -> bool:
    item = get_master_item(db, master_id=master_id)
    if not item:
        return False
    db.delete(item)
    db.flush()
    return True


def sync_master_items(
    db: Session, *, payloads: Sequence[schemas.RejectMasterCreate]
) -> List[models.RejectMasterItem]:
    """Replace the whole reject master with ``payloads`` in one unit of work."""
    db.query(models.RejectMasterItem).delete(synchronize_session=False)
    items = [_master_from_payload(payload) for payload in payloads]
    db.add_all(items)
    db.flush()
    logger.info("Reject master replaced with %d item(s)", len(items))
    return items


def master_payloads_from_rows(rows: Sequence[Dict[str, Any]]) -> List[schemas.RejectMasterCreate]:
    """Template rows to create payloads. Rows without a SKU are skipped."""
    payloads: List[schemas.RejectMasterCreate] = []
    for row in rows:
        sku = str(row.get("SKU") or "").strip()
        if not sku:
            continue
        payloads.append(
            schemas.RejectMasterCreate(
                sku=sku,
                name=str(row.get("Nama Barang") or "Unnamed").strip(),
                base_unit=str(row.get("Unit Utama") or "Pcs").strip(),
                unit2=str(row["Unit 2"]).strip() if row.get("Unit 2") else None,
                ratio2=_optional_rate(row.get("Ratio 2")),
                unit3=str(row["Unit 3"]).strip() if row.get("Unit 3") else None,
                ratio3=_optional_rate(row.get("Ratio 3")),
            )
        )
    return payloads


def master_template_rows() -> List[Dict[str, Any]]:
    """Two example rows keyed by the template headers, for the downloadable template."""
    examples = (
        ("R-001", "Kaca Depan", "Pcs", "Box", 10, "Pallet", 100),
        ("R-002", "Baut M8", "Kg", "Gram", 0.001, "Sak", 5),
    )
    return [dict(zip(MASTER_TEMPLATE_HEADERS, example)) for example in examples]


def import_reject_master_rows(
    db: Session, *, rows: Sequence[Dict[str, Any]]
) -> List[models.RejectMasterItem]:
    return bulk_add_master_items(db, payloads=master_payloads_from_rows(rows))


# ---------------------------------------------------------------------------
# Reject logs
# ---------------------------------------------------------------------------


def _master_ratio(master: Optional[models.RejectMasterItem], unit: Optional[str]) -> Optional[Decimal]:
    if master is None or not unit:
        return None
    wanted = unit.strip().lower()
    if wanted == (master.base_unit or "").strip().lower():
        return Decimal("1")
    for label, ratio in ((master.unit2, master.ratio2), (master.unit3, master.ratio3)):
        if label and label.strip().lower() == wanted:
            return effective_rate(ratio)
    return None


def _resolve_detail(db: Session, detail: schemas.RejectItemDetail) -> Dict[str, Any]:
    master = None
    if detail.item_id:
        master = get_master_item(db, master_id=detail.item_id)
    if master is None and detail.sku:
        master = (
            db.query(models.RejectMasterItem)
            .filter(models.RejectMasterItem.sku == detail.sku.strip())
            .first()
        )
    ratio = _master_ratio(master, detail.unit)
    if ratio is None:
        ratio = effective_rate(detail.ratio)
    quantity = to_decimal(detail.quantity)
    base_unit = master.base_unit if master else detail.base_unit
    return {
        "itemId": master.id if master else detail.item_id,
        "itemName": detail.item_name or (master.name if master else ""),
        "sku": detail.sku.strip(),
        "baseUnit": base_unit,
        "quantity": _number(quantity),
        "unit": detail.unit or base_unit,
        "ratio": _number(ratio),
        "totalBaseQuantity": _number(quantity * ratio),
        "reason": detail.reason,
    }


def get_reject_log(db: Session, *, log_id: str) -> Optional[models.RejectLog]:
    return db.query(models.RejectLog).filter(models.RejectLog.id == log_id).first()


def list_reject_logs(db: Session, *, limit: Optional[int] = None) -> List[models.RejectLog]:
    query = db.query(models.RejectLog).order_by(models.RejectLog.timestamp.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def add_reject_log_entry(db: Session, *, entry: schemas.RejectLogCreate) -> models.RejectLog:
    log = models.RejectLog(
        id=entry.id or generate_uuid7(),
        date=entry.date,
        items=[_resolve_detail(db, detail) for detail in entry.items],
        notes=entry.notes,
        timestamp=datetime.utcnow(),
    )
    db.add(log)
    db.flush()
    logger.info("Recorded reject log %s for %s with %d item(s)", log.id, log.date, len(log.items))
    return log


def update_reject_log_entry(db: Session, *, log_id: str, entry: schemas.RejectLogUpdate) -> models.RejectLog:
    log = get_reject_log(db, log_id=log_id)
    if not log:
        raise NotFoundError(f"Reject log {log_id} not found.", log_id=log_id)
    data = entry.model_dump(exclude_unset=True)
    if data.get("date") is not None:
        log.date = entry.date
    if "notes" in data:
        log.notes = entry.notes
    if entry.items is not None:
        log.items = [_resolve_detail(db, detail) for detail in entry.items]
    db.add(log)
    db.flush()
    return log


def delete_reject_log_entry(db: Session, *, log_id: str) -> None:
    log = get_reject_log(db, log_id=log_id)
    if not log:
        logger.info("Reject log %s not found; nothing to delete", log_id)
        return None
    db.delete(log)
    db.flush()
    return None


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------


def _date_key(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()[:10]
    return str(value)


def flatten_reject_logs(
    logs: Sequence[models.RejectLog], masters: Sequence[models.RejectMasterItem]
) -> List[Dict[str, Any]]:
    """
    SKU x date matrix of summed base quantities.

    Columns: ``SKU``, ``Nama Barang``, ``Satuan Dasar`` then one column per
    log date in ascending order; dates without rejects for a SKU hold 0.
    """
    dates = sorted({_date_key(log.date) for log in logs})
    by_sku = {master.sku: master for master in masters}
    totals: "OrderedDict[str, Dict[str, Decimal]]" = OrderedDict()
    for log in logs:
        day = _date_key(log.date)
        for detail in safe_lines(log.items):
            sku = detail.get("sku") or ""
            per_day = totals.setdefault(sku, {})
            per_day[day] = per_day.get(day, Decimal("0")) + to_decimal(detail.get("totalBaseQuantity"))

    rows: List[Dict[str, Any]] = []
    for sku, per_day in totals.items():
        master = by_sku.get(sku)
        row: Dict[str, Any] = {
            "SKU": sku,
            "Nama Barang": master.name if master else "Unknown",
            "Satuan Dasar": master.base_unit if master else "Pcs",
        }
        for day in dates:
            total = per_day.get(day, Decimal("0"))
            row[day] = _number(total) if total > 0 else 0
        rows.append(row)
    return rows


def format_reject_summary(log: models.RejectLog) -> str:
    """Clipboard text: a ``Data Reject KKL ddmmyy`` title, then one line per item."""
    day = log.date if isinstance(log.date, date) else date.fromisoformat(str(log.date)[:10])
    lines = [f"{SUMMARY_TITLE} {day:%d%m%y}"]
    for detail in safe_lines(log.items):
        lines.append(
            f"- {detail.get('itemName', '')} ({detail.get('sku', '')}): "
            f"{detail.get('quantity')} {detail.get('unit', '')} - {detail.get('reason', '')}"
        )
    return "\n".join(lines) + "\n"
