from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from jupiter.apps.inventory import schemas as inventory_schemas
from jupiter.apps.inventory import services as inventory_services
from jupiter.apps.inventory.errors import NotFoundError
from jupiter.apps.rejects import schemas, services


def _master(db, sku="R-001", **extra):
    values = {"name": "Kaca Depan", "base_unit": "Pcs", "unit2": "Box", "ratio2": 10, "unit3": "Pallet", "ratio3": 100}
    values.update(extra)
    return services.create_master_item(db, payload=schemas.RejectMasterCreate(sku=sku, **values))


def _detail(master, quantity, unit, **extra) -> schemas.RejectItemDetail:
    return schemas.RejectItemDetail(
        item_id=master.id, item_name=master.name, sku=master.sku, quantity=quantity, unit=unit, **extra
    )


def test_log_entry_uses_master_ratio_for_known_units(db_session):
    master = _master(db_session)
    log = services.add_reject_log_entry(
        db_session,
        entry=schemas.RejectLogCreate(
            date=date(2024, 5, 7),
            items=[_detail(master, 2, "box", reason="Pecah"), _detail(master, 1, "Pallet", reason="Retak")],
            notes="shift 1",
        ),
    )
    db_session.commit()

    assert [detail["ratio"] for detail in log.items] == [10, 100]
    assert [detail["totalBaseQuantity"] for detail in log.items] == [20, 100]
    assert log.items[0]["baseUnit"] == "Pcs"


def test_unknown_unit_uses_supplied_ratio_or_one(db_session):
    master = _master(db_session)
    log = services.add_reject_log_entry(
        db_session,
        entry=schemas.RejectLogCreate(
            date=date(2024, 5, 7),
            items=[_detail(master, 3, "Sak", ratio=5), _detail(master, 4, "Ikat")],
        ),
    )
    assert [detail["totalBaseQuantity"] for detail in log.items] == [15, 4]


def test_reject_logs_never_touch_stock(db_session):
    item = inventory_services.create_item(
        db_session, payload=inventory_schemas.ItemCreate(sku="R-001", name="Kaca Depan", current_stock=50)
    )
    master = _master(db_session)
    log = services.add_reject_log_entry(
        db_session,
        entry=schemas.RejectLogCreate(date=date(2024, 5, 7), items=[_detail(master, 2, "Box")]),
    )
    services.delete_reject_log_entry(db_session, log_id=log.id)
    db_session.commit()

    assert item.current_stock == Decimal("50")


def test_delete_is_idempotent_and_update_requires_existing_log(db_session):
    assert services.delete_reject_log_entry(db_session, log_id="missing") is None
    with pytest.raises(NotFoundError):
        services.update_reject_log_entry(db_session, log_id="missing", entry=schemas.RejectLogUpdate(notes="x"))


def test_update_recomputes_details(db_session):
    master = _master(db_session)
    log = services.add_reject_log_entry(
        db_session,
        entry=schemas.RejectLogCreate(date=date(2024, 5, 7), items=[_detail(master, 2, "Box")]),
    )
    updated = services.update_reject_log_entry(
        db_session,
        log_id=log.id,
        entry=schemas.RejectLogUpdate(items=[_detail(master, 5, "Pcs")], notes="recount"),
    )
    assert updated.items[0]["totalBaseQuantity"] == 5
    assert updated.notes == "recount"
    assert updated.date == date(2024, 5, 7)


def test_flatten_builds_sku_by_date_matrix(db_session):
    master = _master(db_session)
    other = _master(db_session, sku="R-002", name="Baut M8", base_unit="Kg", unit2=None, ratio2=None)
    for day, details in (
        (date(2024, 5, 8), [_detail(master, 1, "Box"), _detail(other, 3, "Kg")]),
        (date(2024, 5, 7), [_detail(master, 2, "Pcs")]),
        (date(2024, 5, 8), [_detail(master, 4, "Pcs")]),
    ):
        services.add_reject_log_entry(db_session, entry=schemas.RejectLogCreate(date=day, items=details))

    rows = services.flatten_reject_logs(services.list_reject_logs(db_session), services.list_master_items(db_session))
    by_sku = {row["SKU"]: row for row in rows}

    assert list(by_sku["R-001"].keys()) == ["SKU", "Nama Barang", "Satuan Dasar", "2024-05-07", "2024-05-08"]
    assert by_sku["R-001"]["2024-05-07"] == 2
    assert by_sku["R-001"]["2024-05-08"] == 14
    assert by_sku["R-002"]["2024-05-07"] == 0
    assert by_sku["R-002"]["Satuan Dasar"] == "Kg"


def test_summary_text(db_session):
    master = _master(db_session)
    log = services.add_reject_log_entry(
        db_session,
        entry=schemas.RejectLogCreate(date=date(2024, 5, 7), items=[_detail(master, 2, "Box", reason="Pecah")]),
    )
    assert services.format_reject_summary(log) == "Data Reject KKL 070524\n- Kaca Depan (R-001): 2 Box - Pecah\n"


def test_master_sync_import_and_update(db_session):
    _master(db_session, sku="OLD")
    synced = services.sync_master_items(
        db_session,
        payloads=[schemas.RejectMasterCreate(sku="R-010", name="Lampu"), schemas.RejectMasterCreate(sku="R-011")],
    )
    assert [item.sku for item in services.list_master_items(db_session)] == ["R-010", "R-011"]

    imported = services.import_reject_master_rows(
        db_session,
        rows=[
            {"SKU": "R-020", "Nama Barang": "Baut M8", "Unit Utama": "Kg", "Unit 2": "Gram", "Ratio 2": 0.001},
            {"SKU": None, "Nama Barang": "no sku"},
        ],
    )
    assert len(imported) == 1
    assert imported[0].ratio2 == Decimal("0.001")
    assert imported[0].unit3 is None

    updated = services.update_master_item(
        db_session, master_id=synced[0].id, payload=schemas.RejectMasterUpdate(unit2="Dus", ratio2=0)
    )
    assert updated.unit2 == "Dus"
    assert updated.ratio2 is None
    assert services.delete_master_item(db_session, master_id=synced[1].id) is True


def test_template_rows_round_trip_through_import(db_session):
    rows = services.master_template_rows()
    assert list(rows[0].keys()) == services.MASTER_TEMPLATE_HEADERS

    imported = services.import_reject_master_rows(db_session, rows=rows)
    assert [item.sku for item in imported] == ["R-001", "R-002"]
    assert imported[0].unit3 == "Pallet"
    assert imported[1].ratio2 == Decimal("0.001")
