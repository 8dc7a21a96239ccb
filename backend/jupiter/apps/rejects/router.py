from __future__ import annotations

from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from jupiter.apps.inventory.errors import LedgerError
from jupiter.apps.inventory.router import ledger_http_error
from jupiter.apps.inventory.spreadsheets import (
    XLSX_MEDIA_TYPE,
    SpreadsheetError,
    read_spreadsheet_rows,
    write_workbook,
)
from jupiter.database import commit_or_rollback, get_db, get_read_db

from . import schemas, services

router = APIRouter(prefix="/api", tags=["rejects"])


# ---------------------------------------------------------------------------
# Reject logs
# ---------------------------------------------------------------------------


@router.get("/reject-logs", response_model=List[schemas.RejectLogRead])
def list_reject_logs(db: Session = Depends(get_db)):
    return services.list_reject_logs(db)


@router.get("/reject-logs/export")
def export_reject_logs(db: Session = Depends(get_read_db)):
    rows = services.flatten_reject_logs(services.list_reject_logs(db), services.list_master_items(db))
    try:
        content = write_workbook(rows, sheet_name="Normalized Reject Log")
    except SpreadsheetError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    filename = f"Audit_Reject_BaseUnit_{datetime.utcnow():%Y-%m-%d}.xlsx"
    return StreamingResponse(
        iter([content]),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.post("/reject-logs", response_model=schemas.RejectLogRead, status_code=status.HTTP_201_CREATED)
def add_reject_log(payload: schemas.RejectLogCreate, db: Session = Depends(get_db)):
    log = services.add_reject_log_entry(db, entry=payload)
    commit_or_rollback(db)
    db.refresh(log)
    return log


@router.get("/reject-logs/{log_id}/summary", response_model=schemas.RejectSummaryRead)
def reject_log_summary(log_id: str, db: Session = Depends(get_db)):
    log = services.get_reject_log(db, log_id=log_id)
    if not log:
        raise HTTPException(status_code=404, detail="Reject log not found.")
    return schemas.RejectSummaryRead(text=services.format_reject_summary(log))


@router.put("/reject-logs/{log_id}", response_model=schemas.RejectLogRead)
def update_reject_log(log_id: str, payload: schemas.RejectLogUpdate, db: Session = Depends(get_db)):
    try:
        log = services.update_reject_log_entry(db, log_id=log_id, entry=payload)
    except LedgerError as exc:
        db.rollback()
        raise ledger_http_error(exc)
    commit_or_rollback(db)
    db.refresh(log)
    return log


@router.delete("/reject-logs/{log_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_reject_log(log_id: str, db: Session = Depends(get_db)):
    services.delete_reject_log_entry(db, log_id=log_id)
    commit_or_rollback(db)
    return None


# ---------------------------------------------------------------------------
# Reject master
# ---------------------------------------------------------------------------


@router.get("/reject-master", response_model=List[schemas.RejectMasterRead])
def list_reject_master(db: Session = Depends(get_db)):
    return services.list_master_items(db)


@router.post("/reject-master", response_model=schemas.RejectMasterRead, status_code=status.HTTP_201_CREATED)
def create_reject_master(payload: schemas.RejectMasterCreate, db: Session = Depends(get_db)):
    item = services.create_master_item(db, payload=payload)
    commit_or_rollback(db)
    db.refresh(item)
    return item


@router.post("/reject-master/sync", response_model=List[schemas.RejectMasterRead])
def sync_reject_master(payload: List[schemas.RejectMasterCreate], db: Session = Depends(get_db)):
    items = services.sync_master_items(db, payloads=payload)
    commit_or_rollback(db)
    for item in items:
        db.refresh(item)
    return items


@router.get("/reject-master/template")
def reject_master_template():
    try:
        content = write_workbook(
            services.master_template_rows(),
            sheet_name="Reject Master Template",
            columns=services.MASTER_TEMPLATE_HEADERS,
        )
    except SpreadsheetError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return StreamingResponse(
        iter([content]),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=Template_Reject_Master.xlsx"},
    )


@router.post(
    "/reject-master/import",
    response_model=List[schemas.RejectMasterRead],
    status_code=status.HTTP_201_CREATED,
)
async def import_reject_master(file: UploadFile = File(...), db: Session = Depends(get_db)):
    content = await file.read()
    try:
        rows = read_spreadsheet_rows(content, file.filename)
    except SpreadsheetError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not rows:
        raise HTTPException(status_code=400, detail="Uploaded file contains no data.")
    items = services.import_reject_master_rows(db, rows=rows)
    commit_or_rollback(db)
    for item in items:
        db.refresh(item)
    return items


@router.put("/reject-master/{master_id}", response_model=schemas.RejectMasterRead)
def update_reject_master(master_id: str, payload: schemas.RejectMasterUpdate, db: Session = Depends(get_db)):
    try:
        item = services.update_master_item(db, master_id=master_id, payload=payload)
    except LedgerError as exc:
        db.rollback()
        raise ledger_http_error(exc)
    commit_or_rollback(db)
    db.refresh(item)
    return item


@router.delete("/reject-master/{master_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_reject_master(master_id: str, db: Session = Depends(get_db)):
    services.delete_master_item(db, master_id=master_id)
    commit_or_rollback(db)
    return None
