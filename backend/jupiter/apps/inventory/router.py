from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from jupiter.database import commit_or_rollback, get_db, get_read_db

from . import importer, models, schemas, services
from .errors import LedgerError, LedgerResult
from .spreadsheets import XLSX_MEDIA_TYPE, SpreadsheetError, read_spreadsheet_rows, write_workbook

router = APIRouter(prefix="/api", tags=["inventory"])

ERROR_STATUS = {
    "InsufficientStockError": status.HTTP_409_CONFLICT,
    "DuplicateSkuError": status.HTTP_409_CONFLICT,
    "NotFoundError": status.HTTP_404_NOT_FOUND,
    "EmptyTransactionError": status.HTTP_400_BAD_REQUEST,
}


def _http_error(error_kind: Optional[str], message: Optional[str]) -> HTTPException:
    return HTTPException(
        status_code=ERROR_STATUS.get(error_kind or "", status.HTTP_400_BAD_REQUEST),
        detail={"errorKind": error_kind, "message": message},
    )


def ledger_http_error(exc: LedgerError) -> HTTPException:
    return _http_error(exc.error_kind, exc.message)


def _finish(db: Session, result: LedgerResult) -> models.StockTransaction:
    if not result.success:
        db.rollback()
        raise _http_error(result.error_kind, result.message)
    commit_or_rollback(db)
    db.refresh(result.transaction)
    return result.transaction


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


@router.get("/items", response_model=List[schemas.ItemRead])
def list_items(
    search: Optional[str] = Query(None),
    item_status: Optional[models.ItemStatusEnum] = Query(None, alias="status"),
    db: Session = Depends(get_db),
):
    return services.list_items(db, search=search, status=item_status)


@router.get("/items/low-stock", response_model=List[schemas.ItemRead])
def low_stock_items(db: Session = Depends(get_db)):
    return services.low_stock_items(db)


@router.post("/items", response_model=schemas.ItemRead, status_code=status.HTTP_201_CREATED)
def create_item(payload: schemas.ItemCreate, db: Session = Depends(get_db)):
    try:
        item = services.create_item(db, payload=payload)
    except LedgerError as exc:
        db.rollback()
        raise ledger_http_error(exc)
    commit_or_rollback(db)
    db.refresh(item)
    return item


@router.post("/items/bulk", response_model=List[schemas.ItemRead], status_code=status.HTTP_201_CREATED)
def create_items(payload: List[schemas.ItemCreate], db: Session = Depends(get_db)):
    try:
        items = services.create_items(db, payloads=payload)
    except LedgerError as exc:
        db.rollback()
        raise ledger_http_error(exc)
    commit_or_rollback(db)
    for item in items:
        db.refresh(item)
    return items


@router.post("/items/bulk-delete")
def bulk_delete_items(payload: schemas.ItemBulkDelete, db: Session = Depends(get_db)):
    deleted = services.bulk_delete_items(db, ids=payload.ids)
    commit_or_rollback(db)
    return {"deleted": deleted}


@router.put("/items/{item_id}", response_model=schemas.ItemRead)
def update_item(item_id: str, payload: schemas.ItemUpdate, db: Session = Depends(get_db)):
    try:
        item = services.update_item(db, item_id=item_id, payload=payload)
    except LedgerError as exc:
        db.rollback()
        raise ledger_http_error(exc)
    commit_or_rollback(db)
    db.refresh(item)
    return item


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(item_id: str, db: Session = Depends(get_db)):
    services.delete_item(db, item_id=item_id)
    commit_or_rollback(db)
    return None


@router.get("/dashboard/kpis", response_model=schemas.KpiRead)
def dashboard_kpis(db: Session = Depends(get_read_db)):
    return services.compute_kpis(db)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


@router.get("/transactions", response_model=List[schemas.TransactionRead])
def list_transactions(
    search: Optional[str] = Query(None),
    type_: Optional[models.TransactionTypeEnum] = Query(None, alias="type"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    return services.list_transactions(db, search=search, type_=type_, skip=skip, limit=limit)


@router.get("/transactions/export")
def export_transactions(
    type_: Optional[models.TransactionTypeEnum] = Query(None, alias="type"),
    db: Session = Depends(get_read_db),
):
    transactions = services.list_transactions(db, type_=type_, limit=100000)
    items_by_id = {item.id: item for item in services.list_items(db)}
    try:
        content = write_workbook(services.transaction_export_rows(transactions, items_by_id), sheet_name="History")
    except SpreadsheetError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    filename = f"jupiter_history_{datetime.utcnow():%Y%m%d}.xlsx"
    return StreamingResponse(
        iter([content]),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.post("/transactions", response_model=schemas.TransactionRead, status_code=status.HTTP_201_CREATED)
def commit_transaction(payload: schemas.TransactionCreate, db: Session = Depends(get_db)):
    result = services.commit_transaction(db, type_=payload.type, line_items=payload.items, details=payload)
    return _finish(db, result)


@router.get("/transactions/{transaction_id}", response_model=schemas.TransactionRead)
def get_transaction(transaction_id: str, db: Session = Depends(get_db)):
    trx = services.get_transaction(db, transaction_id=transaction_id)
    if not trx:
        raise _http_error("NotFoundError", f"Transaction {transaction_id} not found.")
    return trx


@router.put("/transactions/{transaction_id}", response_model=schemas.TransactionRead)
def edit_transaction(transaction_id: str, payload: schemas.TransactionUpdate, db: Session = Depends(get_db)):
    result = services.edit_transaction(
        db, transaction_id=transaction_id, details=payload, line_items=payload.items
    )
    return _finish(db, result)


@router.delete("/transactions/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_transaction(transaction_id: str, db: Session = Depends(get_db)):
    services.delete_transaction(db, transaction_id=transaction_id)
    commit_or_rollback(db)
    return None


# ---------------------------------------------------------------------------
# Bulk import
# ---------------------------------------------------------------------------


def _reconciliation_response(result: importer.ImportReconciliation) -> schemas.ImportReconciliationRead:
    return schemas.ImportReconciliationRead(
        cart=[schemas.LineItemRead.model_validate(line.model_dump()) for line in result.cart],
        new_items_created=[schemas.ItemRead.model_validate(item) for item in result.new_items_created],
        stock_adjustments=[schemas.StockAdjustmentRead.model_validate(adj) for adj in result.stock_adjustments],
        row_errors=[
            schemas.ImportRowErrorRead(
                row_number=error.row_number,
                sku=error.sku,
                error_kind=error.error_kind,
                message=error.message,
            )
            for error in result.row_errors
        ],
        counts=schemas.ImportCounts(**result.counts),
    )


def _reconcile(db: Session, **kwargs) -> schemas.ImportReconciliationRead:
    try:
        result = importer.reconcile_import_batch(db, **kwargs)
    except LedgerError as exc:
        db.rollback()
        raise ledger_http_error(exc)
    commit_or_rollback(db)
    return _reconciliation_response(result)


@router.post("/import/reconcile", response_model=schemas.ImportReconciliationRead)
def reconcile_import(payload: schemas.ImportBatchRequest, db: Session = Depends(get_db)):
    """
    Resolve imported rows into a cart. New SKUs and stock raises are saved;
    the cart itself is committed by a follow-up POST /transactions.
    """
    return _reconcile(db, type_=payload.type, rows=payload.rows, cart=payload.cart, auto_raise=payload.auto_raise)


@router.post("/import/upload", response_model=schemas.ImportReconciliationRead)
async def upload_import(
    file: UploadFile = File(...),
    type_: models.TransactionTypeEnum = Form(..., alias="type"),
    auto_raise: Optional[bool] = Form(None, alias="autoRaise"),
    db: Session = Depends(get_db),
):
    content = await file.read()
    try:
        rows = read_spreadsheet_rows(content, file.filename)
    except SpreadsheetError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not rows:
        raise HTTPException(status_code=400, detail="Uploaded file contains no data.")
    return _reconcile(db, type_=type_, rows=rows, auto_raise=auto_raise)
