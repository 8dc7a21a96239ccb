from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from jupiter.database import commit_or_rollback, get_db

from . import schemas, services

router = APIRouter(prefix="/api", tags=["system"])


@router.get("/sync", response_model=schemas.SyncSnapshotRead)
def sync(db: Session = Depends(get_db)):
    return services.sync_snapshot(db)


@router.delete("/reset-database")
def reset_database(db: Session = Depends(get_db)):
    if not services.ALLOW_DATABASE_RESET:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Database reset is disabled. Set ALLOW_DATABASE_RESET=true to enable it.",
        )
    deleted = services.reset_database(db)
    commit_or_rollback(db)
    return {"status": "reset", "deleted": deleted}
