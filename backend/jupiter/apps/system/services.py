from __future__ import annotations

import logging
import os
from typing import Any, Dict

from sqlalchemy.orm import Session

from jupiter.apps.inventory import models as inventory_models
from jupiter.apps.inventory import services as inventory_services
from jupiter.apps.rejects import models as rejects_models
from jupiter.apps.rejects import services as rejects_services

logger = logging.getLogger(__name__)

SYNC_TRANSACTION_LIMIT = int(os.getenv("SYNC_TRANSACTION_LIMIT", "300"))
SYNC_REJECT_LOG_LIMIT = int(os.getenv("SYNC_REJECT_LOG_LIMIT", "200"))
ALLOW_DATABASE_RESET = os.getenv("ALLOW_DATABASE_RESET", "false").lower() in {"1", "true", "yes", "on"}

# Children before parents; none of these tables reference each other today.
RESET_TABLES = (
    inventory_models.StockAdjustment,
    inventory_models.StockTransaction,
    inventory_models.TransactionSequence,
    inventory_models.Item,
    rejects_models.RejectLog,
    rejects_models.RejectMasterItem,
)


def sync_snapshot(db: Session) -> Dict[str, Any]:
    """Everything the client needs to render after a reload."""
    return {
        "items": inventory_services.list_items(db),
        "transactions": inventory_services.list_transactions(db, limit=SYNC_TRANSACTION_LIMIT),
        "reject_master": rejects_services.list_master_items(db),
        "reject_logs": rejects_services.list_reject_logs(db, limit=SYNC_REJECT_LOG_LIMIT),
    }


def reset_database(db: Session) -> Dict[str, int]:
    deleted: Dict[str, int] = {}
    for model in RESET_TABLES:
        deleted[model.__tablename__] = db.query(model).delete(synchronize_session=False)
    db.flush()
    logger.warning("Database reset: %s", deleted)
    return deleted
