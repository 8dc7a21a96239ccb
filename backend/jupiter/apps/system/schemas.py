from __future__ import annotations

from typing import List

from jupiter.apps.inventory.schemas import CamelModel, ItemRead, TransactionRead
from jupiter.apps.rejects.schemas import RejectLogRead, RejectMasterRead


class SyncSnapshotRead(CamelModel):
    items: List[ItemRead]
    transactions: List[TransactionRead]
    reject_master: List[RejectMasterRead]
    reject_logs: List[RejectLogRead]
