from __future__ import annotations

import os
import time
import uuid

TRANSACTION_LABEL_PREFIX = "TRX"


def generate_uuid7() -> str:
    """
    Generate a UUIDv7 string (time-ordered).

    Used as the opaque primary key for items, transactions and reject logs,
    so rows sort by creation time without an extra column.

    Layout:
    - 48-bit Unix timestamp in milliseconds
    - 4-bit version (0b0111)
    - 74-bit randomness
    """
    ts_ms = int(time.time() * 1000)
    raw = bytearray(ts_ms.to_bytes(6, "big", signed=False) + os.urandom(10))
    raw[6] = (raw[6] & 0x0F) | 0x70
    raw[8] = (raw[8] & 0x3F) | 0x80
    return str(uuid.UUID(bytes=bytes(raw)))


def format_transaction_label(year: int, sequence: int) -> str:
    """Human-readable transaction number, e.g. ``TRX-2024-007``."""
    return f"{TRANSACTION_LABEL_PREFIX}-{year}-{sequence:03d}"
