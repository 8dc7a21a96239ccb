"""
CSV / Excel reading and writing for imports and exports.

pandas is imported lazily so the rest of the ledger loads without it.
"""

from __future__ import annotations

from datetime import date, datetime
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence


class SpreadsheetError(ValueError):
    """Raised for unreadable uploads or a missing pandas/openpyxl install."""


def _pandas():
    try:
        import pandas as pd  # type: ignore
    except ImportError as exc:  # pragma: no cover
        raise SpreadsheetError(
            "pandas is required for spreadsheets. Install with 'pip install pandas openpyxl'."
        ) from exc
    return pd


def coerce_cell(value: Any) -> Any:
    if value is None:
        return None
    pd = _pandas()
    if not isinstance(value, (list, dict)) and pd.isna(value):
        return None
    if hasattr(value, "item") and callable(value.item):
        value = value.item()
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def read_spreadsheet_rows(content: bytes, filename: Optional[str]) -> List[Dict[str, Any]]:
    """Data rows (header excluded) of a CSV/XLSX/XLS upload as plain dicts."""
    pd = _pandas()
    ext = Path(filename or "").suffix.lower()
    buffer = BytesIO(content)
    try:
        if ext == ".csv":
            df = pd.read_csv(buffer)
        elif ext in {".xlsx", ".xlsm", ".xls"}:
            df = pd.read_excel(buffer)
        else:
            raise SpreadsheetError("Unsupported file type. Upload CSV, XLSX, XLSM or XLS.")
    except SpreadsheetError:
        raise
    except (ValueError, OSError) as exc:
        raise SpreadsheetError(f"Could not read {filename}: {exc}") from exc

    rows: List[Dict[str, Any]] = []
    for _, row in df.iterrows():
        rows.append({str(key).strip(): coerce_cell(value) for key, value in row.to_dict().items()})
    return rows


def write_workbook(rows: Sequence[Dict[str, Any]], sheet_name: str = "Sheet1", columns: Optional[List[str]] = None) -> bytes:
    pd = _pandas()
    df = pd.DataFrame(list(rows), columns=columns)
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name[:31], index=False)
    return buffer.getvalue()


XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
