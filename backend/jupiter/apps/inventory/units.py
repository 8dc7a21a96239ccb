"""
Base/secondary unit arithmetic.

Every ledger quantity is stored in the item's base unit. An item may carry one
secondary packaging unit (e.g. ``Box``) with a fixed ``conversion_rate`` of
base units per secondary unit. A missing, zero or negative rate behaves as 1:1.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Any, Optional, Tuple

ONE = Decimal("1")
ZERO = Decimal("0")


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return Decimal(value)
    try:
        # str() keeps floats at their shortest repr, so 0.1 stays Decimal("0.1").
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return default
    if not result.is_finite():
        return default
    return result


def effective_rate(rate: Any) -> Decimal:
    value = to_decimal(rate, default=ONE)
    if value <= 0:
        return ONE
    return value


def to_base(quantity: Any, rate: Any = None) -> Decimal:
    return to_decimal(quantity) * effective_rate(rate)


def from_base(base_quantity: Any, rate: Any = None) -> Tuple[Decimal, Decimal]:
    """Split a base quantity into (whole secondary units, base remainder)."""
    base = to_decimal(base_quantity)
    rate_value = effective_rate(rate)
    count = (base / rate_value).to_integral_value(rounding=ROUND_FLOOR)
    return count, base - count * rate_value


def has_secondary_unit(item: Any) -> bool:
    return bool(getattr(item, "secondary_unit", None)) and effective_rate(
        getattr(item, "conversion_rate", None)
    ) != ONE


def _same_label(left: Optional[str], right: Optional[str]) -> bool:
    return (left or "").strip().lower() == (right or "").strip().lower()


def rate_for_unit(item: Any, unit: Optional[str]) -> Optional[Decimal]:
    """
    Conversion rate for a unit label typed against ``item``.

    Blank or base unit -> 1, the item's secondary unit -> its rate,
    anything else -> None.
    """
    if not (unit or "").strip() or _same_label(unit, getattr(item, "unit", None)):
        return ONE
    secondary = getattr(item, "secondary_unit", None)
    if secondary and _same_label(unit, secondary):
        return effective_rate(getattr(item, "conversion_rate", None))
    return None


def _plain(value: Decimal) -> str:
    if value == value.to_integral_value():
        return str(value.quantize(ONE))
    return format(value.normalize(), "f")


def format_breakdown(base_quantity: Any, item: Any) -> str:
    base_unit = getattr(item, "unit", None) or "pcs"
    if not has_secondary_unit(item):
        return f"{_plain(to_decimal(base_quantity))} {base_unit}"
    count, remainder = from_base(base_quantity, item.conversion_rate)
    parts = []
    if count:
        parts.append(f"{_plain(count)} {item.secondary_unit}")
    if remainder or not parts:
        parts.append(f"{_plain(remainder)} {base_unit}")
    return " + ".join(parts)
