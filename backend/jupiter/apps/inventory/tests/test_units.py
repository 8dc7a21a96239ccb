from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

from jupiter.apps.inventory import units


def _item(**overrides):
    values = {"unit": "pcs", "secondary_unit": "Box", "conversion_rate": Decimal("10")}
    values.update(overrides)
    return SimpleNamespace(**values)


def test_missing_zero_or_negative_rate_behaves_as_one():
    assert units.effective_rate(None) == 1
    assert units.effective_rate(0) == 1
    assert units.effective_rate("-4") == 1
    assert units.effective_rate("abc") == 1
    assert units.effective_rate("12") == 12


def test_to_base_multiplies_by_rate():
    assert units.to_base(2, 10) == Decimal("20")
    assert units.to_base("1.5", Decimal("12")) == Decimal("18.0")
    assert units.to_base(3, None) == 3


def test_from_base_splits_into_count_and_remainder():
    assert units.from_base(23, 10) == (Decimal("2"), Decimal("3"))
    assert units.from_base(7, 0) == (Decimal("7"), Decimal("0"))


def test_to_decimal_keeps_float_repr():
    assert units.to_decimal(0.1) == Decimal("0.1")
    assert units.to_decimal(None) == 0
    assert units.to_decimal("nan") == 0
    assert units.to_decimal("x", default=None) is None


def test_rate_for_unit_matches_labels_case_insensitively():
    item = _item()
    assert units.rate_for_unit(item, None) == 1
    assert units.rate_for_unit(item, "PCS") == 1
    assert units.rate_for_unit(item, "box") == Decimal("10")
    assert units.rate_for_unit(item, "Pallet") is None


def test_format_breakdown():
    item = _item()
    assert units.format_breakdown(23, item) == "2 Box + 3 pcs"
    assert units.format_breakdown(20, item) == "2 Box"
    assert units.format_breakdown(4, item) == "4 pcs"
    assert units.format_breakdown(5, _item(secondary_unit=None)) == "5 pcs"
