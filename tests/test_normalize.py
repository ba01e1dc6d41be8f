from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from sis_sync.reconcile.normalize import digits_only, normalize, normalize_bool, normalize_folded, normalize_integer


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, None),
        ("", None),
        ("   ", None),
        ("  Anne ", "Anne"),
        (True, "true"),
        (False, "false"),
        (5, "5"),
        (5.0, "5"),
        (2.5, "2.5"),
        (float("nan"), None),
        (Decimal("5.00"), "5"),
        (Decimal("1.50"), "1.5"),
        (Decimal("NaN"), None),
        (date(2010, 3, 9), "2010-03-09"),
        (datetime(2010, 3, 9, 14, 30), "2010-03-09"),
    ],
)
def test_normalize_canonical_forms(value, expected):
    assert normalize(value) == expected


def test_numeric_encodings_agree():
    assert normalize(5) == normalize(5.0) == normalize("5") == normalize(Decimal("5.0"))


def test_normalize_preserves_case():
    assert normalize("McDonald") == "McDonald"
    assert normalize("anne") != normalize("Anne")


@pytest.mark.parametrize(
    "value",
    [None, "", " x ", True, 0, 12, 3.25, Decimal("10.10"), date(2024, 1, 31), "2024-01-31", "(555) 123-4567"],
)
def test_helpers_are_idempotent(value):
    for helper in (normalize, normalize_bool, normalize_folded, digits_only, normalize_integer):
        once = helper(value)
        assert helper(once) == once


@pytest.mark.parametrize(
    "value, expected",
    [(1, "true"), (0, "false"), ("Y", "true"), ("no", "false"), (True, "true"), ("maybe", "maybe"), (None, None)],
)
def test_normalize_bool_tokens(value, expected):
    assert normalize_bool(value) == expected


def test_digits_only_strips_formatting():
    assert digits_only("(555) 123-4567") == "5551234567"
    assert digits_only("555.123.4567") == "5551234567"
    assert digits_only("ext.") is None


def test_normalize_integer_handles_leading_zeroes_and_floats():
    assert normalize_integer("01001") == "1001"
    assert normalize_integer(1001.0) == "1001"
    assert normalize_integer("10.5") is None
    assert normalize_integer("abc") is None
