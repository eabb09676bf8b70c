import math
from datetime import date, datetime

from oficina.services.normalizer import (
    normalize_channel,
    normalize_date,
    normalize_datetime,
    normalize_int,
    normalize_movement_type,
    normalize_number,
    normalize_status,
    normalize_text,
    normalize_type,
)


def test_normalize_text_trims_and_empties_to_none():
    assert normalize_text("  pneu  ") == "pneu"
    assert normalize_text("   ") is None
    assert normalize_text(None) is None
    assert normalize_text(12) == "12"


def test_normalize_number_decimal_comma():
    assert normalize_number("1.234,56") == 1234.56
    assert normalize_number("12,5") == 12.5
    assert normalize_number(" 42 ") == 42.0
    assert normalize_number("1e3") == 1000.0


def test_normalize_number_falls_back_to_default():
    assert normalize_number(None) is None
    assert normalize_number(None, 0) == 0
    assert normalize_number("", 0) == 0
    assert normalize_number("abc", 0) == 0
    assert normalize_number("1_000", 0) == 0
    assert normalize_number(True, 0) == 0
    assert normalize_number(float("nan"), 0) == 0
    assert normalize_number("inf") is None


def test_normalize_number_never_returns_non_finite():
    for raw in ("nan", "-inf", float("inf"), "1e400"):
        value = normalize_number(raw, 0)
        assert math.isfinite(value)


def test_enums_are_exact_and_case_sensitive():
    assert normalize_type("in") == "in"
    assert normalize_type(" out ") == "out"
    assert normalize_type("IN") is None
    assert normalize_status("Pago") == "Pago"
    assert normalize_status("pago") is None
    assert normalize_channel("Cartao") == "Cartao"
    assert normalize_channel("Bitcoin") is None
    assert normalize_movement_type("saida") == "saida"
    assert normalize_movement_type("exit") is None


def test_normalize_int():
    assert normalize_int("12") == 12
    assert normalize_int(7) == 7
    assert normalize_int(2.0) == 2
    assert normalize_int(2.5) is None
    assert normalize_int("1.5") is None
    assert normalize_int(True) is None
    assert normalize_int("") is None


def test_normalize_dates():
    aware = normalize_datetime("2024-03-01T10:00:00Z")
    assert aware is not None and aware.tzinfo is not None

    assert normalize_datetime("2024-03-01") == datetime(2024, 3, 1)
    assert normalize_datetime(date(2024, 3, 1)) == datetime(2024, 3, 1)
    assert normalize_datetime("garbage") is None

    assert normalize_date("2024-03-01T23:59:00") == date(2024, 3, 1)
    assert normalize_date(date(2024, 3, 1)) == date(2024, 3, 1)
    assert normalize_date(None) is None
