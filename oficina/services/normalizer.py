"""
Normalisation des entrées "lâches" (payloads JSON, formulaires).

Règles :
- ne lève JAMAIS d'exception : on dégrade vers None (ou le défaut fourni)
- c'est l'appelant qui décide si None est une erreur de validation
- les montants acceptent la virgule décimale ("1.234,56" -> 1234.56)
"""

from __future__ import annotations

import math
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable

from oficina.app.db.models.core_types import (
    FinanceStatus,
    FinanceType,
    PaymentChannel,
    StockMovementType,
    enum_values,
)

FINANCE_TYPES = frozenset(enum_values(FinanceType))
FINANCE_STATUSES = frozenset(enum_values(FinanceStatus))
PAYMENT_CHANNELS = frozenset(enum_values(PaymentChannel))
STOCK_MOVEMENT_TYPES = frozenset(enum_values(StockMovementType))


def normalize_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_number(value: Any, default: float | None = None) -> float | None:
    """
    Nombre fini ou `default`.

    Les contextes devis / lignes / stock passent default=0,
    la finance garde None pour détecter une valeur absente.
    """
    if value is None or isinstance(value, bool):
        return default

    if isinstance(value, (int, float, Decimal)):
        number = float(value)
        return number if math.isfinite(number) else default

    raw = str(value).strip()
    if not raw or "_" in raw:
        return default

    # convention BR : "." séparateur de milliers, "," décimale
    if "," in raw:
        raw = raw.replace(".", "").replace(",", ".")

    try:
        number = float(raw)
    except ValueError:
        return default

    return number if math.isfinite(number) else default


def normalize_enum(value: Any, allowed: Iterable[str]) -> str | None:
    text = normalize_text(value)
    if text is None:
        return None
    return text if text in allowed else None


def normalize_type(value: Any) -> str | None:
    return normalize_enum(value, FINANCE_TYPES)


def normalize_status(value: Any) -> str | None:
    return normalize_enum(value, FINANCE_STATUSES)


def normalize_channel(value: Any) -> str | None:
    return normalize_enum(value, PAYMENT_CHANNELS)


def normalize_movement_type(value: Any) -> str | None:
    return normalize_enum(value, STOCK_MOVEMENT_TYPES)


def normalize_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None

    text = normalize_text(value)
    if text is None:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def normalize_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    text = normalize_text(value)
    if text is None:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def normalize_date(value: Any) -> date | None:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    parsed = normalize_datetime(value)
    return parsed.date() if parsed else None
