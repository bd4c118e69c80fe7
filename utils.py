"""Utility / helper functions used across the application."""

from __future__ import annotations

import dataclasses
import datetime
import enum
import logging
from datetime import timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


# ---------------------------------------------------------------------------
# Datetime helpers
# ---------------------------------------------------------------------------

def utc_now() -> datetime.datetime:
    """Return current UTC datetime.  Used as SQLAlchemy column default."""
    return datetime.datetime.now(timezone.utc)


def format_date(value, fmt: str) -> str:
    """Render a date/datetime with *fmt*, or an empty string for ``None``."""
    if value is None:
        return ""
    return value.strftime(fmt)


# ---------------------------------------------------------------------------
# Safe type conversions
# ---------------------------------------------------------------------------

def to_decimal(value, default: Decimal = Decimal("0")) -> Decimal:
    """Convert *value* to ``Decimal`` without passing through binary floats."""
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        logger.warning("Could not convert %r to Decimal, using default %s", value, default)
        return default


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------------
# Serialization boundary
# ---------------------------------------------------------------------------

def serialize_decimals(data: Any) -> Any:
    """Deep-convert decimal leaves to plain numbers for the display layer.

    Walks dicts, lists, tuples and dataclasses of any depth.  ``Decimal``
    becomes ``float``, dates become ISO strings and enums their value; every
    other leaf is returned unchanged.
    """
    if data is None:
        return None
    if isinstance(data, Decimal):
        return float(data)
    if isinstance(data, enum.Enum):
        return data.value
    if isinstance(data, (datetime.datetime, datetime.date)):
        return data.isoformat()
    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        return {
            field.name: serialize_decimals(getattr(data, field.name))
            for field in dataclasses.fields(data)
        }
    if isinstance(data, dict):
        return {key: serialize_decimals(value) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [serialize_decimals(item) for item in data]
    return data
