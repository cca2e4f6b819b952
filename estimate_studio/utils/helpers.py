import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

CENT = Decimal("0.01")
# Column scales: prices Numeric(14,2), quantities Numeric(14,4)
QTY_STEP = Decimal("0.0001")


def new_id() -> str:
    """Fresh primary key / link token; never reused across live rows and versions."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_decimal(value: Any, default: str = "0") -> Decimal:
    try:
        return Decimal(str(value if value is not None else default))
    except (InvalidOperation, ValueError):
        return Decimal(default)


def to_price(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_quantity(value: Any) -> Decimal:
    return to_decimal(value).quantize(QTY_STEP, rounding=ROUND_HALF_UP)


def line_total(price: Any, quantity: Any) -> Decimal:
    """price x quantity at stored precision, rounded to cents the way totals are persisted."""
    return (to_price(price) * to_quantity(quantity)).quantize(CENT, rounding=ROUND_HALF_UP)


def round_currency(value: Any) -> float:
    try:
        return round(float(value), 2)
    except (TypeError, ValueError):
        return 0.0


def safe_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return float(default)


def isoformat(dt) -> str | None:
    return dt.isoformat() if dt else None
