import re
from decimal import Decimal, InvalidOperation
from typing import Any

from estimate_studio.services.errors import ValidationFailed
from estimate_studio.utils.helpers import to_price, to_quantity

def clean_str(val: str | None, max_len: int = 255) -> str | None:
    """
    Collapse whitespace, trim, enforce max length. Returns None if empty after cleaning.
    """
    if val is None:
        return None
    s = re.sub(r"\s+", " ", str(val)).strip()
    if not s:
        return None
    return s[:max_len]

def require_name(val: Any, field: str = "name", max_len: int = 255) -> str:
    s = clean_str(val if val is None else str(val), max_len=max_len)
    if not s:
        raise ValidationFailed(f"{field} is required")
    return s

def non_negative(val: Any, field: str) -> Decimal:
    """Parse a price/quantity; reject non-numbers and negatives."""
    if isinstance(val, bool):
        raise ValidationFailed(f"{field} must be a number")
    try:
        d = Decimal(str(val))
    except (InvalidOperation, ValueError):
        raise ValidationFailed(f"{field} must be a number")
    if not d.is_finite():
        raise ValidationFailed(f"{field} must be a number")
    if d < 0:
        raise ValidationFailed(f"{field} must not be negative")
    return d

def optional_bool(val: Any, field: str) -> bool | None:
    if val is None:
        return None
    if isinstance(val, bool):
        return val
    if isinstance(val, (int, float)) and val in (0, 1):
        return bool(val)
    if isinstance(val, str) and val.strip().lower() in ("true", "false", "1", "0"):
        return val.strip().lower() in ("true", "1")
    raise ValidationFailed(f"{field} must be a boolean")

def price_amount(val: Any, field: str = "price") -> Decimal:
    """Validated price rounded to cents, the precision it is stored at."""
    return to_price(non_negative(val, field))

def quantity_amount(val: Any, field: str = "quantity") -> Decimal:
    return to_quantity(non_negative(val, field))
