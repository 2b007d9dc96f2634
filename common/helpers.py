"""
Folio - Shared Helpers
=======================
Pure utility functions with NO database or module dependencies.
"""

import secrets
import time
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

CENT = Decimal("0.01")


def now_utc() -> datetime:
    """Returns current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def safe_int(value: Optional[str]) -> Optional[int]:
    """Safely convert a string to int. Returns None on failure."""
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except (ValueError, TypeError):
        return None


def to_money(value) -> Decimal:
    """Coerce a number to a 2-decimal Decimal (half-up)."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def new_session_id() -> str:
    """Random identifier for a guest session cookie."""
    return secrets.token_urlsafe(24)


def generate_transaction_id() -> str:
    """External-looking gateway reference: txn_<millis>_<random>."""
    return f"txn_{int(time.time() * 1000)}_{secrets.randbelow(1000)}"
