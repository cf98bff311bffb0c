"""Position form validation.

Each validator takes the raw text a user typed and returns an error message,
or ``None`` when the value is acceptable. Numeric coercion follows the
JavaScript ``Number()`` rules the web form uses: surrounding whitespace is
ignored and an empty string counts as zero.
"""

from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation

_NUMBER = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
MAX_SHARE_DECIMALS = 2


def to_number(value: str) -> float:
    text = str(value).strip()
    if not text:
        return 0.0
    if not _NUMBER.match(text):
        return math.nan
    number = float(text)
    return number if math.isfinite(number) else math.nan


def _decimal_places(value: str) -> int:
    text = str(value).strip()
    if not text:
        return 0
    try:
        exponent = Decimal(text).normalize().as_tuple().exponent
    except InvalidOperation:
        return 0
    return -exponent if isinstance(exponent, int) and exponent < 0 else 0


def normalize_symbol(symbol: str) -> str:
    return symbol.strip().upper()


def validate_symbol(symbol: str) -> str | None:
    if not normalize_symbol(symbol):
        return "Symbol is required."
    return None


def validate_shares(shares: str) -> str | None:
    number = to_number(shares)
    if math.isnan(number):
        return "Shares must be a number."
    if number <= 0:
        return "Shares must be greater than 0."
    if _decimal_places(shares) > MAX_SHARE_DECIMALS:
        return "Shares can have at most 2 decimal places."
    return None


def validate_buy_price(buy_price: str) -> str | None:
    number = to_number(buy_price)
    if math.isnan(number) or number < 0:
        return "Buy price must be a non-negative number."
    return None


def validate_dca(dca: str) -> str | None:
    if not dca:
        return None
    number = to_number(dca)
    if math.isnan(number) or number < 0:
        return "Target DCA must be a non-negative number."
    return None


def validate_position(symbol: str, shares: str, buy_price: str, dca: str) -> str | None:
    """Validate a whole form; the first failing field wins (symbol, shares, buy price, DCA)."""
    for error in (
        validate_symbol(symbol),
        validate_shares(shares),
        validate_buy_price(buy_price),
        validate_dca(dca),
    ):
        if error:
            return error
    return None
