"""Boundary validation shared by the HTTP routes and MCP tools."""

from __future__ import annotations

import re

SYMBOL_PATTERN = re.compile(r"^[A-Z0-9.]{1,10}$")
MAX_SYMBOL_LENGTH = 10
MAX_SYMBOLS_PER_REQUEST = 50


class SymbolListError(ValueError):
    """Caller-facing rejection of a symbol or symbol list."""


def is_valid_symbol(symbol: str) -> bool:
    return 0 < len(symbol) <= MAX_SYMBOL_LENGTH and bool(SYMBOL_PATTERN.match(symbol))


def validate_symbol(symbol: str) -> str:
    clean = symbol.strip().upper()
    if not is_valid_symbol(clean):
        raise SymbolListError("Symbol must be 1-10 chars: A-Z, 0-9, dot.")
    return clean


def parse_symbols_param(raw: str | list[str] | None, max_symbols: int = MAX_SYMBOLS_PER_REQUEST) -> list[str]:
    """Turn ``"AAPL, msft"`` (or a list) into canonical symbols, dropping malformed entries."""
    if not raw:
        raise SymbolListError('Missing "symbols" parameter. Use symbols=AAPL,MSFT')
    parts = raw.split(",") if isinstance(raw, str) else list(raw)
    candidates = [str(part).strip().upper() for part in parts]
    candidates = [symbol for symbol in candidates if symbol]
    if len(candidates) > max_symbols:
        raise SymbolListError(f"Too many symbols. Maximum {max_symbols} allowed.")
    symbols = [symbol for symbol in candidates if is_valid_symbol(symbol)]
    if not symbols:
        raise SymbolListError("No valid stock symbols provided. Use alphanumeric symbols only.")
    return symbols
