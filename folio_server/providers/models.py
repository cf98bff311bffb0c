"""Normalized data models shared across providers, services and tools."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal

QuoteSource = Literal["live", "cache"]


@dataclass(frozen=True)
class Quote:
    symbol: str
    price: float
    change: float
    change_percent: float
    currency: str
    source: QuoteSource

    def tagged(self, source: QuoteSource) -> Quote:
        return replace(self, source=source)


@dataclass
class Position:
    id: str
    symbol: str
    shares: float
    buy_price: float
    dca: float | None = None


@dataclass(frozen=True)
class ProfitData:
    amount: float
    percentage: float


@dataclass(frozen=True)
class PortfolioMetrics:
    total_invested: float
    current_value: float
    unrealized_pl: float
    success_rate: float
