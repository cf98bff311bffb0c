"""Profit and portfolio-level metrics."""

from __future__ import annotations

import math
from typing import Iterable, Literal

from folio_server.providers.models import PortfolioMetrics, Position, ProfitData, Quote

DCA_LOWER_BOUND = 0.95
DCA_UPPER_BOUND = 1.05


def _ratio(numerator: float, denominator: float) -> float:
    if denominator == 0:
        # IEEE division: x/0 is +/-inf, 0/0 is nan.
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)
    return numerator / denominator


def calculate_profit(price: float, buy_price: float, shares: float) -> ProfitData:
    """Profit of a single position; a zero buy price yields an infinite percentage."""
    amount = (price - buy_price) * shares
    percentage = (_ratio(price, buy_price) - 1) * 100
    return ProfitData(amount=amount, percentage=percentage)


def calculate_portfolio_metrics(positions: Iterable[Position], quotes: Iterable[Quote]) -> PortfolioMetrics:
    prices: dict[str, float] = {}
    for quote in quotes:
        prices.setdefault(quote.symbol, quote.price)

    total_invested = 0.0
    current_value = 0.0
    for position in positions:
        total_invested += position.shares * position.buy_price
        price = prices.get(position.symbol)
        if price is not None:
            current_value += position.shares * price

    success_rate = (current_value / total_invested - 1) * 100 if total_invested > 0 else 0.0
    return PortfolioMetrics(
        total_invested=total_invested,
        current_value=current_value,
        unrealized_pl=current_value - total_invested,
        success_rate=success_rate,
    )


def is_near_dca_target(price: float, dca_target: float | None) -> bool:
    """True when ``price`` sits within +/-5% of a positive DCA target."""
    if dca_target is None or dca_target <= 0:
        return False
    return dca_target * DCA_LOWER_BOUND <= price <= dca_target * DCA_UPPER_BOUND


def metric_direction(value: float) -> Literal["positive", "negative", "neutral"]:
    if value > 0:
        return "positive"
    if value < 0:
        return "negative"
    return "neutral"
