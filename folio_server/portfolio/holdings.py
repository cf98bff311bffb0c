"""Holdings table: quotes enriched with position data."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Literal

import numpy as np
import pandas as pd

from folio_server.portfolio.metrics import calculate_profit, is_near_dca_target
from folio_server.providers.models import Position, Quote

HOLDING_COLUMNS = [
    "id",
    "symbol",
    "price",
    "change",
    "change_percent",
    "currency",
    "source",
    "shares",
    "buy_price",
    "profit",
    "dca",
    "near_dca",
]


def merge_positions_with_quotes(quotes: list[Quote], positions: list[Position]) -> pd.DataFrame:
    """One row per quote; rows without a matching position show zero shares and no profit."""
    if not quotes:
        return pd.DataFrame(columns=HOLDING_COLUMNS)
    quote_frame = pd.DataFrame([asdict(quote) for quote in quotes])
    position_frame = pd.DataFrame(
        [asdict(position) for position in positions],
        columns=["id", "symbol", "shares", "buy_price", "dca"],
    ).drop_duplicates(subset="symbol", keep="first")

    data = quote_frame.merge(position_frame, on="symbol", how="left")
    data["shares"] = data["shares"].fillna(0.0).astype(float)
    data["buy_price"] = data["buy_price"].fillna(0.0).astype(float)
    data["dca"] = data["dca"].astype(float)
    has_basis = (data["buy_price"] != 0) & (data["shares"] > 0)
    data["profit"] = np.where(
        has_basis,
        [calculate_profit(price, buy, shares).amount for price, buy, shares in zip(data["price"], data["buy_price"], data["shares"])],
        0.0,
    )
    data["near_dca"] = [
        is_near_dca_target(price, None if pd.isna(dca) else float(dca)) for price, dca in zip(data["price"], data["dca"])
    ]
    return data[HOLDING_COLUMNS]


def sort_holdings(frame: pd.DataFrame, column: str | None, direction: Literal["asc", "desc"] = "asc") -> pd.DataFrame:
    """Sort numerically, or case-insensitively for text columns; ``None`` keeps the input order."""
    if not column:
        return frame
    ascending = direction == "asc"
    if pd.api.types.is_numeric_dtype(frame[column]):
        return frame.sort_values(column, ascending=ascending, kind="stable")
    return frame.sort_values(
        column,
        ascending=ascending,
        kind="stable",
        key=lambda series: series.astype(str).str.lower(),
    )


def holdings_records(frame: pd.DataFrame) -> list[dict[str, Any]]:
    cleaned = frame.astype(object).where(pd.notna(frame), None)
    return cleaned.to_dict(orient="records")


def format_currency(value: float) -> str:
    return f"{value:,.2f}"


def format_decimal(value: float) -> str:
    return f"{value:.2f}"


def format_percentage(value: float) -> str:
    return f"{value:.2f}%"
