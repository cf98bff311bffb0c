"""Portfolio-domain MCP tools."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any, Callable

from mcp.server.fastmcp import FastMCP
from pydantic import ValidationError

from folio_server.portfolio.holdings import (
    format_currency,
    format_decimal,
    format_percentage,
    holdings_records,
    merge_positions_with_quotes,
    sort_holdings,
)
from folio_server.portfolio.metrics import calculate_portfolio_metrics, metric_direction
from folio_server.portfolio.portfolio_service import PortfolioServiceError
from folio_server.portfolio.schemas import positions_from_portfolio
from folio_server.portfolio.validation import validate_position
from folio_server.providers.models import Position, Quote
from folio_server.runtime.response import describe_error, ok_payload, to_json

if TYPE_CHECKING:
    from folio_server.tools.registry import ToolServices


def _error_payload(error: Exception) -> str:
    _, code, message = describe_error(error)
    return json.dumps({"error": {"code": code, "message": message}}, ensure_ascii=True)


def _guarded(call: Callable[[], Any]) -> str:
    try:
        return ok_payload(call())
    except (PortfolioServiceError, ValidationError) as error:
        return _error_payload(error)


async def _guarded_in_thread(call: Callable[[], Any]) -> str:
    # Recovery-code hashing is CPU bound; keep it off the event loop.
    try:
        return ok_payload(await asyncio.to_thread(call))
    except (PortfolioServiceError, ValidationError) as error:
        return _error_payload(error)


def build_portfolio_summary(
    positions: list[Position],
    quotes: list[Quote],
    sort_by: str | None = None,
    direction: str = "asc",
) -> dict[str, Any]:
    metrics = calculate_portfolio_metrics(positions, quotes)
    frame = merge_positions_with_quotes(quotes, positions)
    if sort_by and sort_by in frame.columns:
        frame = sort_holdings(frame, sort_by, "desc" if direction == "desc" else "asc")
    return {
        "metrics": metrics,
        "direction": {
            "unrealized_pl": metric_direction(metrics.unrealized_pl),
            "success_rate": metric_direction(metrics.success_rate),
        },
        "formatted": {
            "total_invested": format_currency(metrics.total_invested),
            "current_value": format_currency(metrics.current_value),
            "unrealized_pl": format_currency(metrics.unrealized_pl),
            "success_rate": format_percentage(metrics.success_rate),
        },
        "holdings": [
            {**record, "profit_display": format_decimal(record["profit"])} for record in holdings_records(frame)
        ],
        "missing_quotes": sorted({p.symbol for p in positions} - {q.symbol for q in quotes}),
    }


def register_portfolio_tools(mcp: FastMCP, services: ToolServices) -> None:
    @mcp.tool(description="Create a new anonymous portfolio. Returns its id and a one-time recovery code.")
    async def create_portfolio() -> str:
        return await _guarded_in_thread(services.portfolio.create_portfolio)

    @mcp.tool(description="Find an existing portfolio by its recovery code.")
    async def link_portfolio(recovery_code: str) -> str:
        return await _guarded_in_thread(lambda: services.portfolio.link_portfolio(recovery_code))

    @mcp.tool(description="Get a portfolio with all of its positions.")
    def get_portfolio(portfolio_id: str) -> str:
        return _guarded(lambda: services.portfolio.get_portfolio(portfolio_id))

    @mcp.tool(description="Check position form values; returns the first validation error or null.")
    def validate_position_form(symbol: str, shares: str, buy_price: str, dca: str = "") -> str:
        return to_json({"error": validate_position(symbol, shares, buy_price, dca)})

    @mcp.tool(description="Add a position (symbol, shares, buy price, optional DCA target) to a portfolio.")
    def add_position(
        portfolio_id: str,
        symbol: str,
        shares: float,
        buy_price: float,
        dca_price: float | None = None,
    ) -> str:
        body: dict[str, Any] = {"symbol": symbol, "shares": shares, "buyPrice": buy_price}
        if dca_price is not None:
            body["dcaPrice"] = dca_price
        return _guarded(lambda: services.portfolio.create_position(portfolio_id, body))

    @mcp.tool(description="Update fields of a position. Set clear_dca to remove the DCA target.")
    def update_position(
        portfolio_id: str,
        position_id: str,
        symbol: str | None = None,
        shares: float | None = None,
        buy_price: float | None = None,
        dca_price: float | None = None,
        clear_dca: bool = False,
    ) -> str:
        body: dict[str, Any] = {}
        if symbol is not None:
            body["symbol"] = symbol
        if shares is not None:
            body["shares"] = shares
        if buy_price is not None:
            body["buyPrice"] = buy_price
        if clear_dca:
            body["dcaPrice"] = None
        elif dca_price is not None:
            body["dcaPrice"] = dca_price
        return _guarded(lambda: services.portfolio.update_position(portfolio_id, position_id, body))

    @mcp.tool(description="Delete a position from a portfolio.")
    def delete_position(portfolio_id: str, position_id: str) -> str:
        return _guarded(lambda: services.portfolio.delete_position(portfolio_id, position_id))

    @mcp.tool(description="Portfolio metrics and holdings table enriched with live or cached quotes.")
    async def portfolio_summary(portfolio_id: str, sort_by: str | None = None, direction: str = "asc") -> str:
        try:
            positions = positions_from_portfolio(services.portfolio.get_portfolio(portfolio_id))
        except PortfolioServiceError as error:
            return _error_payload(error)
        quotes = await services.quotes.get_quotes(sorted({position.symbol for position in positions}))
        return ok_payload(build_portfolio_summary(positions, quotes, sort_by, direction))
