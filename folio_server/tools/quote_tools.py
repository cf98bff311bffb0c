"""Quote tools."""

from __future__ import annotations

from typing import TYPE_CHECKING

from mcp.server.fastmcp import FastMCP

from folio_server.runtime.response import ok_payload
from folio_server.services.base import parse_symbols_param

if TYPE_CHECKING:
    from folio_server.tools.registry import ToolServices


def register_quote_tools(mcp: FastMCP, services: ToolServices) -> None:
    @mcp.tool(description="Get latest quotes for comma-separated ticker symbols. Failed symbols are omitted.")
    async def get_quotes(symbols: str) -> str:
        requested = parse_symbols_param(symbols, services.max_symbols_per_request)
        quotes = await services.quotes.get_quotes(requested)
        return ok_payload({"stocks": quotes})
