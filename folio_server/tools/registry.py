"""Domain tool registry entrypoint."""

from __future__ import annotations

from dataclasses import dataclass

from mcp.server.fastmcp import FastMCP

from folio_server.cache.ttl_cache import TTLCache
from folio_server.config.settings import Settings
from folio_server.portfolio.portfolio_service import PortfolioService
from folio_server.portfolio.store import InMemoryPortfolioStore, PortfolioStore
from folio_server.providers.finnhub import FinnhubClient
from folio_server.services.quote_service import QuoteService
from folio_server.tools.portfolio_tools import register_portfolio_tools
from folio_server.tools.quote_tools import register_quote_tools


@dataclass
class ToolServices:
    portfolio: PortfolioService
    quotes: QuoteService
    max_symbols_per_request: int = 50


def build_tool_services(settings: Settings, store: PortfolioStore | None = None) -> ToolServices:
    cache = TTLCache(default_ttl_seconds=settings.quote_cache_ttl_seconds)
    quotes = QuoteService(
        FinnhubClient(settings.finnhub_api_key, settings.quote_timeout_seconds),
        cache,
        ttl_seconds=settings.quote_cache_ttl_seconds,
        timeout_seconds=settings.quote_timeout_seconds,
    )
    return ToolServices(
        portfolio=PortfolioService(store or InMemoryPortfolioStore()),
        quotes=quotes,
        max_symbols_per_request=settings.max_symbols_per_request,
    )


def register_all_tools(mcp: FastMCP, services: ToolServices) -> None:
    register_portfolio_tools(mcp, services)
    register_quote_tools(mcp, services)
