"""Quote cache and fetch orchestration."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from folio_server.cache.ttl_cache import TTLCache
from folio_server.providers.finnhub import FinnhubClient
from folio_server.providers.http import InvalidQuoteData, ProviderError
from folio_server.providers.models import Quote

LOGGER = logging.getLogger(__name__)
DEFAULT_QUOTE_TTL_SECONDS = 30
DEFAULT_QUOTE_TIMEOUT_SECONDS = 10.0


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def quote_from_payload(symbol: str, data: Any) -> Quote:
    if not isinstance(data, dict) or not _is_number(data.get("c")):
        raise InvalidQuoteData("finnhub", "BAD_RESPONSE", f"No valid quote data for symbol {symbol}")
    change = data.get("d")
    change_percent = data.get("dp")
    return Quote(
        symbol=symbol,
        price=float(data["c"]),
        change=float(change) if _is_number(change) else 0.0,
        change_percent=float(change_percent) if _is_number(change_percent) else 0.0,
        currency="USD",
        source="live",
    )


class QuoteService:
    """Serves quotes from a per-symbol TTL cache in front of the quote provider."""

    def __init__(
        self,
        client: FinnhubClient,
        cache: TTLCache,
        ttl_seconds: float = DEFAULT_QUOTE_TTL_SECONDS,
        timeout_seconds: float = DEFAULT_QUOTE_TIMEOUT_SECONDS,
    ) -> None:
        self.client = client
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self.timeout_seconds = timeout_seconds

    @staticmethod
    def cache_key(symbol: str) -> str:
        return f"quote:{symbol}"

    async def fetch_one(self, symbol: str) -> Quote:
        normalized = symbol.strip().upper()
        cached = self.cache.get(self.cache_key(normalized))
        if isinstance(cached, Quote):
            # Provenance is relative to this call, not to how the entry was stored.
            return cached.tagged("cache")

        started = time.perf_counter()
        try:
            data = await asyncio.wait_for(
                asyncio.to_thread(self.client.get_quote, normalized),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as error:
            raise ProviderError(
                "finnhub",
                "TIMEOUT",
                f"Quote request for {normalized} exceeded {self.timeout_seconds}s.",
            ) from error
        quote = quote_from_payload(normalized, data)
        self.cache.set(self.cache_key(normalized), quote, ttl_seconds=self.ttl_seconds)
        LOGGER.info(
            "quote fetched: symbol=%s price=%s latency_ms=%s",
            normalized,
            quote.price,
            round((time.perf_counter() - started) * 1000, 2),
        )
        return quote

    async def get_quotes(self, symbols: list[str]) -> list[Quote]:
        """Fetch every symbol concurrently; failed symbols are dropped from the result."""
        outcomes = await asyncio.gather(*(self.fetch_one(symbol) for symbol in symbols), return_exceptions=True)
        quotes: list[Quote] = []
        for symbol, outcome in zip(symbols, outcomes):
            if isinstance(outcome, Quote):
                quotes.append(outcome)
            elif isinstance(outcome, ProviderError):
                LOGGER.warning(
                    "quote dropped: symbol=%s code=%s status=%s message=%s",
                    symbol,
                    outcome.code,
                    outcome.status,
                    outcome.message,
                )
            elif isinstance(outcome, Exception):
                LOGGER.error("quote dropped after unexpected failure: symbol=%s", symbol, exc_info=outcome)
            else:
                # CancelledError and other BaseExceptions are not a per-symbol outcome.
                raise outcome
        return quotes
