"""Finnhub quote client."""

from __future__ import annotations

from typing import Any

from folio_server.providers.http import ProviderError, fetch_json

# The destination host is fixed; symbols and the token only ever travel in the query string.
FINNHUB_BASE_URL = "https://finnhub.io/api/v1"


class FinnhubClient:
    """Thin wrapper around the Finnhub ``/quote`` endpoint."""

    def __init__(self, api_key: str | None, timeout_seconds: float = 10.0) -> None:
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds

    def _request(self, endpoint: str, query: dict[str, str]) -> Any:
        if not self.api_key:
            raise ProviderError("finnhub", "AUTH", "FINNHUB_API_KEY is not set in environment variables.")
        params = {key: value for key, value in query.items() if value is not None}
        params["token"] = self.api_key
        data = fetch_json(
            f"{FINNHUB_BASE_URL}{endpoint}",
            provider="finnhub",
            params=params,
            timeout_seconds=self.timeout_seconds,
        )
        if isinstance(data, dict) and data.get("error"):
            text = str(data["error"])
            lower = text.lower()
            if "limit" in lower:
                raise ProviderError("finnhub", "RATE_LIMIT", text)
            if "token" in lower or "auth" in lower:
                raise ProviderError("finnhub", "AUTH", text)
            raise ProviderError("finnhub", "UPSTREAM", text)
        return data

    def get_quote(self, symbol: str) -> Any:
        """Return the raw quote payload (``c`` price, ``d`` change, ``dp`` percent change)."""
        return self._request("/quote", {"symbol": symbol})
