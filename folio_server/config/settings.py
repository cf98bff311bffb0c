"""Environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the portfolio server and client adapter."""

    app_name: str = "folio-tracker"
    app_version: str = "0.1.0"
    transport_mode: str = "auto"
    http_transport: str = "sse"
    mcp_path: str = "/mcp"
    host: str = "0.0.0.0"
    port: int = 4000
    health_path: str = "/health"
    log_level: str = "INFO"
    log_http_requests: bool = True
    finnhub_api_key: str | None = None
    quote_cache_ttl_seconds: int = 30
    quote_timeout_seconds: float = 10.0
    max_symbols_per_request: int = 50
    api_base_url: str = "http://localhost:4000"
    api_timeout_seconds: float = 15.0
    local_store_path: str = ".folio/local-store.json"


def _as_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _as_float(value: str | None, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def get_settings() -> Settings:
    """Load runtime settings from environment variables."""
    load_dotenv()

    return Settings(
        transport_mode=os.getenv("TRANSPORT_MODE", "auto").strip().lower(),
        http_transport=os.getenv("HTTP_TRANSPORT", "sse").strip().lower(),
        mcp_path=os.getenv("MCP_PATH", "/mcp"),
        host=os.getenv("HOST", "0.0.0.0"),
        port=_as_int(os.getenv("PORT"), 4000),
        health_path=os.getenv("HEALTH_PATH", "/health"),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        log_http_requests=_as_bool(os.getenv("LOG_HTTP_REQUESTS"), True),
        finnhub_api_key=os.getenv("FINNHUB_API_KEY") or None,
        quote_cache_ttl_seconds=_as_int(os.getenv("QUOTE_CACHE_TTL_SECONDS"), 30),
        quote_timeout_seconds=_as_float(os.getenv("QUOTE_TIMEOUT_SECONDS"), 10.0),
        max_symbols_per_request=_as_int(os.getenv("MAX_SYMBOLS_PER_REQUEST"), 50),
        api_base_url=os.getenv("API_BASE_URL", "http://localhost:4000").rstrip("/"),
        api_timeout_seconds=_as_float(os.getenv("API_TIMEOUT_SECONDS"), 15.0),
        local_store_path=os.getenv("LOCAL_STORE_PATH", ".folio/local-store.json"),
    )
