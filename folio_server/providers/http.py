"""HTTP utilities and normalized provider errors."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Literal

import requests
from requests.adapters import HTTPAdapter

ProviderErrorCode = Literal["RATE_LIMIT", "AUTH", "NOT_FOUND", "UPSTREAM", "NETWORK", "BAD_RESPONSE", "TIMEOUT"]

_SESSION = requests.Session()
_SESSION.mount("https://", HTTPAdapter(pool_connections=20, pool_maxsize=50))
_SESSION.mount("http://", HTTPAdapter(pool_connections=20, pool_maxsize=50))


def get_session() -> requests.Session:
    return _SESSION


@dataclass
class ProviderError(Exception):
    provider: str
    code: ProviderErrorCode
    message: str
    status: int | None = None

    def __str__(self) -> str:
        return self.message


class InvalidQuoteData(ProviderError):
    """Provider answered, but the payload lacks a numeric price."""


def map_status_to_code(status: int) -> ProviderErrorCode:
    if status in {401, 403}:
        return "AUTH"
    if status == 404:
        return "NOT_FOUND"
    if status == 429:
        return "RATE_LIMIT"
    return "UPSTREAM"


def fetch_json(
    url: str,
    provider: str,
    params: dict[str, str] | None = None,
    timeout_seconds: float = 10.0,
    headers: dict[str, str] | None = None,
) -> Any:
    """Fetch JSON with uniform provider/network error mapping.

    Quotes are cached upstream of this call, so a failed request is reported
    once instead of being retried.
    """
    try:
        response = _SESSION.get(url, params=params, timeout=timeout_seconds, headers=headers)
    except requests.Timeout as error:
        raise ProviderError(provider, "TIMEOUT", "Provider request timed out.") from error
    except requests.RequestException as error:
        raise ProviderError(provider, "NETWORK", "Provider request failed due to network error.") from error

    if not response.ok:
        raise ProviderError(
            provider,
            map_status_to_code(response.status_code),
            f"Provider request failed with status {response.status_code}.",
            response.status_code,
        )

    raw = response.text or ""
    if not raw:
        raise ProviderError(provider, "BAD_RESPONSE", "Provider returned an empty body.", response.status_code)
    try:
        return json.loads(raw)
    except json.JSONDecodeError as error:
        raise ProviderError(
            provider,
            "BAD_RESPONSE",
            "Provider returned non-JSON content.",
            response.status_code,
        ) from error
