"""HTTP client for the portfolio backend routes."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import requests

from folio_server.providers.http import get_session


class ApiError(Exception):
    """Backend call failed; ``status`` is 0 for network and parse failures."""

    def __init__(self, message: str, status: int, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code


def _segment(value: str) -> str:
    return quote(str(value), safe="")


class PortfolioApiClient:
    def __init__(self, base_url: str = "http://localhost:4000", timeout_seconds: float = 15.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.session = get_session()

    def _request(self, method: str, endpoint: str, body: dict[str, Any] | None = None) -> Any:
        try:
            response = self.session.request(
                method,
                f"{self.base_url}{endpoint}",
                json=body,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as error:
            raise ApiError(str(error) or "Network error", 0) from error

        try:
            data = response.json() if response.text else {}
        except ValueError as error:
            raise ApiError("Backend returned non-JSON content", 0) from error

        if not response.ok:
            envelope = data.get("error") if isinstance(data, dict) else None
            message = (
                (envelope or {}).get("message")
                or (data.get("message") if isinstance(data, dict) else None)
                or "API request failed"
            )
            raise ApiError(str(message), response.status_code, (envelope or {}).get("code"))
        return data

    def create_portfolio(self) -> dict[str, Any]:
        return self._request("POST", "/portfolios", {})

    def link_portfolio(self, recovery_code: str) -> dict[str, Any]:
        return self._request("POST", "/portfolios/link", {"recoveryCode": recovery_code})

    def get_portfolio(self, portfolio_id: str) -> dict[str, Any]:
        return self._request("GET", f"/portfolios/{_segment(portfolio_id)}")

    def add_position(self, portfolio_id: str, body: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", f"/portfolios/{_segment(portfolio_id)}/positions", body)

    def update_position(self, portfolio_id: str, position_id: str, body: dict[str, Any]) -> dict[str, Any]:
        return self._request(
            "PATCH",
            f"/portfolios/{_segment(portfolio_id)}/positions/{_segment(position_id)}",
            body,
        )

    def delete_position(self, portfolio_id: str, position_id: str) -> dict[str, Any]:
        return self._request("DELETE", f"/portfolios/{_segment(portfolio_id)}/positions/{_segment(position_id)}")
