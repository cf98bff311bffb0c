"""Async backend adapters consumed by the reconciliation layer."""

from __future__ import annotations

import asyncio
from typing import Any, Protocol

from folio_server.client.api_client import PortfolioApiClient
from folio_server.portfolio.portfolio_service import PortfolioService
from folio_server.portfolio.schemas import (
    CreatePortfolioResponse,
    LinkPortfolioResponse,
    parse_model,
    position_from_wire,
    position_to_wire,
    positions_from_portfolio,
)
from folio_server.providers.models import Position


class PortfolioBackend(Protocol):
    async def create_portfolio(self) -> CreatePortfolioResponse: ...

    async def link_portfolio(self, recovery_code: str) -> LinkPortfolioResponse: ...

    async def get_portfolio(self, portfolio_id: str) -> list[Position]: ...

    async def add_position(self, portfolio_id: str, position: Position) -> Position: ...

    async def update_position(self, portfolio_id: str, position_id: str, changes: dict[str, Any]) -> Position: ...

    async def delete_position(self, portfolio_id: str, position_id: str) -> bool: ...


class HttpPortfolioBackend:
    """Runs the blocking API client in worker threads and parses its payloads."""

    def __init__(self, client: PortfolioApiClient) -> None:
        self.client = client

    async def create_portfolio(self) -> CreatePortfolioResponse:
        payload = await asyncio.to_thread(self.client.create_portfolio)
        return parse_model(CreatePortfolioResponse, payload)

    async def link_portfolio(self, recovery_code: str) -> LinkPortfolioResponse:
        payload = await asyncio.to_thread(self.client.link_portfolio, recovery_code)
        return parse_model(LinkPortfolioResponse, payload)

    async def get_portfolio(self, portfolio_id: str) -> list[Position]:
        payload = await asyncio.to_thread(self.client.get_portfolio, portfolio_id)
        return positions_from_portfolio(payload)

    async def add_position(self, portfolio_id: str, position: Position) -> Position:
        payload = await asyncio.to_thread(self.client.add_position, portfolio_id, position_to_wire(position))
        return position_from_wire(payload)

    async def update_position(self, portfolio_id: str, position_id: str, changes: dict[str, Any]) -> Position:
        payload = await asyncio.to_thread(self.client.update_position, portfolio_id, position_id, changes)
        return position_from_wire(payload)

    async def delete_position(self, portfolio_id: str, position_id: str) -> bool:
        payload = await asyncio.to_thread(self.client.delete_position, portfolio_id, position_id)
        return bool(isinstance(payload, dict) and payload.get("deleted"))


class InProcessPortfolioBackend:
    """Talks to a ``PortfolioService`` in the same process through the same wire shapes."""

    def __init__(self, service: PortfolioService) -> None:
        self.service = service

    async def create_portfolio(self) -> CreatePortfolioResponse:
        return parse_model(CreatePortfolioResponse, await asyncio.to_thread(self.service.create_portfolio))

    async def link_portfolio(self, recovery_code: str) -> LinkPortfolioResponse:
        return parse_model(LinkPortfolioResponse, await asyncio.to_thread(self.service.link_portfolio, recovery_code))

    async def get_portfolio(self, portfolio_id: str) -> list[Position]:
        return positions_from_portfolio(self.service.get_portfolio(portfolio_id))

    async def add_position(self, portfolio_id: str, position: Position) -> Position:
        return position_from_wire(self.service.create_position(portfolio_id, position_to_wire(position)))

    async def update_position(self, portfolio_id: str, position_id: str, changes: dict[str, Any]) -> Position:
        return position_from_wire(self.service.update_position(portfolio_id, position_id, changes))

    async def delete_position(self, portfolio_id: str, position_id: str) -> bool:
        return bool(self.service.delete_position(portfolio_id, position_id).get("deleted"))
