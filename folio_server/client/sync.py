"""Command-line sync: load the portfolio through the backend and print it."""

from __future__ import annotations

import asyncio
import json

from folio_server.client.api_client import PortfolioApiClient
from folio_server.client.backend import HttpPortfolioBackend
from folio_server.client.local_store import LocalStore
from folio_server.client.reconciliation import PortfolioReconciler
from folio_server.config.settings import Settings, get_settings
from folio_server.portfolio.schemas import position_to_dict
from folio_server.runtime.monitoring import configure_logging


def build_reconciler(settings: Settings) -> PortfolioReconciler:
    client = PortfolioApiClient(settings.api_base_url, settings.api_timeout_seconds)
    return PortfolioReconciler(HttpPortfolioBackend(client), LocalStore(settings.local_store_path))


async def sync(settings: Settings) -> dict[str, object]:
    reconciler = build_reconciler(settings)
    positions = await reconciler.load_portfolio()
    await reconciler.save_portfolio(positions)
    return {
        "portfolioId": reconciler.stored_portfolio_id(),
        "state": reconciler.state.value,
        "positions": [position_to_dict(position) for position in positions],
    }


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    print(json.dumps(asyncio.run(sync(settings)), indent=2))


if __name__ == "__main__":
    main()
