"""Backend-first portfolio loading with a local-store fallback.

The backend is the record of truth. The local store keeps a backup of the
positions plus the portfolio identity (id and recovery code). On the first
load against an empty backend, positions that only exist locally are copied
up once.

Migration is best-effort and at-most-once: positions are created one at a
time in their local order, a failed creation is logged and skipped, and the
migrated flag is set afterwards even if some creations failed. A partially
failed migration is not retried.
"""

from __future__ import annotations

import enum
import logging

from folio_server.client.backend import PortfolioBackend
from folio_server.client.local_store import (
    BACKEND_MIGRATED_KEY,
    PORTFOLIO_ID_KEY,
    RECOVERY_CODE_KEY,
    MemoryLocalStore,
)
from folio_server.providers.models import Position
from folio_server.recovery import recovery_code

LOGGER = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    NO_IDENTITY = "no_identity"
    IDENTIFIED = "identified"
    LOADED_BACKEND = "loaded_backend"
    LOADED_LOCAL_FALLBACK = "loaded_local_fallback"


class PortfolioReconciler:
    def __init__(self, backend: PortfolioBackend, local_store: MemoryLocalStore) -> None:
        self.backend = backend
        self.local_store = local_store
        self.state = SessionState.IDENTIFIED if self.stored_portfolio_id() else SessionState.NO_IDENTITY

    def stored_portfolio_id(self) -> str | None:
        return self.local_store.get_item(PORTFOLIO_ID_KEY) or None

    def stored_recovery_code(self) -> str | None:
        return self.local_store.get_item(RECOVERY_CODE_KEY) or None

    def is_migrated(self) -> bool:
        return self.local_store.get_item(BACKEND_MIGRATED_KEY) == "true"

    def clear_identity(self) -> None:
        """Forget the portfolio identity and migration flag; local positions are kept."""
        for key in (PORTFOLIO_ID_KEY, RECOVERY_CODE_KEY, BACKEND_MIGRATED_KEY):
            self.local_store.remove_item(key)
        self.state = SessionState.NO_IDENTITY

    async def get_or_create_portfolio_id(self) -> str:
        existing = self.stored_portfolio_id()
        if existing:
            self.state = SessionState.IDENTIFIED
            return existing

        created = await self.backend.create_portfolio()
        self.local_store.set_item(PORTFOLIO_ID_KEY, created.portfolioId)
        self.local_store.set_item(RECOVERY_CODE_KEY, created.recoveryCode)
        self.state = SessionState.IDENTIFIED
        LOGGER.info("portfolio identity created: portfolio_id=%s", created.portfolioId)
        return created.portfolioId

    async def link_portfolio(self, code: str) -> str:
        """Adopt an existing portfolio identified by its recovery code.

        The migrated flag is left as is: a local backup that was already
        uploaded must not be copied into the linked portfolio.
        """
        linked = await self.backend.link_portfolio(code)
        self.local_store.set_item(PORTFOLIO_ID_KEY, linked.portfolioId)
        self.local_store.set_item(RECOVERY_CODE_KEY, recovery_code.format_code(code))
        self.state = SessionState.IDENTIFIED
        LOGGER.info("portfolio identity linked: portfolio_id=%s", linked.portfolioId)
        return linked.portfolioId

    async def load_portfolio(self) -> list[Position]:
        try:
            portfolio_id = await self.get_or_create_portfolio_id()
            backend_positions = await self.backend.get_portfolio(portfolio_id)
        except Exception as error:
            LOGGER.warning("Backend fetch failed, falling back to local store: %s", error)
            self.state = SessionState.LOADED_LOCAL_FALLBACK
            return self.local_store.get_positions()

        if self._should_migrate(backend_positions):
            positions = await self._migrate_local_to_backend(portfolio_id)
        else:
            positions = backend_positions
        self.state = SessionState.LOADED_BACKEND
        return positions

    def _should_migrate(self, backend_positions: list[Position]) -> bool:
        if self.is_migrated():
            return False
        if backend_positions:
            return False
        return len(self.local_store.get_positions()) > 0

    async def _migrate_local_to_backend(self, portfolio_id: str) -> list[Position]:
        local_positions = self.local_store.get_positions()
        if not local_positions:
            return []

        LOGGER.info("Migrating %s positions to backend: portfolio_id=%s", len(local_positions), portfolio_id)
        migrated: list[Position] = []
        for position in local_positions:
            try:
                migrated.append(await self.backend.add_position(portfolio_id, position))
            except Exception:
                LOGGER.exception("Failed to migrate position %s", position.symbol)

        self.local_store.set_item(BACKEND_MIGRATED_KEY, "true")
        LOGGER.info(
            "Migration complete: migrated=%s failed=%s",
            len(migrated),
            len(local_positions) - len(migrated),
        )

        try:
            return await self.backend.get_portfolio(portfolio_id)
        except Exception as error:
            LOGGER.warning("Reload after migration failed, returning migrated positions: %s", error)
            return migrated

    async def save_portfolio(self, positions: list[Position]) -> None:
        """Write the local backup copy; raises when the store rejects the write."""
        if not self.local_store.set_positions(positions):
            raise OSError("Failed to save positions to local store")
