"""Portfolio storage interface and an in-memory implementation."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from threading import Lock
from typing import Any, Protocol


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PositionRecord:
    id: str
    portfolio_id: str
    symbol: str
    shares: Decimal
    buy_price: Decimal
    dca_price: Decimal | None
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class PortfolioRecord:
    id: str
    recovery_code_hash: str
    recovery_code_salt: str
    recovery_code_lookup: str
    created_at: datetime
    updated_at: datetime
    positions: tuple[PositionRecord, ...] = field(default_factory=tuple)


class PortfolioStore(Protocol):
    def create_portfolio(self, recovery_code_lookup: str, recovery_code_hash: str, recovery_code_salt: str) -> PortfolioRecord: ...

    def find_portfolio_by_recovery_lookup(self, lookup: str) -> PortfolioRecord | None: ...

    def get_portfolio_with_positions(self, portfolio_id: str) -> PortfolioRecord | None: ...

    def get_position(self, position_id: str) -> PositionRecord | None: ...

    def create_position(self, portfolio_id: str, data: dict[str, Any]) -> PositionRecord: ...

    def update_position(self, position_id: str, changes: dict[str, Any]) -> PositionRecord | None: ...

    def delete_position(self, position_id: str) -> bool: ...


class InMemoryPortfolioStore:
    """Process-local store keyed by portfolio and position id."""

    def __init__(self) -> None:
        self._portfolios: dict[str, PortfolioRecord] = {}
        self._by_lookup: dict[str, str] = {}
        self._positions: dict[str, PositionRecord] = {}
        self._lock = Lock()

    def create_portfolio(self, recovery_code_lookup: str, recovery_code_hash: str, recovery_code_salt: str) -> PortfolioRecord:
        now = _utcnow()
        record = PortfolioRecord(
            id=uuid.uuid4().hex,
            recovery_code_hash=recovery_code_hash,
            recovery_code_salt=recovery_code_salt,
            recovery_code_lookup=recovery_code_lookup,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            if recovery_code_lookup in self._by_lookup:
                raise ValueError("Recovery code lookup already exists")
            self._portfolios[record.id] = record
            self._by_lookup[recovery_code_lookup] = record.id
        return record

    def find_portfolio_by_recovery_lookup(self, lookup: str) -> PortfolioRecord | None:
        with self._lock:
            portfolio_id = self._by_lookup.get(lookup)
        return self.get_portfolio_with_positions(portfolio_id) if portfolio_id else None

    def get_portfolio_with_positions(self, portfolio_id: str) -> PortfolioRecord | None:
        with self._lock:
            record = self._portfolios.get(portfolio_id)
            if record is None:
                return None
            positions = tuple(
                position for position in self._positions.values() if position.portfolio_id == portfolio_id
            )
        return replace(record, positions=positions)

    def get_position(self, position_id: str) -> PositionRecord | None:
        with self._lock:
            return self._positions.get(position_id)

    def create_position(self, portfolio_id: str, data: dict[str, Any]) -> PositionRecord:
        now = _utcnow()
        record = PositionRecord(
            id=uuid.uuid4().hex,
            portfolio_id=portfolio_id,
            symbol=data["symbol"],
            shares=data["shares"],
            buy_price=data["buy_price"],
            dca_price=data.get("dca_price"),
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            if portfolio_id not in self._portfolios:
                raise KeyError(portfolio_id)
            self._positions[record.id] = record
        return record

    def update_position(self, position_id: str, changes: dict[str, Any]) -> PositionRecord | None:
        with self._lock:
            record = self._positions.get(position_id)
            if record is None:
                return None
            updated = replace(record, **changes, updated_at=_utcnow())
            self._positions[position_id] = updated
        return updated

    def delete_position(self, position_id: str) -> bool:
        with self._lock:
            return self._positions.pop(position_id, None) is not None
