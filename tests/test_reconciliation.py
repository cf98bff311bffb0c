import asyncio

import pytest

from folio_server.client.api_client import ApiError
from folio_server.client.backend import InProcessPortfolioBackend
from folio_server.client.local_store import (
    BACKEND_MIGRATED_KEY,
    PORTFOLIO_ID_KEY,
    RECOVERY_CODE_KEY,
    MemoryLocalStore,
)
from folio_server.client.reconciliation import PortfolioReconciler, SessionState
from folio_server.portfolio.portfolio_service import PortfolioService
from folio_server.portfolio.schemas import CreatePortfolioResponse, LinkPortfolioResponse
from folio_server.portfolio.store import InMemoryPortfolioStore
from folio_server.providers.models import Position


def _local(symbol: str) -> Position:
    return Position(id=f"local-{symbol}", symbol=symbol, shares=10, buy_price=100.0)


class _FakeBackend:
    def __init__(
        self,
        positions: list[Position] | None = None,
        failing_symbols: tuple[str, ...] = (),
        successful_gets: int | None = None,
        fail_create: bool = False,
    ) -> None:
        self.positions = list(positions or [])
        self.failing_symbols = failing_symbols
        self.successful_gets = successful_gets
        self.fail_create = fail_create
        self.created = 0
        self.get_calls = 0
        self.add_calls: list[str] = []

    async def create_portfolio(self) -> CreatePortfolioResponse:
        if self.fail_create:
            raise ApiError("backend down", 0)
        self.created += 1
        return CreatePortfolioResponse(portfolioId="pf-new", recoveryCode="ABCD-EFGH-JKMN-PQRS")

    async def link_portfolio(self, recovery_code: str) -> LinkPortfolioResponse:
        return LinkPortfolioResponse(portfolioId="pf-linked")

    async def get_portfolio(self, portfolio_id: str) -> list[Position]:
        self.get_calls += 1
        if self.successful_gets is not None and self.get_calls > self.successful_gets:
            raise ApiError("backend down", 503)
        return list(self.positions)

    async def add_position(self, portfolio_id: str, position: Position) -> Position:
        self.add_calls.append(position.symbol)
        if position.symbol in self.failing_symbols:
            raise ApiError("insert failed", 500)
        created = Position(id=f"srv-{position.symbol}", symbol=position.symbol, shares=position.shares, buy_price=position.buy_price)
        self.positions.append(created)
        return created

    async def update_position(self, portfolio_id, position_id, changes):
        raise NotImplementedError

    async def delete_position(self, portfolio_id, position_id):
        raise NotImplementedError


def _store_with(*positions: Position, **items: str) -> MemoryLocalStore:
    store = MemoryLocalStore(items)
    store.set_positions(list(positions))
    return store


def test_first_load_migrates_local_positions_once() -> None:
    backend = _FakeBackend()
    store = _store_with(_local("A"))
    reconciler = PortfolioReconciler(backend, store)
    assert reconciler.state is SessionState.NO_IDENTITY

    positions = asyncio.run(reconciler.load_portfolio())

    assert [position.id for position in positions] == ["srv-A"]
    assert reconciler.state is SessionState.LOADED_BACKEND
    assert store.get_item(BACKEND_MIGRATED_KEY) == "true"
    assert store.get_item(PORTFOLIO_ID_KEY) == "pf-new"
    assert store.get_item(RECOVERY_CODE_KEY) == "ABCD-EFGH-JKMN-PQRS"
    assert backend.add_calls == ["A"]

    second = PortfolioReconciler(backend, store)
    assert second.state is SessionState.IDENTIFIED
    reloaded = asyncio.run(second.load_portfolio())
    assert [position.id for position in reloaded] == ["srv-A"]
    assert backend.add_calls == ["A"]
    assert backend.created == 1


def test_non_empty_backend_wins_without_migration() -> None:
    backend = _FakeBackend(positions=[Position(id="srv-B", symbol="B", shares=1, buy_price=5.0)])
    store = _store_with(_local("A"), **{PORTFOLIO_ID_KEY: "pf-1"})
    positions = asyncio.run(PortfolioReconciler(backend, store).load_portfolio())

    assert [position.symbol for position in positions] == ["B"]
    assert backend.add_calls == []
    assert store.get_item(BACKEND_MIGRATED_KEY) is None


def test_empty_backend_and_empty_local_store_skips_migration() -> None:
    backend = _FakeBackend()
    store = MemoryLocalStore({PORTFOLIO_ID_KEY: "pf-1"})
    assert asyncio.run(PortfolioReconciler(backend, store).load_portfolio()) == []
    assert store.get_item(BACKEND_MIGRATED_KEY) is None


def test_migrated_flag_blocks_a_second_migration() -> None:
    backend = _FakeBackend()
    store = _store_with(_local("A"), **{PORTFOLIO_ID_KEY: "pf-1", BACKEND_MIGRATED_KEY: "true"})
    assert asyncio.run(PortfolioReconciler(backend, store).load_portfolio()) == []
    assert backend.add_calls == []


def test_backend_failure_falls_back_to_local_positions() -> None:
    backend = _FakeBackend(successful_gets=0)
    store = _store_with(_local("A"), **{PORTFOLIO_ID_KEY: "pf-1"})
    reconciler = PortfolioReconciler(backend, store)

    positions = asyncio.run(reconciler.load_portfolio())

    assert [position.id for position in positions] == ["local-A"]
    assert reconciler.state is SessionState.LOADED_LOCAL_FALLBACK
    assert store.get_item(PORTFOLIO_ID_KEY) == "pf-1"


def test_identity_creation_failure_falls_back_without_identity() -> None:
    store = _store_with(_local("A"))
    reconciler = PortfolioReconciler(_FakeBackend(fail_create=True), store)

    positions = asyncio.run(reconciler.load_portfolio())

    assert [position.symbol for position in positions] == ["A"]
    assert reconciler.state is SessionState.LOADED_LOCAL_FALLBACK
    assert store.get_item(PORTFOLIO_ID_KEY) is None


def test_partial_migration_failure_still_sets_flag_and_is_not_retried() -> None:
    backend = _FakeBackend(failing_symbols=("B",))
    store = _store_with(_local("A"), _local("B"), _local("C"), **{PORTFOLIO_ID_KEY: "pf-1"})

    positions = asyncio.run(PortfolioReconciler(backend, store).load_portfolio())

    assert backend.add_calls == ["A", "B", "C"]
    assert [position.symbol for position in positions] == ["A", "C"]
    assert store.get_item(BACKEND_MIGRATED_KEY) == "true"

    asyncio.run(PortfolioReconciler(backend, store).load_portfolio())
    assert backend.add_calls == ["A", "B", "C"]


def test_reload_failure_after_migration_returns_migrated_positions() -> None:
    backend = _FakeBackend(successful_gets=1)
    store = _store_with(_local("A"), _local("B"), **{PORTFOLIO_ID_KEY: "pf-1"})

    positions = asyncio.run(PortfolioReconciler(backend, store).load_portfolio())

    assert [position.id for position in positions] == ["srv-A", "srv-B"]
    assert store.get_item(BACKEND_MIGRATED_KEY) == "true"


def test_link_adopts_identity_in_canonical_form_and_keeps_migration_flag() -> None:
    store = MemoryLocalStore({PORTFOLIO_ID_KEY: "pf-old", BACKEND_MIGRATED_KEY: "true"})
    reconciler = PortfolioReconciler(_FakeBackend(), store)

    assert asyncio.run(reconciler.link_portfolio("wxyz wxyz-wxyz wxyz")) == "pf-linked"
    assert store.get_item(PORTFOLIO_ID_KEY) == "pf-linked"
    assert store.get_item(RECOVERY_CODE_KEY) == "WXYZ-WXYZ-WXYZ-WXYZ"
    assert reconciler.is_migrated()


def test_linking_an_empty_portfolio_does_not_upload_the_old_backup_again() -> None:
    service = PortfolioService(InMemoryPortfolioStore())
    store = _store_with(_local("AAPL"))
    reconciler = PortfolioReconciler(InProcessPortfolioBackend(service), store)

    first = asyncio.run(reconciler.load_portfolio())
    first_id = store.get_item(PORTFOLIO_ID_KEY)
    assert [position.symbol for position in first] == ["AAPL"]

    other = service.create_portfolio()
    assert asyncio.run(reconciler.link_portfolio(other["recoveryCode"].lower())) == other["portfolioId"]
    positions = asyncio.run(reconciler.load_portfolio())

    assert positions == []
    assert service.get_portfolio(other["portfolioId"])["positions"] == []
    assert len(service.get_portfolio(first_id)["positions"]) == 1
    assert reconciler.state is SessionState.LOADED_BACKEND


def test_clear_identity_keeps_local_positions() -> None:
    store = _store_with(_local("A"), **{PORTFOLIO_ID_KEY: "pf-1", RECOVERY_CODE_KEY: "code"})
    reconciler = PortfolioReconciler(_FakeBackend(), store)
    reconciler.clear_identity()

    assert reconciler.stored_portfolio_id() is None
    assert reconciler.stored_recovery_code() is None
    assert reconciler.state is SessionState.NO_IDENTITY
    assert len(store.get_positions()) == 1


class _ReadOnlyStore(MemoryLocalStore):
    def _save(self, items: dict[str, str]) -> None:
        raise OSError("read-only")


def test_save_portfolio_raises_when_local_write_fails() -> None:
    reconciler = PortfolioReconciler(_FakeBackend(), _ReadOnlyStore())
    with pytest.raises(OSError):
        asyncio.run(reconciler.save_portfolio([_local("A")]))


def test_save_portfolio_writes_backup() -> None:
    store = MemoryLocalStore()
    asyncio.run(PortfolioReconciler(_FakeBackend(), store).save_portfolio([_local("A")]))
    assert store.get_positions() == [_local("A")]


def test_migration_against_in_process_backend() -> None:
    service = PortfolioService(InMemoryPortfolioStore())
    store = _store_with(
        Position(id="local-1", symbol="AAPL", shares=10, buy_price=150.0, dca=140.0),
        Position(id="local-2", symbol="MSFT", shares=2.5, buy_price=300.0),
    )
    reconciler = PortfolioReconciler(InProcessPortfolioBackend(service), store)

    positions = asyncio.run(reconciler.load_portfolio())

    assert sorted(position.symbol for position in positions) == ["AAPL", "MSFT"]
    aapl = next(position for position in positions if position.symbol == "AAPL")
    assert aapl.dca == 140.0
    assert not aapl.id.startswith("local-")
    portfolio_id = store.get_item(PORTFOLIO_ID_KEY)
    assert service.link_portfolio(store.get_item(RECOVERY_CODE_KEY)) == {"portfolioId": portfolio_id}


class _LoopRecordingService:
    def __init__(self) -> None:
        self.on_loop: list[bool] = []

    def _record(self) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            self.on_loop.append(False)
        else:
            self.on_loop.append(True)

    def create_portfolio(self) -> dict[str, str]:
        self._record()
        return {"portfolioId": "p-1", "recoveryCode": "ABCD-EFGH-JKMN-PQRS"}

    def link_portfolio(self, recovery_code: str) -> dict[str, str]:
        self._record()
        return {"portfolioId": "p-1"}


def test_in_process_backend_hashes_recovery_codes_off_the_event_loop() -> None:
    service = _LoopRecordingService()
    backend = InProcessPortfolioBackend(service)

    created = asyncio.run(backend.create_portfolio())
    linked = asyncio.run(backend.link_portfolio("ABCD-EFGH-JKMN-PQRS"))

    assert created == CreatePortfolioResponse(portfolioId="p-1", recoveryCode="ABCD-EFGH-JKMN-PQRS")
    assert linked == LinkPortfolioResponse(portfolioId="p-1")
    assert service.on_loop == [False, False]
