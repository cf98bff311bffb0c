"""Server-side portfolio orchestration: recovery-code identity and position CRUD."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from folio_server.portfolio.schemas import CreatePositionRequest, UpdatePositionRequest
from folio_server.portfolio.store import PortfolioRecord, PortfolioStore, PositionRecord
from folio_server.recovery import recovery_code
from folio_server.recovery.recovery_code import RecoveryCodeError

LOGGER = logging.getLogger(__name__)


class PortfolioServiceError(Exception):
    code = "BAD_REQUEST"
    status = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequest(PortfolioServiceError):
    pass


class InvalidRecoveryCode(BadRequest):
    def __init__(self) -> None:
        super().__init__("INVALID_RECOVERY_CODE")


class DuplicateSymbol(BadRequest):
    code = "DUPLICATE_SYMBOL"


class NotFound(PortfolioServiceError):
    code = "NOT_FOUND"
    status = 404


def _decimal(value: float | None) -> Decimal | None:
    return Decimal(str(value)) if value is not None else None


def position_record_to_wire(record: PositionRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "symbol": record.symbol,
        "shares": str(record.shares),
        "buyPrice": str(record.buy_price),
        "dcaPrice": str(record.dca_price) if record.dca_price is not None else None,
        "portfolioId": record.portfolio_id,
        "createdAt": record.created_at.isoformat(),
        "updatedAt": record.updated_at.isoformat(),
    }


def portfolio_record_to_wire(record: PortfolioRecord) -> dict[str, Any]:
    # Credential material stays server-side.
    return {
        "id": record.id,
        "createdAt": record.created_at.isoformat(),
        "updatedAt": record.updated_at.isoformat(),
        "positions": [position_record_to_wire(position) for position in record.positions],
    }


class PortfolioService:
    def __init__(self, store: PortfolioStore) -> None:
        self.store = store

    def create_portfolio(self) -> dict[str, str]:
        code = recovery_code.generate()
        hashed = recovery_code.hash_code(code)
        record = self.store.create_portfolio(
            recovery_code_lookup=recovery_code.lookup_key(code),
            recovery_code_hash=hashed.hash,
            recovery_code_salt=hashed.salt,
        )
        LOGGER.info("portfolio created: portfolio_id=%s", record.id)
        return {"portfolioId": record.id, "recoveryCode": code}

    def link_portfolio(self, code: object) -> dict[str, str]:
        # Every failure mode surfaces as the same error so callers cannot tell which codes exist.
        try:
            lookup = recovery_code.lookup_key(code)  # type: ignore[arg-type]
        except RecoveryCodeError as error:
            raise InvalidRecoveryCode() from error
        record = self.store.find_portfolio_by_recovery_lookup(lookup)
        if record is None:
            raise InvalidRecoveryCode()
        if not recovery_code.verify(code, record.recovery_code_hash, record.recovery_code_salt):
            raise InvalidRecoveryCode()
        LOGGER.info("portfolio linked: portfolio_id=%s", record.id)
        return {"portfolioId": record.id}

    def _require_portfolio(self, portfolio_id: str) -> PortfolioRecord:
        record = self.store.get_portfolio_with_positions(portfolio_id)
        if record is None:
            raise NotFound("Portfolio not found")
        return record

    def _require_owned_position(self, portfolio_id: str, position_id: str) -> PositionRecord:
        position = self.store.get_position(position_id)
        if position is None:
            raise NotFound("Position not found")
        if position.portfolio_id != portfolio_id:
            raise BadRequest("Position does not belong to this portfolio")
        return position

    @staticmethod
    def _assert_symbol_free(portfolio: PortfolioRecord, symbol: str, exclude_id: str | None = None) -> None:
        for position in portfolio.positions:
            if position.id != exclude_id and position.symbol == symbol:
                raise DuplicateSymbol(f"Position for {symbol} already exists in this portfolio")

    def get_portfolio(self, portfolio_id: str) -> dict[str, Any]:
        return portfolio_record_to_wire(self._require_portfolio(portfolio_id))

    def create_position(self, portfolio_id: str, payload: Any) -> dict[str, Any]:
        dto = payload if isinstance(payload, CreatePositionRequest) else CreatePositionRequest.model_validate(payload)
        portfolio = self._require_portfolio(portfolio_id)
        self._assert_symbol_free(portfolio, dto.symbol)
        record = self.store.create_position(
            portfolio_id,
            {
                "symbol": dto.symbol,
                "shares": _decimal(dto.shares),
                "buy_price": _decimal(dto.buy_price),
                "dca_price": _decimal(dto.dca_price),
            },
        )
        return position_record_to_wire(record)

    def update_position(self, portfolio_id: str, position_id: str, payload: Any) -> dict[str, Any]:
        dto = payload if isinstance(payload, UpdatePositionRequest) else UpdatePositionRequest.model_validate(payload)
        self._require_owned_position(portfolio_id, position_id)
        provided = dto.model_fields_set
        changes: dict[str, Any] = {}
        if "symbol" in provided and dto.symbol is not None:
            self._assert_symbol_free(self._require_portfolio(portfolio_id), dto.symbol, exclude_id=position_id)
            changes["symbol"] = dto.symbol
        if "shares" in provided and dto.shares is not None:
            changes["shares"] = _decimal(dto.shares)
        if "buy_price" in provided and dto.buy_price is not None:
            changes["buy_price"] = _decimal(dto.buy_price)
        if "dca_price" in provided:
            changes["dca_price"] = _decimal(dto.dca_price)
        record = self.store.update_position(position_id, changes)
        if record is None:
            raise NotFound("Position not found")
        return position_record_to_wire(record)

    def delete_position(self, portfolio_id: str, position_id: str) -> dict[str, bool]:
        self._require_owned_position(portfolio_id, position_id)
        if not self.store.delete_position(position_id):
            raise NotFound("Position not found")
        return {"deleted": True}
