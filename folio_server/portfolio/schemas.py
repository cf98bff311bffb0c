"""Wire schemas for positions crossing the backend boundary.

The backend stores amounts as decimals and serializes them as strings
(``"10.50"``); clients send plain JSON numbers. Parsing here fails closed:
a payload that does not match the schema raises ``WireFormatError`` instead
of leaking half-parsed values into the numeric ``Position`` model.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from folio_server.providers.models import Position


class WireFormatError(ValueError):
    """Backend payload did not match the expected schema."""


class BackendPosition(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    symbol: str = Field(min_length=1)
    shares: Decimal = Field(ge=0)
    buyPrice: Decimal = Field(ge=0)
    dcaPrice: Decimal | None = Field(default=None, ge=0)
    portfolioId: str | None = None
    createdAt: datetime | None = None
    updatedAt: datetime | None = None

    @field_validator("dcaPrice", mode="before")
    @classmethod
    def blank_dca_is_absent(cls, value: Any) -> Any:
        if value == "":
            return None
        return value


class BackendPortfolio(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    positions: list[BackendPosition] = Field(default_factory=list)
    createdAt: datetime | None = None
    updatedAt: datetime | None = None


class CreatePortfolioResponse(BaseModel):
    portfolioId: str = Field(min_length=1)
    recoveryCode: str = Field(min_length=1)


class LinkPortfolioResponse(BaseModel):
    portfolioId: str = Field(min_length=1)


def _clean_symbol(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip().upper()
        if not value:
            raise ValueError("Symbol is required")
    return value


class CreatePositionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    symbol: str
    shares: float = Field(gt=0, allow_inf_nan=False)
    buy_price: float = Field(alias="buyPrice", gt=0, allow_inf_nan=False)
    dca_price: float | None = Field(default=None, alias="dcaPrice", gt=0, allow_inf_nan=False)

    normalize_symbol = field_validator("symbol", mode="before")(_clean_symbol)


class UpdatePositionRequest(BaseModel):
    """Partial update; only fields present in the payload are applied."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    symbol: str | None = None
    shares: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    buy_price: float | None = Field(default=None, alias="buyPrice", gt=0, allow_inf_nan=False)
    dca_price: float | None = Field(default=None, alias="dcaPrice", gt=0, allow_inf_nan=False)

    normalize_symbol = field_validator("symbol", mode="before")(_clean_symbol)


def parse_model(model: type[BaseModel], payload: Any) -> Any:
    try:
        return model.model_validate(payload)
    except ValidationError as error:
        raise WireFormatError(f"Malformed {model.__name__} payload: {error.error_count()} error(s)") from error


def position_from_wire(payload: Any) -> Position:
    wire = payload if isinstance(payload, BackendPosition) else parse_model(BackendPosition, payload)
    return Position(
        id=wire.id,
        symbol=wire.symbol,
        shares=float(wire.shares),
        buy_price=float(wire.buyPrice),
        dca=float(wire.dcaPrice) if wire.dcaPrice is not None else None,
    )


def positions_from_portfolio(payload: Any) -> list[Position]:
    portfolio = parse_model(BackendPortfolio, payload)
    return [position_from_wire(position) for position in portfolio.positions]


def position_to_wire(position: Position) -> dict[str, Any]:
    """Build the create-position body; an unset DCA is left out rather than sent as zero."""
    body: dict[str, Any] = {
        "symbol": position.symbol,
        "shares": position.shares,
        "buyPrice": position.buy_price,
    }
    if position.dca is not None:
        body["dcaPrice"] = position.dca
    return body


def position_to_dict(position: Position) -> dict[str, Any]:
    """Plain-number representation handed to the UI and stored locally."""
    data: dict[str, Any] = {
        "id": position.id,
        "symbol": position.symbol,
        "shares": position.shares,
        "buyPrice": position.buy_price,
    }
    if position.dca is not None:
        data["dca"] = position.dca
    return data


def position_from_dict(data: dict[str, Any]) -> Position:
    dca = data.get("dca")
    return Position(
        id=str(data["id"]),
        symbol=str(data["symbol"]).strip().upper(),
        shares=float(data["shares"]),
        buy_price=float(data["buyPrice"]),
        dca=float(dca) if dca is not None else None,
    )
