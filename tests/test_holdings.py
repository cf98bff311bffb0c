import pytest

from folio_server.portfolio.holdings import (
    HOLDING_COLUMNS,
    format_currency,
    format_decimal,
    format_percentage,
    holdings_records,
    merge_positions_with_quotes,
    sort_holdings,
)
from folio_server.providers.models import Position, Quote


def _quote(symbol: str, price: float) -> Quote:
    return Quote(symbol=symbol, price=price, change=1.0, change_percent=0.5, currency="USD", source="live")


QUOTES = [_quote("msft", 300.0), _quote("AAPL", 150.0), _quote("BRK.B", 400.0)]
POSITIONS = [Position(id="p1", symbol="AAPL", shares=10, buy_price=100.0, dca=150.0)]


def test_merge_keeps_one_row_per_quote_and_enriches_held_symbols() -> None:
    records = holdings_records(merge_positions_with_quotes(QUOTES, POSITIONS))
    by_symbol = {record["symbol"]: record for record in records}

    assert len(records) == 3
    aapl = by_symbol["AAPL"]
    assert aapl["id"] == "p1"
    assert aapl["profit"] == pytest.approx(500.0)
    assert aapl["near_dca"] is True

    unheld = by_symbol["BRK.B"]
    assert unheld["id"] is None
    assert unheld["shares"] == 0
    assert unheld["profit"] == 0
    assert unheld["dca"] is None
    assert unheld["near_dca"] is False


def test_merge_without_quotes_is_an_empty_table() -> None:
    frame = merge_positions_with_quotes([], POSITIONS)
    assert list(frame.columns) == HOLDING_COLUMNS
    assert frame.empty


def test_zero_buy_price_has_no_profit() -> None:
    positions = [Position(id="p1", symbol="AAPL", shares=10, buy_price=0.0)]
    records = holdings_records(merge_positions_with_quotes([_quote("AAPL", 150.0)], positions))
    assert records[0]["profit"] == 0


def test_sort_numeric_descending() -> None:
    frame = sort_holdings(merge_positions_with_quotes(QUOTES, POSITIONS), "price", "desc")
    assert list(frame["symbol"]) == ["BRK.B", "msft", "AAPL"]


def test_sort_text_is_case_insensitive() -> None:
    frame = sort_holdings(merge_positions_with_quotes(QUOTES, POSITIONS), "symbol", "asc")
    assert list(frame["symbol"]) == ["AAPL", "BRK.B", "msft"]


def test_sort_without_column_keeps_order() -> None:
    frame = merge_positions_with_quotes(QUOTES, POSITIONS)
    assert sort_holdings(frame, None) is frame


def test_formatters() -> None:
    assert format_currency(1234.567) == "1,234.57"
    assert format_decimal(123.456) == "123.46"
    assert format_percentage(5.666) == "5.67%"
