from datetime import date

import pandas as pd
import pytest
import yfinance as yf

from services.providers.yahoo_provider import YahooProvider


class FakeTicker:
    def __init__(self, symbol, history_frame, fast_info, history_calls):
        self.symbol = symbol
        self.fast_info = fast_info
        self._history_frame = history_frame
        self._history_calls = history_calls

    def history(self, **kwargs):
        self._history_calls.append(kwargs)
        return self._history_frame


@pytest.fixture()
def fake_ticker(monkeypatch):
    """Install a fresh yf.Ticker stub; each test sets its own frame and quote."""
    state = {"history_frame": pd.DataFrame(), "fast_info": {}, "history_calls": []}

    def factory(symbol):
        return FakeTicker(symbol, state["history_frame"], state["fast_info"], state["history_calls"])

    monkeypatch.setattr(yf, "Ticker", factory)
    return state


def _frame():
    index = pd.DatetimeIndex(["2023-01-03", "2023-01-04", "2023-01-05"], tz="America/New_York", name="Date")
    return pd.DataFrame(
        {
            "Open": [130.0, 126.9, 127.1],
            "High": [130.9, 128.6, 127.8],
            "Low": [124.2, 125.1, 124.8],
            "Close": [125.1, 126.4, float("nan")],
            "Adj Close": [124.2, float("nan"), float("nan")],
            "Volume": [112117500, 89113600, 80962700],
        },
        index=index,
    )


def test_historical_maps_frame_to_rows(fake_ticker):
    fake_ticker["history_frame"] = _frame()

    rows = YahooProvider().historical("AAPL", date(2023, 1, 3), date(2023, 1, 5), "1d")

    assert [r.date for r in rows] == ["2023-01-03", "2023-01-04"]
    assert rows[0].symbol == "AAPL"
    assert rows[0].open == 130.0
    assert rows[0].volume == 112117500
    assert rows[0].adjClose == 124.2
    assert rows[1].adjClose is None

    assert len(fake_ticker["history_calls"]) == 1
    call = fake_ticker["history_calls"][0]
    assert call["start"] == date(2023, 1, 3)
    assert call["end"] == date(2023, 1, 6)
    assert call["interval"] == "1d"
    assert call["auto_adjust"] is False


def test_historical_empty_frame_returns_no_rows(fake_ticker):
    assert YahooProvider().historical("AAPL", date(2023, 1, 3), date(2023, 1, 5), "1wk") == []
    assert fake_ticker["history_calls"][0]["interval"] == "1wk"


def test_quote_returns_last_price(fake_ticker):
    fake_ticker["fast_info"] = {"lastPrice": 189.98, "currency": "USD"}

    assert YahooProvider().quote("AAPL") == {"symbol": "AAPL", "lastPrice": 189.98, "currency": "USD"}


def test_quote_without_price_is_none(fake_ticker):
    fake_ticker["fast_info"] = {"lastPrice": None}

    assert YahooProvider().quote("NOPE") is None


def test_quote_with_empty_fast_info_is_none(fake_ticker):
    assert YahooProvider().quote("NOPE") is None
