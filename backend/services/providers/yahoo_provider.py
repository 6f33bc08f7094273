from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import pandas as pd
import yfinance as yf

from services.market_data_provider import HistoricalRow, MarketDataProvider


class YahooProvider(MarketDataProvider):
    source = "yfinance"

    def _to_iso_date(self, idx) -> str:
        try:
            return idx.date().isoformat()
        except AttributeError:
            try:
                return idx.to_pydatetime().date().isoformat()  # type: ignore[attr-defined]
            except Exception:
                return str(idx)

    def _optional_float(self, value) -> Optional[float]:
        if value is None:
            return None
        value = float(value)
        if math.isnan(value):
            return None
        return value

    def _flatten_columns(self, hist: pd.DataFrame) -> pd.DataFrame:
        # yfinance may return MultiIndex columns (field, ticker); keep the field level
        if isinstance(hist.columns, pd.MultiIndex):
            hist = hist.copy()
            hist.columns = hist.columns.get_level_values(0)
        return hist

    def quote(self, symbol: str) -> Optional[Dict[str, Any]]:
        ticker = yf.Ticker(symbol)
        info = ticker.fast_info
        if not info:
            return None
        last = info.get("lastPrice")
        if last is None or (isinstance(last, float) and math.isnan(last)):
            return None
        return {
            "symbol": symbol,
            "lastPrice": round(float(last), 4),
            "currency": info.get("currency"),
        }

    def historical(self, symbol: str, start: date, end: date, interval: str) -> List[HistoricalRow]:
        hist = yf.Ticker(symbol).history(
            start=start,
            end=end + timedelta(days=1),
            interval=interval,
            auto_adjust=False,
        )
        if hist is None or hist.empty:
            return []

        hist = self._flatten_columns(hist)
        if "Close" not in hist.columns:
            raise ValueError("close column missing")
        hist = hist.dropna(subset=["Close"])

        rows: List[HistoricalRow] = []
        for idx, record in hist.iterrows():
            volume = record.get("Volume")
            rows.append(
                HistoricalRow(
                    symbol=symbol,
                    date=self._to_iso_date(idx),
                    open=float(record["Open"]),
                    high=float(record["High"]),
                    low=float(record["Low"]),
                    close=float(record["Close"]),
                    volume=int(volume) if volume is not None and not pd.isna(volume) else 0,
                    adjClose=self._optional_float(record.get("Adj Close")),
                )
            )
        return rows
