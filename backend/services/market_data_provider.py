from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional


@dataclass
class HistoricalRow:
    symbol: str
    date: str
    open: float
    high: float
    low: float
    close: float
    volume: int
    adjClose: Optional[float] = None


class MarketDataProvider(ABC):
    source = "unknown"

    @abstractmethod
    def quote(self, symbol: str) -> Optional[Dict[str, Any]]:
        """Return a quote dict, or None when the symbol is unknown."""

    @abstractmethod
    def historical(self, symbol: str, start: date, end: date, interval: str) -> List[HistoricalRow]:
        """Return rows in chronological order; `end` is inclusive."""
