from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from services.csv_export import rows_to_csv
from services.event_stream import EVENT_COMPLETE, EVENT_ERROR, EVENT_PROGRESS, encode_event
from services.market_data_provider import HistoricalRow, MarketDataProvider

logger = logging.getLogger(__name__)

SUPPORTED_INTERVALS = ("1d", "1wk", "1mo")
NO_DATA_MESSAGE = "No valid data retrieved for any symbols"
GENERIC_ERROR_MESSAGE = "An error occurred"


class StockDataRequestError(ValueError):
    """Input error reported to the caller before any stream starts."""


class SymbolFetchError(RuntimeError):
    pass


class NoDataRetrievedError(RuntimeError):
    pass


@dataclass(frozen=True)
class FetchRequest:
    symbols: Tuple[str, ...]
    start: date
    end: date
    interval: str = "1d"


@dataclass(frozen=True)
class SymbolFailure:
    symbol: str
    reason: str


@dataclass
class ProgressEvent:
    current: int
    total: int
    failures: Sequence[SymbolFailure] = field(default_factory=tuple)

    @property
    def error(self) -> Optional[str]:
        if not self.failures:
            return None
        return "Failed to fetch: " + ", ".join(f.symbol for f in self.failures)

    def to_payload(self) -> Dict:
        payload: Dict = {"type": "progress", "current": self.current, "total": self.total}
        error = self.error
        if error is not None:
            payload["error"] = error
        return payload


def _parse_date(value: str) -> date:
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError as exc:
        raise StockDataRequestError("Invalid date format") from exc


def parse_fetch_request(
    symbols: Optional[Sequence[str]],
    start_date: Optional[str],
    end_date: Optional[str],
    interval: Optional[str] = None,
) -> FetchRequest:
    cleaned = [s.strip().upper() for s in (symbols or []) if s and s.strip()]
    if not cleaned or not start_date or not end_date:
        raise StockDataRequestError("Missing required fields")

    interval = interval or "1d"
    if interval not in SUPPORTED_INTERVALS:
        raise StockDataRequestError("Invalid interval")

    return FetchRequest(
        symbols=tuple(cleaned),
        start=_parse_date(start_date),
        end=_parse_date(end_date),
        interval=interval,
    )


class StockDataService:
    """Fetches history symbol by symbol and renders the result as an event stream."""

    def __init__(
        self,
        provider: MarketDataProvider,
        delay_seconds: float = 1.0,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self._provider = provider
        self._delay_seconds = delay_seconds
        self._sleep = sleep or time.sleep

    def fetch_symbol(self, symbol: str, request: FetchRequest) -> List[HistoricalRow]:
        quote = self._provider.quote(symbol)
        if not quote:
            raise SymbolFetchError(f"Invalid symbol: {symbol}")

        history = self._provider.historical(symbol, request.start, request.end, request.interval)
        return [replace(row, symbol=symbol) for row in history]

    def iter_events(self, request: FetchRequest) -> Iterator[bytes]:
        """
        Yield encoded event blocks: one progress event per symbol, then a
        single terminal complete or error event.
        """
        try:
            total = len(request.symbols)
            rows: List[HistoricalRow] = []
            failures: List[SymbolFailure] = []

            for current, symbol in enumerate(request.symbols, start=1):
                if self._delay_seconds > 0:
                    self._sleep(self._delay_seconds)

                try:
                    symbol_rows = self.fetch_symbol(symbol, request)
                    rows.extend(symbol_rows)
                    logger.info(
                        "[stock_data] symbol fetched source=%s symbol=%s rows=%d progress=%d/%d",
                        self._provider.source,
                        symbol,
                        len(symbol_rows),
                        current,
                        total,
                    )
                except Exception as exc:  # noqa: BLE001 - one bad symbol must not abort the loop
                    failures.append(SymbolFailure(symbol=symbol, reason=str(exc)))
                    logger.warning(
                        "[stock_data] symbol failed symbol=%s progress=%d/%d error=%s",
                        symbol,
                        current,
                        total,
                        exc,
                    )

                progress = ProgressEvent(current=current, total=total, failures=tuple(failures))
                yield encode_event(EVENT_PROGRESS, progress.to_payload())

            if not rows:
                raise NoDataRetrievedError(NO_DATA_MESSAGE)

            logger.info(
                "[stock_data] complete symbols=%d failed=%d rows=%d",
                total,
                len(failures),
                len(rows),
            )
            yield encode_event(EVENT_COMPLETE, rows_to_csv(rows))
        except NoDataRetrievedError as exc:
            logger.warning("[stock_data] %s symbols=%s", exc, ",".join(request.symbols))
            yield encode_event(EVENT_ERROR, {"error": str(exc)})
        except Exception as exc:
            logger.exception("[stock_data] processing failed")
            yield encode_event(EVENT_ERROR, {"error": str(exc) or GENERIC_ERROR_MESSAGE})
