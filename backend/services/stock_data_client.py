from __future__ import annotations

import codecs
import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional

import requests

from services.event_stream import (
    EVENT_COMPLETE,
    EVENT_ERROR,
    EVENT_PROGRESS,
    EventStreamParser,
    StreamEvent,
)

logger = logging.getLogger(__name__)

DOWNLOAD_FILENAME = "stock_historical_data.csv"
STOCK_DATA_PATH = "/api/stock-data"
EMPTY_SYMBOLS_MESSAGE = "Please enter at least one symbol"
BUSY_MESSAGE = "A request is already in progress"
INCOMPLETE_MESSAGE = "Stream ended before data was complete"
MALFORMED_PROGRESS_MESSAGE = "Malformed progress event"
GENERIC_ERROR_MESSAGE = "An error occurred"


class StreamError(RuntimeError):
    """Terminal failure reported by the server or raised while reading the stream."""


def parse_symbols(text: str) -> List[str]:
    return [s.strip().upper() for s in text.split(",") if s.strip()]


@dataclass
class ProgressState:
    current: int = 0
    total: int = 0
    error: Optional[str] = None

    @property
    def percentage(self) -> int:
        if self.total <= 0:
            return 0
        return round(self.current / self.total * 100)

    def describe(self) -> str:
        return f"Processing {self.current} of {self.total} symbols ({self.percentage}%)"


@dataclass
class SubmitResult:
    ok: bool
    path: Optional[Path] = None
    error: Optional[str] = None
    progress: ProgressState = field(default_factory=ProgressState)


class StockDataClient:
    """
    Submits one stock-data request, follows the event stream and saves the
    resulting CSV.

    Only one submission may be in flight per client; a second call made while
    the first is still streaming is rejected.
    """

    def __init__(
        self,
        base_url: str,
        output_dir: Path = Path("."),
        session: Optional[requests.Session] = None,
        on_progress: Optional[Callable[[ProgressState], None]] = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.output_dir = Path(output_dir)
        self.session = session or requests.Session()
        self.on_progress = on_progress
        self.timeout = timeout
        self.progress = ProgressState()
        self.error: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def loading(self) -> bool:
        return self._lock.locked()

    def submit(self, symbols_text: str, start_date: str, end_date: str, interval: str = "1d") -> SubmitResult:
        if not self._lock.acquire(blocking=False):
            return SubmitResult(ok=False, error=BUSY_MESSAGE, progress=self.progress)

        try:
            self.error = None
            symbols = parse_symbols(symbols_text)
            if not symbols:
                self.error = EMPTY_SYMBOLS_MESSAGE
                return SubmitResult(ok=False, error=self.error, progress=self.progress)

            self.progress = ProgressState(current=0, total=len(symbols))
            try:
                path = self._run(symbols, start_date, end_date, interval)
                if path is None:
                    raise StreamError(INCOMPLETE_MESSAGE)
            except (StreamError, requests.RequestException, ValueError, OSError) as exc:
                self.error = str(exc) or GENERIC_ERROR_MESSAGE
                logger.warning("[client] request failed error=%s", self.error)
                return SubmitResult(ok=False, error=self.error, progress=self.progress)

            return SubmitResult(ok=True, path=path, progress=self.progress)
        finally:
            self._lock.release()

    def _run(self, symbols: List[str], start_date: str, end_date: str, interval: str) -> Optional[Path]:
        body = {
            "symbols": symbols,
            "startDate": start_date,
            "endDate": end_date,
            "interval": interval,
        }
        with self.session.post(
            f"{self.base_url}{STOCK_DATA_PATH}",
            json=body,
            stream=True,
            timeout=self.timeout,
        ) as response:
            if response.status_code >= 400:
                raise StreamError(self._error_message(response))
            return self._consume(response.iter_content(chunk_size=None))

    def _error_message(self, response: requests.Response) -> str:
        try:
            message = response.json().get("message")
        except (ValueError, AttributeError):
            message = None
        return message or f"Request failed with status {response.status_code}"

    def _consume(self, chunks: Iterable[bytes]) -> Optional[Path]:
        decoder = codecs.getincrementaldecoder("utf-8")()
        parser = EventStreamParser()
        saved: Optional[Path] = None

        for chunk in chunks:
            if not chunk:
                continue
            for event in parser.feed(decoder.decode(chunk)):
                path = self._handle(event)
                if path is not None:
                    saved = path

        for event in parser.feed(decoder.decode(b"", final=True)):
            path = self._handle(event)
            if path is not None:
                saved = path
        return saved

    def _handle(self, event: StreamEvent) -> Optional[Path]:
        if event.name == EVENT_PROGRESS:
            data = event.json()
            if not isinstance(data, dict):
                raise StreamError(MALFORMED_PROGRESS_MESSAGE)
            try:
                progress = ProgressState(
                    current=int(data.get("current", 0)),
                    total=int(data.get("total", 0)),
                    error=data.get("error"),
                )
            except (TypeError, ValueError) as exc:
                raise StreamError(MALFORMED_PROGRESS_MESSAGE) from exc
            self.progress = progress
            if self.on_progress is not None:
                self.on_progress(self.progress)
            return None

        if event.name == EVENT_COMPLETE:
            return self.save_csv(event.data)

        if event.name == EVENT_ERROR:
            try:
                data = event.json()
            except json.JSONDecodeError:
                data = None
            message = data.get("error") if isinstance(data, dict) else event.data
            if not isinstance(message, str):
                message = None
            raise StreamError(message or GENERIC_ERROR_MESSAGE)

        logger.debug("[client] ignoring event name=%s", event.name)
        return None

    def save_csv(self, csv_text: str) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / DOWNLOAD_FILENAME
        with path.open("w", encoding="utf-8", newline="") as f:
            f.write(csv_text)
        logger.info("[client] saved csv path=%s bytes=%d", path, len(csv_text))
        return path
