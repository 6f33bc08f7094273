from __future__ import annotations

from dataclasses import asdict
from typing import List, Sequence

import pandas as pd

from services.market_data_provider import HistoricalRow

CSV_FIELDS: List[str] = ["symbol", "date", "open", "high", "low", "close", "volume", "adjClose"]


def rows_to_frame(rows: Sequence[HistoricalRow]) -> pd.DataFrame:
    frame = pd.DataFrame([asdict(row) for row in rows], columns=CSV_FIELDS)
    # keep volume integral even when the frame picked up a float dtype
    frame["volume"] = frame["volume"].astype("Int64")
    return frame


def rows_to_csv(rows: Sequence[HistoricalRow]) -> str:
    """Serialize rows with the fixed column order; no trailing newline."""
    csv = rows_to_frame(rows).to_csv(index=False, lineterminator="\n")
    return csv.rstrip("\n")
