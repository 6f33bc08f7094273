from __future__ import annotations

import json
import logging
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ValidationError

from config import load_settings
from services.providers.yahoo_provider import YahooProvider
from services.stock_data_service import (
    StockDataRequestError,
    StockDataService,
    parse_fetch_request,
)

settings = load_settings()

logger = logging.getLogger(__name__)
logging.basicConfig(level=settings.log_level)


# ======================
# FastAPI & CORS Config
# ======================

app = FastAPI(title="Stock Historical Data API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ======================
# Models
# ======================


class StockDataRequest(BaseModel):
    symbols: Optional[List[str]] = None
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    interval: Optional[str] = "1d"


STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


# ======================
# Services
# ======================

provider = YahooProvider()
stock_data_service = StockDataService(provider, delay_seconds=settings.fetch_delay_seconds)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


# ======================
# Health Check
# ======================


@app.get("/api/health")
def health():
    return {"status": "ok"}


# ======================
# Stock Data Endpoint
# ======================


@app.post("/api/stock-data")
async def stock_data(request: Request):
    try:
        try:
            body = await request.json()
            if not isinstance(body, dict):
                raise StockDataRequestError("Invalid request body")
            payload = StockDataRequest(**body)
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as exc:
            raise StockDataRequestError("Invalid request body") from exc

        fetch_request = parse_fetch_request(
            payload.symbols, payload.startDate, payload.endDate, payload.interval
        )
    except StockDataRequestError as exc:
        logger.info("[stock_data] rejected request reason=%s", exc)
        return _error_response(400, str(exc))
    except Exception:
        logger.exception("Failed to start /api/stock-data stream")
        return _error_response(500, "Failed to fetch stock data")

    logger.info(
        "[stock_data] stream start symbols=%s start=%s end=%s interval=%s",
        ",".join(fetch_request.symbols),
        fetch_request.start.isoformat(),
        fetch_request.end.isoformat(),
        fetch_request.interval,
    )
    return StreamingResponse(
        stock_data_service.iter_events(fetch_request),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )


# ======================
# Standalone Run
# ======================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
