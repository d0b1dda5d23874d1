"""
Yahoo Finance data provider implementation.
Provides daily quotes for stocks and market indices from the public chart API.
"""

from typing import List, Optional
from urllib.parse import quote as url_quote
import httpx
from pydantic import BaseModel

from .base import BaseDataProvider, UpstreamFetchError
from ..api.schemas import StockQuote
from ..core.config import settings
from ..core.logging_config import create_logger

logger = create_logger(__name__)


class _ChartMeta(BaseModel):
    symbol: Optional[str] = None
    shortName: Optional[str] = None
    currency: Optional[str] = None
    regularMarketPrice: Optional[float] = None
    regularMarketTime: Optional[int] = None
    regularMarketDayHigh: Optional[float] = None
    regularMarketDayLow: Optional[float] = None
    previousClose: Optional[float] = None
    chartPreviousClose: Optional[float] = None


class _ChartQuote(BaseModel):
    open: List[Optional[float]] = []
    high: List[Optional[float]] = []
    low: List[Optional[float]] = []
    close: List[Optional[float]] = []


class _ChartIndicators(BaseModel):
    quote: List[_ChartQuote] = []


class _ChartResult(BaseModel):
    meta: _ChartMeta
    timestamp: List[int] = []
    indicators: Optional[_ChartIndicators] = None


class _ChartError(BaseModel):
    code: Optional[str] = None
    description: Optional[str] = None


class _Chart(BaseModel):
    result: Optional[List[_ChartResult]] = None
    error: Optional[_ChartError] = None


class _ChartPayload(BaseModel):
    chart: _Chart


def _last_value(values: List[Optional[float]]) -> Optional[float]:
    """Last non-null element of an indicator series."""
    for value in reversed(values):
        if value is not None:
            return value
    return None


def _round(value: Optional[float]) -> Optional[float]:
    return round(value, 2) if value is not None else None


class YahooFinanceProvider(BaseDataProvider):
    """Yahoo Finance chart API provider."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        super().__init__(name="yahoo_finance", base_url=settings.yahoo_finance_url, client=client)

    def _get_default_headers(self):
        headers = super()._get_default_headers()
        # The chart API rejects requests without a browser-like agent
        headers['User-Agent'] = 'Mozilla/5.0 (compatible; Info-Hub-Aggregator/1.0.0)'
        return headers

    async def get_quote(self, symbol: str, name: Optional[str] = None) -> StockQuote:
        """Get the latest daily quote for ``symbol``.

        Raises:
            UpstreamFetchError: Transport failure, chart error, or a payload
                missing the price, previous close or observation time.
        """
        symbol = symbol.strip().upper()
        data = await self._make_request(
            f"{self.base_url}/{url_quote(symbol, safe='')}",
            params={"interval": "1d", "range": "1d"},
            symbol=symbol
        )
        chart = self._decode(_ChartPayload, data, symbol=symbol).chart

        if chart.error is not None:
            reason = chart.error.description or chart.error.code or "unknown error"
            raise UpstreamFetchError(f"Yahoo Finance API error: {reason}", self.name, symbol)

        if not chart.result:
            raise UpstreamFetchError("Yahoo Finance returned no chart result", self.name, symbol)

        result = chart.result[0]
        meta = result.meta
        series = result.indicators.quote[0] if result.indicators and result.indicators.quote else _ChartQuote()

        current_price = _last_value(series.close)
        if current_price is None:
            current_price = meta.regularMarketPrice
        if current_price is None:
            raise UpstreamFetchError("Quote is missing a current price", self.name, symbol)

        open_price = _last_value(series.open)
        high_price = _last_value(series.high)
        if high_price is None:
            high_price = meta.regularMarketDayHigh
        low_price = _last_value(series.low)
        if low_price is None:
            low_price = meta.regularMarketDayLow

        previous_close = meta.previousClose
        if previous_close is None:
            previous_close = meta.chartPreviousClose
        if previous_close is None:
            raise UpstreamFetchError("Quote is missing a previous close", self.name, symbol)

        timestamp = result.timestamp[-1] if result.timestamp else meta.regularMarketTime
        if timestamp is None:
            raise UpstreamFetchError("Quote is missing an observation time", self.name, symbol)

        change = current_price - previous_close
        change_percent = (change / previous_close * 100) if previous_close != 0 else 0.0

        quote = StockQuote(
            symbol=symbol,
            name=name or meta.shortName or meta.symbol or symbol,
            current_price=_round(current_price),
            open_price=_round(open_price),
            high_price=_round(high_price),
            low_price=_round(low_price),
            previous_close=_round(previous_close),
            change=_round(change),
            change_percent=_round(change_percent),
            timestamp=timestamp
        )

        logger.debug("Retrieved quote from Yahoo Finance", extra={
            "provider": self.name,
            "symbol": symbol,
            "price": quote.current_price
        })
        return quote
