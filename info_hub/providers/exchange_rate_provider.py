"""
ExchangeRate-API data provider implementation.
Provides latest currency exchange rates (keyless v4 endpoint).
"""

import time
from datetime import datetime
from typing import Dict, Optional
import httpx
from pydantic import BaseModel

from .base import BaseDataProvider
from ..api.schemas import ExchangeRates
from ..core.config import settings
from ..core.logging_config import create_logger

logger = create_logger(__name__)


class _RatesPayload(BaseModel):
    base_code: Optional[str] = None
    base: Optional[str] = None
    rates: Dict[str, float]
    time_last_updated: Optional[int] = None


class ExchangeRateProvider(BaseDataProvider):
    """ExchangeRate-API provider."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        super().__init__(name="exchange_rate", base_url=settings.exchange_rate_url, client=client)

    async def get_latest_rates(self, base_currency: str) -> ExchangeRates:
        """Get latest rates for ``base_currency`` (ISO 4217 code)."""
        base_currency = base_currency.strip().upper()
        data = await self._make_request(f"{self.base_url}/{base_currency}", symbol=base_currency)
        payload = self._decode(_RatesPayload, data, symbol=base_currency)

        rates = ExchangeRates(
            base=payload.base_code or payload.base or base_currency,
            date=datetime.utcnow().strftime("%Y-%m-%d"),
            rates=payload.rates,
            timestamp=payload.time_last_updated or int(time.time())
        )

        logger.info("Retrieved exchange rates", extra={
            "provider": self.name,
            "base": rates.base,
            "count": len(rates.rates)
        })
        return rates
