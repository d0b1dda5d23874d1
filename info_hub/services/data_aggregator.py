"""
Data aggregator service for Info Hub Aggregator.
Owns the upstream providers and the shared credential cache, and fans out
multi-source requests (market indices, RSS headlines).
"""

from datetime import datetime
from typing import Dict, List, Optional

from ..api.schemas import (
    AirQuality, CityLocation, CurrencyConversion, ExchangeRates, InspirationalQuote,
    MarketIndices, NewsArticle, NewsHeadlines, StockQuote, Weather
)
from ..core.config import Settings, settings as default_settings, provider_config
from ..core.logging_config import create_logger
from ..providers.base import BaseDataProvider
from ..providers.exchange_rate_provider import ExchangeRateProvider
from ..providers.open_meteo_provider import OpenMeteoProvider
from ..providers.qweather_provider import QWeatherProvider
from ..providers.rss_provider import RssFeedProvider
from ..providers.yahoo_finance_provider import YahooFinanceProvider
from ..providers.zenquotes_provider import ZenQuotesProvider
from .credential_cache import CredentialTokenCache
from .fan_out import FanOutAggregator, FetchTask

logger = create_logger(__name__)


class UnsupportedValueError(ValueError):
    """A request named a city, category or currency the service cannot serve."""

    def __init__(self, message: str, field: str):
        self.message = message
        self.field = field
        super().__init__(message)


class DataAggregatorService:
    """Service that orchestrates data fetching from multiple providers."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        token_cache: Optional[CredentialTokenCache] = None
    ):
        self.config = config or default_settings
        self.token_cache = token_cache or CredentialTokenCache(
            private_key_path=self.config.qweather_private_key_path,
            credential_id=self.config.qweather_credential,
            project_id=self.config.qweather_project_id,
            ttl_seconds=self.config.qweather_token_ttl,
            renewal_margin=self.config.qweather_token_renewal_margin,
            clock_skew=self.config.qweather_clock_skew
        )

        self.open_meteo = OpenMeteoProvider()
        self.qweather = QWeatherProvider(self.token_cache)
        self.zenquotes = ZenQuotesProvider()
        self.exchange = ExchangeRateProvider()
        self.yahoo = YahooFinanceProvider()
        self.rss = RssFeedProvider()

        self._providers: Dict[str, BaseDataProvider] = {
            provider.name: provider
            for provider in (
                self.open_meteo, self.qweather, self.zenquotes,
                self.exchange, self.yahoo, self.rss
            )
        }
        self._indices_aggregator = FanOutAggregator(label="market index")
        self._news_aggregator = FanOutAggregator(label="news feed")

    async def initialize(self) -> None:
        """Open HTTP connections for all providers."""
        logger.info("Initializing data aggregator service")

        for name, provider in self._providers.items():
            try:
                await provider.connect()
                logger.info("Initialized provider", extra={"provider": name})
            except Exception as e:
                logger.error("Failed to initialize provider", extra={
                    "provider": name,
                    "error": str(e)
                })
                # Providers connect lazily on first request as well
                continue

        logger.info("Data aggregator service initialized successfully", extra={
            "active_providers": list(self._providers.keys())
        })

    async def shutdown(self) -> None:
        """Close HTTP connections for all providers."""
        logger.info("Shutting down data aggregator service")

        for provider in self._providers.values():
            try:
                await provider.disconnect()
            except Exception as e:
                logger.warning("Error disconnecting provider", extra={
                    "provider": provider.name,
                    "error": str(e)
                })

        logger.info("Data aggregator service shutdown complete")

    # Weather

    def _resolve_city(self, city: str) -> Dict[str, object]:
        city_data = provider_config.CITY_COORDINATES.get(city.strip().lower())
        if not city_data:
            supported = ", ".join(self.get_supported_cities())
            raise UnsupportedValueError(
                f'City "{city}" is not supported. Supported cities: {supported}',
                "city"
            )
        return city_data

    def get_supported_cities(self) -> List[str]:
        return [str(city['name']) for city in provider_config.CITY_COORDINATES.values()]

    async def get_weather(self, city: str) -> Weather:
        city_data = self._resolve_city(city)
        return await self.open_meteo.get_weather(
            str(city_data['name']), float(city_data['lat']), float(city_data['lon'])
        )

    async def get_air_quality(self, city: str) -> AirQuality:
        city_data = self._resolve_city(city)
        return await self.open_meteo.get_air_quality(
            str(city_data['name']), float(city_data['lat']), float(city_data['lon'])
        )

    async def lookup_city(self, location: str, number: int = 1, lang: Optional[str] = None) -> List[CityLocation]:
        """Geocode a free-form location through the token-authenticated provider."""
        if not location or not location.strip():
            raise UnsupportedValueError("Location is required", "location")
        return await self.qweather.lookup_city(location.strip(), number=number, lang=lang)

    # Quotes

    async def get_random_quote(self) -> InspirationalQuote:
        return await self.zenquotes.get_random_quote()

    # Exchange

    @staticmethod
    def _validate_currency(code: str, field: str) -> str:
        code = (code or "").strip().upper()
        if len(code) != 3 or not code.isalpha():
            raise UnsupportedValueError(f"Currency code must be 3 letters, got '{code}'", field)
        return code

    async def get_latest_rates(self, base: str = "USD") -> ExchangeRates:
        base = self._validate_currency(base, "base")
        return await self.exchange.get_latest_rates(base)

    async def convert_currency(self, from_currency: str, to_currency: str, amount: float) -> CurrencyConversion:
        """Convert ``amount`` using the latest rate quoted for ``from_currency``."""
        from_currency = self._validate_currency(from_currency, "from")
        to_currency = self._validate_currency(to_currency, "to")
        if amount <= 0:
            raise UnsupportedValueError("Amount must be greater than 0", "amount")

        rates = await self.exchange.get_latest_rates(from_currency)
        rate = rates.rates.get(to_currency)
        if not rate:
            raise UnsupportedValueError(
                f"Target currency '{to_currency}' is not supported",
                "to"
            )

        return CurrencyConversion(
            from_currency=from_currency,
            to_currency=to_currency,
            amount=amount,
            result=round(amount * rate, 2),
            rate=round(rate, 4),
            date=rates.date
        )

    # Stocks

    async def get_stock_quote(self, symbol: str) -> StockQuote:
        symbol = (symbol or "").strip().upper()
        if not symbol:
            raise UnsupportedValueError("Symbol is required", "symbol")
        names = {index['symbol']: index['name'] for index in provider_config.MAJOR_INDICES}
        return await self.yahoo.get_quote(symbol, name=names.get(symbol))

    async def get_major_indices(self) -> MarketIndices:
        """Fetch every configured index concurrently, newest observation first.

        Raises:
            AggregateError: Every index fetch failed.
        """
        tasks = [
            FetchTask(
                identifier=index['symbol'],
                operation=self._quote_operation(index['symbol'], index['name'])
            )
            for index in provider_config.MAJOR_INDICES
        ]

        result = await self._indices_aggregator.run(
            tasks,
            sort_key=lambda quote: quote.timestamp,
            descending=True
        )

        return MarketIndices(indices=result.successes, updated_at=datetime.utcnow())

    def _quote_operation(self, symbol: str, name: str):
        async def operation() -> StockQuote:
            return await self.yahoo.get_quote(symbol, name=name)
        return operation

    # News

    def get_news_categories(self) -> List[str]:
        return list(provider_config.RSS_FEEDS.keys())

    async def get_headlines(self, category: str = "general") -> NewsHeadlines:
        """Merge all feeds of ``category``, newest first, capped at ``news_max_articles``.

        Raises:
            UnsupportedValueError: Unknown category.
            AggregateError: Every feed of the category failed.
        """
        category = (category or "general").strip().lower()
        feeds = provider_config.RSS_FEEDS.get(category)
        if not feeds:
            supported = ", ".join(self.get_news_categories())
            raise UnsupportedValueError(
                f'Category "{category}" is not supported. Supported categories: {supported}',
                "category"
            )

        tasks = [
            FetchTask(identifier=source, operation=self._feed_operation(url, source, category))
            for source, url in feeds.items()
        ]

        result = await self._news_aggregator.run(
            tasks,
            sort_key=lambda article: article.published_at,
            descending=True,
            limit=self.config.news_max_articles,
            flatten=True
        )

        return NewsHeadlines(
            articles=result.successes,
            total_results=result.total,
            category=category
        )

    def _feed_operation(self, url: str, source: str, category: str):
        async def operation() -> List[NewsArticle]:
            return await self.rss.fetch_feed(url, source, category)
        return operation


# Global aggregator service instance
aggregator_service = DataAggregatorService()
