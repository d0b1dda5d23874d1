"""
FastAPI endpoints for Info Hub Aggregator Service.
Every route answers with the uniform success/error envelope.
"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from ..api.schemas import (
    AirQuality, CityLocationList, CurrencyConversion, ExchangeRates, InspirationalQuote,
    MarketIndices, NewsHeadlines, StockQuote, SuccessResponse, SupportedCities, Weather,
    success_response
)
from ..core.logging_config import create_logger
from ..providers.base import CredentialError, DataNotFoundError, ProviderError
from ..services.data_aggregator import DataAggregatorService, UnsupportedValueError, aggregator_service
from ..services.fan_out import AggregateError

logger = create_logger(__name__)

# Create API router
router = APIRouter()


class ApiError(HTTPException):
    """HTTP error carrying an envelope error code and optional details."""

    def __init__(self, status_code: int, code: str, message: str, details: Any = None):
        super().__init__(status_code=status_code, detail=message)
        self.code = code
        self.message = message
        self.details = details


def get_aggregator() -> DataAggregatorService:
    return aggregator_service


# Currency parameters share one error code
_INVALID_FIELD_CODES = {"from": "currency", "to": "currency", "base": "currency"}


def to_api_error(exc: Exception, error_code: str) -> ApiError:
    """Translate a service/provider failure into its HTTP form."""
    if isinstance(exc, UnsupportedValueError):
        field = _INVALID_FIELD_CODES.get(exc.field, exc.field)
        return ApiError(400, f"INVALID_{field.upper()}", exc.message, {"field": exc.field})

    if isinstance(exc, CredentialError):
        logger.error("Upstream credential failure", extra={"error": exc.message})
        return ApiError(502, "UPSTREAM_AUTH_ERROR", exc.message)

    if isinstance(exc, AggregateError):
        details = [
            {"identifier": failure.identifier, "reason": failure.reason}
            for failure in exc.failures
        ]
        return ApiError(502, error_code, exc.message, details)

    if isinstance(exc, DataNotFoundError):
        return ApiError(404, error_code, exc.message)

    if isinstance(exc, ProviderError):
        return ApiError(502, error_code, exc.message, {"provider": exc.provider})

    return ApiError(500, "INTERNAL_SERVER_ERROR", str(exc))


_HANDLED = (UnsupportedValueError, ProviderError, AggregateError)


@router.get("/weather", response_model=SuccessResponse[Weather], tags=["weather"])
async def get_weather(
    city: str = Query(..., min_length=1, max_length=50, description="City name, e.g. Beijing"),
    service: DataAggregatorService = Depends(get_aggregator)
):
    """Get current weather for a supported city."""
    try:
        weather = await service.get_weather(city)
    except _HANDLED as e:
        raise to_api_error(e, "WEATHER_ERROR")
    return success_response(weather)


@router.get("/weather/cities", response_model=SuccessResponse[SupportedCities], tags=["weather"])
async def get_supported_cities(service: DataAggregatorService = Depends(get_aggregator)):
    """List the cities supported by the weather endpoints."""
    return success_response(SupportedCities(cities=service.get_supported_cities()))


@router.get("/weather/air-quality", response_model=SuccessResponse[AirQuality], tags=["weather"])
async def get_air_quality(
    city: str = Query(..., min_length=1, max_length=50, description="City name, e.g. Beijing"),
    service: DataAggregatorService = Depends(get_aggregator)
):
    """Get current air quality for a supported city."""
    try:
        air_quality = await service.get_air_quality(city)
    except _HANDLED as e:
        raise to_api_error(e, "AIR_QUALITY_ERROR")
    return success_response(air_quality)


@router.get("/weather/city", response_model=SuccessResponse[CityLocationList], tags=["weather"])
async def get_city_location(
    location: str = Query(..., min_length=1, max_length=50, description="City name or keyword"),
    number: int = Query(1, ge=1, le=20, description="Maximum number of matches"),
    lang: Optional[str] = Query(None, max_length=10, description="Response language, e.g. en"),
    service: DataAggregatorService = Depends(get_aggregator)
):
    """Geocode a city through the signed-token GeoAPI."""
    try:
        locations = await service.lookup_city(location, number=number, lang=lang)
    except _HANDLED as e:
        raise to_api_error(e, "CITY_LOOKUP_ERROR")
    return success_response(CityLocationList(locations=locations))


@router.get("/quote", response_model=SuccessResponse[InspirationalQuote], tags=["quote"])
async def get_random_quote(service: DataAggregatorService = Depends(get_aggregator)):
    """Get a random quote."""
    try:
        quote = await service.get_random_quote()
    except _HANDLED as e:
        raise to_api_error(e, "QUOTE_ERROR")
    return success_response(quote)


@router.get("/exchange/latest", response_model=SuccessResponse[ExchangeRates], tags=["exchange"])
async def get_latest_rates(
    base: str = Query("USD", min_length=3, max_length=3, description="Base currency code"),
    service: DataAggregatorService = Depends(get_aggregator)
):
    """Get latest exchange rates for a base currency."""
    try:
        rates = await service.get_latest_rates(base)
    except _HANDLED as e:
        raise to_api_error(e, "EXCHANGE_ERROR")
    return success_response(rates)


@router.get("/exchange/convert", response_model=SuccessResponse[CurrencyConversion], tags=["exchange"])
async def convert_currency(
    from_currency: str = Query(..., alias="from", min_length=3, max_length=3, description="Source currency"),
    to_currency: str = Query(..., alias="to", min_length=3, max_length=3, description="Target currency"),
    amount: float = Query(..., gt=0, description="Amount to convert"),
    service: DataAggregatorService = Depends(get_aggregator)
):
    """Convert an amount between two currencies."""
    try:
        conversion = await service.convert_currency(from_currency, to_currency, amount)
    except _HANDLED as e:
        raise to_api_error(e, "CONVERSION_ERROR")
    return success_response(conversion)


@router.get("/stock/indices", response_model=SuccessResponse[MarketIndices], tags=["stock"])
async def get_major_indices(service: DataAggregatorService = Depends(get_aggregator)):
    """Get the major market indices, newest observation first.

    Indices whose upstream fetch failed are left out; the request only fails
    when every index failed.
    """
    try:
        indices = await service.get_major_indices()
    except _HANDLED as e:
        raise to_api_error(e, "INDICES_ERROR")
    return success_response(indices)


@router.get("/stock/quote", response_model=SuccessResponse[StockQuote], tags=["stock"])
async def get_stock_quote(
    symbol: str = Query(..., min_length=1, max_length=20, description="Ticker symbol, e.g. AAPL"),
    service: DataAggregatorService = Depends(get_aggregator)
):
    """Get the latest daily quote for one symbol."""
    try:
        quote = await service.get_stock_quote(symbol)
    except _HANDLED as e:
        raise to_api_error(e, "QUOTE_ERROR")
    return success_response(quote)


@router.get("/news/headlines", response_model=SuccessResponse[NewsHeadlines], tags=["news"])
async def get_headlines(
    category: str = Query("general", description="News category: technology or general"),
    service: DataAggregatorService = Depends(get_aggregator)
):
    """Get merged RSS headlines for a category, newest first.

    Feeds that fail are left out; the request only fails when every feed of
    the category failed.
    """
    try:
        headlines = await service.get_headlines(category)
    except UnsupportedValueError as e:
        raise ApiError(400, "INVALID_CATEGORY", e.message, {"supported": service.get_news_categories()})
    except _HANDLED as e:
        raise to_api_error(e, "NEWS_ERROR")
    return success_response(headlines)
