"""
Pydantic schemas for Info Hub Aggregator Service.
Domain models returned by the services plus the uniform response envelopes.
"""

import time
from datetime import datetime
from typing import Any, Dict, Generic, List, Literal, Optional, TypeVar
from pydantic import BaseModel, Field, validator

DataT = TypeVar("DataT")


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class Weather(BaseModel):
    """Current weather conditions for a supported city."""
    city: str = Field(..., description="City display name")
    latitude: float = Field(..., description="Latitude reported by the provider")
    longitude: float = Field(..., description="Longitude reported by the provider")
    temperature: float = Field(..., description="Air temperature at 2m (°C)")
    condition: str = Field(..., description="Human readable weather condition")
    humidity: float = Field(..., description="Relative humidity (%)")
    wind_speed: float = Field(..., description="Wind speed at 10m (km/h)")
    feels_like: float = Field(..., description="Apparent temperature (°C)")
    updated_at: datetime = Field(..., description="Fetch timestamp")


class AirQuality(BaseModel):
    """Current air quality for a supported city."""
    city: str = Field(..., description="City display name")
    latitude: float = Field(..., description="Latitude reported by the provider")
    longitude: float = Field(..., description="Longitude reported by the provider")
    aqi: int = Field(..., description="US EPA air quality index")
    category: str = Field(..., description="US EPA AQI category")
    pm25: float = Field(..., description="PM2.5 (μg/m³)")
    pm10: float = Field(..., description="PM10 (μg/m³)")
    no2: float = Field(..., description="Nitrogen dioxide (μg/m³)")
    o3: float = Field(..., description="Ozone (μg/m³)")
    co: float = Field(..., description="Carbon monoxide (μg/m³)")
    updated_at: datetime = Field(..., description="Fetch timestamp")


class CityLocation(BaseModel):
    """Geocoding match returned by the city lookup provider."""
    id: str = Field(..., description="Provider location id")
    name: str = Field(..., description="Location name")
    latitude: float = Field(..., description="Latitude")
    longitude: float = Field(..., description="Longitude")
    country: Optional[str] = Field(None, description="Country")
    province: Optional[str] = Field(None, description="First-level administrative area")
    city: Optional[str] = Field(None, description="Second-level administrative area")
    timezone: Optional[str] = Field(None, description="IANA timezone")


class CityLocationList(BaseModel):
    locations: List[CityLocation] = Field(..., description="Matching locations")


class SupportedCities(BaseModel):
    cities: List[str] = Field(..., description="Supported city names")


class InspirationalQuote(BaseModel):
    """A random quote."""
    text: str = Field(..., description="Quote text")
    author: str = Field(..., description="Quote author")


class ExchangeRates(BaseModel):
    """Latest exchange rates for a base currency."""
    base: str = Field(..., description="Base currency code")
    date: str = Field(..., description="Rate date (YYYY-MM-DD)")
    rates: Dict[str, float] = Field(..., description="Currency code -> rate")
    timestamp: int = Field(..., description="Provider update time (epoch seconds)")


class CurrencyConversion(BaseModel):
    """Result of converting an amount between two currencies."""
    from_currency: str = Field(..., alias="from", description="Source currency")
    to_currency: str = Field(..., alias="to", description="Target currency")
    amount: float = Field(..., description="Amount in source currency")
    result: float = Field(..., description="Amount in target currency")
    rate: float = Field(..., description="Applied conversion rate")
    date: str = Field(..., description="Rate date (YYYY-MM-DD)")

    class Config:
        """Pydantic configuration."""
        populate_by_name = True


class StockQuote(BaseModel):
    """Daily OHLC-style quote for a stock or index symbol."""
    symbol: str = Field(..., description="Ticker symbol")
    name: str = Field(..., description="Display name")
    current_price: float = Field(..., description="Last traded price")
    open_price: Optional[float] = Field(None, description="Opening price")
    high_price: Optional[float] = Field(None, description="Day high")
    low_price: Optional[float] = Field(None, description="Day low")
    previous_close: float = Field(..., description="Previous close")
    change: float = Field(..., description="Absolute change from previous close")
    change_percent: float = Field(..., description="Percentage change from previous close")
    timestamp: int = Field(..., description="Observation time (epoch seconds)")

    @validator('symbol')
    def validate_symbol(cls, v: str) -> str:
        """Validate and normalize symbol."""
        if not v or not v.strip():
            raise ValueError("Symbol cannot be empty")
        return v.strip().upper()


class MarketIndices(BaseModel):
    indices: List[StockQuote] = Field(..., description="Index quotes, newest first")
    updated_at: datetime = Field(default_factory=datetime.utcnow, description="Response timestamp")


class NewsArticle(BaseModel):
    """Model for news articles."""
    title: str = Field(..., description="Article title")
    description: str = Field(..., description="Article summary/description")
    source: str = Field(..., description="News source")
    url: str = Field(..., description="Article URL")
    published_at: datetime = Field(..., description="Publication timestamp")
    category: str = Field(..., description="News category")

    @validator('title')
    def validate_title(cls, v: str) -> str:
        """Validate article title."""
        if not v or not v.strip():
            raise ValueError("Article title cannot be empty")
        return v.strip()

    @validator('url')
    def validate_url(cls, v: str) -> str:
        """Validate article URL."""
        if not v or not v.strip():
            raise ValueError("Article URL cannot be empty")
        return v.strip()


class NewsHeadlines(BaseModel):
    """Model for news response."""
    articles: List[NewsArticle] = Field(..., description="Articles, newest first")
    total_results: int = Field(..., description="Articles merged before the cap was applied")
    category: str = Field(..., description="News category")


class HealthStatus(BaseModel):
    status: Literal["ok"] = Field("ok", description="Service status")
    timestamp: int = Field(default_factory=_epoch_millis, description="Health check time (epoch ms)")
    uptime: float = Field(..., description="Service uptime in seconds")


class SuccessResponse(BaseModel, Generic[DataT]):
    """Envelope for successful responses."""
    success: Literal[True] = True
    data: DataT
    message: Optional[str] = None
    timestamp: int = Field(default_factory=_epoch_millis, description="Response time (epoch ms)")


class ErrorDetail(BaseModel):
    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    details: Optional[Any] = Field(None, description="Additional error details")


class ErrorResponse(BaseModel):
    """Envelope for error responses."""
    success: Literal[False] = False
    error: ErrorDetail
    timestamp: int = Field(default_factory=_epoch_millis, description="Error time (epoch ms)")


def success_response(data: Any, message: Optional[str] = None) -> Dict[str, Any]:
    """Wrap a payload in the success envelope."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", by_alias=True)
    return SuccessResponse[Any](data=data, message=message).model_dump(mode="json")


def error_response(code: str, message: str, details: Any = None) -> Dict[str, Any]:
    """Build the error envelope."""
    return ErrorResponse(
        error=ErrorDetail(code=code, message=message, details=details)
    ).model_dump(mode="json")
