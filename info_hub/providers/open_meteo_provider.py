"""
Open-Meteo data provider implementation.
Provides current weather and air quality using the keyless Open-Meteo APIs.
"""

from datetime import datetime
from typing import Optional
import httpx
from pydantic import BaseModel

from .base import BaseDataProvider
from ..api.schemas import AirQuality, Weather
from ..core.config import settings, provider_config
from ..core.logging_config import create_logger

logger = create_logger(__name__)

WEATHER_FIELDS = "temperature_2m,relative_humidity_2m,apparent_temperature,weather_code,wind_speed_10m"
AIR_QUALITY_FIELDS = "us_aqi,pm2_5,pm10,nitrogen_dioxide,ozone,carbon_monoxide"


class _CurrentWeather(BaseModel):
    temperature_2m: float
    relative_humidity_2m: float
    apparent_temperature: float
    weather_code: int
    wind_speed_10m: float


class _WeatherPayload(BaseModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    current: _CurrentWeather


class _CurrentAirQuality(BaseModel):
    us_aqi: float
    pm2_5: float
    pm10: float
    nitrogen_dioxide: float
    ozone: float
    carbon_monoxide: float


class _AirQualityPayload(BaseModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    current: _CurrentAirQuality


def aqi_category(aqi: int) -> str:
    """Map a US AQI value onto its EPA category."""
    for upper_bound, category in provider_config.AQI_CATEGORIES:
        if aqi <= upper_bound:
            return category
    return provider_config.AQI_WORST_CATEGORY


class OpenMeteoProvider(BaseDataProvider):
    """Open-Meteo provider for weather and air quality."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        super().__init__(
            name="open_meteo",
            base_url=settings.open_meteo_weather_url,
            client=client
        )
        self.air_quality_url = settings.open_meteo_air_quality_url

    async def get_weather(self, city: str, latitude: float, longitude: float) -> Weather:
        """Get current weather for the given coordinates."""
        data = await self._make_request(
            self.base_url,
            params={
                "latitude": latitude,
                "longitude": longitude,
                "current": WEATHER_FIELDS,
                "timezone": "auto"
            }
        )
        payload = self._decode(_WeatherPayload, data)
        current = payload.current

        weather = Weather(
            city=city,
            latitude=payload.latitude if payload.latitude is not None else latitude,
            longitude=payload.longitude if payload.longitude is not None else longitude,
            temperature=round(current.temperature_2m, 1),
            condition=provider_config.WEATHER_CODES.get(current.weather_code, "Unknown"),
            humidity=current.relative_humidity_2m,
            wind_speed=round(current.wind_speed_10m, 1),
            feels_like=round(current.apparent_temperature, 1),
            updated_at=datetime.utcnow()
        )

        logger.info("Retrieved weather from Open-Meteo", extra={
            "provider": self.name,
            "city": city
        })
        return weather

    async def get_air_quality(self, city: str, latitude: float, longitude: float) -> AirQuality:
        """Get current air quality for the given coordinates."""
        data = await self._make_request(
            self.air_quality_url,
            params={
                "latitude": latitude,
                "longitude": longitude,
                "current": AIR_QUALITY_FIELDS
            }
        )
        payload = self._decode(_AirQualityPayload, data)
        current = payload.current
        aqi = round(current.us_aqi)

        air_quality = AirQuality(
            city=city,
            latitude=payload.latitude if payload.latitude is not None else latitude,
            longitude=payload.longitude if payload.longitude is not None else longitude,
            aqi=aqi,
            category=aqi_category(aqi),
            pm25=round(current.pm2_5, 1),
            pm10=round(current.pm10, 1),
            no2=round(current.nitrogen_dioxide, 1),
            o3=round(current.ozone, 1),
            co=round(current.carbon_monoxide, 1),
            updated_at=datetime.utcnow()
        )

        logger.info("Retrieved air quality from Open-Meteo", extra={
            "provider": self.name,
            "city": city,
            "aqi": aqi
        })
        return air_quality
