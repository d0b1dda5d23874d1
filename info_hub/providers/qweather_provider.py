"""
QWeather data provider implementation.
Provides city geocoding through the QWeather GeoAPI, authenticated with an
EdDSA-signed bearer token from the shared credential cache.
"""

from typing import Dict, List, Optional
import httpx
from pydantic import BaseModel

from .base import BaseDataProvider, DataNotFoundError, UpstreamFetchError
from ..api.schemas import CityLocation
from ..core.config import settings
from ..core.logging_config import create_logger
from ..services.credential_cache import CredentialTokenCache

logger = create_logger(__name__)


class _GeoLocation(BaseModel):
    name: str
    id: str
    lat: float
    lon: float
    adm1: Optional[str] = None
    adm2: Optional[str] = None
    country: Optional[str] = None
    tz: Optional[str] = None


class _GeoPayload(BaseModel):
    code: str
    location: List[_GeoLocation] = []


class QWeatherProvider(BaseDataProvider):
    """QWeather provider for city geocoding."""

    def __init__(self, token_cache: CredentialTokenCache, client: Optional[httpx.AsyncClient] = None):
        super().__init__(
            name="qweather",
            base_url=settings.qweather_geo_url,
            client=client
        )
        self.token_cache = token_cache

    def _get_auth_headers(self) -> Optional[Dict[str, str]]:
        """QWeather requires a signed bearer token on every request."""
        token = self.token_cache.get_token()
        return {"Authorization": f"Bearer {token.value}"}

    async def lookup_city(self, location: str, number: int = 1, lang: Optional[str] = None) -> List[CityLocation]:
        """Look up cities matching ``location``.

        Raises:
            CredentialError: The signing key could not be used.
            DataNotFoundError: QWeather found no matching location.
            UpstreamFetchError: Any other upstream failure.
        """
        params = {"location": location, "number": number}
        if lang:
            params["lang"] = lang

        data = await self._make_request(self.base_url, params=params, symbol=location)
        payload = self._decode(_GeoPayload, data, symbol=location)

        if payload.code == "404" or (payload.code == "200" and not payload.location):
            raise DataNotFoundError(f"No location matches '{location}'", self.name, location)

        if payload.code != "200":
            raise UpstreamFetchError(
                f"QWeather GeoAPI returned code {payload.code}",
                self.name,
                location
            )

        locations = [
            CityLocation(
                id=item.id,
                name=item.name,
                latitude=item.lat,
                longitude=item.lon,
                country=item.country,
                province=item.adm1,
                city=item.adm2,
                timezone=item.tz
            )
            for item in payload.location
        ]

        logger.info("Retrieved city locations from QWeather", extra={
            "provider": self.name,
            "location": location,
            "count": len(locations)
        })
        return locations
