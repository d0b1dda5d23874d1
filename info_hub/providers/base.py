"""
Base class for data providers in Info Hub Aggregator.
Defines the HTTP plumbing and error taxonomy shared by all upstream providers.
"""

from typing import Any, Dict, Optional, Type, TypeVar
import httpx
from pydantic import BaseModel, ValidationError

from ..core.config import settings
from ..core.logging_config import create_logger

logger = create_logger(__name__)

PayloadT = TypeVar("PayloadT", bound=BaseModel)


class ProviderError(Exception):
    """Base exception for provider errors."""

    def __init__(self, message: str, provider: str, symbol: Optional[str] = None):
        self.message = message
        self.provider = provider
        self.symbol = symbol
        super().__init__(self.message)


class UpstreamFetchError(ProviderError):
    """Network failure, non-success status or malformed payload from one upstream."""
    pass


class AuthenticationError(UpstreamFetchError):
    """Exception raised when the upstream rejects our credentials."""
    pass


class DataNotFoundError(UpstreamFetchError):
    """Exception raised when requested data is not found."""
    pass


class CredentialError(ProviderError):
    """Signing key unreadable or malformed, or token signing failed. Never retried."""
    pass


class BaseDataProvider:
    """Base class for upstream data providers."""

    def __init__(
        self,
        name: str,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.name = name
        self.base_url = base_url
        self.client: Optional[httpx.AsyncClient] = client
        self._owns_client = client is None

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.disconnect()

    async def connect(self) -> None:
        """Initialize HTTP client connection."""
        if self.client is None:
            timeout = httpx.Timeout(settings.http_timeout, connect=settings.http_connect_timeout)
            limits = httpx.Limits(max_keepalive_connections=10, max_connections=20)

            self.client = httpx.AsyncClient(
                timeout=timeout,
                limits=limits,
                headers=self._get_default_headers(),
                follow_redirects=True
            )
            self._owns_client = True

            logger.debug("Connected to provider", extra={"provider": self.name})

    async def disconnect(self) -> None:
        """Close HTTP client connection."""
        if self.client and self._owns_client:
            await self.client.aclose()
            self.client = None
            logger.debug("Disconnected from provider", extra={"provider": self.name})

    def _get_default_headers(self) -> Dict[str, str]:
        """Get default HTTP headers for requests."""
        return {
            'User-Agent': 'Info-Hub-Aggregator/1.0.0',
            'Accept': 'application/json',
            'Accept-Encoding': 'gzip, deflate'
        }

    def _get_auth_headers(self) -> Optional[Dict[str, str]]:
        """Get authentication headers for this provider."""
        return None

    async def _send(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        symbol: Optional[str] = None
    ) -> httpx.Response:
        """Issue a GET request and map transport failures to UpstreamFetchError.

        Credential failures raised while building the auth headers are not
        wrapped: they propagate to the caller untouched.
        """
        if not self.client:
            await self.connect()

        request_headers = self._get_default_headers()
        if headers:
            request_headers.update(headers)

        auth_headers = self._get_auth_headers()
        if auth_headers:
            request_headers.update(auth_headers)

        logger.debug("Making request to provider", extra={
            "provider": self.name,
            "url": url
        })

        try:
            response = await self.client.get(url, params=params, headers=request_headers)
        except httpx.TimeoutException:
            logger.warning("Request timeout", extra={"provider": self.name, "url": url})
            raise UpstreamFetchError(f"Request timeout for {self.name}", self.name, symbol)
        except httpx.HTTPError as e:
            logger.warning("HTTP error", extra={"provider": self.name, "url": url, "error": str(e)})
            raise UpstreamFetchError(f"HTTP error for {self.name}: {str(e)}", self.name, symbol)

        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"Authentication failed for {self.name} (HTTP {response.status_code})",
                self.name,
                symbol
            )

        if response.is_error:
            logger.warning("Upstream returned error status", extra={
                "provider": self.name,
                "url": url,
                "status_code": response.status_code
            })
            raise UpstreamFetchError(
                f"{self.name} responded with HTTP {response.status_code}",
                self.name,
                symbol
            )

        logger.debug("Received response from provider", extra={
            "provider": self.name,
            "status_code": response.status_code,
            "response_size": len(response.content)
        })
        return response

    async def _make_request(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        symbol: Optional[str] = None
    ) -> Any:
        """Make a GET request and return the decoded JSON body."""
        response = await self._send(url, params=params, headers=headers, symbol=symbol)
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamFetchError(
                f"Invalid JSON response from {self.name}: {str(e)}",
                self.name,
                symbol
            )

    async def _fetch_bytes(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        symbol: Optional[str] = None
    ) -> bytes:
        """Make a GET request and return the undecoded body.

        For documents that declare their own encoding (XML), so the parser
        rather than the Content-Type header decides how to decode them.
        """
        response = await self._send(url, params=params, headers=headers, symbol=symbol)
        return response.content

    def _decode(self, model: Type[PayloadT], payload: Any, symbol: Optional[str] = None) -> PayloadT:
        """Validate an upstream payload against its schema, failing closed."""
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            fields = ", ".join(
                ".".join(str(part) for part in error["loc"]) or "<root>"
                for error in e.errors()
            )
            raise UpstreamFetchError(
                f"Malformed payload from {self.name}: invalid or missing {fields}",
                self.name,
                symbol
            )
