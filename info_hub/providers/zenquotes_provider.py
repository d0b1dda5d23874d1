"""
ZenQuotes data provider implementation.
"""

import re
from typing import List, Optional
import httpx
from pydantic import BaseModel, RootModel

from .base import BaseDataProvider, UpstreamFetchError
from ..api.schemas import InspirationalQuote
from ..core.config import settings
from ..core.logging_config import create_logger

logger = create_logger(__name__)

_AUTHOR_PREFIX = re.compile(r"^,\s*")


class _ZenQuote(BaseModel):
    q: str
    a: str


class _ZenQuotePayload(RootModel[List[_ZenQuote]]):
    pass


class ZenQuotesProvider(BaseDataProvider):
    """ZenQuotes provider for random quotes."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        super().__init__(name="zenquotes", base_url=settings.zenquotes_url, client=client)

    async def get_random_quote(self) -> InspirationalQuote:
        data = await self._make_request(self.base_url)
        quotes = self._decode(_ZenQuotePayload, data).root

        if not quotes or not quotes[0].q.strip():
            raise UpstreamFetchError("ZenQuotes returned no quote", self.name)

        # ZenQuotes sometimes prefixes the author with a stray comma
        author = _AUTHOR_PREFIX.sub("", quotes[0].a).strip()
        return InspirationalQuote(text=quotes[0].q.strip(), author=author or "Unknown")
