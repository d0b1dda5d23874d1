"""
RSS feed provider implementation.
Fetches RSS 2.0 documents and parses their channel items into news articles.
"""

import html
import re
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Dict, List, Optional, Union
import httpx

from .base import BaseDataProvider, UpstreamFetchError
from ..api.schemas import NewsArticle
from ..core.logging_config import create_logger

logger = create_logger(__name__)

CONTENT_ENCODED = "{http://purl.org/rss/1.0/modules/content/}encoded"
DESCRIPTION_FALLBACK_LENGTH = 100

_TAG_PATTERN = re.compile(r"<[^>]*>")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def clean_text(text: Optional[str]) -> str:
    """Strip HTML tags and entities and collapse whitespace."""
    if not text:
        return ""
    cleaned = _TAG_PATTERN.sub("", text)
    cleaned = html.unescape(cleaned).replace("\xa0", " ")
    return _WHITESPACE_PATTERN.sub(" ", cleaned).strip()


def parse_pub_date(value: Optional[str], fallback: datetime) -> datetime:
    """Parse an RFC 822 pubDate; missing or unparseable dates use ``fallback``."""
    if not value or not value.strip():
        return fallback
    try:
        parsed = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError, IndexError):
        return fallback
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _child_text(element: ET.Element, tag: str) -> Optional[str]:
    child = element.find(tag)
    if child is None or child.text is None:
        return None
    text = child.text.strip()
    return text or None


class RssFeedProvider(BaseDataProvider):
    """Provider for plain RSS news feeds."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        super().__init__(name="rss", client=client)

    def _get_default_headers(self) -> Dict[str, str]:
        headers = super()._get_default_headers()
        headers['Accept'] = 'application/rss+xml, application/xml;q=0.9, text/xml;q=0.8'
        return headers

    async def fetch_feed(self, url: str, source: str, category: str) -> List[NewsArticle]:
        """Fetch and parse one feed.

        Raises:
            UpstreamFetchError: The feed could not be fetched, is not
                well-formed XML, or has no channel element.
        """
        document = await self._fetch_bytes(url, symbol=source)
        articles = self.parse_feed(document, source, category)

        logger.info("Retrieved RSS feed", extra={
            "provider": self.name,
            "source": source,
            "count": len(articles)
        })
        return articles

    def parse_feed(
        self,
        document: Union[bytes, str],
        source: str,
        category: str,
        fetched_at: Optional[datetime] = None
    ) -> List[NewsArticle]:
        """Parse an RSS document into articles; items without title or link are skipped.

        Pass raw bytes where possible: the XML declaration then decides the
        encoding.
        """
        fetched_at = fetched_at or datetime.now(timezone.utc)

        try:
            root = ET.fromstring(document)
        except ET.ParseError as e:
            raise UpstreamFetchError(f"Malformed feed document: {str(e)}", self.name, source)

        channels = [root] if root.tag == "channel" else root.findall("channel")
        if not channels:
            raise UpstreamFetchError("Feed document has no channel", self.name, source)

        articles = []
        for channel in channels:
            for item in channel.findall("item"):
                title = _child_text(item, "title")
                link = _child_text(item, "link")
                if not title or not link:
                    continue

                description = (
                    _child_text(item, "description")
                    or _child_text(item, CONTENT_ENCODED)
                    or title[:DESCRIPTION_FALLBACK_LENGTH]
                )

                articles.append(NewsArticle(
                    title=clean_text(title) or title,
                    description=clean_text(description),
                    source=source,
                    url=link,
                    published_at=parse_pub_date(_child_text(item, "pubDate"), fetched_at),
                    category=category
                ))

        return articles
