"""Sitemap parser used to seed the crawl frontier."""

import logging
import re
from typing import Iterable, List, Optional, Set

import httpx

from a11y.constants import DEFAULT_SITEMAP_PATHS, MAX_SITEMAP_DEPTH, SITEMAP_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class SitemapParser:
    """
    Fetch XML sitemaps and extract page URLs.

    Supports:
    - Standard sitemap.xml files
    - Sitemap index files, followed recursively up to MAX_SITEMAP_DEPTH
    - Cycles between sitemap indexes (each sitemap is fetched once)

    Documents are scanned with regular expressions rather than an XML parser,
    so sitemaps with broken markup still yield whatever ``<loc>`` values they
    contain.
    """

    SITEMAP_LOC_PATTERN = re.compile(r"<sitemap>\s*<loc>([^<]+)</loc>", re.IGNORECASE)
    URL_LOC_PATTERN = re.compile(r"<url>\s*<loc>([^<]+)</loc>", re.IGNORECASE)

    def __init__(self, client: httpx.AsyncClient, max_depth: int = MAX_SITEMAP_DEPTH):
        """
        Initialize the sitemap parser.

        Args:
            client: HTTP client used for fetching sitemaps
            max_depth: Maximum sitemap index nesting to follow
        """
        self.client = client
        self.max_depth = max_depth
        self._urls: List[str] = []
        self._processed: Set[str] = set()

    async def discover(self, origin: str, declared: Optional[Iterable[str]] = None) -> List[str]:
        """
        Collect page URLs from the site's sitemaps.

        Args:
            origin: Site origin, used for the default sitemap locations
            declared: Sitemap URLs declared in robots.txt; when empty the
                default locations are probed instead

        Returns:
            Page URLs in document order (may contain duplicates)
        """
        sitemap_urls = list(declared or [])
        if not sitemap_urls:
            sitemap_urls = [f"{origin}{path}" for path in DEFAULT_SITEMAP_PATHS]

        self._urls = []
        self._processed = set()

        for sitemap_url in sitemap_urls:
            await self._parse_sitemap(sitemap_url, depth=0)

        logger.info(f"Extracted {len(self._urls)} URLs from {len(self._processed)} sitemap(s)")
        return list(self._urls)

    async def _parse_sitemap(self, sitemap_url: str, depth: int) -> None:
        """Fetch one sitemap and recurse into child sitemaps."""
        if depth > self.max_depth or sitemap_url in self._processed:
            return
        self._processed.add(sitemap_url)

        content = await self._fetch(sitemap_url)
        if content is None:
            return

        child_sitemaps = self.SITEMAP_LOC_PATTERN.findall(content)
        for child_url in child_sitemaps:
            child_url = child_url.strip()
            logger.debug(f"Found child sitemap: {child_url}")
            await self._parse_sitemap(child_url, depth + 1)

        for loc in self.URL_LOC_PATTERN.findall(content):
            self._urls.append(loc.strip())

    async def _fetch(self, sitemap_url: str) -> Optional[str]:
        """Fetch a sitemap document, returning None when it is unusable."""
        logger.info(f"Fetching sitemap: {sitemap_url}")
        try:
            response = await self.client.get(sitemap_url, timeout=SITEMAP_TIMEOUT_SECONDS)
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch sitemap {sitemap_url}: {e}")
            return None

        if not response.is_success:
            logger.debug(f"Sitemap {sitemap_url} returned status {response.status_code}")
            return None

        content_type = response.headers.get("content-type", "")
        if (
            "xml" not in content_type
            and "text/plain" not in content_type
            and not sitemap_url.endswith(".xml")
        ):
            logger.debug(f"Skipping non-XML sitemap {sitemap_url} ({content_type})")
            return None

        return response.text
