"""Website crawler that selects the pages of a scan.

Pages are discovered from robots.txt-declared (or default) sitemaps first.
Only when the sitemaps do not fill the page budget does the crawler fall
back to a breadth-first walk over rendered pages' links, which is by far
the most expensive crawl operation.
"""

import logging
from collections import deque
from typing import Callable, Deque, List, Optional, Set
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from a11y.config import ScannerConfig
from a11y.constants import (
    FRONTIER_GROWTH_FACTOR,
    LINK_EXTRACTION_BLOCKED_RESOURCES,
    LINK_EXTRACTION_TIMEOUT_MS,
    MAX_LINK_EXTRACTIONS,
    MAX_REDIRECTS,
    ORIGIN_RESOLVE_TIMEOUT_SECONDS,
    SCANNER_AGENT_NAME,
)
from a11y.exceptions import LinkExtractionError
from a11y.infrastructure.browser_pool import BrowserManager
from a11y.models import CrawlError, CrawlResult, DiscoveryResult, FrontierEntry, RobotsRules
from a11y.robots import fetch_robots_txt
from a11y.sitemap_parser import SitemapParser
from a11y.urls import (
    build_allowed_origins,
    get_origin,
    is_blocked_by_robots,
    is_in_scope,
    normalize_url,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class Frontier:
    """FIFO queue of normalized URLs with a seen set.

    A URL is accepted at most once, however often it is discovered.
    """

    def __init__(self):
        self._queue: Deque[FrontierEntry] = deque()
        self._seen: Set[str] = set()

    def add(self, url: str, depth: int = 0) -> bool:
        """Normalize and enqueue a URL; returns False for duplicates."""
        normalized = normalize_url(url)
        if normalized in self._seen:
            return False
        self._seen.add(normalized)
        self._queue.append(FrontierEntry(url=normalized, depth=depth))
        return True

    def pop(self) -> FrontierEntry:
        return self._queue.popleft()

    def seen(self, url: str) -> bool:
        return normalize_url(url) in self._seen

    @property
    def discovered(self) -> int:
        """Number of distinct URLs ever accepted."""
        return len(self._seen)

    def __len__(self) -> int:
        return len(self._queue)

    def __bool__(self) -> bool:
        return bool(self._queue)

    def peek_urls(self, limit: int) -> List[str]:
        return [entry.url for entry in list(self._queue)[:limit]]


class SiteCrawler:
    """Discovers the pages of a website for analysis.

    The crawl is bounded three ways: the page budget, a frontier size cap
    of ``FRONTIER_GROWTH_FACTOR * max_pages`` and a cap on the number of
    pages whose links are extracted.
    """

    def __init__(
        self,
        browser: BrowserManager,
        config: Optional[ScannerConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        agent_name: str = SCANNER_AGENT_NAME,
        max_link_extractions: int = MAX_LINK_EXTRACTIONS,
    ):
        """Initialize the crawler.

        Args:
            browser: Shared browser used for link extraction
            config: Scanner configuration
            client: HTTP client for robots.txt, sitemaps and origin
                resolution; one is created per crawl when omitted
            agent_name: Scanner name for robots.txt matching
            max_link_extractions: Hard cap on link-extracted pages
        """
        self.browser = browser
        self.config = config or ScannerConfig()
        self.agent_name = agent_name
        self.max_link_extractions = max_link_extractions
        self._client = client

    async def crawl(
        self,
        seed_url: str,
        max_pages: int,
        on_progress: Optional[ProgressCallback] = None,
    ) -> CrawlResult:
        """Select up to ``max_pages`` same-origin URLs to analyze.

        Args:
            seed_url: Starting URL
            max_pages: Page budget
            on_progress: Called with (pages selected, pages discovered)

        Returns:
            CrawlResult with at most ``max_pages`` distinct normalized URLs
            and the pages whose link extraction failed

        Raises:
            ValueError: If ``max_pages`` is not positive
        """
        if max_pages < 1:
            raise ValueError(f"max_pages must be positive, got {max_pages}")

        if self._client is not None:
            return await self._crawl(self._client, seed_url, max_pages, on_progress)

        async with httpx.AsyncClient(
            headers={"User-Agent": self.config.user_agent},
            follow_redirects=True,
        ) as client:
            return await self._crawl(client, seed_url, max_pages, on_progress)

    async def _crawl(
        self,
        client: httpx.AsyncClient,
        seed_url: str,
        max_pages: int,
        on_progress: Optional[ProgressCallback],
    ) -> CrawlResult:
        link_extractions = 0
        errors: List[CrawlError] = []
        frontier = Frontier()

        seed_origin = get_origin(seed_url)
        resolved_origin = await self.resolve_origin(client, seed_url)
        origin = resolved_origin or seed_origin
        allowed_origins = build_allowed_origins(origin)

        frontier.add(seed_url)
        if resolved_origin and resolved_origin != seed_origin:
            frontier.add(f"{resolved_origin}/")

        logger.info(f"Starting crawl from {seed_url} (origin {origin}, max {max_pages} pages)")

        discovery = await self.discover(client, origin)
        rules = discovery.rules
        for url in discovery.sitemap_seed_urls:
            self._enqueue(frontier, url, 1, allowed_origins, rules)

        if on_progress:
            on_progress(0, len(frontier))

        # Sitemap-seeded sites never pay for link extraction
        if len(frontier) >= max_pages:
            urls = frontier.peek_urls(max_pages)
            logger.info(f"Sitemap provided {len(frontier)} URLs, skipping link crawl")
            return CrawlResult(urls=urls, errors=errors, link_extractions=0)

        result: List[str] = []
        extraction_limit = min(max_pages, self.max_link_extractions)

        while frontier and len(result) < max_pages:
            entry = frontier.pop()
            result.append(entry.url)

            if on_progress:
                on_progress(len(result), max(frontier.discovered, len(result)))

            if (
                frontier.discovered >= max_pages * FRONTIER_GROWTH_FACTOR
                or link_extractions >= extraction_limit
            ):
                continue

            try:
                link_extractions += 1
                links = await self.extract_links(entry.url, allowed_origins)
            except LinkExtractionError as e:
                logger.warning(f"  ⚠️  {e}")
                errors.append(CrawlError(url=entry.url, message=str(e)))
                continue

            queued = sum(
                self._enqueue(frontier, link, entry.depth + 1, allowed_origins, rules)
                for link in links
            )
            if queued:
                logger.info(f"  → Queued {queued} new links from {entry.url}")

        logger.info(
            f"Crawl complete: {len(result)} pages selected, "
            f"{link_extractions} link extractions, {len(errors)} errors"
        )
        return CrawlResult(
            urls=result[:max_pages], errors=errors, link_extractions=link_extractions
        )

    def _enqueue(
        self,
        frontier: Frontier,
        url: str,
        depth: int,
        allowed_origins: Set[str],
        rules: RobotsRules,
    ) -> bool:
        normalized = normalize_url(url)
        if frontier.seen(normalized):
            return False
        if not is_in_scope(normalized, allowed_origins):
            return False
        if is_blocked_by_robots(normalized, rules):
            logger.debug(f"Skipping {normalized} (disallowed by robots.txt)")
            return False
        return frontier.add(normalized, depth)

    async def resolve_origin(self, client: httpx.AsyncClient, seed_url: str) -> Optional[str]:
        """Resolve the canonical origin by following redirects of the seed URL.

        Returns:
            Origin of the final URL (e.g. ``https://www.example.com`` for
            ``https://example.com``), or None when the request fails
        """
        try:
            response = await client.head(
                seed_url,
                timeout=ORIGIN_RESOLVE_TIMEOUT_SECONDS,
                follow_redirects=True,
            )
        except httpx.HTTPError as e:
            logger.info(f"Could not resolve origin of {seed_url}: {e}")
            return None
        return get_origin(str(response.url))

    async def discover(self, client: httpx.AsyncClient, origin: str) -> DiscoveryResult:
        """Fetch robots.txt and sitemaps for an origin.

        Every fetch is a read that may fail independently; failures only
        shrink the result.
        """
        rules = await fetch_robots_txt(client, origin, self.agent_name)
        parser = SitemapParser(client)
        sitemap_urls = await parser.discover(origin, rules.sitemap_urls)
        return DiscoveryResult(rules=rules, sitemap_seed_urls=sitemap_urls)

    async def extract_links(self, url: str, allowed_origins: Set[str]) -> List[str]:
        """Render a page and return the links pointing at an allowed origin.

        Raises:
            LinkExtractionError: On navigation failure or a redirect loop
        """
        redirect_count = 0

        def count_redirects(response) -> None:
            nonlocal redirect_count
            if 300 <= response.status < 400:
                redirect_count += 1

        async def block_heavy_resources(route) -> None:
            if route.request.resource_type in LINK_EXTRACTION_BLOCKED_RESOURCES:
                await route.abort()
            else:
                await route.continue_()

        try:
            async with self.browser.open_context() as (context, page):
                await page.route("**/*", block_heavy_resources)
                page.on("response", count_redirects)

                await page.goto(
                    url,
                    wait_until="domcontentloaded",
                    timeout=LINK_EXTRACTION_TIMEOUT_MS,
                )

                if redirect_count > MAX_REDIRECTS:
                    raise LinkExtractionError(
                        f"Te veel redirects ({redirect_count}) bij het laden van {url}"
                    )

                html = await page.content()
                base_url = page.url or url
        except LinkExtractionError:
            raise
        except Exception as e:
            raise LinkExtractionError(f"Link-extractie mislukt voor {url}: {e}") from e

        return self._parse_links(html, base_url, allowed_origins)

    @staticmethod
    def _parse_links(html: str, base_url: str, allowed_origins: Set[str]) -> List[str]:
        soup = BeautifulSoup(html, "html.parser")
        links: List[str] = []
        for anchor in soup.find_all("a", href=True):
            try:
                absolute_url = urljoin(base_url, anchor["href"].strip())
            except ValueError:
                continue
            if any(absolute_url.startswith(origin) for origin in allowed_origins):
                links.append(absolute_url)
        return links
