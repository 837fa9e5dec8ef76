"""Tests for the crawl orchestrator."""

import asyncio
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from a11y.exceptions import LinkExtractionError
from a11y.site_crawler import Frontier, SiteCrawler
from a11y.urls import build_allowed_origins


def urlset(*locs):
    entries = "".join(f"<url><loc>{loc}</loc></url>" for loc in locs)
    return f'<?xml version="1.0"?><urlset>{entries}</urlset>'


def make_client(robots_txt=None, sitemap=None, redirects=None):
    """Mock HTTP client for origin resolution, robots.txt and sitemap.xml.

    Args:
        robots_txt: Body of /robots.txt, 404 when None
        sitemap: Body of /sitemap.xml, 404 when None
        redirects: Map of host -> URL that HEAD requests are redirected to
    """
    redirects = redirects or {}

    def handler(request):
        if request.method == "HEAD":
            if request.url.host in redirects:
                return httpx.Response(301, headers={"location": redirects[request.url.host]})
            return httpx.Response(200)
        if request.url.path == "/robots.txt" and robots_txt is not None:
            return httpx.Response(200, text=robots_txt)
        if request.url.path == "/sitemap.xml" and sitemap is not None:
            return httpx.Response(200, text=sitemap, headers={"content-type": "application/xml"})
        return httpx.Response(404)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def make_crawler(client, links=None):
    """Crawler whose link extraction returns ``links[url]`` (empty by default)."""
    links = links or {}
    crawler = SiteCrawler(browser=MagicMock(), client=client)

    async def fake_extract(url, allowed_origins):
        return links.get(url, [])

    crawler.extract_links = AsyncMock(side_effect=fake_extract)
    return crawler


# =============================================================================
# Frontier Tests
# =============================================================================

class TestFrontier:
    """Test cases for the crawl frontier."""

    def test_fifo_order(self):
        frontier = Frontier()
        frontier.add("https://example.com/a")
        frontier.add("https://example.com/b")

        assert frontier.pop().url == "https://example.com/a"
        assert frontier.pop().url == "https://example.com/b"

    def test_rejects_duplicates_after_normalization(self):
        frontier = Frontier()

        assert frontier.add("https://example.com/a")
        assert not frontier.add("https://example.com/a/")
        assert not frontier.add("https://example.com/a#top")
        assert len(frontier) == 1

    def test_popped_urls_stay_seen(self):
        frontier = Frontier()
        frontier.add("https://example.com/a")
        frontier.pop()

        assert not frontier.add("https://example.com/a")
        assert frontier.discovered == 1


# =============================================================================
# SiteCrawler.crawl Tests
# =============================================================================

class TestSiteCrawler:
    """Test cases for SiteCrawler.crawl."""

    @pytest.mark.asyncio
    async def test_sitemap_fast_path_skips_link_extraction(self):
        sitemap = urlset(*[f"https://example.com/page-{i}" for i in range(50)])
        async with make_client(sitemap=sitemap) as client:
            crawler = make_crawler(client)
            result = await crawler.crawl("https://example.com", max_pages=10)

        assert len(result.urls) == 10
        assert len(set(result.urls)) == 10
        assert result.urls[0] == "https://example.com/"
        crawler.extract_links.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_robots_disallowed_urls_excluded(self):
        robots = "User-agent: *\nDisallow: /admin\n"
        sitemap = urlset(
            "https://example.com/about",
            "https://example.com/admin/users",
            "https://example.com/contact",
        )
        links = {"https://example.com/": ["https://example.com/admin/settings"]}

        async with make_client(robots_txt=robots, sitemap=sitemap) as client:
            crawler = make_crawler(client, links)
            result = await crawler.crawl("https://example.com", max_pages=10)

        assert result.urls == [
            "https://example.com/",
            "https://example.com/about",
            "https://example.com/contact",
        ]
        assert not any("/admin" in url for url in result.urls)

    @pytest.mark.asyncio
    async def test_bfs_deduplicates_and_filters_links(self):
        links = {
            "https://example.com/": [
                "https://example.com/a",
                "https://example.com/a#top",
                "https://example.com/a/",
                "https://example.com/b?y=2&x=1",
                "https://example.com/b?x=1&y=2",
                "https://other.com/c",
                "https://example.com/logo.png",
            ],
        }
        async with make_client() as client:
            crawler = make_crawler(client, links)
            result = await crawler.crawl("https://example.com", max_pages=5)

        assert result.urls == [
            "https://example.com/",
            "https://example.com/a",
            "https://example.com/b?x=1&y=2",
        ]
        assert result.errors == []

    @pytest.mark.asyncio
    async def test_link_extraction_cap(self):
        async with make_client() as client:
            crawler = SiteCrawler(browser=MagicMock(), client=client)
            calls = []

            async def one_new_link(url, allowed_origins):
                calls.append(url)
                return [f"https://example.com/p{len(calls)}"]

            crawler.extract_links = AsyncMock(side_effect=one_new_link)
            result = await crawler.crawl("https://example.com", max_pages=30)

        assert result.link_extractions == 20
        assert len(calls) == 20
        assert len(result.urls) == 21

    @pytest.mark.asyncio
    async def test_concurrent_crawls_keep_separate_extraction_caps(self):
        async with make_client() as client:
            crawler = SiteCrawler(browser=MagicMock(), client=client, max_link_extractions=5)
            calls = {"a.example": 0, "b.example": 0}

            async def one_new_link(url, allowed_origins):
                host = httpx.URL(url).host
                calls[host] += 1
                await asyncio.sleep(0)
                return [f"https://{host}/p{calls[host]}"]

            crawler.extract_links = AsyncMock(side_effect=one_new_link)
            result_a, result_b = await asyncio.gather(
                crawler.crawl("https://a.example", max_pages=30),
                crawler.crawl("https://b.example", max_pages=30),
            )

        assert calls == {"a.example": 5, "b.example": 5}
        assert result_a.link_extractions == 5
        assert result_b.link_extractions == 5
        assert len(result_a.urls) == 6
        assert all(url.startswith("https://a.example/") for url in result_a.urls)

    @pytest.mark.asyncio
    async def test_rejects_non_positive_budget(self):
        async with make_client() as client:
            crawler = make_crawler(client)
            with pytest.raises(ValueError):
                await crawler.crawl("https://example.com", max_pages=0)
            with pytest.raises(ValueError):
                await crawler.crawl("https://example.com", max_pages=-1)

    @pytest.mark.asyncio
    async def test_frontier_cap_stops_extraction(self):
        links = {
            "https://example.com/": [f"https://example.com/p{i}" for i in range(10)],
        }
        async with make_client() as client:
            crawler = make_crawler(client, links)
            result = await crawler.crawl("https://example.com", max_pages=5)

        assert len(result.urls) == 5
        assert crawler.extract_links.await_count == 1

    @pytest.mark.asyncio
    async def test_extraction_failure_is_recorded(self):
        async with make_client() as client:
            crawler = SiteCrawler(browser=MagicMock(), client=client)
            crawler.extract_links = AsyncMock(
                side_effect=LinkExtractionError("Link-extractie mislukt voor https://example.com/: boom")
            )
            result = await crawler.crawl("https://example.com", max_pages=10)

        assert result.urls == ["https://example.com/"]
        assert len(result.errors) == 1
        assert result.errors[0].url == "https://example.com/"
        assert "boom" in result.errors[0].message

    @pytest.mark.asyncio
    async def test_resolved_origin_and_www_variant(self):
        sitemap = urlset("https://example.com/about", "https://www.example.com/contact")
        redirects = {"example.com": "https://www.example.com/"}

        async with make_client(sitemap=sitemap, redirects=redirects) as client:
            crawler = make_crawler(client)
            result = await crawler.crawl("https://example.com", max_pages=10)

        assert result.urls == [
            "https://example.com/",
            "https://www.example.com/",
            "https://example.com/about",
            "https://www.example.com/contact",
        ]

    @pytest.mark.asyncio
    async def test_never_exceeds_budget(self):
        links = {
            "https://example.com/": [f"https://example.com/p{i}" for i in range(3)],
        }
        async with make_client() as client:
            crawler = make_crawler(client, links)
            result = await crawler.crawl("https://example.com", max_pages=2)

        assert len(result.urls) == 2

    @pytest.mark.asyncio
    async def test_progress_callback(self):
        on_progress = MagicMock()
        async with make_client() as client:
            crawler = make_crawler(client, {"https://example.com/": ["https://example.com/a"]})
            await crawler.crawl("https://example.com", max_pages=5, on_progress=on_progress)

        on_progress.assert_any_call(0, 1)
        on_progress.assert_called_with(2, 2)


# =============================================================================
# SiteCrawler.extract_links Tests
# =============================================================================

class FakeBrowser:
    """Stands in for BrowserManager, handing out one prepared page."""

    def __init__(self, page):
        self.page = page
        self.closed = 0

    @asynccontextmanager
    async def open_context(self):
        try:
            yield MagicMock(), self.page
        finally:
            self.closed += 1


def make_page(html="", url="https://example.com/"):
    page = AsyncMock()
    page.on = MagicMock()
    page.url = url
    page.content.return_value = html
    page.goto.return_value = MagicMock(status=200)
    return page


class TestExtractLinks:
    """Test cases for SiteCrawler.extract_links."""

    @pytest.mark.asyncio
    async def test_resolves_and_filters_anchors(self):
        html = """
        <html><body>
            <a href="/about">About</a>
            <a href="post-1">Post</a>
            <a href="https://other.com/">Elsewhere</a>
            <a href="mailto:info@example.com">Mail</a>
            <a href="https://www.example.com/contact">Contact</a>
            <a>No link</a>
        </body></html>
        """
        page = make_page(html, url="https://example.com/blog/")
        browser = FakeBrowser(page)
        crawler = SiteCrawler(browser=browser)

        links = await crawler.extract_links(
            "https://example.com/blog/", build_allowed_origins("https://example.com")
        )

        assert links == [
            "https://example.com/about",
            "https://example.com/blog/post-1",
            "https://www.example.com/contact",
        ]
        assert browser.closed == 1
        page.route.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_navigation_failure(self):
        page = make_page()
        page.goto.side_effect = Exception("net::ERR_NAME_NOT_RESOLVED")
        browser = FakeBrowser(page)
        crawler = SiteCrawler(browser=browser)

        with pytest.raises(LinkExtractionError, match="Link-extractie mislukt"):
            await crawler.extract_links("https://example.com/", {"https://example.com"})

        assert browser.closed == 1

    @pytest.mark.asyncio
    async def test_too_many_redirects(self):
        page = make_page()

        async def redirecting_goto(url, **kwargs):
            on_response = page.on.call_args[0][1]
            for _ in range(6):
                on_response(MagicMock(status=302))
            return MagicMock(status=200)

        page.goto.side_effect = redirecting_goto
        crawler = SiteCrawler(browser=FakeBrowser(page))

        with pytest.raises(LinkExtractionError, match="Te veel redirects \\(6\\)"):
            await crawler.extract_links("https://example.com/", {"https://example.com"})

    @pytest.mark.asyncio
    async def test_blocks_heavy_resources(self):
        page = make_page()
        crawler = SiteCrawler(browser=FakeBrowser(page))
        await crawler.extract_links("https://example.com/", {"https://example.com"})

        block = page.route.call_args[0][1]
        for resource_type, aborted in [("stylesheet", True), ("image", True), ("document", False)]:
            route = AsyncMock()
            route.request.resource_type = resource_type
            await block(route)
            assert route.abort.await_count == (1 if aborted else 0)
