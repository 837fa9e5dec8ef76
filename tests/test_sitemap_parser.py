"""Tests for the sitemap parser."""

import httpx
import pytest

from a11y.sitemap_parser import SitemapParser


def urlset(*locs):
    entries = "".join(f"<url><loc>{loc}</loc></url>" for loc in locs)
    return f'<?xml version="1.0"?><urlset>{entries}</urlset>'


def sitemap_index(*locs):
    entries = "".join(f"<sitemap><loc>{loc}</loc></sitemap>" for loc in locs)
    return f'<?xml version="1.0"?><sitemapindex>{entries}</sitemapindex>'


def make_client(documents, content_type="application/xml"):
    """Client serving ``documents`` (url -> body) and 404 for anything else."""
    requested = []

    def handler(request):
        url = str(request.url)
        requested.append(url)
        if url in documents:
            return httpx.Response(200, text=documents[url], headers={"content-type": content_type})
        return httpx.Response(404)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client, requested


class TestSitemapParser:
    """Test cases for SitemapParser."""

    @pytest.mark.asyncio
    async def test_default_locations(self):
        client, requested = make_client({
            "https://example.com/sitemap.xml": urlset(
                "https://example.com/", "https://example.com/about"
            ),
        })
        async with client:
            urls = await SitemapParser(client).discover("https://example.com")

        assert urls == ["https://example.com/", "https://example.com/about"]
        assert "https://example.com/sitemap_index.xml" in requested

    @pytest.mark.asyncio
    async def test_declared_sitemaps_replace_defaults(self):
        client, requested = make_client({
            "https://example.com/pages.xml": urlset("https://example.com/contact"),
        })
        async with client:
            urls = await SitemapParser(client).discover(
                "https://example.com", ["https://example.com/pages.xml"]
            )

        assert urls == ["https://example.com/contact"]
        assert requested == ["https://example.com/pages.xml"]

    @pytest.mark.asyncio
    async def test_follows_sitemap_index(self):
        client, _ = make_client({
            "https://example.com/sitemap.xml": sitemap_index(
                "https://example.com/posts.xml", "https://example.com/pages.xml"
            ),
            "https://example.com/posts.xml": urlset("https://example.com/blog/1"),
            "https://example.com/pages.xml": urlset("https://example.com/about"),
        })
        async with client:
            urls = await SitemapParser(client).discover(
                "https://example.com", ["https://example.com/sitemap.xml"]
            )

        assert urls == ["https://example.com/blog/1", "https://example.com/about"]

    @pytest.mark.asyncio
    async def test_index_cycle_fetched_once(self):
        client, requested = make_client({
            "https://example.com/a.xml": sitemap_index("https://example.com/b.xml"),
            "https://example.com/b.xml": sitemap_index("https://example.com/a.xml"),
        })
        async with client:
            urls = await SitemapParser(client).discover(
                "https://example.com", ["https://example.com/a.xml"]
            )

        assert urls == []
        assert requested.count("https://example.com/a.xml") == 1

    @pytest.mark.asyncio
    async def test_depth_limit(self):
        documents = {
            f"https://example.com/level{i}.xml": sitemap_index(f"https://example.com/level{i + 1}.xml")
            for i in range(6)
        }
        client, requested = make_client(documents)
        async with client:
            await SitemapParser(client, max_depth=3).discover(
                "https://example.com", ["https://example.com/level0.xml"]
            )

        assert "https://example.com/level3.xml" in requested
        assert "https://example.com/level4.xml" not in requested

    @pytest.mark.asyncio
    async def test_rejects_html_content_type_without_xml_extension(self):
        client, _ = make_client(
            {"https://example.com/sitemap": urlset("https://example.com/page")},
            content_type="text/html",
        )
        async with client:
            urls = await SitemapParser(client).discover(
                "https://example.com", ["https://example.com/sitemap"]
            )

        assert urls == []

    @pytest.mark.asyncio
    async def test_fetch_error_is_skipped(self):
        def handler(request):
            if request.url.path == "/broken.xml":
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(
                200,
                text=urlset("https://example.com/ok"),
                headers={"content-type": "application/xml"},
            )

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            urls = await SitemapParser(client).discover(
                "https://example.com",
                ["https://example.com/broken.xml", "https://example.com/good.xml"],
            )

        assert urls == ["https://example.com/ok"]
