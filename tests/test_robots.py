"""Tests for robots.txt parsing and fetching."""

import httpx
import pytest

from a11y.robots import fetch_robots_txt, parse_robots_txt

ROBOTS_TXT = """
# Example robots.txt
User-agent: *
Disallow: /admin
Disallow: /tmp  # scratch space
Disallow:

User-agent: Googlebot
Disallow: /google-only

User-agent: SiteProof
Disallow: /no-scanners

Sitemap: https://example.com/sitemap.xml
Sitemap: https://example.com/news-sitemap.xml
"""


class TestParseRobotsTxt:
    """Test cases for parse_robots_txt."""

    def test_collects_rules_for_wildcard_and_own_agent(self):
        rules = parse_robots_txt(ROBOTS_TXT)

        assert rules.disallowed == ("/admin", "/tmp", "/no-scanners")

    def test_ignores_other_agents(self):
        rules = parse_robots_txt(ROBOTS_TXT)
        assert "/google-only" not in rules.disallowed

    def test_collects_sitemaps_regardless_of_agent(self):
        rules = parse_robots_txt(ROBOTS_TXT)
        assert rules.sitemap_urls == (
            "https://example.com/sitemap.xml",
            "https://example.com/news-sitemap.xml",
        )

    def test_empty_input(self):
        rules = parse_robots_txt("")
        assert rules.disallowed == ()
        assert rules.sitemap_urls == ()


class TestFetchRobotsTxt:
    """Test cases for fetch_robots_txt."""

    @pytest.mark.asyncio
    async def test_fetches_and_parses(self):
        def handler(request):
            assert request.url.path == "/robots.txt"
            return httpx.Response(200, text=ROBOTS_TXT)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            rules = await fetch_robots_txt(client, "https://example.com")

        assert "/admin" in rules.disallowed

    @pytest.mark.asyncio
    async def test_missing_robots_is_permissive(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(404))

        async with httpx.AsyncClient(transport=transport) as client:
            rules = await fetch_robots_txt(client, "https://example.com")

        assert rules.disallowed == ()

    @pytest.mark.asyncio
    async def test_network_error_is_permissive(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            rules = await fetch_robots_txt(client, "https://example.com")

        assert rules.disallowed == ()
        assert rules.sitemap_urls == ()
