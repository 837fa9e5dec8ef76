"""robots.txt fetching and parsing.

Discovery is fail-open: a missing, unreachable or malformed robots.txt
yields an empty rule set and never blocks a scan.
"""

import logging

import httpx

from a11y.constants import ROBOTS_TXT_TIMEOUT_SECONDS, SCANNER_AGENT_NAME
from a11y.models import RobotsRules

logger = logging.getLogger(__name__)


def parse_robots_txt(text: str, agent_name: str = SCANNER_AGENT_NAME) -> RobotsRules:
    """Parse robots.txt content into disallow rules and sitemap URLs.

    Args:
        text: Raw robots.txt content
        agent_name: Scanner name matched (case-insensitively) against
            User-agent lines

    Returns:
        RobotsRules for the wildcard agent and any group naming the scanner
    """
    disallowed: list[str] = []
    sitemap_urls: list[str] = []
    applies_to_us = False
    agent_name = agent_name.lower()

    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        directive, sep, value = line.partition(":")
        if not sep:
            continue
        directive = directive.strip().lower()
        # Drop trailing comments ("Disallow: /tmp # scratch")
        value = value.split("#", 1)[0].strip()

        if directive == "user-agent":
            applies_to_us = value == "*" or agent_name in value.lower()
        elif directive == "disallow":
            if applies_to_us and value:
                disallowed.append(value)
        elif directive == "sitemap":
            if value:
                sitemap_urls.append(value)

    return RobotsRules(disallowed=tuple(disallowed), sitemap_urls=tuple(sitemap_urls))


async def fetch_robots_txt(
    client: httpx.AsyncClient,
    origin: str,
    agent_name: str = SCANNER_AGENT_NAME,
) -> RobotsRules:
    """Fetch and parse ``{origin}/robots.txt``.

    Args:
        client: HTTP client used for the request
        origin: Site origin, e.g. ``https://example.com``
        agent_name: Scanner name for User-agent matching

    Returns:
        Parsed rules, or an empty permissive rule set on any failure
    """
    robots_url = f"{origin}/robots.txt"

    try:
        response = await client.get(robots_url, timeout=ROBOTS_TXT_TIMEOUT_SECONDS)
    except httpx.HTTPError as e:
        logger.warning(f"Could not load robots.txt from {robots_url}: {e}")
        return RobotsRules()

    if not response.is_success:
        logger.info(f"No robots.txt found at {robots_url} (status: {response.status_code})")
        return RobotsRules()

    rules = parse_robots_txt(response.text, agent_name)
    logger.info(
        f"Loaded robots.txt from {robots_url}: {len(rules.disallowed)} disallow rules, "
        f"{len(rules.sitemap_urls)} sitemaps"
    )
    return rules
