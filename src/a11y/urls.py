"""URL normalization and crawl scope classification."""

from typing import Iterable, Set, Union
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from a11y.constants import SKIP_EXTENSIONS
from a11y.models import RobotsRules


def normalize_url(url: str) -> str:
    """Normalize URL by removing the fragment, sorting query parameters and
    stripping a trailing slash from non-root paths.

    Args:
        url: URL to normalize

    Returns:
        Normalized URL, or the input unchanged when it cannot be parsed
    """
    try:
        parsed = urlparse(url.strip())
        if not parsed.scheme or not parsed.netloc:
            return url

        path = parsed.path or "/"
        if len(path) > 1 and path.endswith("/"):
            path = path.rstrip("/") or "/"

        # Stable sort keeps repeated keys in their original relative order
        params = parse_qsl(parsed.query, keep_blank_values=True)
        query = urlencode(sorted(params, key=lambda kv: kv[0]))

        return urlunparse((
            parsed.scheme.lower(),
            parsed.netloc.lower(),
            path,
            parsed.params,
            query,
            "",
        ))
    except ValueError:
        return url


def get_origin(url: str) -> str:
    """Return ``scheme://host[:port]`` for a URL."""
    parsed = urlparse(url)
    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}"


def build_allowed_origins(origin: str) -> Set[str]:
    """Build the set of in-scope origins: the origin plus its www or bare variant.

    Sitemaps frequently list URLs on the other variant of the host.
    """
    origins = {origin}
    try:
        parsed = urlparse(origin)
        host = parsed.netloc
        if not parsed.scheme or not host:
            return origins
        if host.startswith("www."):
            origins.add(f"{parsed.scheme}://{host[4:]}")
        else:
            origins.add(f"{parsed.scheme}://www.{host}")
    except ValueError:
        pass
    return origins


def _matches_origin(url: str, origin: str) -> bool:
    # A bare prefix check would accept https://example.com.evil.net
    if not url.startswith(origin):
        return False
    rest = url[len(origin):]
    return rest == "" or rest[0] in "/?#"


def is_in_scope(url: str, origins: Union[str, Iterable[str]]) -> bool:
    """Check whether a URL is an internal HTML page worth analyzing.

    Args:
        url: Normalized URL to check
        origins: Allowed origin, or a collection of allowed origins

    Returns:
        True if the URL belongs to an allowed origin and does not point at a
        file download, image, script or similar non-HTML resource
    """
    if isinstance(origins, str):
        origins = (origins,)

    if not any(_matches_origin(url, origin) for origin in origins):
        return False

    try:
        path = urlparse(url).path.lower()
    except ValueError:
        return False

    return not path.endswith(SKIP_EXTENSIONS)


def is_blocked_by_robots(url: str, rules: RobotsRules) -> bool:
    """Check if a URL's path is disallowed by robots.txt rules.

    Rules are path prefixes; a trailing ``*`` wildcard is matched as a prefix.
    """
    try:
        path = urlparse(url).path or "/"
    except ValueError:
        return False

    for disallowed in rules.disallowed:
        prefix = disallowed[:-1] if disallowed.endswith("*") else disallowed
        if path.startswith(prefix):
            return True
    return False
