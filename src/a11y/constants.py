# src/a11y/constants.py
"""Centralized constants for the accessibility scanner.

This module contains magic numbers and fixed values that are used across
multiple modules. For user-configurable values, see config.py and
ScannerConfig.
"""

# =============================================================================
# Identity
# =============================================================================

# Name used to match robots.txt User-agent groups
SCANNER_AGENT_NAME = "siteproof"

DEFAULT_USER_AGENT = "SiteProof/1.0 (Accessibility Scanner)"


# =============================================================================
# Discovery Constants
# =============================================================================

# Timeout for fetching robots.txt (seconds)
ROBOTS_TXT_TIMEOUT_SECONDS = 5.0

# Timeout for fetching a single sitemap document (seconds)
SITEMAP_TIMEOUT_SECONDS = 10.0

# Timeout for the HEAD request that resolves the canonical origin (seconds)
ORIGIN_RESOLVE_TIMEOUT_SECONDS = 5.0

# Maximum nesting of sitemap indexes that will be followed
MAX_SITEMAP_DEPTH = 3

# Probed when robots.txt declares no sitemaps
DEFAULT_SITEMAP_PATHS = ("/sitemap.xml", "/sitemap_index.xml")


# =============================================================================
# Crawler Constants
# =============================================================================

# Default pages to scan per website
DEFAULT_MAX_PAGES = 10

# Navigation timeout for link discovery (milliseconds)
LINK_EXTRACTION_TIMEOUT_MS = 15_000

# Redirects observed during link discovery before the page is rejected
MAX_REDIRECTS = 5

# Hard cap on pages whose links get extracted during BFS
MAX_LINK_EXTRACTIONS = 20

# BFS stops extracting links once the frontier holds this many times max_pages
FRONTIER_GROWTH_FACTOR = 2

# Resource types aborted while extracting links
LINK_EXTRACTION_BLOCKED_RESOURCES = ("image", "font", "media", "stylesheet")

# Paths ending with these extensions are never treated as HTML pages
SKIP_EXTENSIONS = (
    ".pdf", ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".ico",
    ".mp3", ".mp4", ".avi", ".mov", ".wmv", ".flv", ".webm",
    ".zip", ".rar", ".tar", ".gz", ".7z",
    ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    ".css", ".js", ".json", ".xml", ".rss", ".atom",
    ".woff", ".woff2", ".ttf", ".eot",
)


# =============================================================================
# Page Analysis Constants
# =============================================================================

# Default navigation timeout for analysis (milliseconds)
DEFAULT_PAGE_TIMEOUT_MS = 15_000

# Quiet window without DOM mutations before the page counts as stable (ms)
DOM_QUIET_WINDOW_MS = 500

# Ceiling for the DOM stability wait (ms)
DOM_STABILITY_MAX_WAIT_MS = 3_000

# Resource types aborted during analysis; images are added when configured
ANALYSIS_BLOCKED_RESOURCES = ("font", "media")

# axe-core tag filter
AXE_RUN_TAGS = (
    "wcag2a",
    "wcag2aa",
    "wcag21a",
    "wcag21aa",
    "wcag22aa",
    "best-practice",
)

# Default download location for the axe-core source
DEFAULT_AXE_CORE_URL = "https://cdnjs.cloudflare.com/ajax/libs/axe-core/4.10.2/axe.min.js"

# Stored HTML snippets are cut at this length
MAX_HTML_SNIPPET_LENGTH = 500

DESKTOP_VIEWPORT_WIDTH = 1280
DESKTOP_VIEWPORT_HEIGHT = 720


# =============================================================================
# Scoring Constants
# =============================================================================

# Points deducted per issue, keyed by Severity value
SEVERITY_WEIGHTS = {
    "CRITICAL": 10.0,
    "SERIOUS": 5.0,
    "MODERATE": 2.0,
    "MINOR": 0.5,
}


# =============================================================================
# Worker & Queue Constants
# =============================================================================

# Pages analyzed simultaneously within one scan
DEFAULT_BATCH_SIZE = 3

# Jobs processed simultaneously by one worker
DEFAULT_WORKER_CONCURRENCY = 2

# Job rate limit: at most this many jobs ...
DEFAULT_RATE_LIMIT_MAX_JOBS = 5
# ... per this many seconds
DEFAULT_RATE_LIMIT_WINDOW_SECONDS = 60.0

SCAN_JOB_ATTEMPTS = 3
SCAN_JOB_BACKOFF_MS = 5_000

QUICK_SCAN_JOB_ATTEMPTS = 2
QUICK_SCAN_JOB_BACKOFF_MS = 3_000

# Base for exponential backoff calculation
EXPONENTIAL_BACKOFF_BASE = 2

# Issues kept in a quick scan result
QUICK_SCAN_TOP_ISSUES = 5
