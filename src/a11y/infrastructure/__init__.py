"""
Infrastructure Package.

Provides the shared browser and job rate limiting.
"""

from .browser_pool import (
    BrowserManager,
    BrowserStatus,
    get_browser_manager,
    shutdown_browser,
)
from .rate_limiter import JobRateLimiter

__all__ = [
    "BrowserManager",
    "BrowserStatus",
    "get_browser_manager",
    "shutdown_browser",
    "JobRateLimiter",
]
