"""Website accessibility scanner using Playwright and axe-core."""

__version__ = "0.1.0"

from a11y.site_crawler import SiteCrawler
from a11y.analyzer import PageAnalyzer
from a11y.rule_engine import AxeRuleEngine
from a11y.worker import ScanWorker, create_worker
from a11y.queue import ScanQueue
from a11y.database import get_store
from a11y.score import page_score, overall_score
from a11y.urls import normalize_url
from a11y.models import (
    Severity,
    ScanStatus,
    FailureReason,
    Issue,
    PageResult,
    ScanResult,
    QuickScanResult,
    CrawlResult,
    ScanJob,
)
from a11y.exceptions import (
    ScannerError,
    RuleEngineError,
    LinkExtractionError,
    NoPagesFoundError,
    PageAnalysisError,
)
from a11y.config import settings, ScannerConfig

from a11y.infrastructure import (
    BrowserManager,
    BrowserStatus,
    JobRateLimiter,
)

__all__ = [
    # Core
    "SiteCrawler",
    "PageAnalyzer",
    "AxeRuleEngine",
    "ScanWorker",
    "create_worker",
    "ScanQueue",
    "get_store",
    "page_score",
    "overall_score",
    "normalize_url",
    # Models
    "Severity",
    "ScanStatus",
    "FailureReason",
    "Issue",
    "PageResult",
    "ScanResult",
    "QuickScanResult",
    "CrawlResult",
    "ScanJob",
    # Errors
    "ScannerError",
    "RuleEngineError",
    "LinkExtractionError",
    "NoPagesFoundError",
    "PageAnalysisError",
    "settings",
    "ScannerConfig",
    # Infrastructure
    "BrowserManager",
    "BrowserStatus",
    "JobRateLimiter",
]
