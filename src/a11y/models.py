"""Data models for accessibility scanning."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Severity(Enum):
    """Issue severity, ordered from most to least severe."""
    CRITICAL = "CRITICAL"
    SERIOUS = "SERIOUS"
    MODERATE = "MODERATE"
    MINOR = "MINOR"

    @property
    def rank(self) -> int:
        """Sort key: 0 for CRITICAL up to 3 for MINOR."""
        return list(Severity).index(self)


class ScanStatus(Enum):
    """Lifecycle of a scan job."""
    QUEUED = "QUEUED"
    CRAWLING = "CRAWLING"
    SCANNING = "SCANNING"
    ANALYZING = "ANALYZING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class FailureReason(Enum):
    """Why a page could not be analyzed."""
    NAVIGATION_TIMEOUT = "navigation_timeout"
    HTTP_ERROR = "http_error"
    NO_RESPONSE = "no_response"
    RULE_ENGINE_FAILURE = "rule_engine_failure"
    UNEXPECTED_ERROR = "unexpected_error"


@dataclass(frozen=True)
class FrontierEntry:
    """A normalized URL waiting in the crawl frontier."""
    url: str
    depth: int = 0


@dataclass(frozen=True)
class RobotsRules:
    """Disallow rules and sitemap declarations from robots.txt.

    The default instance is empty, which allows everything.
    """
    disallowed: tuple[str, ...] = ()
    sitemap_urls: tuple[str, ...] = ()


@dataclass
class DiscoveryResult:
    """Output of robots.txt and sitemap discovery for one origin."""
    rules: RobotsRules = field(default_factory=RobotsRules)
    sitemap_seed_urls: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CrawlError:
    """A URL whose links could not be extracted."""
    url: str
    message: str


@dataclass
class CrawlResult:
    """URLs selected for analysis plus non-fatal crawl errors."""
    urls: list[str] = field(default_factory=list)
    errors: list[CrawlError] = field(default_factory=list)
    link_extractions: int = 0


@dataclass(frozen=True)
class ViolationNode:
    """A DOM element affected by a rule violation."""
    html: str = ""
    target: tuple[str, ...] = ()


@dataclass(frozen=True)
class Violation:
    """Raw rule engine finding, before translation and scoring."""
    id: str
    impact: Optional[str] = None
    tags: tuple[str, ...] = ()
    nodes: tuple[ViolationNode, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "Violation":
        """Build a Violation from axe-core's JSON result shape."""
        nodes = tuple(
            ViolationNode(
                html=node.get("html") or "",
                target=tuple(str(t) for t in (node.get("target") or [])),
            )
            for node in data.get("nodes") or []
        )
        return cls(
            id=data["id"],
            impact=data.get("impact"),
            tags=tuple(data.get("tags") or []),
            nodes=nodes,
        )


@dataclass(frozen=True)
class Issue:
    """One violated rule on one element of a page."""
    rule_id: str
    severity: Severity
    wcag_criteria: tuple[str, ...]
    wcag_level: Optional[str]
    description: str
    help_text: str
    fix_suggestion: str
    html_snippet: Optional[str]
    css_selector: Optional[str]
    page_url: str


@dataclass(frozen=True)
class PageResult:
    """Outcome of analyzing one URL.

    A page that could not be analyzed has ``score=None`` and a
    ``failure_reason``.
    """
    url: str
    title: Optional[str] = None
    score: Optional[float] = None
    issues: tuple[Issue, ...] = ()
    load_time_ms: int = 0
    failure_reason: Optional[FailureReason] = None
    failure_message: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.score is None

    @property
    def issue_count(self) -> int:
        return len(self.issues)


@dataclass
class ScanResult:
    """Aggregate result of a full website scan."""
    status: ScanStatus = ScanStatus.QUEUED
    total_pages_discovered: int = 0
    pages_analyzed: int = 0
    pages_failed: int = 0
    overall_score: float = 0.0
    total_issues: int = 0
    issues_by_severity: dict[str, int] = field(
        default_factory=lambda: {s.value: 0 for s in Severity}
    )
    duration_ms: int = 0
    page_results: list[PageResult] = field(default_factory=list)
    error_message: Optional[str] = None
    warning_message: Optional[str] = None


@dataclass
class QuickScanResult:
    """Single-page scan summary with the most severe issues."""
    url: str
    status: ScanStatus = ScanStatus.QUEUED
    title: Optional[str] = None
    score: Optional[float] = None
    load_time_ms: int = 0
    top_issues: list[Issue] = field(default_factory=list)
    issue_counts: dict[str, int] = field(default_factory=dict)
    failed_wcag_criteria: list[str] = field(default_factory=list)
    error_message: Optional[str] = None


@dataclass(frozen=True)
class ScanJob:
    """Unit of work consumed from the scan queue."""
    scan_id: str
    url: str
    max_pages: int = 10
    kind: str = "scan"  # 'scan' or 'quick-scan'
