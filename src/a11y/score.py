"""Accessibility scoring for pages and whole websites."""

import math
from typing import Iterable, Optional

from a11y.constants import SEVERITY_WEIGHTS
from a11y.models import Issue, PageResult, Severity


def round_score(value: float) -> float:
    """Round to one decimal, halves away from zero (86.25 -> 86.3)."""
    return math.floor(value * 10 + 0.5) / 10


def map_impact(impact: Optional[str]) -> Severity:
    """Map an axe-core impact level to a Severity; unknown impacts are MINOR."""
    try:
        return Severity((impact or "").upper())
    except ValueError:
        return Severity.MINOR


def page_score(issues: Iterable[Issue]) -> float:
    """Calculate the 0-100 accessibility score for one page.

    Every issue deducts a fixed weight for its severity, so the score depends
    only on the multiset of severities and adding an issue never raises it.

    Args:
        issues: Issues found on the page

    Returns:
        Score clamped to [0, 100], rounded to one decimal
    """
    deduction = sum(SEVERITY_WEIGHTS[issue.severity.value] for issue in issues)
    return round_score(max(0.0, min(100.0, 100.0 - deduction)))


def overall_score(pages: Iterable[PageResult]) -> float:
    """Calculate the website score as an issue-weighted average of page scores.

    Each scored page weighs ``max(1, issue_count)``: a clean page still counts
    once, and pages with many issues pull the average harder. Pages that
    failed analysis are left out entirely. With no scored page the result is
    0, since the scan established no evidence of accessibility.

    Args:
        pages: Page results of one scan

    Returns:
        Score rounded to one decimal
    """
    weighted_total = 0.0
    total_weight = 0
    for page in pages:
        if page.score is None:
            continue
        weight = max(1, page.issue_count)
        weighted_total += page.score * weight
        total_weight += weight

    if total_weight == 0:
        return 0.0
    return round_score(weighted_total / total_weight)


def count_by_severity(issues: Iterable[Issue]) -> dict[str, int]:
    """Count issues per severity, including severities with zero issues."""
    counts = {severity.value: 0 for severity in Severity}
    for issue in issues:
        counts[issue.severity.value] += 1
    return counts
