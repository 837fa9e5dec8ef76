"""Tests for the scoring engine."""

import pytest

from a11y.models import Issue, PageResult, Severity
from a11y.score import count_by_severity, map_impact, overall_score, page_score, round_score


def make_issue(severity: Severity, rule_id: str = "image-alt") -> Issue:
    return Issue(
        rule_id=rule_id,
        severity=severity,
        wcag_criteria=("1.1.1",),
        wcag_level="A",
        description="desc",
        help_text="help",
        fix_suggestion="fix",
        html_snippet="<img>",
        css_selector="img",
        page_url="https://example.com/",
    )


class TestMapImpact:
    """Test cases for map_impact."""

    @pytest.mark.parametrize("impact,expected", [
        ("critical", Severity.CRITICAL),
        ("serious", Severity.SERIOUS),
        ("moderate", Severity.MODERATE),
        ("minor", Severity.MINOR),
    ])
    def test_known_impacts(self, impact, expected):
        assert map_impact(impact) == expected

    def test_unknown_and_missing_impacts_are_minor(self):
        assert map_impact(None) == Severity.MINOR
        assert map_impact("catastrophic") == Severity.MINOR


class TestPageScore:
    """Test cases for page_score."""

    def test_no_issues_is_perfect(self):
        assert page_score([]) == 100

    def test_severity_weights(self):
        assert page_score([make_issue(Severity.CRITICAL)]) == 90
        assert page_score([make_issue(Severity.SERIOUS)]) == 95
        assert page_score([make_issue(Severity.MODERATE)]) == 98
        assert page_score([make_issue(Severity.MINOR)]) == 99.5

    def test_mixed_issues(self):
        issues = [
            make_issue(Severity.CRITICAL),
            make_issue(Severity.SERIOUS),
            make_issue(Severity.MINOR),
        ]
        assert page_score(issues) == 84.5

    def test_clamped_at_zero(self):
        issues = [make_issue(Severity.CRITICAL)] * 15
        assert page_score(issues) == 0

    def test_adding_an_issue_never_raises_score(self):
        issues = []
        previous = page_score(issues)
        for severity in [Severity.MINOR, Severity.CRITICAL, Severity.MODERATE, Severity.SERIOUS] * 5:
            issues.append(make_issue(severity))
            current = page_score(issues)
            assert 0 <= current <= previous
            previous = current

    def test_depends_only_on_severities(self):
        a = [make_issue(Severity.SERIOUS, "label"), make_issue(Severity.MINOR, "region")]
        b = [make_issue(Severity.MINOR, "list"), make_issue(Severity.SERIOUS, "button-name")]
        assert page_score(a) == page_score(b)


class TestOverallScore:
    """Test cases for overall_score."""

    def test_weighted_by_issue_count(self):
        pages = [
            PageResult(url="https://example.com/a", score=100.0),
            PageResult(
                url="https://example.com/b",
                score=70.0,
                issues=tuple(make_issue(Severity.CRITICAL) for _ in range(3)),
            ),
        ]
        # (100 * 1 + 70 * 3) / 4
        assert overall_score(pages) == 77.5

    def test_failed_pages_excluded(self):
        scored = [PageResult(url="https://example.com/a", score=80.0)]
        with_failure = scored + [PageResult(url="https://example.com/b", score=None)]
        assert overall_score(with_failure) == overall_score(scored) == 80.0

    def test_nothing_scored_is_zero(self):
        assert overall_score([]) == 0
        assert overall_score([PageResult(url="https://example.com/", score=None)]) == 0

    def test_rounded_to_one_decimal(self):
        pages = [
            PageResult(url="https://example.com/a", score=100.0),
            PageResult(url="https://example.com/b", score=99.5),
            PageResult(url="https://example.com/c", score=99.5),
        ]
        assert overall_score(pages) == 99.7

    def test_halves_round_up(self):
        pages = [
            PageResult(url="https://example.com/a", score=86.5),
            PageResult(url="https://example.com/b", score=86.0),
        ]
        assert overall_score(pages) == 86.3


class TestRoundScore:
    """Test cases for round_score."""

    @pytest.mark.parametrize("value, expected", [
        (86.25, 86.3),
        (99.94, 99.9),
        (77.5, 77.5),
    ])
    def test_half_up(self, value, expected):
        assert round_score(value) == expected


class TestCountBySeverity:
    """Test cases for count_by_severity."""

    def test_counts_include_all_severities(self):
        counts = count_by_severity([make_issue(Severity.CRITICAL), make_issue(Severity.CRITICAL)])
        assert counts == {"CRITICAL": 2, "SERIOUS": 0, "MODERATE": 0, "MINOR": 0}
