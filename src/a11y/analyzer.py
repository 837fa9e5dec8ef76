"""Single-page accessibility analysis with Playwright and axe-core."""

import asyncio
import logging
import re
import time
from typing import Any, Iterable, List, Optional

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from a11y.config import ScannerConfig
from a11y.constants import (
    ANALYSIS_BLOCKED_RESOURCES,
    DOM_QUIET_WINDOW_MS,
    MAX_HTML_SNIPPET_LENGTH,
)
from a11y.exceptions import PageAnalysisError, RuleEngineError
from a11y.infrastructure.browser_pool import BrowserManager
from a11y.models import FailureReason, Issue, PageResult, Violation
from a11y.rule_engine import AxeRuleEngine
from a11y.score import map_impact, page_score
from a11y.translations import get_translation

logger = logging.getLogger(__name__)

WCAG_TAG_PATTERN = re.compile(r"^wcag(\d)(\d)(\d+)$")

# Resolves once the body has been quiet for quietMs, or at maxMs regardless
DOM_STABILITY_SCRIPT = """
([quietMs, maxMs]) => new Promise((resolve) => {
    let timer;
    const done = () => {
        observer.disconnect();
        clearTimeout(timer);
        clearTimeout(ceiling);
        resolve();
    };
    const observer = new MutationObserver(() => {
        clearTimeout(timer);
        timer = setTimeout(done, quietMs);
    });
    observer.observe(document.body || document.documentElement, {
        childList: true,
        subtree: true,
        attributes: true,
    });
    timer = setTimeout(done, quietMs);
    const ceiling = setTimeout(done, maxMs);
})
"""


def extract_wcag_criteria(tags: Iterable[str]) -> List[str]:
    """Extract WCAG criterion numbers from axe-core tags.

    Tags look like ``["wcag2a", "wcag111", "cat.text-alternatives"]``;
    ``wcag111`` becomes ``"1.1.1"``. Level tags such as ``wcag2aa`` are
    ignored and duplicates are dropped.
    """
    criteria: List[str] = []
    for tag in tags:
        match = WCAG_TAG_PATTERN.match(tag)
        if match:
            criterion = ".".join(match.groups())
            if criterion not in criteria:
                criteria.append(criterion)
    return criteria


def truncate_html(html: Optional[str], max_length: int = MAX_HTML_SNIPPET_LENGTH) -> Optional[str]:
    """Truncate an HTML snippet to bound stored DOM fragments."""
    if not html:
        return None
    if len(html) <= max_length:
        return html
    return html[:max_length] + "..."


def map_violations_to_issues(
    violations: Iterable[Violation],
    page_url: str,
    locale: str = "nl",
) -> List[Issue]:
    """Map raw violations to localized issues, one per affected element.

    Args:
        violations: axe-core violations for one page
        page_url: URL the violations were found on
        locale: Locale of the translation table

    Returns:
        Issues in violation and node order
    """
    issues: List[Issue] = []

    for violation in violations:
        translation = get_translation(violation.id, locale)
        severity = map_impact(violation.impact)
        criteria = extract_wcag_criteria(violation.tags) or list(translation.wcag_criteria)

        for node in violation.nodes:
            issues.append(Issue(
                rule_id=violation.id,
                severity=severity,
                wcag_criteria=tuple(criteria),
                wcag_level=translation.wcag_level,
                description=translation.description,
                help_text=translation.help_text,
                fix_suggestion=translation.fix_suggestion,
                html_snippet=truncate_html(node.html),
                css_selector=node.target[0] if node.target else None,
                page_url=page_url,
            ))

    return issues


class PageAnalyzer:
    """Analyzes one page at a time for accessibility issues.

    ``analyze`` never raises: navigation, HTTP and rule engine problems are
    returned as a PageResult with ``score=None`` and a failure reason, so a
    batch of analyses can carry on past a broken page.
    """

    def __init__(
        self,
        browser: BrowserManager,
        rule_engine: Optional[AxeRuleEngine] = None,
        config: Optional[ScannerConfig] = None,
    ):
        """Initialize the analyzer.

        Args:
            browser: Shared browser providing isolated contexts
            rule_engine: axe-core runner; built from config when omitted
            config: Scanner configuration
        """
        self.config = config or ScannerConfig()
        self.browser = browser
        self.rule_engine = rule_engine or AxeRuleEngine(
            source_path=self.config.axe_core_path,
            source_url=self.config.axe_core_url,
        )
        self.blocked_resources = set(ANALYSIS_BLOCKED_RESOURCES)
        if self.config.block_images:
            self.blocked_resources.add("image")

    async def analyze(self, url: str) -> PageResult:
        """Render a page, run axe-core on it and score the result.

        Args:
            url: Page URL

        Returns:
            PageResult with issues and score, or a failed PageResult
        """
        start = time.monotonic()

        try:
            async with self.browser.open_context() as (context, page):
                return await self._analyze_page(page, url, start)
        except PageAnalysisError as e:
            return self._failure(url, start, e.reason, e.message)
        except RuleEngineError as e:
            return self._failure(url, start, FailureReason.RULE_ENGINE_FAILURE, str(e))
        except PlaywrightTimeoutError as e:
            return self._failure(
                url, start, FailureReason.NAVIGATION_TIMEOUT,
                f"Timeout bij laden van {url}: {e}",
            )
        except Exception as e:
            logger.exception(f"Unexpected error analyzing {url}")
            return self._failure(url, start, FailureReason.UNEXPECTED_ERROR, str(e))

    async def _analyze_page(self, page: Any, url: str, start: float) -> PageResult:
        await page.route("**/*", self._block_resources)

        response = await page.goto(
            url,
            wait_until="domcontentloaded",
            timeout=self.config.page_timeout_ms,
        )
        if response is None:
            raise PageAnalysisError(
                FailureReason.NO_RESPONSE, f"Geen response ontvangen van {url}"
            )
        if response.status >= 400:
            raise PageAnalysisError(
                FailureReason.HTTP_ERROR, f"HTTP {response.status} bij laden van {url}"
            )

        await self.wait_for_dom_stability(page)
        load_time_ms = self._elapsed_ms(start)

        title = await page.title()
        try:
            violations = await asyncio.wait_for(
                self.rule_engine.run(page),
                timeout=self.config.rule_engine_timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            raise RuleEngineError(
                f"axe-core did not finish within {self.config.rule_engine_timeout_ms}ms"
            )
        issues = map_violations_to_issues(violations, url, self.config.locale)
        score = page_score(issues)

        logger.info(f"  ✓ {url}: score={score}, {len(issues)} issues, {load_time_ms}ms")

        return PageResult(
            url=url,
            title=title or None,
            score=score,
            issues=tuple(issues),
            load_time_ms=load_time_ms,
        )

    async def _block_resources(self, route: Any) -> None:
        if route.request.resource_type in self.blocked_resources:
            await route.abort()
        else:
            await route.continue_()

    async def wait_for_dom_stability(self, page: Any) -> None:
        """Wait until the DOM stops mutating, bounded by the configured ceiling.

        Pages that never settle (animated SPAs) are released at the ceiling.
        An evaluation error means the page cannot be observed; it is then
        treated as stable.
        """
        try:
            await page.evaluate(
                DOM_STABILITY_SCRIPT,
                [DOM_QUIET_WINDOW_MS, self.config.dom_stability_timeout_ms],
            )
        except Exception as e:
            logger.debug(f"DOM stability wait skipped: {e}")

    def _failure(
        self, url: str, start: float, reason: FailureReason, message: str
    ) -> PageResult:
        logger.warning(f"  ⚠️  Page failed ({reason.value}): {url}: {message}")
        return PageResult(
            url=url,
            load_time_ms=self._elapsed_ms(start),
            failure_reason=reason,
            failure_message=message,
        )

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.monotonic() - start) * 1000)
