"""Scan worker: crawl, analyze in concurrent batches, aggregate and persist."""

import asyncio
import logging
import time
from datetime import datetime
from typing import List, Optional, Sequence

from a11y.analyzer import PageAnalyzer
from a11y.config import ScannerConfig
from a11y.constants import QUICK_SCAN_TOP_ISSUES
from a11y.database import AbstractScanStore, get_store
from a11y.exceptions import NoPagesFoundError, PageAnalysisError
from a11y.infrastructure.browser_pool import get_browser_manager
from a11y.models import (
    FailureReason,
    PageResult,
    QuickScanResult,
    ScanJob,
    ScanResult,
    ScanStatus,
)
from a11y.score import count_by_severity, overall_score
from a11y.site_crawler import SiteCrawler

logger = logging.getLogger(__name__)


def no_pages_message(url: str) -> str:
    return f"Geen pagina's gevonden op {url}. Controleer of de website bereikbaar is."


def partial_failure_message(failed: int, total: int) -> str:
    return f"{failed} van {total} pagina's konden niet worden gescand (timeout of niet bereikbaar)."


def all_failed_message(total: int) -> str:
    return f"Geen van de {total} pagina's kon worden gescand (timeout of niet bereikbaar)."


def internal_error_message(error: Exception) -> str:
    return f"Interne fout tijdens het scannen: {error}"


class ScanWorker:
    """Runs scan jobs against a store.

    A full scan moves through QUEUED, CRAWLING, SCANNING and ANALYZING to
    COMPLETED or FAILED. Pages are analyzed in batches of
    ``config.batch_size``; batches run strictly one after another, so at
    most ``batch_size`` browser contexts are open per scan.
    """

    def __init__(
        self,
        store: AbstractScanStore,
        crawler: SiteCrawler,
        analyzer: PageAnalyzer,
        config: Optional[ScannerConfig] = None,
    ):
        """Initialize the worker.

        Args:
            store: Scan store receiving status, progress and results
            crawler: Page discovery
            analyzer: Single-page analysis
            config: Scanner configuration
        """
        self.store = store
        self.crawler = crawler
        self.analyzer = analyzer
        self.config = config or ScannerConfig()

    async def handle_job(self, job: ScanJob):
        """Dispatch a queued job by kind."""
        if job.kind == "quick-scan":
            return await self.run_quick_scan(job)
        return await self.run_scan(job)

    async def run_scan(self, job: ScanJob) -> ScanResult:
        """Scan a website and persist the results.

        Every call is an independent attempt: results of earlier attempts
        for the same scan are removed first.

        Args:
            job: Scan job

        Returns:
            ScanResult with status COMPLETED or FAILED

        Raises:
            Exception: Any unexpected error, after the scan was marked FAILED,
                so the queue can retry the job
        """
        start = time.monotonic()
        result = ScanResult()

        logger.info(f"Starting scan {job.scan_id} for {job.url} (max {job.max_pages} pages)")
        try:
            self._prepare_scan(job)
            self._set_status(job.scan_id, result, ScanStatus.CRAWLING, started_at=datetime.now())

            crawl = await self.crawler.crawl(
                job.url,
                job.max_pages,
                on_progress=lambda scanned, total: self._report_progress(
                    job.scan_id, total_pages_discovered=total, pages_analyzed=0
                ),
            )
            urls = crawl.urls
            logger.info(f"Found {len(urls)} pages to scan for {job.scan_id}")

            if not urls:
                raise NoPagesFoundError(no_pages_message(job.url))

            result.total_pages_discovered = len(urls)
            self._set_status(
                job.scan_id, result, ScanStatus.SCANNING, total_pages_discovered=len(urls)
            )

            for batch_start in range(0, len(urls), self.config.batch_size):
                batch = urls[batch_start:batch_start + self.config.batch_size]
                page_results = await self.analyze_batch(batch)

                for page_result in page_results:
                    self.store.save_page_result(job.scan_id, page_result)
                    result.page_results.append(page_result)

                failed = sum(1 for page in result.page_results if page.failed)
                self._report_progress(
                    job.scan_id,
                    pages_analyzed=len(result.page_results) - failed,
                    pages_failed=failed,
                )

            self._set_status(job.scan_id, result, ScanStatus.ANALYZING)
            self._aggregate(result)
            result.duration_ms = int((time.monotonic() - start) * 1000)
            self._finalize(job.scan_id, result)

        except NoPagesFoundError as e:
            logger.warning(f"Scan {job.scan_id} failed: {e}")
            self._fail(job.scan_id, result, str(e), start)

        except Exception as e:
            logger.error(f"Scan {job.scan_id} failed: {e}", exc_info=True)
            self._fail(job.scan_id, result, internal_error_message(e), start)
            raise

        return result

    async def analyze_batch(self, urls: Sequence[str]) -> List[PageResult]:
        """Analyze URLs concurrently; one PageResult per URL, in input order."""
        tasks = [self.analyzer.analyze(url) for url in urls]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        page_results = []
        for url, outcome in zip(urls, outcomes):
            if isinstance(outcome, PageResult):
                page_results.append(outcome)
            else:
                logger.error(f"Unexpected error for {url}: {outcome}")
                page_results.append(PageResult(
                    url=url,
                    failure_reason=FailureReason.UNEXPECTED_ERROR,
                    failure_message=str(outcome),
                ))
        return page_results

    async def run_quick_scan(self, job: ScanJob) -> QuickScanResult:
        """Analyze a single page and summarize its most severe issues.

        Raises:
            PageAnalysisError: If the page could not be analyzed, after the
                scan was marked FAILED
        """
        logger.info(f"Starting quick scan {job.scan_id} for {job.url}")
        self._prepare_scan(job)
        self.store.update_scan(job.scan_id, status=ScanStatus.SCANNING, started_at=datetime.now())

        page = await self.analyzer.analyze(job.url)
        self.store.save_page_result(job.scan_id, page)

        if page.failed:
            logger.warning(f"Quick scan {job.scan_id} failed: {page.failure_message}")
            self.store.update_scan(
                job.scan_id,
                status=ScanStatus.FAILED,
                pages_failed=1,
                error_message=page.failure_message,
                completed_at=datetime.now(),
            )
            raise PageAnalysisError(
                page.failure_reason or FailureReason.UNEXPECTED_ERROR,
                page.failure_message or f"Pagina {job.url} kon niet worden gescand.",
            )

        # sorted() is stable, so equal severities keep page order
        top_issues = sorted(page.issues, key=lambda issue: issue.severity.rank)
        counts = count_by_severity(page.issues)

        failed_criteria: List[str] = []
        for issue in page.issues:
            for criterion in issue.wcag_criteria:
                if criterion not in failed_criteria:
                    failed_criteria.append(criterion)

        result = QuickScanResult(
            url=job.url,
            status=ScanStatus.COMPLETED,
            title=page.title,
            score=page.score,
            load_time_ms=page.load_time_ms,
            top_issues=top_issues[:QUICK_SCAN_TOP_ISSUES],
            issue_counts={**{k.lower(): v for k, v in counts.items()}, "total": page.issue_count},
            failed_wcag_criteria=failed_criteria,
        )

        self.store.update_scan(
            job.scan_id,
            status=ScanStatus.COMPLETED,
            total_pages_discovered=1,
            pages_analyzed=1,
            overall_score=page.score,
            total_issues=page.issue_count,
            completed_at=datetime.now(),
            **self._severity_columns(counts),
        )
        logger.info(f"Quick scan {job.scan_id} completed: score={page.score}, issues={page.issue_count}")
        return result

    def _prepare_scan(self, job: ScanJob) -> None:
        if self.store.get_scan(job.scan_id) is None:
            self.store.create_scan(job.scan_id, job.url, job.max_pages, kind=job.kind)
        else:
            self.store.reset_scan_results(job.scan_id)

    def _set_status(self, scan_id: str, result: ScanResult, status: ScanStatus, **fields) -> None:
        result.status = status
        self.store.update_scan(scan_id, status=status, **fields)
        logger.debug(f"Scan {scan_id} → {status.value}")

    def _report_progress(self, scan_id: str, **fields) -> None:
        # Progress is advisory; a failed write must not abort the scan
        try:
            self.store.update_scan(scan_id, **fields)
        except Exception as e:
            logger.warning(f"Could not update progress of scan {scan_id}: {e}")

    def _aggregate(self, result: ScanResult) -> None:
        scored = [page for page in result.page_results if not page.failed]
        issues = [issue for page in scored for issue in page.issues]

        result.pages_analyzed = len(scored)
        result.pages_failed = len(result.page_results) - len(scored)
        result.overall_score = overall_score(scored)
        result.total_issues = len(issues)
        result.issues_by_severity = count_by_severity(issues)

        total = len(result.page_results)
        if not scored:
            result.status = ScanStatus.FAILED
            result.error_message = all_failed_message(total)
        else:
            result.status = ScanStatus.COMPLETED
            if result.pages_failed:
                result.warning_message = partial_failure_message(result.pages_failed, total)

    def _finalize(self, scan_id: str, result: ScanResult) -> None:
        self.store.update_scan(
            scan_id,
            status=result.status,
            overall_score=result.overall_score,
            total_pages_discovered=result.total_pages_discovered,
            pages_analyzed=result.pages_analyzed,
            pages_failed=result.pages_failed,
            total_issues=result.total_issues,
            duration_ms=result.duration_ms,
            error_message=result.error_message,
            warning_message=result.warning_message,
            completed_at=datetime.now(),
            **self._severity_columns(result.issues_by_severity),
        )
        logger.info(
            f"Scan {scan_id} {result.status.value.lower()}: score={result.overall_score}, "
            f"pages={result.pages_analyzed}/{result.total_pages_discovered} "
            f"({result.pages_failed} failed), issues={result.total_issues}, "
            f"duration={result.duration_ms}ms"
        )

    def _fail(self, scan_id: str, result: ScanResult, message: str, start: float) -> None:
        result.status = ScanStatus.FAILED
        result.error_message = message
        result.duration_ms = int((time.monotonic() - start) * 1000)
        self.store.update_scan(
            scan_id,
            status=ScanStatus.FAILED,
            error_message=message,
            duration_ms=result.duration_ms,
            completed_at=datetime.now(),
        )

    @staticmethod
    def _severity_columns(counts: dict) -> dict:
        return {f"{severity.lower()}_issues": count for severity, count in counts.items()}


def create_worker(
    config: Optional[ScannerConfig] = None,
    store: Optional[AbstractScanStore] = None,
) -> ScanWorker:
    """Build a ScanWorker on the process-wide browser.

    Args:
        config: Scanner configuration, read from the environment when omitted
        store: Scan store, created from settings when omitted
    """
    config = config or ScannerConfig.from_env()
    browser = get_browser_manager(headless=config.headless, user_agent=config.user_agent)
    return ScanWorker(
        store=store or get_store(),
        crawler=SiteCrawler(browser, config=config),
        analyzer=PageAnalyzer(browser, config=config),
        config=config,
    )
