"""Command-line interface for the accessibility scanner."""

import argparse
import asyncio
import sys
import uuid

from a11y.config import ScannerConfig, settings
from a11y.database import get_store
from a11y.exceptions import ScannerError
from a11y.infrastructure.browser_pool import shutdown_browser
from a11y.infrastructure.rate_limiter import JobRateLimiter
from a11y.logging_config import setup_logging
from a11y.models import QuickScanResult, ScanJob, ScanResult, ScanStatus
from a11y.queue import ScanQueue
from a11y.translations import load_translations
from a11y.worker import create_worker


def positive_int(value: str) -> int:
    """Argparse type for page budgets."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: '{value}'")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def print_scan_result(url: str, result: ScanResult, locale: str = settings.SCAN_LOCALE):
    """Print a website scan result in a formatted way.

    Args:
        url: The scanned URL
        result: ScanResult of the scan
        locale: Locale of the severity labels
    """
    translations = load_translations(locale)
    print(f"\n{'=' * 60}")
    print(f"Accessibility Scan for: {url}")
    print(f"{'=' * 60}")

    if result.status == ScanStatus.FAILED:
        print(f"\n❌ Scan failed: {result.error_message}")
        print(f"\n{'=' * 60}\n")
        return

    print(f"\n📊 Overall Score: {result.overall_score}/100")
    print(f"\nPages: {result.pages_analyzed}/{result.total_pages_discovered} scanned")
    print(f"Issues: {result.total_issues}")
    for severity, count in result.issues_by_severity.items():
        print(f"  • {translations.severity_label(severity)}: {count}")

    if result.warning_message:
        print(f"\n⚠️  {result.warning_message}")

    print(f"\nPage Scores:")
    for page in result.page_results:
        if page.failed:
            print(f"  ✗ {page.url}: {page.failure_message}")
        else:
            print(f"  • {page.url}: {page.score}/100 ({page.issue_count} issues)")

    print(f"\n{'=' * 60}\n")


def print_quick_scan_result(result: QuickScanResult, locale: str = settings.SCAN_LOCALE):
    """Print a quick scan result in a formatted way."""
    translations = load_translations(locale)
    print(f"\n{'=' * 60}")
    print(f"Quick Scan for: {result.url}")
    print(f"{'=' * 60}")
    print(f"\n📊 Score: {result.score}/100")
    print(f"Issues: {result.issue_counts.get('total', 0)}")

    if result.failed_wcag_criteria:
        print(f"Failed WCAG criteria:")
        for criterion in result.failed_wcag_criteria:
            title = translations.criterion_title(criterion)
            print(f"  • {criterion} {title}" if title else f"  • {criterion}")

    if result.top_issues:
        print(f"\n💡 Top Issues:")
        for issue in result.top_issues:
            print(f"  • [{translations.severity_label(issue.severity.value)}] {issue.description}")
            print(f"    {issue.fix_suggestion}")

    print(f"\n{'=' * 60}\n")


async def _run_job(job: ScanJob, config: ScannerConfig):
    store = get_store()
    try:
        worker = create_worker(config=config, store=store)
        return await worker.handle_job(job)
    finally:
        await shutdown_browser()
        store.close()


def scan_command(args):
    """Scan a website."""
    config = ScannerConfig.from_env()
    job = ScanJob(scan_id=str(uuid.uuid4()), url=args.url, max_pages=args.max_pages)

    try:
        result = asyncio.run(_run_job(job, config))
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)

    print_scan_result(args.url, result)
    if result.status == ScanStatus.FAILED:
        sys.exit(1)


def quick_scan_command(args):
    """Scan a single page."""
    config = ScannerConfig.from_env()
    job = ScanJob(scan_id=str(uuid.uuid4()), url=args.url, max_pages=1, kind="quick-scan")

    try:
        result = asyncio.run(_run_job(job, config))
    except ScannerError as e:
        print(f"\n❌ Failed to scan {args.url}: {e}")
        sys.exit(1)

    print_quick_scan_result(result)


def enqueue_command(args):
    """Register a scan for the next worker run."""
    store = get_store()
    scan_id = str(uuid.uuid4())
    kind = "quick-scan" if args.quick else "scan"
    store.create_scan(scan_id, args.url, 1 if args.quick else args.max_pages, kind=kind)
    store.close()
    print(f"Queued {kind} {scan_id} for {args.url}")


async def _consume_queued(config: ScannerConfig) -> ScanQueue:
    store = get_store()
    queue = ScanQueue()
    try:
        for scan in store.list_scans(status=ScanStatus.QUEUED):
            queue.enqueue(ScanJob(
                scan_id=scan["id"],
                url=scan["url"],
                max_pages=scan["max_pages"] or config.max_pages,
                kind=scan["kind"],
            ))

        worker = create_worker(config=config, store=store)
        limiter = JobRateLimiter(
            max_jobs=config.rate_limit_max_jobs,
            window_seconds=config.rate_limit_window_seconds,
        )
        await queue.consume(
            worker.handle_job,
            concurrency=config.worker_concurrency,
            rate_limiter=limiter,
        )
    finally:
        await shutdown_browser()
        store.close()
    return queue


def worker_command(args):
    """Process all queued scans."""
    config = ScannerConfig.from_env()
    queue = asyncio.run(_consume_queued(config))

    print(f"\nCompleted jobs: {queue.completed_jobs}")
    if queue.failed_jobs:
        print(f"Failed jobs: {len(queue.failed_jobs)}")
        for queued in queue.failed_jobs:
            print(f"  ✗ {queued.job.scan_id} ({queued.job.url}): {queued.last_error}")
        sys.exit(1)


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Accessibility Scanner - Crawl websites and check them against WCAG with axe-core"
    )

    # Global flags (before subcommands)
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.LOG_LEVEL,
        help="Set logging verbosity (default: INFO)",
    )
    parser.add_argument(
        "--log-file",
        default=settings.LOG_FILE,
        help="Write logs to file in addition to console",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    scan_parser = subparsers.add_parser(
        "scan", help="Crawl a website and scan its pages."
    )
    scan_parser.add_argument("url", help="Website URL to scan")
    scan_parser.add_argument(
        "--max-pages",
        type=positive_int,
        default=10,
        help="Maximum pages to scan (default: 10)",
    )
    scan_parser.set_defaults(func=scan_command)

    quick_parser = subparsers.add_parser(
        "quick-scan", help="Scan a single page and show its top issues."
    )
    quick_parser.add_argument("url", help="Page URL to scan")
    quick_parser.set_defaults(func=quick_scan_command)

    enqueue_parser = subparsers.add_parser(
        "enqueue", help="Queue a scan for the worker."
    )
    enqueue_parser.add_argument("url", help="Website URL to scan")
    enqueue_parser.add_argument(
        "--max-pages",
        type=positive_int,
        default=10,
        help="Maximum pages to scan (default: 10)",
    )
    enqueue_parser.add_argument(
        "--quick",
        action="store_true",
        help="Queue a single-page quick scan",
    )
    enqueue_parser.set_defaults(func=enqueue_command)

    worker_parser = subparsers.add_parser(
        "worker", help="Process queued scans with retries and rate limiting."
    )
    worker_parser.set_defaults(func=worker_command)

    args = parser.parse_args()

    # Configure logging based on flags
    setup_logging(
        level=args.log_level,
        log_file=getattr(args, 'log_file', None),
    )

    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
