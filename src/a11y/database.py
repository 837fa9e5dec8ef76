# src/a11y/database.py
"""Persistence of scans, page results and issues."""

import json
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, List, Dict, Any
import logging

from a11y.config import settings
from a11y.models import PageResult, ScanStatus

logger = logging.getLogger(__name__)

CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS scans (
    id TEXT PRIMARY KEY,
    url TEXT NOT NULL,
    kind TEXT NOT NULL DEFAULT 'scan',
    status TEXT NOT NULL,
    max_pages INTEGER,

    -- Progress
    total_pages_discovered INTEGER DEFAULT 0,
    pages_analyzed INTEGER DEFAULT 0,
    pages_failed INTEGER DEFAULT 0,

    -- Results
    overall_score REAL,
    total_issues INTEGER DEFAULT 0,
    critical_issues INTEGER DEFAULT 0,
    serious_issues INTEGER DEFAULT 0,
    moderate_issues INTEGER DEFAULT 0,
    minor_issues INTEGER DEFAULT 0,
    duration_ms INTEGER,
    error_message TEXT,
    warning_message TEXT,

    created_at TIMESTAMP NOT NULL,
    started_at TIMESTAMP,
    completed_at TIMESTAMP
);

CREATE TABLE IF NOT EXISTS page_results (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    scan_id TEXT NOT NULL REFERENCES scans(id),
    url TEXT NOT NULL,
    title TEXT,
    score REAL,
    issue_count INTEGER DEFAULT 0,
    load_time_ms INTEGER,
    failure_reason TEXT,
    failure_message TEXT
);

CREATE TABLE IF NOT EXISTS issues (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    scan_id TEXT NOT NULL REFERENCES scans(id),
    page_result_id INTEGER NOT NULL REFERENCES page_results(id),
    rule_id TEXT NOT NULL,
    severity TEXT NOT NULL,
    wcag_criteria TEXT,
    wcag_level TEXT,
    description TEXT,
    help_text TEXT,
    fix_suggestion TEXT,
    html_snippet TEXT,
    css_selector TEXT,
    page_url TEXT
);

CREATE INDEX IF NOT EXISTS idx_page_results_scan ON page_results(scan_id);
CREATE INDEX IF NOT EXISTS idx_issues_scan ON issues(scan_id);
"""

# Columns update_scan may write; everything else is owned by the store
UPDATABLE_SCAN_COLUMNS = {
    "status",
    "total_pages_discovered",
    "pages_analyzed",
    "pages_failed",
    "overall_score",
    "total_issues",
    "critical_issues",
    "serious_issues",
    "moderate_issues",
    "minor_issues",
    "duration_ms",
    "error_message",
    "warning_message",
    "started_at",
    "completed_at",
}


class AbstractScanStore(ABC):
    """Abstract base class defining the scan store interface."""

    @abstractmethod
    def connect(self) -> None:
        """Establish database connection."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close database connection."""
        pass

    @abstractmethod
    def create_schema(self) -> None:
        """Create the necessary database tables."""
        pass

    @abstractmethod
    def create_scan(self, scan_id: str, url: str, max_pages: int, kind: str = "scan") -> None:
        """Register a new scan in QUEUED state."""
        pass

    @abstractmethod
    def update_scan(self, scan_id: str, **fields: Any) -> None:
        """Update scan columns.

        Args:
            scan_id: Scan to update.
            **fields: Column values. ScanStatus values are stored by name.

        Raises:
            ValueError: If a field is not an updatable column.
        """
        pass

    @abstractmethod
    def reset_scan_results(self, scan_id: str) -> None:
        """Delete page results and issues of a scan and zero its counters."""
        pass

    @abstractmethod
    def save_page_result(self, scan_id: str, page_result: PageResult) -> int:
        """Save one page result together with its issues.

        Returns:
            The id of the stored page result.
        """
        pass

    @abstractmethod
    def get_scan(self, scan_id: str) -> Optional[Dict[str, Any]]:
        """Retrieve a scan record, or None if it does not exist."""
        pass

    @abstractmethod
    def list_scans(self, status: Optional[ScanStatus] = None) -> List[Dict[str, Any]]:
        """Retrieve scans ordered by creation time, optionally filtered by status."""
        pass

    @abstractmethod
    def get_page_results(self, scan_id: str) -> List[Dict[str, Any]]:
        """Retrieve the page results of a scan in insertion order."""
        pass

    @abstractmethod
    def get_issues(self, scan_id: str) -> List[Dict[str, Any]]:
        """Retrieve the issues of a scan in insertion order."""
        pass


class LocalSqliteScanStore(AbstractScanStore):
    """SQLite scan store for local storage."""

    def __init__(self, db_url: Optional[str] = None):
        """Initialize local SQLite store.

        Args:
            db_url: Database URL (sqlite:///path/to/db.db or sqlite:///:memory:).
                Defaults to settings.DATABASE_URL.
        """
        self.db_url = db_url or settings.DATABASE_URL
        self.db_path = self.db_url.replace("sqlite:///", "")
        self.conn: Optional[sqlite3.Connection] = None
        self.connect()
        self.create_schema()

    def connect(self) -> None:
        """Establish SQLite connection."""
        self.conn = sqlite3.connect(self.db_path)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        logger.debug(f"Connected to local SQLite database: {self.db_path}")

    def close(self) -> None:
        """Close SQLite connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.debug("Closed local SQLite connection")

    def create_schema(self) -> None:
        """Create the scan tables if they don't exist."""
        with self.conn:
            self.conn.executescript(CREATE_TABLES_SQL)
        logger.debug("Schema verified/created for local SQLite")

    def create_scan(self, scan_id: str, url: str, max_pages: int, kind: str = "scan") -> None:
        with self.conn:
            self.conn.execute(
                "INSERT INTO scans (id, url, kind, status, max_pages, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (scan_id, url, kind, ScanStatus.QUEUED.value, max_pages, datetime.now().isoformat()),
            )
        logger.debug(f"Created scan {scan_id} for {url}")

    def update_scan(self, scan_id: str, **fields: Any) -> None:
        if not fields:
            return

        unknown = set(fields) - UPDATABLE_SCAN_COLUMNS
        if unknown:
            raise ValueError(f"Unknown scan fields: {', '.join(sorted(unknown))}")

        values = []
        for value in fields.values():
            if isinstance(value, ScanStatus):
                values.append(value.value)
            elif isinstance(value, datetime):
                values.append(value.isoformat())
            else:
                values.append(value)

        assignments = ', '.join(f"{column} = ?" for column in fields)
        with self.conn:
            self.conn.execute(
                f"UPDATE scans SET {assignments} WHERE id = ?",
                (*values, scan_id),
            )

    def reset_scan_results(self, scan_id: str) -> None:
        with self.conn:
            self.conn.execute("DELETE FROM issues WHERE scan_id = ?", (scan_id,))
            self.conn.execute("DELETE FROM page_results WHERE scan_id = ?", (scan_id,))
            self.conn.execute(
                "UPDATE scans SET total_pages_discovered = 0, pages_analyzed = 0, "
                "pages_failed = 0, overall_score = NULL, total_issues = 0, "
                "critical_issues = 0, serious_issues = 0, moderate_issues = 0, "
                "minor_issues = 0, error_message = NULL, warning_message = NULL "
                "WHERE id = ?",
                (scan_id,),
            )
        logger.debug(f"Reset results of scan {scan_id}")

    def save_page_result(self, scan_id: str, page_result: PageResult) -> int:
        failure_reason = page_result.failure_reason.value if page_result.failure_reason else None

        with self.conn:
            cursor = self.conn.execute(
                "INSERT INTO page_results (scan_id, url, title, score, issue_count, "
                "load_time_ms, failure_reason, failure_message) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    scan_id,
                    page_result.url,
                    page_result.title,
                    page_result.score,
                    page_result.issue_count,
                    page_result.load_time_ms,
                    failure_reason,
                    page_result.failure_message,
                ),
            )
            page_result_id = cursor.lastrowid

            if page_result.issues:
                self.conn.executemany(
                    "INSERT INTO issues (scan_id, page_result_id, rule_id, severity, "
                    "wcag_criteria, wcag_level, description, help_text, fix_suggestion, "
                    "html_snippet, css_selector, page_url) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    [
                        (
                            scan_id,
                            page_result_id,
                            issue.rule_id,
                            issue.severity.value,
                            json.dumps(list(issue.wcag_criteria)),
                            issue.wcag_level,
                            issue.description,
                            issue.help_text,
                            issue.fix_suggestion,
                            issue.html_snippet,
                            issue.css_selector,
                            issue.page_url,
                        )
                        for issue in page_result.issues
                    ],
                )

        logger.debug(f"Saved page result for {page_result.url} ({page_result.issue_count} issues)")
        return page_result_id

    def get_scan(self, scan_id: str) -> Optional[Dict[str, Any]]:
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM scans WHERE id = ?", (scan_id,))
        row = cursor.fetchone()
        return dict(row) if row else None

    def list_scans(self, status: Optional[ScanStatus] = None) -> List[Dict[str, Any]]:
        cursor = self.conn.cursor()
        if status is None:
            cursor.execute("SELECT * FROM scans ORDER BY created_at ASC, rowid ASC")
        else:
            cursor.execute(
                "SELECT * FROM scans WHERE status = ? ORDER BY created_at ASC, rowid ASC", (status.value,)
            )
        return [dict(row) for row in cursor.fetchall()]

    def get_page_results(self, scan_id: str) -> List[Dict[str, Any]]:
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM page_results WHERE scan_id = ? ORDER BY id ASC", (scan_id,))
        return [dict(row) for row in cursor.fetchall()]

    def get_issues(self, scan_id: str) -> List[Dict[str, Any]]:
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM issues WHERE scan_id = ? ORDER BY id ASC", (scan_id,))
        issues = []
        for row in cursor.fetchall():
            issue = dict(row)
            issue["wcag_criteria"] = json.loads(issue["wcag_criteria"] or "[]")
            issues.append(issue)
        return issues


def get_store(
    backend: Optional[str] = None,
    **kwargs,
) -> AbstractScanStore:
    """Factory function to create the appropriate scan store.

    Args:
        backend: Storage backend. Defaults to settings.DB_BACKEND.
        **kwargs: Additional arguments passed to the store constructor.

    Returns:
        An instance of AbstractScanStore.

    Raises:
        ValueError: If an unknown backend is specified.
    """
    backend = backend or settings.DB_BACKEND

    if backend == "local":
        logger.info("Using local SQLite scan store")
        return LocalSqliteScanStore(**kwargs)
    raise ValueError(
        f"Unknown database backend: '{backend}'. "
        "Supported backends: 'local'"
    )
