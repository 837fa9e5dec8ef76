"""Exceptions raised by the scanner."""

from a11y.models import FailureReason


class ScannerError(Exception):
    """Base class for scanner errors."""


class RuleEngineError(ScannerError):
    """Raised when axe-core cannot be loaded, injected or run."""


class LinkExtractionError(ScannerError):
    """Raised when links cannot be extracted from a page."""


class NoPagesFoundError(ScannerError):
    """Raised when a crawl selects no pages to analyze."""


class PageAnalysisError(ScannerError):
    """Raised inside the analyzer to end an analysis with a typed failure."""

    def __init__(self, reason: FailureReason, message: str):
        self.reason = reason
        self.message = message
        super().__init__(message)
