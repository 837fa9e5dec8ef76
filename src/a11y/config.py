from dotenv import load_dotenv
from typing import Optional
import os

from pydantic import BaseModel, Field

from a11y.constants import (
    DEFAULT_AXE_CORE_URL,
    DEFAULT_BATCH_SIZE,
    DEFAULT_MAX_PAGES,
    DEFAULT_PAGE_TIMEOUT_MS,
    DEFAULT_RATE_LIMIT_MAX_JOBS,
    DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
    DEFAULT_USER_AGENT,
    DEFAULT_WORKER_CONCURRENCY,
    DOM_STABILITY_MAX_WAIT_MS,
)

load_dotenv()  # Loads variables from .env file


class Settings:
    """
    Manages application settings loaded from environment variables.
    """
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///a11y_scans.db")  # Default to SQLite
    DB_BACKEND = os.getenv("DB_BACKEND", "local")

    USER_AGENT = os.getenv("USER_AGENT", DEFAULT_USER_AGENT)
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE")

    # axe-core source: a local file wins over the download URL
    AXE_CORE_PATH = os.getenv("AXE_CORE_PATH")
    AXE_CORE_URL = os.getenv("AXE_CORE_URL", DEFAULT_AXE_CORE_URL)

    SCAN_LOCALE = os.getenv("SCAN_LOCALE", "nl")


settings = Settings()


class ScannerConfig(BaseModel):
    """
    Configuration for crawling and page analysis.

    All fields are validated by Pydantic. Page timeouts differ per deployment
    tier, so they are configurable rather than constants.
    """

    headless: bool = Field(
        default=True,
        description="Run browser in headless mode (no visible UI)"
    )

    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User agent sent by the browser and the HTTP client"
    )

    page_timeout_ms: int = Field(
        default=DEFAULT_PAGE_TIMEOUT_MS,
        description="Navigation timeout for page analysis in milliseconds",
        ge=1000,
        le=120000
    )

    dom_stability_timeout_ms: int = Field(
        default=DOM_STABILITY_MAX_WAIT_MS,
        description="Maximum time to wait for the DOM to stop mutating",
        ge=500,
        le=10000
    )

    rule_engine_timeout_ms: int = Field(
        default=30000,
        description="Maximum time for one axe-core run in milliseconds",
        ge=1000,
        le=300000
    )

    block_images: bool = Field(
        default=True,
        description="Abort image requests during analysis"
    )

    max_pages: int = Field(
        default=DEFAULT_MAX_PAGES,
        description="Default page budget for a scan",
        ge=1,
        le=1000
    )

    batch_size: int = Field(
        default=DEFAULT_BATCH_SIZE,
        description="Number of pages analyzed simultaneously",
        ge=1,
        le=20
    )

    worker_concurrency: int = Field(
        default=DEFAULT_WORKER_CONCURRENCY,
        description="Number of jobs a worker processes simultaneously",
        ge=1,
        le=16
    )

    rate_limit_max_jobs: int = Field(
        default=DEFAULT_RATE_LIMIT_MAX_JOBS,
        description="Jobs allowed per rate limit window",
        ge=1
    )

    rate_limit_window_seconds: float = Field(
        default=DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
        description="Length of the rate limit window in seconds",
        gt=0
    )

    locale: str = Field(
        default="nl",
        description="Locale of the rule translation table"
    )

    axe_core_path: Optional[str] = Field(
        default=None,
        description="Path to a local axe.min.js"
    )

    axe_core_url: str = Field(
        default=DEFAULT_AXE_CORE_URL,
        description="URL to download axe.min.js from when no local path is set"
    )

    @classmethod
    def from_env(cls) -> "ScannerConfig":
        """Load configuration from environment variables.

        Returns:
            ScannerConfig: Configuration instance with values from environment
        """
        return cls(
            headless=os.getenv("HEADLESS", "true").lower() != "false",
            user_agent=os.getenv("USER_AGENT", DEFAULT_USER_AGENT),
            page_timeout_ms=int(os.getenv("PAGE_TIMEOUT_MS", str(DEFAULT_PAGE_TIMEOUT_MS))),
            dom_stability_timeout_ms=int(
                os.getenv("DOM_STABILITY_TIMEOUT_MS", str(DOM_STABILITY_MAX_WAIT_MS))
            ),
            block_images=os.getenv("BLOCK_IMAGES", "true").lower() != "false",
            max_pages=int(os.getenv("MAX_PAGES", str(DEFAULT_MAX_PAGES))),
            batch_size=int(os.getenv("SCAN_BATCH_SIZE", str(DEFAULT_BATCH_SIZE))),
            worker_concurrency=int(
                os.getenv("WORKER_CONCURRENCY", str(DEFAULT_WORKER_CONCURRENCY))
            ),
            locale=os.getenv("SCAN_LOCALE", "nl"),
            axe_core_path=os.getenv("AXE_CORE_PATH"),
            axe_core_url=os.getenv("AXE_CORE_URL", DEFAULT_AXE_CORE_URL),
        )
