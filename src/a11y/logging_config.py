"""Logging setup for the scanner CLI and queue worker."""

import logging
import sys
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Per-request chatter from the HTTP client and the browser driver
QUIET_LOGGERS = ('httpx', 'httpcore', 'asyncio', 'playwright')


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Send scanner logs to stdout, and to ``log_file`` when given.

    Replaces handlers installed by an earlier call, so the worker can be
    reconfigured between runs.
    """
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
