"""axe-core integration.

The axe-core source is injected into the rendered page and run against the
full document. Only violations are requested; passes and incomplete results
would multiply the payload without changing the score.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence

import httpx

from a11y.constants import AXE_RUN_TAGS, DEFAULT_AXE_CORE_URL
from a11y.exceptions import RuleEngineError
from a11y.models import Violation

logger = logging.getLogger(__name__)


AXE_RUN_SCRIPT = """
async (tags) => {
    if (typeof axe === "undefined") {
        throw new Error("axe-core failed to load");
    }
    const results = await axe.run(document, {
        runOnly: { type: "tag", values: tags },
        resultTypes: ["violations"],
    });
    return {
        violations: results.violations.map((v) => ({
            id: v.id,
            impact: v.impact,
            tags: v.tags,
            nodes: v.nodes.map((n) => ({ html: n.html, target: n.target })),
        })),
    };
}
"""


class AxeRuleEngine:
    """
    Loads the axe-core source once and runs it inside Playwright pages.

    The source comes from a local file when ``source_path`` is set, otherwise
    it is downloaded from ``source_url`` on first use.
    """

    def __init__(
        self,
        source_path: Optional[str] = None,
        source_url: str = DEFAULT_AXE_CORE_URL,
        tags: Sequence[str] = AXE_RUN_TAGS,
        source: Optional[str] = None,
    ):
        """
        Initialize the rule engine.

        Args:
            source_path: Path to axe.min.js
            source_url: Download URL for axe.min.js
            tags: axe-core tag filter
            source: Preloaded axe-core source (skips loading)
        """
        self.source_path = source_path
        self.source_url = source_url
        self.tags = list(tags)
        self._source = source
        self._lock = asyncio.Lock()

    async def load_source(self) -> str:
        """Return the axe-core source, loading it on first call.

        Raises:
            RuleEngineError: If the source cannot be read or downloaded
        """
        if self._source is not None:
            return self._source

        async with self._lock:
            if self._source is not None:
                return self._source

            if self.source_path:
                try:
                    self._source = Path(self.source_path).read_text(encoding="utf-8")
                except OSError as e:
                    raise RuleEngineError(f"Cannot read axe-core from {self.source_path}: {e}") from e
                logger.info(f"Loaded axe-core from {self.source_path}")
            else:
                try:
                    async with httpx.AsyncClient(timeout=30.0, follow_redirects=True) as client:
                        response = await client.get(self.source_url)
                        response.raise_for_status()
                except httpx.HTTPError as e:
                    raise RuleEngineError(f"Cannot download axe-core from {self.source_url}: {e}") from e
                self._source = response.text
                logger.info(f"Downloaded axe-core from {self.source_url}")

        return self._source

    async def run(self, page: Any) -> List[Violation]:
        """Inject axe-core into a page and return its violations.

        Args:
            page: Playwright page with the document already loaded

        Returns:
            Violations reported by axe-core

        Raises:
            RuleEngineError: If injection or evaluation fails
        """
        source = await self.load_source()

        try:
            await page.add_script_tag(content=source)
        except Exception as e:
            raise RuleEngineError(f"axe-core injection failed: {e}") from e

        try:
            results = await page.evaluate(AXE_RUN_SCRIPT, self.tags)
        except Exception as e:
            raise RuleEngineError(f"axe-core run failed: {e}") from e

        if not isinstance(results, dict):
            raise RuleEngineError("axe-core returned no results")

        return [Violation.from_dict(v) for v in results.get("violations") or []]
