"""Run the server-side crawler edge function with simulated progress."""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..config import settings
from ..db.supabase_client import invoke_function
from ..models.search import CrawlerParams
from ..utils.coerce import to_int
from ..utils.logging import get_logger

LOGGER = get_logger("services.crawler")

PROGRESS_CEILING = 90.0
PROGRESS_STEP = 0.1

ProgressCallback = Callable[[float], None]


@dataclass
class CrawlerReport:
    properties_found: int = 0
    properties: List[Dict[str, Any]] = field(default_factory=list)
    progress: float = 0.0


def next_progress(current: float) -> float:
    """One simulated tick: close a tenth of the remaining gap to 90%."""

    return min(PROGRESS_CEILING, current + (PROGRESS_CEILING - current) * PROGRESS_STEP)


class CrawlerJob:
    def __init__(self, client: Any, function_name: Optional[str] = None, tick_seconds: Optional[float] = None) -> None:
        self.client = client
        self.function_name = function_name or settings.CRAWLER_FUNCTION
        self.tick_seconds = settings.CRAWLER_TICK_SECONDS if tick_seconds is None else tick_seconds

    def run(
        self,
        params: CrawlerParams,
        on_progress: Optional[ProgressCallback] = None,
        cancelled: Optional[Callable[[], bool]] = None,
    ) -> CrawlerReport:
        """Invoke the crawler and block until it returns.

        ``on_progress`` receives simulated values every tick while the call is
        in flight and 100 once it completes successfully. A failed call raises
        :class:`~propscout.errors.ProviderError` without reporting 100. Once
        ``cancelled`` returns true the ticks stop and 100 is never reported.
        """

        progress = 0.0
        was_cancelled = False
        done = threading.Event()
        LOGGER.info("crawler_start function=%s city=%s pages=%s", self.function_name, params.city, params.max_pages)
        with ThreadPoolExecutor(max_workers=1) as pool:
            future: Future = pool.submit(self._invoke, params, done)
            while not done.wait(self.tick_seconds):
                if cancelled is not None and cancelled():
                    was_cancelled = True
                    break
                progress = next_progress(progress)
                if on_progress is not None:
                    on_progress(progress)
            payload = future.result()

        data = payload if isinstance(payload, dict) else {}
        properties = list(data.get("properties") or [])
        report = CrawlerReport(
            properties_found=to_int(data.get("propertiesFound")) or len(properties),
            properties=properties,
            progress=progress if was_cancelled else 100.0,
        )
        if was_cancelled:
            LOGGER.info("crawler_cancelled function=%s progress=%.1f", self.function_name, progress)
            return report
        if on_progress is not None:
            on_progress(report.progress)
        LOGGER.info("crawler_complete function=%s found=%d", self.function_name, report.properties_found)
        return report

    def _invoke(self, params: CrawlerParams, done: threading.Event) -> Any:
        try:
            return invoke_function(self.client, self.function_name, params.to_payload())
        finally:
            done.set()
