"""Search orchestration across the database, vendor APIs and the crawler.

``SearchService.search`` never raises for provider, store or geocoding
failures; they come back as a ``SearchResult`` with ``level="error"``. When a
``SearchSession`` is passed, only the most recently started search may
publish its result: an older one finishes with ``superseded=True`` and leaves
the session untouched.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..config import settings
from ..errors import ConfigurationError, LocationNotFoundError, PropscoutError, ProviderError, SearchSupersededError
from ..models.listing import PropertyListing
from ..models.search import CrawlerParams, SearchFilters, SearchRequest, SearchResult
from ..providers.base import ListingProvider
from ..utils.caching import RecentSearches
from ..utils.logging import get_logger
from .analyst import ListingAnalyst
from .crawler import CrawlerJob
from .filters import apply_filters
from .geocoding import Geocoder
from .normalizer import normalize_many

LOGGER = get_logger("services.search")

DEFAULT_RADIUS_MILES = 5
DEFAULT_CRAWLER_CITY = "london"

ProgressCallback = Callable[[float], None]


class SearchSession:
    """Generation counter deciding which search may publish its result."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._generation = 0
        self._result: Optional[SearchResult] = None

    def begin(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    @property
    def current(self) -> int:
        with self._lock:
            return self._generation

    def is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def publish(self, generation: int, result: SearchResult) -> bool:
        with self._lock:
            if generation != self._generation:
                return False
            self._result = result
            return True

    @property
    def result(self) -> Optional[SearchResult]:
        with self._lock:
            return self._result


class SearchService:
    def __init__(
        self,
        repository,
        providers: Mapping[str, ListingProvider],
        geocoder: Optional[Geocoder] = None,
        analyst: Optional[ListingAnalyst] = None,
        crawler: Optional[CrawlerJob] = None,
        recent: Optional[RecentSearches] = None,
        price_threshold: Optional[float] = None,
    ) -> None:
        self.repository = repository
        self.providers = dict(providers)
        self.geocoder = geocoder
        self.analyst = analyst
        self.crawler = crawler
        self.recent = recent
        self.price_threshold = price_threshold or settings.SCORE_PRICE_THRESHOLD

    def search(
        self,
        request: SearchRequest,
        session: Optional[SearchSession] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> SearchResult:
        generation = session.begin() if session is not None else None

        def checkpoint() -> None:
            if session is not None and not session.is_current(generation):
                raise SearchSupersededError(generation, session.current)

        LOGGER.info("search_start mode=%s provider=%s generation=%s", request.mode, request.provider, generation)
        try:
            result = self._run(request, checkpoint, on_progress)
        except SearchSupersededError as exc:
            LOGGER.info("search_superseded generation=%s current=%s", exc.generation, exc.current)
            return SearchResult(level="info", message=str(exc), generation=generation, superseded=True)
        except LocationNotFoundError as exc:
            result = SearchResult(level="error", message=str(exc))
        except (ProviderError, ConfigurationError) as exc:
            LOGGER.warning("search_failed mode=%s provider=%s error=%s", request.mode, request.provider, exc)
            result = SearchResult(level="error", message=f"Failed to fetch properties: {exc}")
        except PropscoutError as exc:
            LOGGER.warning("search_failed mode=%s error=%s", request.mode, exc)
            result = SearchResult(level="error", message=str(exc))
        except Exception:
            LOGGER.exception("search_crashed mode=%s provider=%s", request.mode, request.provider)
            result = SearchResult(level="error", message="Unexpected error while searching for properties")

        result = result.model_copy(update={"generation": generation})
        if session is not None and not session.publish(generation, result):
            LOGGER.info("search_superseded generation=%s current=%s", generation, session.current)
            return result.model_copy(update={"superseded": True})
        if result.level != "error" and self.recent is not None:
            self.recent.record(_recent_entry(request))
        LOGGER.info("search_complete mode=%s level=%s count=%d failed=%d", request.mode, result.level, result.total, result.failed)
        return result

    # ------------------------------------------------------------------
    def _run(self, request: SearchRequest, checkpoint: Callable[[], None], on_progress) -> SearchResult:
        notes: List[str] = []
        if request.mode == "database":
            listings = self._search_database(request.filters)
        elif request.mode == "api":
            listings = self._search_provider(request.provider, request.filters)
        elif request.mode == "crawler":
            listings, note = self._crawl(request, checkpoint, on_progress)
            notes.append(note)
        else:
            raise ConfigurationError(f"Unknown search mode: {request.mode}")
        checkpoint()

        failed = 0
        if request.analyze and listings:
            listings, failed = self._enrich(listings)
            checkpoint()
            if not listings:
                return SearchResult(level="error", message=f"Analysis failed for all {failed} properties", failed=failed)

        if not listings:
            return SearchResult(level="info", message=" ".join(notes + ["No properties found matching your criteria."]))
        if failed:
            notes.append(f"{failed} of {len(listings) + failed} properties failed analysis and were skipped.")
            level = "warning"
        else:
            level = "success"
        message = " ".join([f"Found {len(listings)} properties."] + notes)
        return SearchResult(listings=listings, total=len(listings), level=level, message=message, failed=failed)

    def _search_database(self, filters: SearchFilters) -> List[PropertyListing]:
        rows = self.repository.search_listings(filters)
        return normalize_many(rows, "database", price_threshold=self.price_threshold)

    def _search_provider(self, name: str, filters: SearchFilters) -> List[PropertyListing]:
        provider = self.providers.get(name)
        if provider is None:
            raise ConfigurationError(f"Unknown provider: {name}")
        if provider.requires_coordinates and not filters.has_coordinates():
            filters = self._with_coordinates(filters, name)
        raw = provider.search(filters)
        listings = normalize_many(raw, provider.name, price_threshold=self.price_threshold)
        kept = apply_filters(listings, filters)
        LOGGER.info("provider_results provider=%s raw=%d normalized=%d kept=%d", name, len(raw), len(listings), len(kept))
        return kept

    def _with_coordinates(self, filters: SearchFilters, provider: str) -> SearchFilters:
        term = filters.search_term()
        if not term:
            raise ProviderError(provider, "a location or coordinates are required")
        if self.geocoder is None:
            raise ConfigurationError("Geocoding is not configured")
        point = self.geocoder.resolve(term)
        return filters.model_copy(
            update={
                "latitude": point.latitude,
                "longitude": point.longitude,
                "radius_miles": filters.radius_miles or DEFAULT_RADIUS_MILES,
            }
        )

    def _crawl(self, request: SearchRequest, checkpoint, on_progress):
        if self.crawler is None:
            raise ConfigurationError("The crawler is not configured")
        params = request.crawler or CrawlerParams(city=request.filters.search_term() or DEFAULT_CRAWLER_CITY)

        def cancelled() -> bool:
            try:
                checkpoint()
            except SearchSupersededError:
                return True
            return False

        report = self.crawler.run(params, on_progress=on_progress, cancelled=cancelled)
        checkpoint()
        return self._search_database(request.filters), f"Crawler found {report.properties_found} new properties."

    def _enrich(self, listings: List[PropertyListing]):
        if self.analyst is None:
            raise ConfigurationError("Property analysis is not configured")
        outcomes = self.analyst.analyze_batch(listings)
        kept = [outcome.listing for outcome in outcomes if outcome.ok]
        failed = len(outcomes) - len(kept)
        if failed:
            LOGGER.warning("analysis_partial failed=%d total=%d", failed, len(outcomes))
        return kept, failed


def _recent_entry(request: SearchRequest) -> Dict[str, Any]:
    entry: Dict[str, Any] = {"mode": request.mode, "filters": request.filters.model_dump(exclude_none=True)}
    if request.mode == "api":
        entry["provider"] = request.provider
    if request.mode == "crawler" and request.crawler is not None:
        entry["crawler"] = request.crawler.model_dump()
    return entry
