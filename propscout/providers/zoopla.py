"""Client for the hosted Zoopla listings API."""

from __future__ import annotations

from typing import Any, List, Optional

import requests

from ..config import settings
from ..errors import ProviderError
from ..models.search import SearchFilters
from ..utils.logging import get_logger
from .base import RawRecord

LOGGER = get_logger("providers.zoopla")

SEARCHABLE_FIELDS = ("address", "property_title", "description", "property_type")


class ZooplaClient:
    name = "zoopla"
    requires_coordinates = False

    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.base_url = (base_url or settings.ZOOPLA_API_BASE_URL).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

    def fetch_all(self) -> List[RawRecord]:
        return _records(self._get("/api/properties"))

    def search(self, filters: SearchFilters) -> List[RawRecord]:
        """Search endpoint first; when it fails, fetch everything and match the term locally."""

        term = filters.search_term()
        if not term:
            return self.fetch_all()
        try:
            records = _records(self._get("/api/properties/search", params={"q": term}))
            LOGGER.info("zoopla_search term=%s count=%d", term, len(records))
            return records
        except ProviderError as exc:
            LOGGER.warning("zoopla_search_fallback term=%s error=%s", term, exc)
        needle = term.lower()
        return [
            record
            for record in self.fetch_all()
            if any(needle in str(record.get(field) or "").lower() for field in SEARCHABLE_FIELDS)
        ]

    def get(self, listing_id: str) -> Optional[RawRecord]:
        try:
            data = self._get(f"/api/properties/{listing_id}")
        except ProviderError as exc:
            if exc.status_code == 404:
                return None
            raise
        return data if isinstance(data, dict) else None

    def _get(self, path: str, params: Optional[dict] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, params=params, headers={"Accept": "application/json"}, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ProviderError(self.name, str(exc)) from exc
        if response.status_code >= 400:
            raise ProviderError(self.name, f"HTTP {response.status_code} for {path}", status_code=response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(self.name, f"invalid JSON from {path}") from exc


def _records(data: Any) -> List[RawRecord]:
    """Accept a bare list or a paginated ``{"results": [...]}`` payload."""

    if isinstance(data, dict) and isinstance(data.get("results"), list):
        return data["results"]
    if isinstance(data, list):
        return data
    LOGGER.warning("zoopla_unexpected_payload type=%s", type(data).__name__)
    return []
