"""Location lookups: Nominatim free-text search and postcodes.io."""

from __future__ import annotations

from typing import Any, Optional

import requests

from ..config import settings
from ..errors import LocationNotFoundError, ProviderError
from ..models.search import GeocodeResult, PostcodeResult
from ..utils.caching import KeyValueCache, TTLMemoryCache, cache_key
from ..utils.logging import get_logger
from ..utils.text import looks_like_postcode

LOGGER = get_logger("services.geocoding")


class Geocoder:
    def __init__(
        self,
        session: Optional[requests.Session] = None,
        cache: Optional[KeyValueCache] = None,
        nominatim_url: Optional[str] = None,
        postcodes_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.session = session or requests.Session()
        self.cache = cache if cache is not None else TTLMemoryCache(ttl=settings.CACHE_TTL_SECONDS)
        self.nominatim_url = nominatim_url or settings.NOMINATIM_URL
        self.postcodes_url = (postcodes_url or settings.POSTCODES_URL).rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self.headers = {"User-Agent": settings.GEOCODER_USER_AGENT}

    def geocode(self, query: str) -> GeocodeResult:
        """First Nominatim match for ``query`` restricted to Great Britain."""

        term = (query or "").strip()
        if not term:
            raise LocationNotFoundError(query or "")
        key = cache_key("geocode", term)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        params = {"q": term, "format": "json", "limit": 1, "countrycodes": "gb"}
        data = self._get_json("nominatim", self.nominatim_url, params=params)
        if not isinstance(data, list) or not data:
            raise LocationNotFoundError(term)
        first = data[0]
        try:
            result = GeocodeResult(
                latitude=float(first["lat"]),
                longitude=float(first["lon"]),
                display_name=str(first.get("display_name") or term),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderError("nominatim", f"malformed result for {term!r}: {exc}") from exc
        self.cache.set(key, result)
        LOGGER.info("geocode_resolved query=%s lat=%.5f lon=%.5f", term, result.latitude, result.longitude)
        return result

    def lookup_postcode(self, postcode: str) -> PostcodeResult:
        compact = "".join((postcode or "").split()).upper()
        if not compact:
            raise LocationNotFoundError(postcode or "")
        key = cache_key("postcode", compact)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        data = self._get_json("postcodes.io", f"{self.postcodes_url}/{compact}", not_found=postcode)
        payload = data.get("result") if isinstance(data, dict) else None
        if not payload or payload.get("latitude") is None:
            raise LocationNotFoundError(postcode)
        result = PostcodeResult(
            postcode=payload.get("postcode") or compact,
            latitude=float(payload["latitude"]),
            longitude=float(payload["longitude"]),
            admin_district=payload.get("admin_district"),
            region=payload.get("region"),
            country=payload.get("country"),
        )
        self.cache.set(key, result)
        return result

    def resolve(self, location: str) -> GeocodeResult:
        """Coordinates for a postcode or a free-text place name."""

        if looks_like_postcode(location):
            found = self.lookup_postcode(location)
            return GeocodeResult(found.latitude, found.longitude, found.postcode)
        return self.geocode(location)

    def _get_json(self, provider: str, url: str, params: Optional[dict] = None, not_found: Optional[str] = None) -> Any:
        try:
            response = self.session.get(url, params=params, headers=self.headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ProviderError(provider, str(exc)) from exc
        if response.status_code == 404 and not_found is not None:
            raise LocationNotFoundError(not_found)
        if response.status_code >= 400:
            raise ProviderError(provider, f"HTTP {response.status_code}", status_code=response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(provider, "invalid JSON response") from exc
