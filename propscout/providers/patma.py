"""PaTMa Prospector client: property listings around a point and area details for a postcode."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from ..config import settings
from ..errors import ConfigurationError, LocationNotFoundError, ProviderError
from ..models.search import SearchFilters
from ..utils.caching import KeyValueCache, TTLMemoryCache, cache_key
from ..utils.coerce import parse_price, to_int
from ..utils.logging import get_logger
from ..utils.text import extract_postcode
from .base import RawRecord

LOGGER = get_logger("providers.patma")

API_PROPERTY_TYPES = ("flat", "terraced", "semi-detached", "detached")
DEFAULT_RADIUS_MILES = 5
PAGE_SIZE = 100


@dataclass(frozen=True)
class PatmaSearchOptions:
    min_bedrooms: int = 1
    max_bedrooms: int = 3
    min_bathrooms: int = 2
    min_price: float = 70_000
    max_price: float = 275_000
    property_types: Tuple[str, ...] = ("semi-detached", "detached", "terraced", "bungalow")
    include_keywords: Tuple[str, ...] = ("cash only", "modernization", "modernization needed")
    exclude_keywords: Tuple[str, ...] = (
        "new home", "retirement", "shared ownership", "auction", "flat", "apartment",
    )
    exclude_flats: bool = True

    def with_filters(self, filters: SearchFilters) -> "PatmaSearchOptions":
        """Request filters override the defaults where they are set."""

        overrides = {}
        for attr in ("min_bedrooms", "max_bedrooms", "min_bathrooms", "min_price", "max_price"):
            value = getattr(filters, attr)
            if value is not None:
                overrides[attr] = value
        return replace(self, **overrides)

    def api_property_types(self) -> List[str]:
        kinds = [kind for kind in self.property_types if kind in API_PROPERTY_TYPES]
        return kinds or ["terraced", "semi-detached", "detached"]


@dataclass
class AreaDetails:
    postcode: str
    geographies: Optional[Dict[str, Any]] = None
    schools: List[Dict[str, Any]] = field(default_factory=list)
    crime: Optional[Dict[str, Any]] = None
    errors: Dict[str, str] = field(default_factory=dict)


class PatmaClient:
    name = "patma"
    requires_coordinates = True

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        cache: Optional[KeyValueCache] = None,
        options: Optional[PatmaSearchOptions] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.api_key = api_key or settings.PATMA_API_KEY
        self.base_url = (base_url or settings.PATMA_BASE_URL).rstrip("/")
        self.session = session or requests.Session()
        self.cache = cache if cache is not None else TTLMemoryCache(ttl=settings.PATMA_CACHE_TTL_SECONDS)
        self.options = options or PatmaSearchOptions()
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

    def search(self, filters: SearchFilters) -> List[RawRecord]:
        if not filters.has_coordinates():
            raise ProviderError(self.name, "latitude and longitude are required")
        radius = filters.radius_miles or DEFAULT_RADIUS_MILES
        return self.list_properties(
            filters.latitude, filters.longitude, radius, self.options.with_filters(filters)
        )

    def list_properties(
        self,
        latitude: float,
        longitude: float,
        radius: float = DEFAULT_RADIUS_MILES,
        options: Optional[PatmaSearchOptions] = None,
        bypass_cache: bool = False,
    ) -> List[RawRecord]:
        """One request per property type; a failing type is skipped, not fatal."""

        options = options or self.options
        # Rounded coordinates share a cache entry (about 1 km)
        key = cache_key("patma", round(latitude, 2), round(longitude, 2), radius, repr(options))
        if not bypass_cache:
            cached = self.cache.get(key)
            if cached is not None:
                LOGGER.info("patma_cache_hit lat=%.2f lon=%.2f radius=%s", latitude, longitude, radius)
                return cached

        results: List[RawRecord] = []
        kinds = options.api_property_types()
        failures = 0
        for kind in kinds:
            params = {
                "lat": latitude,
                "long": longitude,
                "radius": radius,
                "require_sold_price": "true",
                "include_sold_history": "true",
                "page": 1,
                "page_size": PAGE_SIZE,
                "min_bedrooms": options.min_bedrooms,
                "max_bedrooms": options.max_bedrooms,
                "min_bathrooms": options.min_bathrooms,
                "min_price": options.min_price,
                "max_price": options.max_price,
                "property_type": kind,
            }
            try:
                data = self._get("/list-property/", params)
            except ProviderError as exc:
                failures += 1
                LOGGER.warning("patma_type_failed property_type=%s error=%s", kind, exc)
                continue
            batch = (data.get("data") or {}).get("available_results") or []
            LOGGER.info("patma_type_results property_type=%s count=%d", kind, len(batch))
            results.extend(batch)

        if failures == len(kinds):
            raise ProviderError(self.name, "every property type request failed")

        filtered = filter_results(results, options)
        if filtered:
            self.cache.set(key, filtered)
        return filtered

    def area_details(self, postcode_or_address: str) -> AreaDetails:
        """Geographies, schools and crime for a postcode; each section fails independently."""

        postcode = extract_postcode(postcode_or_address)
        if not postcode:
            raise LocationNotFoundError(postcode_or_address)
        details = AreaDetails(postcode=postcode)
        for section in ("geographies", "schools", "crime"):
            try:
                data = self._get(f"/{section}", {"postcode": postcode}).get("data") or {}
            except ProviderError as exc:
                details.errors[section] = str(exc)
                LOGGER.warning("patma_area_section_failed section=%s postcode=%s error=%s", section, postcode, exc)
                continue
            if section == "schools":
                details.schools = [_school(item) for item in data.get("schools") or []]
            elif section == "crime":
                details.crime = {
                    "crime_rate": data.get("crime_rating") or "Unknown",
                    "total_crimes": (data.get("crimes_last_12m") or {}).get("total") or 0,
                    "crime_breakdown": data.get("crimes_last_12m") or {},
                    "above_average": data.get("above_national_average") or [],
                    "below_average": data.get("below_national_average") or [],
                }
            else:
                details.geographies = {
                    "local_authority": data.get("local_authority") or "Unknown",
                    "ward": data.get("electoral_ward") or "Unknown",
                    "constituency": data.get("parliamentary_constituency") or "Unknown",
                    "region": data.get("region") or "Unknown",
                    "county": data.get("county") or "Unknown",
                    "country": data.get("country") or "Unknown",
                }
        return details

    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise ConfigurationError("PATMA_API_KEY is not configured")
        try:
            response = self.session.get(
                f"{self.base_url}{path}",
                params={"api_key": self.api_key, **params},
                headers={"Authorization": f"Token {self.api_key}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ProviderError(self.name, str(exc)) from exc
        if response.status_code >= 400:
            raise ProviderError(self.name, f"HTTP {response.status_code} for {path}", status_code=response.status_code)
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError(self.name, f"invalid JSON from {path}") from exc
        if not isinstance(payload, dict) or payload.get("status") != "success":
            raise ProviderError(self.name, f"unsuccessful response from {path}")
        return payload


def filter_results(results: Sequence[RawRecord], options: PatmaSearchOptions) -> List[RawRecord]:
    """Re-apply the search options locally; the API does not always honour them."""

    kept = []
    for record in results:
        kind = str(record.get("property_type") or "").lower()
        if options.exclude_flats and ("flat" in kind or "apartment" in kind):
            continue
        bedrooms = to_int(record.get("bedrooms")) or 0
        if not options.min_bedrooms <= bedrooms <= options.max_bedrooms:
            continue
        price = (
            parse_price(record.get("price"))
            or parse_price(record.get("asking_price"))
            or parse_price(record.get("last_sold_price"))
            or 0
        )
        if not options.min_price <= price <= options.max_price:
            continue
        kept.append(record)

    if options.include_keywords:
        preferred = [r for r in kept if _mentions(r, options.include_keywords)]
        # a preference, not a requirement
        if preferred:
            kept = preferred
    if options.exclude_keywords:
        kept = [r for r in kept if not _mentions(r, options.exclude_keywords)]
    return kept


def _mentions(record: RawRecord, keywords: Sequence[str]) -> bool:
    text = f"{record.get('address') or ''} {record.get('description') or ''}".lower()
    return any(keyword.lower() in text for keyword in keywords)


def _school(item: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "name": item.get("name"),
        "type": item.get("type") or "Unknown",
        "distance": item.get("distance") or 0,
        "rating": item.get("rating") or "N/A",
        "pupils": item.get("pupils") or 0,
    }
