"""Client-side filtering of normalized listings."""

from __future__ import annotations

import math
from typing import Iterable, List, Optional

from ..models.listing import PropertyListing
from ..models.search import SearchFilters

EARTH_RADIUS_MILES = 3958.8


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_MILES * math.asin(math.sqrt(a))


def matches(listing: PropertyListing, filters: SearchFilters) -> bool:
    """True when ``listing`` satisfies every filter that is set.

    With coordinates and a radius on the filters, the distance check takes the
    place of the location text match; listings without coordinates then fail.
    """

    if filters.query and not _contains(filters.query, listing.address, listing.description):
        return False

    if filters.has_coordinates() and filters.radius_miles:
        if listing.location is None:
            return False
        distance = haversine_miles(
            filters.latitude, filters.longitude, listing.location.latitude, listing.location.longitude
        )
        if distance > filters.radius_miles:
            return False
    elif filters.location and not _contains(filters.location, listing.address, listing.postcode):
        return False

    if filters.property_type and filters.property_type.lower() not in listing.property_type.lower():
        return False

    # price 0 is unknown and only fails an explicit minimum
    if filters.min_price is not None and listing.price < filters.min_price:
        return False
    if filters.max_price is not None and listing.price and listing.price > filters.max_price:
        return False

    if filters.min_bedrooms is not None and listing.bedrooms < filters.min_bedrooms:
        return False
    if filters.max_bedrooms is not None and listing.bedrooms > filters.max_bedrooms:
        return False
    if filters.min_bathrooms is not None and (listing.bathrooms or 0) < filters.min_bathrooms:
        return False
    return True


def apply_filters(listings: Iterable[PropertyListing], filters: Optional[SearchFilters]) -> List[PropertyListing]:
    items = list(listings)
    if filters is None:
        return items
    kept = [listing for listing in items if matches(listing, filters)]
    if filters.limit:
        kept = kept[: filters.limit]
    return kept


def _contains(needle: str, *haystacks: Optional[str]) -> bool:
    term = needle.strip().lower()
    if not term:
        return True
    return any(term in (text or "").lower() for text in haystacks)
