"""Rental, ROI and bedroom/size estimates used when a vendor leaves fields blank.

All functions here are pure: same inputs, same outputs, no I/O.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Optional

DEFAULT_BEDROOMS = 2
ANNUAL_YIELD = 0.008
BEDROOM_STEP = 0.1
FLAT_MULTIPLIER = 1.1
DETACHED_MULTIPLIER = 0.9

_FLAT_RE = re.compile(r"flat|apartment", re.IGNORECASE)
_DETACHED_RE = re.compile(r"detached", re.IGNORECASE)
_COMPACT_RE = re.compile(r"flat|apartment|studio|maisonette", re.IGNORECASE)

# (upper price bound, bedrooms) buckets; the last bucket has no bound.
FLAT_BEDROOM_BUCKETS = ((120_000, 1), (180_000, 2), (None, 3))
HOUSE_BEDROOM_BUCKETS = ((120_000, 2), (200_000, 3), (None, 4))


@dataclass(frozen=True)
class Financials:
    rental_estimate: float
    roi_estimate: float


@dataclass(frozen=True)
class BidGuidance:
    value: float
    difference: float
    recommendation: str


def estimate_financials(price: Optional[float], bedrooms: Optional[int], property_type: Optional[str]) -> Financials:
    """Monthly rent and gross yield from price, bedrooms and property type.

    The monthly rent starts at 0.8% of the price per year, moves 10% per bedroom
    away from two, then gets one property-type adjustment (flats and apartments
    up 10%, detached houses down 10%). ROI is the annual rent as a percentage of
    the price.
    """

    if not price or price <= 0 or not math.isfinite(price):
        return Financials(rental_estimate=0, roi_estimate=0)
    if not bedrooms:
        bedrooms = DEFAULT_BEDROOMS

    base = (price * ANNUAL_YIELD) / 12
    base *= 1 + (bedrooms - DEFAULT_BEDROOMS) * BEDROOM_STEP

    kind = property_type or ""
    if _FLAT_RE.search(kind):
        base *= FLAT_MULTIPLIER
    elif _DETACHED_RE.search(kind):
        base *= DETACHED_MULTIPLIER

    rental = _round_half_up(base)
    return Financials(rental_estimate=rental, roi_estimate=calculate_roi(price, rental))


def calculate_roi(price: Optional[float], monthly_rental: Optional[float]) -> float:
    if not price or not monthly_rental:
        return 0
    return (monthly_rental * 12 / price) * 100


def is_compact(property_type: Optional[str]) -> bool:
    return bool(_COMPACT_RE.search(property_type or ""))


def estimate_bedrooms(price: Optional[float], property_type: Optional[str]) -> int:
    if not price or price <= 0:
        return DEFAULT_BEDROOMS
    buckets = FLAT_BEDROOM_BUCKETS if is_compact(property_type) else HOUSE_BEDROOM_BUCKETS
    for bound, bedrooms in buckets:
        if bound is None or price < bound:
            return bedrooms
    return buckets[-1][1]


def estimate_square_feet(bedrooms: Optional[int], property_type: Optional[str]) -> float:
    rooms = bedrooms or DEFAULT_BEDROOMS
    if is_compact(property_type):
        return float(400 + 200 * rooms)
    return float(500 + 250 * rooms)


def bid_guidance(price: Optional[float], bidding_recommendation: Optional[float]) -> Optional[BidGuidance]:
    if not bidding_recommendation or bidding_recommendation <= 0 or not price or price <= 0:
        return None
    diff = ((bidding_recommendation - price) / price) * 100
    return BidGuidance(
        value=bidding_recommendation,
        difference=diff,
        recommendation="Bid higher" if diff > 0 else "Bid lower",
    )


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
