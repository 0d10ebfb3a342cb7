"""Deterministic investment score for normalized listings."""

from __future__ import annotations

import math
from typing import Any, Mapping, Optional, Union

from ..models.listing import PropertyListing

BASE_SCORE = 70
PRICE_THRESHOLD = 200_000

# (field, minimum, bonus); a bonus is granted when the value clears the minimum.
BONUSES = (
    ("bedrooms", 3, 5),
    ("bathrooms", 2, 5),
)
LARGE_SQUARE_FEET = 1000
MANY_FEATURES = 5
SIZE_BONUS = 5
FEATURE_BONUS = 5
PRICE_BONUS = 10

ScoreInput = Union[PropertyListing, Mapping[str, Any]]


def score_investment(listing: ScoreInput, price_threshold: float = PRICE_THRESHOLD) -> int:
    """Score a listing from 0 to 100.

    Starts at 70 and adds fixed bonuses for three or more bedrooms, two or more
    bathrooms, more than 1000 sq ft, more than five features and a price under
    ``price_threshold``. Missing values never earn a bonus. Estimated floor
    areas are ignored.
    """

    fields = _as_mapping(listing)
    score = BASE_SCORE
    for key, minimum, bonus in BONUSES:
        value = _safe_float(fields.get(key))
        if value is not None and value >= minimum:
            score += bonus

    square_feet = None if fields.get("square_feet_estimated") else _safe_float(fields.get("square_feet"))
    if square_feet is not None and square_feet > LARGE_SQUARE_FEET:
        score += SIZE_BONUS

    if _feature_count(fields) > MANY_FEATURES:
        score += FEATURE_BONUS

    price = _safe_float(fields.get("price"))
    if price is not None and 0 < price < price_threshold:
        score += PRICE_BONUS

    return clamp_score(score)


def clamp_score(value: Any) -> int:
    number = _safe_float(value)
    if number is None:
        return 0
    return max(0, min(100, int(round(number))))


def rating_from_score(score: Optional[int]) -> str:
    if score is None:
        return "Average"
    if score >= 75:
        return "Excellent"
    if score >= 60:
        return "Good"
    if score >= 45:
        return "Average"
    return "Below average"


def _as_mapping(listing: ScoreInput) -> Mapping[str, Any]:
    if isinstance(listing, PropertyListing):
        return listing.model_dump()
    return listing or {}


def _feature_count(fields: Mapping[str, Any]) -> int:
    features = fields.get("features")
    if isinstance(features, (list, tuple)):
        return len(features)
    count = _safe_float(fields.get("feature_count"))
    return int(count) if count is not None else 0


def _safe_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(result):
        return None
    return result
