"""Turn raw vendor records into :class:`PropertyListing` objects.

The provider adapters only rename fields; this module fills the gaps the
same way for every source and attaches the financial estimate and score.
A record that cannot be mapped yields ``None`` so one bad row never aborts a
batch.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from ..models.listing import Agent, Location, MarketTrends, PropertyDetails, PropertyListing
from ..utils.coerce import parse_price, to_float, to_int, to_str
from ..utils.logging import get_logger
from ..utils.text import (
    DEFAULT_PROPERTY_TYPE,
    bedrooms_from_text,
    extract_features,
    extract_postcode,
    infer_property_type,
    location_fragment,
    placeholder_image,
    stable_id,
)
from .adapters import adapter_for
from .financials import estimate_bedrooms, estimate_financials, estimate_square_feet
from .scoring import PRICE_THRESHOLD, clamp_score, score_investment

LOGGER = get_logger("services.normalizer")

SQM_TO_SQFT = 10.7639
DESCRIPTION_TEMPLATE = (
    "A {bedrooms} bedroom {property_type} located in {area}. This property is available for "
    "purchase and could be an excellent investment opportunity. Contact the agent for more "
    "details and to arrange a viewing."
)

_DETAIL_FIELDS = set(PropertyDetails.model_fields) - {"extra"}
_TREND_FIELDS = set(MarketTrends.model_fields)


def normalize(
    raw: Any, source: str, price_threshold: float = PRICE_THRESHOLD
) -> Optional[PropertyListing]:
    """Map one vendor record to a listing, or ``None`` if it is unusable."""

    if not isinstance(raw, Mapping):
        LOGGER.warning("normalize_skipped source=%s reason=not_a_mapping type=%s", source, type(raw).__name__)
        return None
    try:
        fields = adapter_for(source)(raw)
        return _build_listing(fields, source, price_threshold)
    except (ValueError, TypeError, KeyError, AttributeError, ArithmeticError, ValidationError) as exc:
        LOGGER.warning("normalize_failed source=%s id=%s error=%s", source, raw.get("id") or raw.get("_id"), exc)
        return None


def normalize_many(
    records: Iterable[Any], source: str, price_threshold: float = PRICE_THRESHOLD
) -> List[PropertyListing]:
    listings: List[PropertyListing] = []
    dropped = 0
    for record in records or []:
        listing = normalize(record, source, price_threshold=price_threshold)
        if listing is None:
            dropped += 1
            continue
        listings.append(listing)
    if dropped:
        LOGGER.info("normalize_batch source=%s kept=%d dropped=%d", source, len(listings), dropped)
    return listings


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def _build_listing(fields: Mapping[str, Any], source: str, price_threshold: float) -> PropertyListing:
    tag = to_str(fields.get("source")) or source
    address = to_str(fields.get("address"))
    raw_id = to_str(fields.get("id"))
    if not address and not raw_id:
        raise ValueError("record has neither an id nor an address")

    price = select_price(fields)
    if price < 0:
        raise ValueError(f"negative price {price}")

    title = to_str(fields.get("title"))
    description = to_str(fields.get("description"))
    property_type = (
        to_str(fields.get("property_type"))
        or infer_property_type(address, title, description)
        or DEFAULT_PROPERTY_TYPE
    )

    bedrooms = _positive_int(fields.get("bedrooms")) or bedrooms_from_text(address) or bedrooms_from_text(title)
    bedrooms_estimated = bedrooms is None
    if bedrooms is None:
        bedrooms = estimate_bedrooms(price, property_type)

    square_feet = _square_feet(fields)
    square_feet_estimated = square_feet is None
    if square_feet is None:
        square_feet = estimate_square_feet(bedrooms, property_type)

    features = list(fields.get("features") or []) or extract_features(description)
    if not description:
        description = DESCRIPTION_TEMPLATE.format(
            bedrooms=bedrooms,
            property_type=property_type.lower(),
            area=location_fragment(address) or "a popular area",
        )

    images = [url for url in fields.get("images") or [] if url]
    image_url = images[0] if images else placeholder_image(address, property_type)

    rental = to_float(fields.get("rental_estimate"))
    roi = to_float(fields.get("roi_estimate"))
    financials_derived = rental is None or roi is None
    if financials_derived:
        estimate = estimate_financials(price, bedrooms, property_type)
        rental, roi = estimate.rental_estimate, estimate.roi_estimate

    bathrooms = _positive_int(fields.get("bathrooms"))
    supplied_score = to_float(fields.get("investment_score"))
    if supplied_score is not None:
        score = clamp_score(supplied_score)
    else:
        score = score_investment(
            {
                "bedrooms": bedrooms,
                "bathrooms": bathrooms,
                "square_feet": square_feet,
                "square_feet_estimated": square_feet_estimated,
                "price": price,
                "features": features,
            },
            price_threshold=price_threshold,
        )

    agent = fields.get("agent")
    return PropertyListing(
        id=raw_id or stable_id(tag, address, str(price)),
        address=address or "Unknown Address",
        price=price,
        bedrooms=bedrooms,
        bedrooms_estimated=bedrooms_estimated,
        bathrooms=bathrooms,
        square_feet=square_feet,
        square_feet_estimated=square_feet_estimated,
        property_type=property_type,
        description=description,
        image_url=image_url,
        listing_url=fields.get("listing_url"),
        features=features,
        postcode=extract_postcode(address),
        location=_location(fields.get("latitude"), fields.get("longitude")),
        agent=Agent(**agent) if agent else None,
        rental_estimate=rental,
        roi_estimate=roi,
        financials_derived=financials_derived,
        investment_score=score,
        property_details=_property_details(fields.get("property_details") or {}, features),
        market_trends=_market_trends(fields.get("market_trends") or {}),
        source=tag,
        last_sold_price=parse_price(fields.get("last_sold_price")),
        created_at=fields.get("created_at"),
        updated_at=fields.get("updated_at") or fields.get("created_at"),
    )


def select_price(fields: Mapping[str, Any]) -> float:
    """Sale price, else asking price, else last sold price, else 0 (unknown)."""

    for key in ("price", "asking_price", "last_sold_price"):
        value = parse_price(fields.get(key))
        if value:
            return value
    return 0.0


def _positive_int(value: Any) -> Optional[int]:
    number = to_int(value)
    return number if number and number > 0 else None


def _square_feet(fields: Mapping[str, Any]) -> Optional[float]:
    square_feet = to_float(fields.get("square_feet"))
    if square_feet and square_feet > 0:
        return square_feet
    square_meters = to_float(fields.get("square_meters"))
    if square_meters and square_meters > 0:
        return round(square_meters * SQM_TO_SQFT, 1)
    return None


def _location(latitude: Any, longitude: Any) -> Optional[Location]:
    lat, lon = to_float(latitude), to_float(longitude)
    if lat is None or lon is None or (lat == 0 and lon == 0):
        return None
    return Location(latitude=lat, longitude=lon)


def _property_details(values: Mapping[str, Any], features: List[str]) -> PropertyDetails:
    known: Dict[str, Any] = {"property_features": features[:3]}
    extra: Dict[str, Any] = {}
    for key, value in values.items():
        if value is None or value == "":
            continue
        if key == "nearby_schools":
            schools = to_int(value)
            if schools is not None:
                known[key] = schools
        elif key == "property_features":
            if isinstance(value, list):
                known[key] = [to_str(item) for item in value]
        elif key in _DETAIL_FIELDS:
            known[key] = to_str(value)
        else:
            extra[key] = value
    return PropertyDetails(**known, extra=extra)


def _market_trends(values: Mapping[str, Any]) -> MarketTrends:
    known: Dict[str, Any] = {}
    rate = to_float(values.get("appreciation_rate"))
    if rate:
        known["appreciation_rate"] = rate
    activity = to_str(values.get("market_activity"))
    if activity:
        known["market_activity"] = activity
    return MarketTrends(**{k: v for k, v in known.items() if k in _TREND_FIELDS})
