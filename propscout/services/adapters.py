"""Per-provider mapping of raw vendor records onto common listing fields.

Each adapter only renames and unpacks fields. Every gap-filling heuristic
(bedroom estimates, placeholder images, descriptions, financials) lives in
:mod:`propscout.services.normalizer` so it is shared by all providers.

Adapters return a flat dict with these keys (missing ones are simply absent):
``id, address, title, price, asking_price, last_sold_price, bedrooms,
bathrooms, square_feet, square_meters, property_type, description, images,
listing_url, features, agent, latitude, longitude, created_at, updated_at,
rental_estimate, roi_estimate, investment_score, property_details,
market_trends, source``.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional

from ..utils.coerce import parse_json_field, parse_number, to_float, to_str, to_str_list
from ..utils.logging import get_logger

LOGGER = get_logger("services.adapters")

Adapter = Callable[[Mapping[str, Any]], Dict[str, Any]]


def adapt_zoopla(r: Mapping[str, Any]) -> Dict[str, Any]:
    location = _lenient_json(r.get("google_map_location"), "google_map_location") or {}
    if not isinstance(location, Mapping):
        location = {}
    return {
        "id": to_str(r.get("_id") or r.get("id") or r.get("uprn")),
        "address": to_str(r.get("address")),
        "title": to_str(r.get("property_title")),
        "price": r.get("price"),
        "bedrooms": r.get("bedrooms"),
        "bathrooms": r.get("bathrooms"),
        "square_feet": parse_number(r.get("property_size")),
        "property_type": to_str(r.get("property_type")),
        "description": to_str(r.get("description")),
        "images": _image_list(r.get("property_images")),
        "listing_url": to_str(r.get("url") or r.get("url_property")) or None,
        "features": _lenient_list(r.get("features"), "features"),
        "agent": _agent(r.get("agent_details")),
        "latitude": location.get("lat") or location.get("latitude"),
        "longitude": location.get("lng") or location.get("longitude"),
        "property_details": _compact(
            {
                "energy_rating": to_str(r.get("ecp_rating")) or None,
                "council_tax_band": to_str(r.get("council_tax_band")) or None,
                "tenure": to_str(r.get("tenure")) or None,
            }
        ),
    }


def adapt_database(r: Mapping[str, Any]) -> Dict[str, Any]:
    """Rows from the ``property_listings`` table (also the Rightmove and UK API shape)."""

    location = r.get("location") if isinstance(r.get("location"), Mapping) else {}
    details = _lenient_json(r.get("property_details"), "property_details")
    trends = _lenient_json(r.get("market_trends"), "market_trends")
    highlights = _lenient_json(r.get("investment_highlights"), "investment_highlights")
    property_type = to_str(r.get("property_type"))
    if not property_type and isinstance(highlights, Mapping):
        property_type = to_str(highlights.get("type"))
    image = to_str(r.get("image_url"))
    return {
        "id": to_str(r.get("id")),
        "address": to_str(r.get("address")),
        "price": r.get("price"),
        "last_sold_price": r.get("last_sold_price"),
        "bedrooms": r.get("bedrooms"),
        "bathrooms": r.get("bathrooms"),
        "square_feet": r.get("square_feet"),
        "property_type": property_type,
        "description": to_str(r.get("description")),
        "images": [image] if image else [],
        "listing_url": to_str(r.get("rightmove_url") or r.get("listing_url")) or None,
        "features": _lenient_list(r.get("features"), "features"),
        "agent": _agent(r.get("agent")),
        "latitude": _first(r.get("latitude"), location.get("latitude")),
        "longitude": _first(r.get("longitude"), location.get("longitude")),
        "created_at": to_str(r.get("created_at")) or None,
        "updated_at": to_str(r.get("updated_at")) or None,
        "rental_estimate": r.get("rental_estimate"),
        "roi_estimate": r.get("roi_estimate"),
        "investment_score": r.get("investment_score"),
        "property_details": details if isinstance(details, Mapping) else {},
        "market_trends": trends if isinstance(trends, Mapping) else {},
        "source": to_str(r.get("source")) or None,
    }


def adapt_patma(r: Mapping[str, Any]) -> Dict[str, Any]:
    sold_history = r.get("sold_history") or []
    last_sold = r.get("last_sold_price")
    if last_sold is None and isinstance(sold_history, list) and sold_history:
        first = sold_history[0]
        last_sold = first.get("price") if isinstance(first, Mapping) else None
    images = _lenient_list(r.get("images"), "images")
    if not images and r.get("image_url"):
        images = [to_str(r.get("image_url"))]
    agent = _agent(r.get("agent"))
    if agent is None and r.get("agent_name"):
        agent = {"name": to_str(r.get("agent_name")), "phone": to_str(r.get("agent_phone")) or "N/A"}
    return {
        "id": to_str(r.get("id") or r.get("uprn") or r.get("property_id")),
        "address": to_str(r.get("address")),
        "price": r.get("price"),
        "asking_price": r.get("asking_price"),
        "last_sold_price": last_sold,
        "bedrooms": r.get("bedrooms"),
        "bathrooms": r.get("bathrooms"),
        "square_feet": r.get("square_feet"),
        "square_meters": r.get("floor_area_sqm") or r.get("floor_area"),
        "property_type": to_str(r.get("property_type")),
        "description": to_str(r.get("description")),
        "images": images,
        "listing_url": to_str(r.get("url") or r.get("listing_url")) or None,
        "features": _lenient_list(r.get("features"), "features"),
        "agent": agent,
        "latitude": _first(r.get("latitude"), r.get("lat")),
        "longitude": _first(r.get("longitude"), r.get("long"), r.get("lng")),
        "created_at": to_str(r.get("date_added") or r.get("listed_date")) or None,
    }


def adapt_realty(r: Mapping[str, Any]) -> Dict[str, Any]:
    """US listings from the realty edge function (nested address, beds/baths, building_size)."""

    address = r.get("address")
    if isinstance(address, Mapping):
        parts = [to_str(address.get(key)) for key in ("line", "city", "state", "postal_code")]
        address_text = ", ".join(part for part in parts if part)
    else:
        address_text = to_str(address)
    size = r.get("building_size") if isinstance(r.get("building_size"), Mapping) else {}
    square_feet = to_float(size.get("size")) or None
    if square_feet and to_str(size.get("units")).lower() in {"sqm", "m2", "square meters"}:
        return {**_realty_common(r, address_text), "square_meters": square_feet}
    return {**_realty_common(r, address_text), "square_feet": square_feet}


def _realty_common(r: Mapping[str, Any], address_text: str) -> Dict[str, Any]:
    return {
        "id": to_str(r.get("property_id") or r.get("id")),
        "address": address_text,
        "price": r.get("price"),
        "bedrooms": r.get("beds") or r.get("bedrooms"),
        "bathrooms": r.get("baths") or r.get("bathrooms"),
        "property_type": to_str(r.get("prop_type") or r.get("property_type")),
        "description": to_str(r.get("description")),
        "images": to_str_list(r.get("photos")),
        "listing_url": to_str(r.get("rdc_web_url") or r.get("url")) or None,
    }


def adapt_scraper(r: Mapping[str, Any]) -> Dict[str, Any]:
    """A page scraped by the website-scraper function (camelCase keys)."""

    agent = None
    if r.get("agentName"):
        agent = {"name": to_str(r.get("agentName")), "phone": to_str(r.get("agentPhone")) or "N/A"}
    return {
        "id": to_str(r.get("id") or r.get("url")),
        "address": to_str(r.get("address")),
        "title": to_str(r.get("title")),
        "price": r.get("priceValue") if r.get("priceValue") is not None else r.get("price"),
        "bedrooms": r.get("bedrooms"),
        "bathrooms": r.get("bathrooms"),
        "property_type": to_str(r.get("propertyType")),
        "description": to_str(r.get("description")),
        "images": to_str_list(r.get("imageUrls")),
        "listing_url": to_str(r.get("url")) or None,
        "features": to_str_list(r.get("features")),
        "agent": agent,
    }


ADAPTERS: Dict[str, Adapter] = {
    "zoopla": adapt_zoopla,
    "rightmove": adapt_database,
    "database": adapt_database,
    "uk-api": adapt_database,
    "patma": adapt_patma,
    "realty": adapt_realty,
    "scraper": adapt_scraper,
}


def adapter_for(source: str) -> Adapter:
    return ADAPTERS.get((source or "").lower(), adapt_database)


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _lenient_json(value: Any, field: str) -> Any:
    try:
        return parse_json_field(value)
    except ValueError:
        LOGGER.debug("unparseable_field field=%s", field)
        return None


def _lenient_list(value: Any, field: str) -> List[str]:
    try:
        return to_str_list(value)
    except ValueError:
        LOGGER.debug("unparseable_field field=%s", field)
        return []


def _image_list(value: Any) -> List[str]:
    if isinstance(value, str) and value.strip().startswith("http"):
        return [value.strip()]
    return [url for url in _lenient_list(value, "images") if url.startswith("http")]


def _agent(value: Any) -> Optional[Dict[str, str]]:
    parsed = _lenient_json(value, "agent")
    if not isinstance(parsed, Mapping):
        return None
    name = to_str(parsed.get("name"))
    phone = to_str(parsed.get("phone"))
    if not name and not phone:
        return None
    return {"name": name or "Unknown Agent", "phone": phone or "N/A"}


def _compact(values: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


def _first(*values: Any) -> Any:
    for value in values:
        if value is not None and value != "":
            return value
    return None
