import json
from typing import Any, Dict

from ..models.listing import PropertyListing

# property_listings columns holding JSON documents
JSON_COLUMNS = ("features", "agent", "location", "property_details", "market_trends", "investment_highlights")


def listing_to_row(listing: PropertyListing) -> Dict[str, Any]:
    """Columns of the ``property_listings`` table for one listing."""

    details = listing.property_details.model_dump()
    extra = details.pop("extra", {}) or {}
    return {
        "id": listing.id,
        "address": listing.address,
        "price": listing.price,
        "bedrooms": listing.bedrooms,
        "bathrooms": listing.bathrooms,
        "square_feet": None if listing.square_feet_estimated else listing.square_feet,
        "property_type": listing.property_type,
        "description": listing.description,
        "image_url": listing.image_url,
        "listing_url": listing.listing_url,
        "features": list(listing.features),
        "agent": listing.agent.model_dump() if listing.agent else None,
        "location": listing.location.model_dump() if listing.location else None,
        "latitude": listing.location.latitude if listing.location else None,
        "longitude": listing.location.longitude if listing.location else None,
        "rental_estimate": listing.rental_estimate,
        "roi_estimate": listing.roi_estimate,
        "investment_score": listing.investment_score,
        "property_details": {**extra, **details},
        "market_trends": listing.market_trends.model_dump(),
        "investment_highlights": {"type": listing.property_type},
        "last_sold_price": listing.last_sold_price,
        "source": listing.source,
        "created_at": listing.created_at,
        "updated_at": listing.updated_at,
    }


def row_to_csv(row: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten JSON columns to strings so the row fits in a CSV cell."""

    flat = dict(row)
    for column in JSON_COLUMNS:
        value = flat.get(column)
        if value is not None and not isinstance(value, str):
            flat[column] = json.dumps(value)
    return flat
