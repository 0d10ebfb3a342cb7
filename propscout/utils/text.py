"""String heuristics for addresses and free-text descriptions."""

from __future__ import annotations

import hashlib
import re
from typing import List, Optional, Sequence

POSTCODE_RE = re.compile(r"\b([A-Z]{1,2}[0-9][A-Z0-9]? ?[0-9][A-Z]{2})\b", re.IGNORECASE)
_FULL_POSTCODE_RE = re.compile(r"^[A-Z]{1,2}[0-9][A-Z0-9]?[0-9][A-Z]{2}$", re.IGNORECASE)
_BEDROOMS_RE = re.compile(r"(\d+)\s*-?\s*bed(?:room)?s?\b", re.IGNORECASE)

# Order matters: "semi-detached" must win over "detached", "flat" over "house".
PROPERTY_TYPE_KEYWORDS = (
    ("semi-detached", "Semi-detached"),
    ("semi detached", "Semi-detached"),
    ("end of terrace", "End of terrace"),
    ("detached", "Detached"),
    ("terraced", "Terraced"),
    ("terrace", "Terraced"),
    ("bungalow", "Bungalow"),
    ("maisonette", "Maisonette"),
    ("apartment", "Flat"),
    ("studio", "Flat"),
    ("flat", "Flat"),
    ("cottage", "Cottage"),
    ("townhouse", "House"),
    ("house", "House"),
)
DEFAULT_PROPERTY_TYPE = "Property"

FEATURE_KEYWORDS = (
    "garden", "parking", "garage", "modern", "renovated", "fireplace",
    "pool", "view", "balcony", "terrace", "patio", "conservatory",
    "central heating", "double glazing", "en-suite", "open plan",
    "kitchen diner", "utility room", "study", "office", "gym",
)

PLACEHOLDER_IMAGES = {
    "flat": (
        "https://images.unsplash.com/photo-1545324418-cc1a3fa10c00",
        "https://images.unsplash.com/photo-1522708323590-d24dbb6b0267",
        "https://images.unsplash.com/photo-1502672260266-1c1ef2d93688",
    ),
    "house": (
        "https://images.unsplash.com/photo-1568605114967-8130f3a36994",
        "https://images.unsplash.com/photo-1570129477492-45c003edd2be",
        "https://images.unsplash.com/photo-1512917774080-9991f1c4c750",
    ),
    "generic": (
        "https://images.unsplash.com/photo-1433832597046-4f10e10ac764",
        "https://images.unsplash.com/photo-1501854140801-50d01698950b",
        "https://images.unsplash.com/photo-1482938289607-e9573fc25ebb",
    ),
}


def extract_postcode(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    match = POSTCODE_RE.search(text)
    if not match:
        return None
    compact = match.group(1).replace(" ", "").upper()
    return f"{compact[:-3]} {compact[-3:]}"


def looks_like_postcode(text: Optional[str]) -> bool:
    if not text:
        return False
    return bool(_FULL_POSTCODE_RE.match(re.sub(r"\s+", "", text)))


def bedrooms_from_text(text: Optional[str]) -> Optional[int]:
    if not text:
        return None
    match = _BEDROOMS_RE.search(text)
    if not match:
        return None
    value = int(match.group(1))
    return value if value > 0 else None


def infer_property_type(*texts: Optional[str]) -> Optional[str]:
    for text in texts:
        if not text:
            continue
        lowered = text.lower()
        for keyword, label in PROPERTY_TYPE_KEYWORDS:
            if keyword in lowered:
                return label
    return None


def extract_features(description: Optional[str]) -> List[str]:
    if not description:
        return []
    lowered = description.lower()
    # whole words only: "viewing" is not a view
    return [keyword.title() for keyword in FEATURE_KEYWORDS if re.search(rf"\b{re.escape(keyword)}\b", lowered)]


def location_fragment(address: Optional[str]) -> Optional[str]:
    """Last comma-separated part of an address that is not just a postcode."""

    if not address:
        return None
    parts = [part.strip() for part in address.split(",") if part.strip()]
    for part in reversed(parts):
        if not looks_like_postcode(part):
            return part
    return None


def placeholder_image(address: Optional[str], property_type: Optional[str]) -> str:
    """Pick a placeholder image from the category list, keyed on the address so it never changes."""

    category = _placeholder_category(property_type)
    choices: Sequence[str] = PLACEHOLDER_IMAGES[category]
    digest = hashlib.sha256((address or "").strip().lower().encode("utf-8")).hexdigest()
    return choices[int(digest[:8], 16) % len(choices)]


def stable_id(source: str, *parts: Optional[str]) -> str:
    seed = "|".join([source] + [(p or "").strip().lower() for p in parts])
    return f"{source}-{hashlib.sha256(seed.encode('utf-8')).hexdigest()[:16]}"


def _placeholder_category(property_type: Optional[str]) -> str:
    lowered = (property_type or "").lower()
    if any(word in lowered for word in ("flat", "apartment", "studio", "maisonette")):
        return "flat"
    if any(word in lowered for word in ("house", "detached", "terrace", "bungalow", "cottage")):
        return "house"
    return "generic"
