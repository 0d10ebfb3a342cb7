"""Lenient converters for vendor payload values."""

import json
import math
import re
from typing import Any, List, Optional

_NON_DIGITS = re.compile(r"[^\d]")
_NON_NUMERIC = re.compile(r"[^\d.]")


def _blank(v: Any) -> bool:
    return v is None or v == "" or str(v).strip().lower() in {"null", "none", "n/a", "nan"}


def to_int(v) -> Optional[int]:
    number = to_float(v)
    return None if number is None else int(number)


def to_float(v) -> Optional[float]:
    if _blank(v) or isinstance(v, bool):
        return None
    try:
        number = float(v)
    except (TypeError, ValueError, OverflowError):
        return None
    # "inf", "1e999" and huge digit strings are not usable numbers
    return number if math.isfinite(number) else None


def to_str(v) -> str:
    return "" if v is None else str(v).strip()


def parse_price(v) -> Optional[float]:
    """Parse ``250000``, ``"250000"`` or ``"£250,000"``; ``None`` when no digits."""

    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return to_float(v)
    if _blank(v):
        return None
    text = str(v)
    # Keep only the integer part of "£250,000.00".
    text = text.split(".")[0]
    digits = _NON_DIGITS.sub("", text)
    return to_float(digits) if digits else None


def parse_number(v) -> Optional[float]:
    """Pull the first number out of strings like ``"850 sq ft"``."""

    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return to_float(v)
    if _blank(v):
        return None
    match = re.search(r"\d[\d,]*(?:\.\d+)?", str(v))
    if not match:
        return None
    return to_float(_NON_NUMERIC.sub("", match.group(0)))


def parse_json_field(v) -> Any:
    """Vendor payloads embed lists/objects as JSON strings; decode them when they are."""

    if isinstance(v, str):
        text = v.strip()
        if text.startswith(("[", "{")):
            return json.loads(text)
    return v


def to_str_list(v) -> List[str]:
    value = parse_json_field(v)
    if value is None or value == "":
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [to_str(item) for item in value if not _blank(item)]
    return []
