"""Edge-function backed providers: the UK property API and the US realty API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..config import settings
from ..db.supabase_client import invoke_function
from ..errors import ProviderError
from ..models.search import SearchFilters
from ..utils.logging import get_logger
from .base import RawRecord

LOGGER = get_logger("providers.uk_api")

DEFAULT_PAGE_SIZE = 40


class UKPropertyApiClient:
    name = "uk-api"
    requires_coordinates = False

    def __init__(self, client: Any, function_name: Optional[str] = None) -> None:
        self.client = client
        self.function_name = function_name or settings.UK_API_FUNCTION

    def search(self, filters: SearchFilters) -> List[RawRecord]:
        area = filters.search_term()
        if not area:
            raise ProviderError(self.name, "an area is required")
        data = invoke_function(self.client, self.function_name, build_params(area, filters))
        records = data.get("data") if isinstance(data, dict) else None
        if not isinstance(records, list):
            raise ProviderError(self.name, "response is missing the data list")
        LOGGER.info("uk_api_search area=%s count=%d", area, len(records))
        return records


class RealtyApiClient:
    name = "realty"
    requires_coordinates = False

    def __init__(self, client: Any, function_name: Optional[str] = None) -> None:
        self.client = client
        self.function_name = function_name or settings.REALTY_FUNCTION

    def search(self, filters: SearchFilters) -> List[RawRecord]:
        term = filters.search_term()
        if not term:
            raise ProviderError(self.name, "a search query is required")
        data = invoke_function(self.client, self.function_name, {"searchQuery": term})
        records = data.get("properties") if isinstance(data, dict) else None
        LOGGER.info("realty_search term=%s count=%d", term, len(records or []))
        return list(records or [])


def build_params(area: str, filters: SearchFilters) -> Dict[str, str]:
    """The function takes every parameter as a string."""

    params = {"area": area, "page_number": "1", "page_size": str(filters.limit or DEFAULT_PAGE_SIZE)}
    optional = {
        "property_type": filters.property_type,
        "min_price": filters.min_price,
        "max_price": filters.max_price,
        "min_bedrooms": filters.min_bedrooms,
        "max_bedrooms": filters.max_bedrooms,
    }
    for key, value in optional.items():
        if value is not None and value != "":
            params[key] = str(int(value)) if isinstance(value, float) and value.is_integer() else str(value)
    return params
