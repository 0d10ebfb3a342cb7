"""Rightmove listings as previously imported into the ``property_listings`` table."""

from __future__ import annotations

from typing import List

from ..models.search import SearchFilters
from ..utils.logging import get_logger
from .base import RawRecord

LOGGER = get_logger("providers.rightmove")


class RightmoveClient:
    name = "rightmove"
    requires_coordinates = False

    def __init__(self, repository) -> None:
        self.repository = repository

    def search(self, filters: SearchFilters) -> List[RawRecord]:
        # Only the address term goes to the store; the remaining filters run client-side.
        term = filters.search_term()
        rows = self.repository.search_listings(SearchFilters(location=term or None, limit=filters.limit))
        LOGGER.info("rightmove_search term=%s count=%d", term, len(rows))
        return rows
