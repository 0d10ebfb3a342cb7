"""Listing store backed by the Supabase ``property_listings`` table."""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional

from ..config import settings
from ..errors import ProviderError
from ..models.search import SearchFilters
from ..utils.logging import get_logger

LOGGER = get_logger("db.supabase_repo")

DEFAULT_LIMIT = 200
# PostgREST filter syntax reserves these characters inside or_() expressions
_RESERVED = re.compile(r"[,()%*]")


class SupabaseRepository:
    def __init__(self, client: Any, table: Optional[str] = None) -> None:
        self.client = client
        self.table = table or settings.LISTINGS_TABLE

    def search_listings(self, filters: Optional[SearchFilters] = None) -> List[Dict]:
        filters = filters or SearchFilters()
        query = self.client.table(self.table).select("*")
        if filters.query:
            term = _clean(filters.query)
            query = query.or_(f"address.ilike.%{term}%,description.ilike.%{term}%")
        if filters.location:
            query = query.ilike("address", f"%{_clean(filters.location)}%")
        if filters.property_type:
            query = query.ilike("property_type", f"%{_clean(filters.property_type)}%")
        if filters.min_price is not None:
            query = query.gte("price", filters.min_price)
        if filters.max_price is not None:
            query = query.lte("price", filters.max_price)
        if filters.min_bedrooms is not None:
            query = query.gte("bedrooms", filters.min_bedrooms)
        if filters.max_bedrooms is not None:
            query = query.lte("bedrooms", filters.max_bedrooms)
        if filters.min_bathrooms is not None:
            query = query.gte("bathrooms", filters.min_bathrooms)
        query = query.order("investment_score", desc=True).limit(filters.limit or DEFAULT_LIMIT)
        return self._execute(query, "search")

    def get_listing(self, listing_id: str) -> Optional[Dict]:
        rows = self._execute(self.client.table(self.table).select("*").eq("id", listing_id).limit(1), "get")
        return rows[0] if rows else None

    def upsert_listings(self, rows: Iterable[Dict]) -> int:
        payload = list(rows)
        if not payload:
            return 0
        self._execute(self.client.table(self.table).upsert(payload), "upsert")
        LOGGER.info("supabase_upsert table=%s rows=%d", self.table, len(payload))
        return len(payload)

    def _execute(self, query: Any, operation: str) -> List[Dict]:
        try:
            response = query.execute()
        except Exception as exc:  # postgrest APIError and httpx transport errors
            LOGGER.error("supabase_query_failed table=%s op=%s error=%s", self.table, operation, exc)
            raise ProviderError("supabase", f"{operation} on {self.table} failed: {exc}") from exc
        return list(getattr(response, "data", None) or [])


def _clean(term: str) -> str:
    return _RESERVED.sub(" ", term).strip()
