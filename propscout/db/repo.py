"""Repository abstraction for Supabase or CSV listing stores."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from ..config import settings
from ..models.search import SearchFilters
from ..utils.logging import get_logger
from .csv_repo import CSVRepository
from .supabase_client import create_supabase_client
from .supabase_repo import SupabaseRepository

LOGGER = get_logger("db.repo")


class Repo:
    def __init__(self, mode: Optional[str] = None, client: Any = None, csv_path: Optional[str] = None) -> None:
        self.mode = (mode or settings.DB_MODE).lower()
        self.client = client
        self._store: Any = None
        if self.mode == "supabase":
            if self.client is None:
                self.client = create_supabase_client()
            if self.client is not None:
                self._store = SupabaseRepository(self.client)
                LOGGER.info("Repository running in Supabase mode")
            else:
                LOGGER.warning("Supabase client unavailable; falling back to CSV")
                self.mode = "csv"
        if self._store is None:
            self._store = CSVRepository(path=csv_path)
            LOGGER.info("Repository running in CSV mode")

    # ------------------------------------------------------------------
    # Listings
    def search_listings(self, filters: Optional[SearchFilters] = None) -> List[Dict]:
        return self._store.search_listings(filters)

    def get_listing(self, listing_id: str) -> Optional[Dict]:
        return self._store.get_listing(listing_id)

    def upsert_listings(self, rows: Iterable[Dict]) -> int:
        return self._store.upsert_listings(rows)


_repo_singleton: Repo | None = None


def get_repository() -> Repo:
    global _repo_singleton
    if _repo_singleton is None:
        _repo_singleton = Repo()
    return _repo_singleton


def reset_repository() -> None:
    global _repo_singleton
    _repo_singleton = None
