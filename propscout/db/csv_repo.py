"""CSV-backed listing store used when Supabase is not configured."""

from __future__ import annotations

import os
import threading
from typing import Dict, Iterable, List, Optional

import pandas as pd

from ..config import settings
from ..models.search import SearchFilters
from ..utils.logging import get_logger
from .mappers import row_to_csv

LOGGER = get_logger("db.csv_repo")

COLUMNS = [
    "id", "address", "price", "bedrooms", "bathrooms", "square_feet", "property_type",
    "description", "image_url", "listing_url", "features", "agent", "location", "latitude",
    "longitude", "rental_estimate", "roi_estimate", "investment_score", "property_details",
    "market_trends", "investment_highlights", "last_sold_price", "source", "created_at", "updated_at",
]
NUMERIC_COLUMNS = ["price", "bedrooms", "bathrooms", "square_feet", "investment_score"]
DEFAULT_LIMIT = 200


class CSVRepository:
    def __init__(self, path: Optional[str] = None, persist: bool = True) -> None:
        self.path = path or settings.listings_csv_path
        self.persist = persist
        self._lock = threading.Lock()
        self._listings = self._load()

    def search_listings(self, filters: Optional[SearchFilters] = None) -> List[Dict]:
        filters = filters or SearchFilters()
        with self._lock:
            df = self._listings.copy()

        if filters.query:
            needle = filters.query.strip().lower()
            text = df["address"].fillna("").astype(str).str.lower() + " " + df["description"].fillna("").astype(str).str.lower()
            df = df[text.str.contains(needle, regex=False)]
        if filters.location:
            df = df[df["address"].fillna("").astype(str).str.lower().str.contains(filters.location.strip().lower(), regex=False)]
        if filters.property_type:
            df = df[df["property_type"].fillna("").astype(str).str.lower().str.contains(filters.property_type.lower(), regex=False)]

        numeric = {column: pd.to_numeric(df[column], errors="coerce") for column in NUMERIC_COLUMNS}
        for column, minimum, maximum in (
            ("price", filters.min_price, filters.max_price),
            ("bedrooms", filters.min_bedrooms, filters.max_bedrooms),
            ("bathrooms", filters.min_bathrooms, None),
        ):
            if minimum is not None:
                df = df[numeric[column].loc[df.index] >= minimum]
            if maximum is not None:
                df = df[numeric[column].loc[df.index] <= maximum]

        order = numeric["investment_score"].loc[df.index].fillna(-1)
        df = df.assign(_order=order).sort_values("_order", ascending=False).drop(columns=["_order"])
        df = df.head(filters.limit or DEFAULT_LIMIT)
        return self._records(df)

    def get_listing(self, listing_id: str) -> Optional[Dict]:
        with self._lock:
            df = self._listings
            row = df[df["id"].astype(str) == str(listing_id)]
        if row.empty:
            return None
        return self._records(row.head(1))[0]

    def upsert_listings(self, rows: Iterable[Dict]) -> int:
        incoming = pd.DataFrame([row_to_csv(row) for row in rows], columns=COLUMNS)
        if incoming.empty:
            return 0
        incoming["id"] = incoming["id"].astype(str)
        with self._lock:
            kept = self._listings[~self._listings["id"].isin(incoming["id"])]
            self._listings = pd.concat([kept, incoming], ignore_index=True)
            if self.persist:
                os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
                self._listings.to_csv(self.path, index=False)
        LOGGER.info("csv_upsert path=%s rows=%d", self.path, len(incoming))
        return len(incoming)

    def _load(self) -> pd.DataFrame:
        if not os.path.exists(self.path):
            LOGGER.warning("listings_csv_missing path=%s", self.path)
            return pd.DataFrame(columns=COLUMNS)
        df = pd.read_csv(self.path, dtype={"id": str})
        for column in COLUMNS:
            if column not in df.columns:
                df[column] = None
        LOGGER.debug("listings_csv_loaded path=%s rows=%d", self.path, len(df.index))
        return df

    @staticmethod
    def _records(df: pd.DataFrame) -> List[Dict]:
        df = df.astype(object).where(pd.notnull(df), None)
        return df.to_dict("records")
