"""Runtime settings read from the environment (and ``.env`` via the API module)."""

import os
from typing import Optional

from pydantic import BaseModel


class Settings(BaseModel):
    # Storage
    DB_MODE: str = os.getenv("DB_MODE", "csv").lower()  # csv | supabase
    DATA_DIR: str = os.getenv(
        "DATA_DIR", os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "data")
    )
    LISTINGS_CSV: str = os.getenv("LISTINGS_CSV", "property_listings.csv")
    LISTINGS_TABLE: str = os.getenv("LISTINGS_TABLE", "property_listings")
    SUPABASE_URL: Optional[str] = os.getenv("SUPABASE_URL")
    SUPABASE_KEY: Optional[str] = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY")

    # Providers
    ZOOPLA_API_BASE_URL: str = os.getenv("ZOOPLA_API_BASE_URL", "https://zoopla-data.onrender.com")
    PATMA_API_KEY: Optional[str] = os.getenv("PATMA_API_KEY")
    PATMA_BASE_URL: str = os.getenv("PATMA_BASE_URL", "https://app.patma.co.uk/api/prospector/v1")
    UK_API_FUNCTION: str = os.getenv("UK_API_FUNCTION", "uk-property-api")
    CRAWLER_FUNCTION: str = os.getenv("CRAWLER_FUNCTION", "zoopla-crawler")
    REALTY_FUNCTION: str = os.getenv("REALTY_FUNCTION", "realty-api")
    HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))

    # Geocoding
    NOMINATIM_URL: str = os.getenv("NOMINATIM_URL", "https://nominatim.openstreetmap.org/search")
    POSTCODES_URL: str = os.getenv("POSTCODES_URL", "https://api.postcodes.io/postcodes")
    GEOCODER_USER_AGENT: str = os.getenv("GEOCODER_USER_AGENT", "propscout/0.1")

    # Caching
    CACHE_TTL_SECONDS: int = int(os.getenv("CACHE_TTL_SECONDS", "86400"))
    PATMA_CACHE_TTL_SECONDS: int = int(os.getenv("PATMA_CACHE_TTL_SECONDS", "1800"))
    RECENT_SEARCH_LIMIT: int = int(os.getenv("RECENT_SEARCH_LIMIT", "10"))

    # Scoring / analysis
    SCORE_PRICE_THRESHOLD: float = float(os.getenv("SCORE_PRICE_THRESHOLD", "200000"))
    GOOGLE_API_KEY: Optional[str] = os.getenv("GOOGLE_API_KEY")
    LLM_MODEL: str = os.getenv("LLM_MODEL", "gemini-2.5-flash")
    ANALYSIS_MAX_WORKERS: int = int(os.getenv("ANALYSIS_MAX_WORKERS", "4"))

    # Crawler
    CRAWLER_TICK_SECONDS: float = float(os.getenv("CRAWLER_TICK_SECONDS", "1.0"))

    @property
    def listings_csv_path(self) -> str:
        if os.path.isabs(self.LISTINGS_CSV):
            return self.LISTINGS_CSV
        return os.path.join(self.DATA_DIR, self.LISTINGS_CSV)


settings = Settings()
