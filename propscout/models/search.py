"""Pydantic schemas for search requests, results and the helper endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from .listing import PropertyListing

SearchMode = Literal["database", "api", "crawler"]
ResultLevel = Literal["success", "info", "warning", "error"]


class SearchFilters(BaseModel):
    query: Optional[str] = None
    location: Optional[str] = None
    property_type: Optional[str] = None
    min_price: Optional[float] = Field(default=None, ge=0)
    max_price: Optional[float] = Field(default=None, ge=0)
    min_bedrooms: Optional[int] = Field(default=None, ge=0)
    max_bedrooms: Optional[int] = Field(default=None, ge=0)
    min_bathrooms: Optional[int] = Field(default=None, ge=0)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius_miles: Optional[float] = Field(default=None, gt=0)
    limit: Optional[int] = Field(default=None, ge=1, le=500)

    def search_term(self) -> str:
        return (self.location or self.query or "").strip()

    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class CrawlerParams(BaseModel):
    city: str
    max_pages: int = Field(default=3, ge=1, le=20)
    min_beds: int = 2
    max_price: float = 500_000
    analysis_threshold: int = Field(default=65, ge=0, le=100)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "city": self.city,
            "maxPages": self.max_pages,
            "minBeds": self.min_beds,
            "maxPrice": self.max_price,
            "analysisThreshold": self.analysis_threshold,
        }


class SearchRequest(BaseModel):
    mode: SearchMode = "database"
    provider: str = "zoopla"
    filters: SearchFilters = Field(default_factory=SearchFilters)
    analyze: bool = False
    crawler: Optional[CrawlerParams] = None


class SearchResult(BaseModel):
    listings: List[PropertyListing] = Field(default_factory=list)
    total: int = 0
    level: ResultLevel = "success"
    message: str = ""
    failed: int = 0
    generation: Optional[int] = None
    superseded: bool = False


class NormalizeRequest(BaseModel):
    source: str
    record: Dict[str, Any]


class EstimateRequest(BaseModel):
    price: Optional[float] = Field(default=None, ge=0)
    bedrooms: Optional[int] = Field(default=None, ge=0)
    property_type: Optional[str] = None


class EstimateResponse(BaseModel):
    rental_estimate: float
    roi_estimate: float
    estimated_bedrooms: int
    estimated_square_feet: float


class ScoreRequest(BaseModel):
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    square_feet: Optional[float] = None
    price: Optional[float] = None
    features: List[Any] = Field(default_factory=list)


class ScoreResponse(BaseModel):
    score: int
    rating: str


@dataclass(frozen=True)
class GeocodeResult:
    latitude: float
    longitude: float
    display_name: str


@dataclass(frozen=True)
class PostcodeResult:
    postcode: str
    latitude: float
    longitude: float
    admin_district: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
