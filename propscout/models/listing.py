"""Pydantic models for the canonical, provider-agnostic listing."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_APPRECIATION_RATE = 3.2
DEFAULT_MARKET_ACTIVITY = "Moderate"


class Agent(BaseModel):
    name: str = "Unknown Agent"
    phone: str = "N/A"


class Location(BaseModel):
    latitude: float
    longitude: float


class PropertyDetails(BaseModel):
    market_demand: str = "Medium"
    area_growth: str = "3.5%"
    crime_rate: str = "Average"
    nearby_schools: int = 3
    energy_rating: str = "C"
    council_tax_band: str = "D"
    property_features: List[str] = Field(default_factory=list)
    extra: Dict[str, Any] = Field(default_factory=dict)


class MarketTrends(BaseModel):
    appreciation_rate: float = DEFAULT_APPRECIATION_RATE
    market_activity: str = DEFAULT_MARKET_ACTIVITY


class MarketAnalysis(BaseModel):
    trend: str
    demand: str


class ListingAnalysis(BaseModel):
    summary: str
    recommendation: str
    investment_highlights: Dict[str, str] = Field(default_factory=dict)
    market_analysis: Optional[MarketAnalysis] = None
    bidding_recommendation: Optional[float] = None
    generated_by: str = "fallback"


class PropertyListing(BaseModel):
    """One normalized listing. Built once by the normalizer and never mutated."""

    model_config = ConfigDict(frozen=True)

    id: str
    address: str
    price: float = Field(ge=0)
    bedrooms: int
    bedrooms_estimated: bool = False
    bathrooms: Optional[int] = None
    square_feet: Optional[float] = None
    square_feet_estimated: bool = False
    property_type: str
    description: str
    image_url: str
    listing_url: Optional[str] = None
    features: List[str] = Field(default_factory=list)
    postcode: Optional[str] = None
    location: Optional[Location] = None
    agent: Optional[Agent] = None
    rental_estimate: float = 0
    roi_estimate: float = 0
    financials_derived: bool = True
    investment_score: int = Field(ge=0, le=100)
    property_details: PropertyDetails = Field(default_factory=PropertyDetails)
    market_trends: MarketTrends = Field(default_factory=MarketTrends)
    source: str
    last_sold_price: Optional[float] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    analysis: Optional[ListingAnalysis] = None


class ListingPage(BaseModel):
    items: List[PropertyListing]
    total: int
