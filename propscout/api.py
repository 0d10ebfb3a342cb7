from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query
from fastapi.encoders import jsonable_encoder

load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env", override=False)

from .config import settings
from .db.repo import Repo, get_repository
from .db.supabase_client import create_supabase_client
from .errors import ConfigurationError, LocationNotFoundError, ProviderError
from .models.listing import ListingPage, PropertyListing
from .models.search import (
    EstimateRequest,
    EstimateResponse,
    NormalizeRequest,
    ScoreRequest,
    ScoreResponse,
    SearchFilters,
    SearchRequest,
    SearchResult,
)
from .providers.patma import PatmaClient
from .providers.registry import build_providers
from .services.analyst import ListingAnalyst
from .services.crawler import CrawlerJob
from .services.financials import estimate_bedrooms, estimate_financials, estimate_square_feet
from .services.geocoding import Geocoder
from .services.normalizer import normalize, normalize_many
from .services.scoring import rating_from_score, score_investment
from .services.search_service import SearchService, SearchSession
from .utils.caching import RecentSearches, TTLMemoryCache
from .utils.logging import configure_logging, get_logger

configure_logging()
LOGGER = get_logger("api")

app = FastAPI(title="propscout")
router = APIRouter(prefix="/api")

_cache: Optional[TTLMemoryCache] = None
_patma_cache: Optional[TTLMemoryCache] = None
_geocoder: Optional[Geocoder] = None
_search_service: Optional[SearchService] = None
_search_session = SearchSession()


def get_cache() -> TTLMemoryCache:
    global _cache
    if _cache is None:
        _cache = TTLMemoryCache(ttl=settings.CACHE_TTL_SECONDS)
    return _cache


def get_patma_cache() -> TTLMemoryCache:
    global _patma_cache
    if _patma_cache is None:
        _patma_cache = TTLMemoryCache(ttl=settings.PATMA_CACHE_TTL_SECONDS)
    return _patma_cache


def get_recent_searches(cache: TTLMemoryCache = Depends(get_cache)) -> RecentSearches:
    return RecentSearches(cache, limit=settings.RECENT_SEARCH_LIMIT)


def get_geocoder() -> Geocoder:
    global _geocoder
    if _geocoder is None:
        _geocoder = Geocoder(cache=get_cache())
    return _geocoder


def get_patma_client() -> PatmaClient:
    return PatmaClient(cache=get_patma_cache())


def get_search_service() -> SearchService:
    global _search_service
    if _search_service is None:
        repo = get_repository()
        supabase = repo.client if repo.client is not None else create_supabase_client()
        _search_service = SearchService(
            repository=repo,
            providers=build_providers(repo, supabase_client=supabase, patma_cache=get_patma_cache()),
            geocoder=get_geocoder(),
            analyst=ListingAnalyst(),
            crawler=CrawlerJob(supabase),
            recent=RecentSearches(get_cache(), limit=settings.RECENT_SEARCH_LIMIT),
        )
    return _search_service


def get_search_session() -> SearchSession:
    return _search_session


def listing_filters(
    query: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    property_type: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    min_bedrooms: Optional[int] = Query(None, ge=0),
    max_bedrooms: Optional[int] = Query(None, ge=0),
    min_bathrooms: Optional[int] = Query(None, ge=0),
    limit: int = Query(200, ge=1, le=500),
) -> SearchFilters:
    return SearchFilters(
        query=query,
        location=location,
        property_type=property_type,
        min_price=min_price,
        max_price=max_price,
        min_bedrooms=min_bedrooms,
        max_bedrooms=max_bedrooms,
        min_bathrooms=min_bathrooms,
        limit=limit,
    )


@router.get("/health")
def health():
    return {"status": "ok", "db_mode": get_repository().mode}


@router.get("/listings", response_model=ListingPage)
def list_listings(filters: SearchFilters = Depends(listing_filters), repo: Repo = Depends(get_repository)):
    try:
        rows = repo.search_listings(filters)
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    items = normalize_many(rows, "database", price_threshold=settings.SCORE_PRICE_THRESHOLD)
    return ListingPage(items=items, total=len(items))


@router.get("/listings/{listing_id}", response_model=PropertyListing)
def get_listing(listing_id: str, repo: Repo = Depends(get_repository)):
    try:
        row = repo.get_listing(listing_id)
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    listing = normalize(row, "database", price_threshold=settings.SCORE_PRICE_THRESHOLD) if row else None
    if listing is None:
        raise HTTPException(status_code=404, detail=f"Listing not found: {listing_id}")
    return listing


@router.post("/search", response_model=SearchResult)
def search(
    request: SearchRequest,
    service: SearchService = Depends(get_search_service),
    session: SearchSession = Depends(get_search_session),
):
    return service.search(request, session=session)


@router.post("/normalize", response_model=PropertyListing)
def normalize_record(body: NormalizeRequest):
    listing = normalize(body.record, body.source, price_threshold=settings.SCORE_PRICE_THRESHOLD)
    if listing is None:
        raise HTTPException(status_code=422, detail=f"Record could not be normalized as {body.source}")
    return listing


@router.post("/estimate", response_model=EstimateResponse)
def estimate(body: EstimateRequest):
    financials = estimate_financials(body.price, body.bedrooms, body.property_type)
    bedrooms = body.bedrooms or estimate_bedrooms(body.price, body.property_type)
    return EstimateResponse(
        rental_estimate=financials.rental_estimate,
        roi_estimate=financials.roi_estimate,
        estimated_bedrooms=bedrooms,
        estimated_square_feet=estimate_square_feet(bedrooms, body.property_type),
    )


@router.post("/score", response_model=ScoreResponse)
def score(body: ScoreRequest):
    value = score_investment(body.model_dump(), price_threshold=settings.SCORE_PRICE_THRESHOLD)
    return ScoreResponse(score=value, rating=rating_from_score(value))


@router.get("/geocode")
def geocode(q: str = Query(..., min_length=2), geocoder: Geocoder = Depends(get_geocoder)) -> Dict[str, Any]:
    try:
        return asdict(geocoder.resolve(q))
    except LocationNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@router.get("/area/{postcode}")
def area(postcode: str, client: PatmaClient = Depends(get_patma_client)) -> Dict[str, Any]:
    try:
        details = client.area_details(postcode)
    except LocationNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ConfigurationError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return jsonable_encoder(asdict(details))


@router.get("/recent-searches")
def recent_searches(recent: RecentSearches = Depends(get_recent_searches)) -> List[Dict[str, Any]]:
    return recent.list()


@router.delete("/recent-searches", status_code=204)
def clear_recent_searches(recent: RecentSearches = Depends(get_recent_searches)) -> None:
    recent.clear()


app.include_router(router)
