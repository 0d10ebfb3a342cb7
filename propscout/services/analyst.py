"""Per-listing investment analysis backed by Gemini, with a rule-based fallback."""

from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import google.generativeai as genai

from ..config import settings
from ..errors import AnalysisError
from ..models.listing import ListingAnalysis, MarketAnalysis, PropertyListing
from ..utils.coerce import to_float
from ..utils.logging import get_logger
from .scoring import rating_from_score

LOGGER = get_logger("services.analyst")

ANALYSIS_PROMPT = """You are a real estate investment analysis expert. Analyze this property as a potential investment.
Use ONLY the details below. Do not invent rents or prices that contradict them.

Address: {address}
Price: £{price}
Type: {property_type}
Bedrooms: {bedrooms}
Bathrooms: {bathrooms}
Square Feet: {square_feet}
Features: {features}
Estimated monthly rent: £{rental_estimate}
Estimated gross yield: {roi_estimate}%
Description: {description}

Return STRICT JSON with keys:
{{"summary": "...", "recommendation": "...", "bidding_recommendation": number,
  "market_analysis": {{"trend": "...", "demand": "..."}},
  "investment_highlights": {{"location": "...", "type": "...", "features": "..."}}}}"""

FALLBACK_BID_DISCOUNT = 0.95


@dataclass(frozen=True)
class AnalysisOutcome:
    """Settled result of one listing in a batch: either ``listing`` carries an analysis or ``error`` is set."""

    listing: PropertyListing
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ListingAnalyst:
    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        client: Any = None,
        max_workers: Optional[int] = None,
    ) -> None:
        preferred = model or settings.LLM_MODEL
        self.model_name = preferred.split("/", 1)[-1] if preferred.startswith("models/") else preferred
        self.max_workers = max_workers or settings.ANALYSIS_MAX_WORKERS
        self._model = client
        key = api_key if api_key is not None else settings.GOOGLE_API_KEY
        if self._model is None and key:
            genai.configure(api_key=key)
            self._model = genai.GenerativeModel(self.model_name)
            LOGGER.info("analyst_ready model=%s", self.model_name)

    @property
    def configured(self) -> bool:
        return self._model is not None

    def analyze(self, listing: PropertyListing) -> ListingAnalysis:
        if not self._model:
            return fallback_analysis(listing)
        prompt = build_prompt(listing)
        try:
            response = self._model.generate_content(
                prompt,
                generation_config={"temperature": 0.3, "response_mime_type": "application/json"},
            )
            payload = _load_json(_extract_text(response))
        except Exception as exc:
            LOGGER.warning("analysis_failed id=%s error=%s", listing.id, exc)
            raise AnalysisError(f"analysis failed for {listing.id}: {exc}") from exc
        return _to_analysis(payload, self.model_name)

    def enrich(self, listing: PropertyListing) -> PropertyListing:
        """Copy of ``listing`` with its analysis attached."""

        return listing.model_copy(update={"analysis": self.analyze(listing)})

    def analyze_batch(self, listings: Sequence[PropertyListing]) -> List[AnalysisOutcome]:
        """Enrich every listing concurrently; failures are reported, never raised.

        Outcomes come back in input order even though the work completes in any order.
        """

        if not listings:
            return []
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(listings))) as pool:
            futures = [pool.submit(self.enrich, listing) for listing in listings]
        outcomes: List[AnalysisOutcome] = []
        for listing, future in zip(listings, futures):
            error = future.exception()
            if error is not None:
                outcomes.append(AnalysisOutcome(listing=listing, error=error))
            else:
                outcomes.append(AnalysisOutcome(listing=future.result()))
        failed = sum(1 for outcome in outcomes if not outcome.ok)
        LOGGER.info("analysis_batch total=%d failed=%d", len(outcomes), failed)
        return outcomes


def build_prompt(listing: PropertyListing) -> str:
    return ANALYSIS_PROMPT.format(
        address=listing.address,
        price=f"{listing.price:,.0f}" if listing.price else "Unknown",
        property_type=listing.property_type,
        bedrooms=listing.bedrooms,
        bathrooms=listing.bathrooms or "Unknown",
        square_feet=f"{listing.square_feet:.0f}" if listing.square_feet else "Unknown",
        features=", ".join(listing.features) or "None listed",
        rental_estimate=f"{listing.rental_estimate:,.0f}",
        roi_estimate=f"{listing.roi_estimate:.1f}",
        description=listing.description,
    )


def fallback_analysis(listing: PropertyListing) -> ListingAnalysis:
    rating = rating_from_score(listing.investment_score)
    area = listing.postcode or listing.address.split(",")[-1].strip() or "the area"
    trends = listing.market_trends
    details = listing.property_details
    summary = (
        f"{listing.bedrooms} bedroom {listing.property_type.lower()} in {area} "
        f"with an estimated gross yield of {listing.roi_estimate:.1f}%."
    )
    if listing.investment_score >= 75:
        recommendation = "Strong candidate: arrange a viewing and confirm rental comparables."
    elif listing.investment_score >= 60:
        recommendation = "Worth a closer look: check running costs before bidding."
    else:
        recommendation = "Proceed with caution: the numbers leave little margin."
    return ListingAnalysis(
        summary=summary,
        recommendation=f"{rating}. {recommendation}",
        investment_highlights={
            "location": f"Located in {area}.",
            "type": f"{listing.property_type} with {listing.bedrooms} bedrooms.",
            "features": ", ".join(listing.features[:5]) or "No notable features listed.",
        },
        market_analysis=MarketAnalysis(
            trend=f"{trends.market_activity} market, {trends.appreciation_rate:.1f}% annual appreciation.",
            demand=f"{details.market_demand} rental demand.",
        ),
        bidding_recommendation=round(listing.price * FALLBACK_BID_DISCOUNT) if listing.price else None,
        generated_by="fallback",
    )


def _to_analysis(payload: Dict[str, Any], model_name: str) -> ListingAnalysis:
    if not isinstance(payload, dict) or not payload.get("summary"):
        raise AnalysisError("model response is missing a summary")
    market = payload.get("market_analysis")
    highlights = payload.get("investment_highlights") or {}
    bid_value = to_float(payload.get("bidding_recommendation"))
    return ListingAnalysis(
        summary=str(payload["summary"]),
        recommendation=str(payload.get("recommendation") or ""),
        investment_highlights={str(k): str(v) for k, v in highlights.items()} if isinstance(highlights, dict) else {},
        market_analysis=(
            MarketAnalysis(trend=str(market.get("trend", "")), demand=str(market.get("demand", "")))
            if isinstance(market, dict)
            else None
        ),
        bidding_recommendation=bid_value,
        generated_by=model_name,
    )


def _extract_text(response: Any) -> str:
    if getattr(response, "text", None):
        return response.text
    for candidate in getattr(response, "candidates", None) or []:
        if candidate.content.parts:
            return "".join(part.text for part in candidate.content.parts if getattr(part, "text", None))
    raise ValueError("Empty response from Gemini")


def _load_json(text: str) -> Dict[str, Any]:
    text = text.strip()
    start = text.find("{")
    end = text.rfind("}")
    if start >= 0 and end >= 0:
        text = text[start : end + 1]
    return json.loads(text)
