"""Exception types raised across propscout.

Vendor clients wrap transport failures in :class:`ProviderError`; the search
orchestrator turns every one of these into a user-facing message instead of
letting it escape.
"""

from __future__ import annotations

from typing import Optional


class PropscoutError(Exception):
    """Base exception for all propscout errors."""


class ConfigurationError(PropscoutError):
    """A required setting (credentials, base URL) is missing."""


class ProviderError(PropscoutError):
    """A vendor API, edge function or the backing store failed."""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"{provider}: {message}")


class LocationNotFoundError(PropscoutError):
    """Geocoding returned no match for the requested location."""

    def __init__(self, location: str):
        self.location = location
        super().__init__(f"Location not found: {location}")


class AnalysisError(PropscoutError):
    """Per-listing analysis failed."""


class SearchSupersededError(PropscoutError):
    """A newer search started before this one finished."""

    def __init__(self, generation: int, current: int):
        self.generation = generation
        self.current = current
        super().__init__(f"Search {generation} superseded by {current}")
