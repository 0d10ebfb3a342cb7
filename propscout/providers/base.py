from typing import Any, Dict, List, Protocol

from ..models.search import SearchFilters

RawRecord = Dict[str, Any]

# ----- Protocols (interfaces) -----


class ListingProvider(Protocol):
    """A vendor returning raw records; normalization happens in the search service."""

    name: str
    # True when ``search`` needs ``filters.latitude``/``longitude``
    requires_coordinates: bool

    def search(self, filters: SearchFilters) -> List[RawRecord]: ...
