from typing import Any, Dict, Optional

from ..utils.caching import KeyValueCache
from .base import ListingProvider
from .patma import PatmaClient
from .rightmove import RightmoveClient
from .uk_api import RealtyApiClient, UKPropertyApiClient
from .zoopla import ZooplaClient


def build_providers(
    repository,
    supabase_client: Any = None,
    session=None,
    patma_cache: Optional[KeyValueCache] = None,
) -> Dict[str, ListingProvider]:
    """Every provider the ``api`` search mode can dispatch to, keyed by name."""

    providers = [
        ZooplaClient(session=session),
        RightmoveClient(repository),
        PatmaClient(session=session, cache=patma_cache),
        UKPropertyApiClient(supabase_client),
        RealtyApiClient(supabase_client),
    ]
    return {provider.name: provider for provider in providers}
