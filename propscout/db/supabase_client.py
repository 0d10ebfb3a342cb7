"""Supabase client creation and edge-function invocation."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from supabase import Client, create_client

from ..config import settings
from ..errors import ProviderError
from ..utils.logging import get_logger

LOGGER = get_logger("db.supabase")


def create_supabase_client(url: Optional[str] = None, key: Optional[str] = None) -> Optional[Client]:
    url = url or settings.SUPABASE_URL
    key = key or settings.SUPABASE_KEY
    if not url or not key:
        LOGGER.info("Supabase credentials not configured; skipping client creation")
        return None
    return create_client(url, key)


def invoke_function(client: Any, name: str, body: Dict[str, Any]) -> Any:
    """Call a Supabase edge function and return its decoded JSON body.

    Raises :class:`ProviderError` when the call fails or the function reports
    ``success: false``.
    """

    if client is None:
        raise ProviderError(name, "Supabase is not configured")
    try:
        raw = client.functions.invoke(name, invoke_options={"body": body, "responseType": "json"})
    except Exception as exc:  # supabase raises FunctionsHttpError / FunctionsRelayError and httpx errors
        raise ProviderError(name, str(exc)) from exc

    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    if isinstance(raw, str):
        try:
            raw = json.loads(raw) if raw.strip() else {}
        except ValueError as exc:
            raise ProviderError(name, "invalid JSON response") from exc
    if isinstance(raw, dict) and raw.get("success") is False:
        raise ProviderError(name, str(raw.get("error") or "function reported failure"))
    return raw
