import pytest
from fakes import FakeResponse, FakeSession, FakeSupabase

from propscout.config import settings
from propscout.errors import ConfigurationError, LocationNotFoundError, ProviderError
from propscout.models.search import SearchFilters
from propscout.providers.patma import PatmaClient, PatmaSearchOptions, filter_results
from propscout.providers.registry import build_providers
from propscout.providers.rightmove import RightmoveClient
from propscout.providers.uk_api import RealtyApiClient, UKPropertyApiClient, build_params
from propscout.providers.zoopla import ZooplaClient
from propscout.utils.caching import TTLMemoryCache

ZOOPLA_URL = "https://zoopla.test"
PATMA_URL = "https://patma.test/v1"


# ---------------------------------------------------------------------------
# Zoopla
# ---------------------------------------------------------------------------


def _zoopla(routes):
    session = FakeSession(routes)
    return ZooplaClient(base_url=ZOOPLA_URL, session=session), session


def test_zoopla_without_term_fetches_everything():
    client, session = _zoopla({"/api/properties": FakeResponse(200, [{"_id": "1"}, {"_id": "2"}])})
    assert [r["_id"] for r in client.search(SearchFilters())] == ["1", "2"]
    assert session.calls[0][0] == f"{ZOOPLA_URL}/api/properties"


def test_zoopla_uses_search_endpoint():
    client, session = _zoopla({"/api/properties/search": FakeResponse(200, {"results": [{"_id": "9"}]})})
    assert client.search(SearchFilters(location="Leeds")) == [{"_id": "9"}]
    assert session.calls[0][1] == {"q": "Leeds"}


def test_zoopla_falls_back_to_local_match():
    everything = [
        {"_id": "1", "address": "Oak Lane, Leeds"},
        {"_id": "2", "address": "High Street, York", "description": "Near Leeds rail links"},
        {"_id": "3", "address": "Quay Street, Bristol"},
    ]
    client, _ = _zoopla(
        {
            "/api/properties/search": FakeResponse(500, {"error": "down"}),
            "/api/properties": FakeResponse(200, everything),
        }
    )
    assert [r["_id"] for r in client.search(SearchFilters(query="leeds"))] == ["1", "2"]


def test_zoopla_transport_errors_become_provider_errors():
    client, _ = _zoopla({})
    with pytest.raises(ProviderError) as excinfo:
        client.fetch_all()
    assert excinfo.value.provider == "zoopla"


def test_zoopla_get_missing_listing_is_none():
    client, _ = _zoopla({"/api/properties/abc": FakeResponse(404)})
    assert client.get("abc") is None


def test_zoopla_get_surfaces_other_failures():
    client, _ = _zoopla({"/api/properties/abc": FakeResponse(503)})
    with pytest.raises(ProviderError) as excinfo:
        client.get("abc")
    assert excinfo.value.status_code == 503


def test_zoopla_invalid_json():
    client, _ = _zoopla({"/api/properties": FakeResponse(200, ValueError("bad json"))})
    with pytest.raises(ProviderError, match="invalid JSON"):
        client.fetch_all()


# ---------------------------------------------------------------------------
# PaTMa
# ---------------------------------------------------------------------------


def _patma_record(uid, **extra):
    record = {
        "uprn": uid,
        "address": f"{uid} Mill Road, Leeds LS6 1AA",
        "property_type": "terraced",
        "bedrooms": 2,
        "asking_price": 150_000,
    }
    record.update(extra)
    return record


def _patma_route(by_type):
    def route(url, params):
        result = by_type.get(params["property_type"], [])
        if isinstance(result, FakeResponse):
            return result
        return FakeResponse(200, {"status": "success", "data": {"available_results": result}})

    return route


def _patma(routes, **kwargs):
    session = FakeSession(routes)
    client = PatmaClient(api_key="k", base_url=PATMA_URL, session=session, cache=TTLMemoryCache(), **kwargs)
    return client, session


def test_patma_queries_each_supported_type():
    client, session = _patma(
        {
            "/list-property/": _patma_route(
                {
                    "terraced": [_patma_record("1")],
                    "semi-detached": [_patma_record("2", property_type="semi-detached")],
                }
            )
        }
    )
    records = client.list_properties(53.8, -1.55, radius=3)

    assert {r["uprn"] for r in records} == {"1", "2"}
    sent_types = [params["property_type"] for _, params in session.calls]
    assert sent_types == ["semi-detached", "detached", "terraced"]
    first = session.calls[0][1]
    assert first["api_key"] == "k"
    assert (first["lat"], first["long"], first["radius"]) == (53.8, -1.55, 3)


def test_patma_skips_a_failing_type():
    client, _ = _patma(
        {"/list-property/": _patma_route({"detached": FakeResponse(500), "terraced": [_patma_record("1")]})}
    )
    assert [r["uprn"] for r in client.list_properties(53.8, -1.55)] == ["1"]


def test_patma_raises_when_every_type_fails():
    client, _ = _patma({"/list-property/": FakeResponse(502)})
    with pytest.raises(ProviderError, match="every property type request failed"):
        client.list_properties(53.8, -1.55)


def test_patma_unsuccessful_status_counts_as_failure():
    client, _ = _patma({"/list-property/": FakeResponse(200, {"status": "error", "message": "quota"})})
    with pytest.raises(ProviderError):
        client.list_properties(53.8, -1.55)


def test_patma_results_are_cached_by_rounded_coordinates():
    client, session = _patma({"/list-property/": _patma_route({"terraced": [_patma_record("1")]})})
    first = client.list_properties(53.8012, -1.5498)
    calls = len(session.calls)
    second = client.list_properties(53.8049, -1.5451)

    assert first == second
    assert len(session.calls) == calls

    client.list_properties(53.8012, -1.5498, bypass_cache=True)
    assert len(session.calls) == calls * 2


def test_patma_empty_results_are_not_cached():
    client, session = _patma({"/list-property/": _patma_route({})})
    assert client.list_properties(53.8, -1.55) == []
    calls = len(session.calls)
    client.list_properties(53.8, -1.55)
    assert len(session.calls) == calls * 2


def test_patma_search_requires_coordinates():
    client, _ = _patma({})
    with pytest.raises(ProviderError, match="latitude and longitude"):
        client.search(SearchFilters(location="Leeds"))


def test_patma_search_applies_request_filters():
    client, session = _patma({"/list-property/": _patma_route({})})
    client.search(SearchFilters(latitude=53.8, longitude=-1.55, min_bedrooms=2, max_price=200_000))
    params = session.calls[0][1]
    assert params["min_bedrooms"] == 2
    assert params["max_price"] == 200_000
    assert params["radius"] == 5


def test_patma_missing_key_is_a_configuration_error(monkeypatch):
    monkeypatch.setattr(settings, "PATMA_API_KEY", None)
    client = PatmaClient(base_url=PATMA_URL, session=FakeSession({}), cache=TTLMemoryCache())
    with pytest.raises(ConfigurationError):
        client.area_details("LS6 1AA")


def test_with_filters_only_overrides_set_values():
    options = PatmaSearchOptions().with_filters(SearchFilters(max_bedrooms=5, min_price=90_000))
    assert options.max_bedrooms == 5
    assert options.min_price == 90_000
    assert options.min_bedrooms == 1
    assert options.max_price == 275_000


def test_api_property_types_drop_unsupported_kinds():
    assert PatmaSearchOptions().api_property_types() == ["semi-detached", "detached", "terraced"]
    assert PatmaSearchOptions(property_types=("bungalow",)).api_property_types() == [
        "terraced", "semi-detached", "detached",
    ]


def test_filter_results_applies_ranges_and_keywords():
    records = [
        _patma_record("keep"),
        _patma_record("flat", property_type="Flat"),
        _patma_record("big", bedrooms=5),
        _patma_record("dear", asking_price="£400,000"),
        _patma_record("auction", description="For sale by auction"),
        _patma_record("sold-only", asking_price=None, last_sold_price=120_000),
    ]
    kept = filter_results(records, PatmaSearchOptions())
    assert [r["uprn"] for r in kept] == ["keep", "sold-only"]


def test_filter_results_prefers_include_keywords():
    records = [_patma_record("plain"), _patma_record("cash", description="Cash only buyers")]
    assert [r["uprn"] for r in filter_results(records, PatmaSearchOptions())] == ["cash"]


def test_filter_results_skips_unusable_numbers():
    records = [
        _patma_record("keep"),
        _patma_record("huge-beds", bedrooms="1e999"),
        _patma_record("inf-price", asking_price=float("inf")),
    ]
    kept = filter_results(records, PatmaSearchOptions())
    assert [r["uprn"] for r in kept] == ["keep"]


def test_area_details_sections_fail_independently():
    client, _ = _patma(
        {
            "/geographies": FakeResponse(
                200, {"status": "success", "data": {"local_authority": "Leeds", "region": "Yorkshire"}}
            ),
            "/schools": FakeResponse(
                200, {"status": "success", "data": {"schools": [{"name": "Hill Primary", "rating": "Good"}]}}
            ),
            "/crime": FakeResponse(500),
        }
    )
    details = client.area_details("12 Mill Road, Leeds ls61aa")

    assert details.postcode == "LS6 1AA"
    assert details.geographies["local_authority"] == "Leeds"
    assert details.geographies["ward"] == "Unknown"
    assert details.schools == [
        {"name": "Hill Primary", "type": "Unknown", "distance": 0, "rating": "Good", "pupils": 0}
    ]
    assert details.crime is None
    assert "crime" in details.errors


def test_area_details_without_postcode():
    client, _ = _patma({})
    with pytest.raises(LocationNotFoundError):
        client.area_details("somewhere in Leeds")


# ---------------------------------------------------------------------------
# Edge-function providers
# ---------------------------------------------------------------------------


def test_build_params_stringifies_values():
    params = build_params("Leeds", SearchFilters(min_price=150_000, max_bedrooms=3, property_type="flat"))
    assert params == {
        "area": "Leeds",
        "page_number": "1",
        "page_size": "40",
        "property_type": "flat",
        "min_price": "150000",
        "max_bedrooms": "3",
    }


def test_uk_api_returns_data_list():
    supabase = FakeSupabase({"uk-property-api": {"success": True, "data": [{"id": "u1"}]}})
    client = UKPropertyApiClient(supabase, function_name="uk-property-api")

    assert client.search(SearchFilters(location="Leeds", limit=10)) == [{"id": "u1"}]
    name, body = supabase.functions.calls[0]
    assert name == "uk-property-api"
    assert body["area"] == "Leeds"
    assert body["page_size"] == "10"


def test_uk_api_requires_an_area():
    client = UKPropertyApiClient(FakeSupabase({}), function_name="uk-property-api")
    with pytest.raises(ProviderError, match="an area is required"):
        client.search(SearchFilters())


def test_uk_api_rejects_payload_without_data():
    supabase = FakeSupabase({"uk-property-api": {"success": True}})
    with pytest.raises(ProviderError, match="data list"):
        UKPropertyApiClient(supabase, function_name="uk-property-api").search(SearchFilters(location="Leeds"))


def test_uk_api_without_supabase():
    with pytest.raises(ProviderError, match="not configured"):
        UKPropertyApiClient(None, function_name="uk-property-api").search(SearchFilters(location="Leeds"))


def test_realty_sends_search_query():
    supabase = FakeSupabase({"realty-api": {"properties": [{"property_id": "r1"}]}})
    client = RealtyApiClient(supabase, function_name="realty-api")
    assert client.search(SearchFilters(query="Austin, TX")) == [{"property_id": "r1"}]
    assert supabase.functions.calls[0][1] == {"searchQuery": "Austin, TX"}


# ---------------------------------------------------------------------------
# Rightmove and registry
# ---------------------------------------------------------------------------


class RecordingRepo:
    def __init__(self, rows):
        self.rows = rows
        self.filters = []

    def search_listings(self, filters):
        self.filters.append(filters)
        return list(self.rows)


def test_rightmove_only_sends_the_term_to_the_store():
    repo = RecordingRepo([{"id": "rm-1"}])
    rows = RightmoveClient(repo).search(SearchFilters(location="Leeds", min_bedrooms=3, limit=20))
    assert rows == [{"id": "rm-1"}]
    assert repo.filters[0] == SearchFilters(location="Leeds", limit=20)


def test_registry_exposes_every_provider():
    providers = build_providers(RecordingRepo([]), supabase_client=None, session=FakeSession({}))
    assert set(providers) == {"zoopla", "rightmove", "patma", "uk-api", "realty"}
    assert providers["patma"].requires_coordinates
    assert not providers["zoopla"].requires_coordinates
