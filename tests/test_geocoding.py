import pytest
from fakes import FakeResponse, FakeSession

from propscout.errors import LocationNotFoundError, ProviderError
from propscout.models.search import GeocodeResult
from propscout.services.geocoding import Geocoder
from propscout.utils.caching import TTLMemoryCache

NOMINATIM = "https://nominatim.test/search"
POSTCODES = "https://postcodes.test/postcodes"

LEEDS = [{"lat": "53.7974", "lon": "-1.5438", "display_name": "Leeds, West Yorkshire, England"}]


def _geocoder(routes):
    session = FakeSession(routes)
    return Geocoder(session=session, cache=TTLMemoryCache(), nominatim_url=NOMINATIM, postcodes_url=POSTCODES), session


def test_geocode_returns_first_match():
    geocoder, session = _geocoder({"nominatim.test": FakeResponse(200, LEEDS)})
    result = geocoder.geocode("Leeds")

    assert result == GeocodeResult(53.7974, -1.5438, "Leeds, West Yorkshire, England")
    assert session.calls[0][1] == {"q": "Leeds", "format": "json", "limit": 1, "countrycodes": "gb"}


def test_geocode_is_cached_case_insensitively():
    geocoder, session = _geocoder({"nominatim.test": FakeResponse(200, LEEDS)})
    geocoder.geocode("Leeds")
    geocoder.geocode("  leeds ")
    assert len(session.calls) == 1


def test_geocode_no_match():
    geocoder, _ = _geocoder({"nominatim.test": FakeResponse(200, [])})
    with pytest.raises(LocationNotFoundError, match="Location not found: Atlantis"):
        geocoder.geocode("Atlantis")


def test_geocode_blank_query():
    geocoder, session = _geocoder({})
    with pytest.raises(LocationNotFoundError):
        geocoder.geocode("   ")
    assert session.calls == []


def test_geocode_http_failure():
    geocoder, _ = _geocoder({"nominatim.test": FakeResponse(503)})
    with pytest.raises(ProviderError) as excinfo:
        geocoder.geocode("Leeds")
    assert excinfo.value.status_code == 503


def test_geocode_transport_failure():
    geocoder, _ = _geocoder({})
    with pytest.raises(ProviderError, match="nominatim"):
        geocoder.geocode("Leeds")


def test_geocode_malformed_result():
    geocoder, _ = _geocoder({"nominatim.test": FakeResponse(200, [{"display_name": "no coordinates"}])})
    with pytest.raises(ProviderError, match="malformed"):
        geocoder.geocode("Leeds")


def test_postcode_lookup():
    payload = {
        "status": 200,
        "result": {
            "postcode": "LS6 2AB",
            "latitude": 53.82,
            "longitude": -1.57,
            "admin_district": "Leeds",
            "region": "Yorkshire and The Humber",
            "country": "England",
        },
    }
    geocoder, session = _geocoder({"postcodes.test": FakeResponse(200, payload)})
    result = geocoder.lookup_postcode("ls6 2ab")

    assert result.postcode == "LS6 2AB"
    assert result.admin_district == "Leeds"
    assert session.calls[0][0] == f"{POSTCODES}/LS62AB"


def test_unknown_postcode():
    geocoder, _ = _geocoder({"postcodes.test": FakeResponse(404, {"status": 404, "error": "Invalid postcode"})})
    with pytest.raises(LocationNotFoundError):
        geocoder.lookup_postcode("ZZ9 9ZZ")


def test_resolve_routes_postcodes_and_place_names():
    payload = {"result": {"postcode": "M1 1AA", "latitude": 53.48, "longitude": -2.24}}
    geocoder, session = _geocoder(
        {"postcodes.test": FakeResponse(200, payload), "nominatim.test": FakeResponse(200, LEEDS)}
    )

    assert geocoder.resolve("M1 1AA") == GeocodeResult(53.48, -2.24, "M1 1AA")
    assert geocoder.resolve("Leeds").latitude == pytest.approx(53.7974)
    assert [url for url, _ in session.calls] == [f"{POSTCODES}/M11AA", NOMINATIM]
