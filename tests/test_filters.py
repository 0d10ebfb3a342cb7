import pytest

from propscout.models.search import SearchFilters
from propscout.services.filters import apply_filters, haversine_miles, matches
from propscout.services.normalizer import normalize


def _listing(listing_id, address, price, **extra):
    return normalize({"id": listing_id, "address": address, "price": price, **extra}, "database")


@pytest.fixture
def listings():
    return [
        _listing("m1", "14 Albert Road, Manchester M19 2EQ", 185_000, bedrooms=3, bathrooms=1,
                 property_type="Terraced", latitude=53.44, longitude=-2.19),
        _listing("m2", "Flat 4, 27 Deansgate, Manchester M3 4LQ", 215_000, bedrooms=2, bathrooms=2,
                 property_type="Flat", latitude=53.48, longitude=-2.25),
        _listing("l1", "9 Meadow Close, Leeds LS17 6BW", 340_000, bedrooms=4, bathrooms=2,
                 property_type="Detached", latitude=53.86, longitude=-1.52),
        _listing("u1", "Station Road, Sheffield", 0, bedrooms=2),
    ]


def _ids(items):
    return [item.id for item in items]


def test_haversine_is_zero_for_same_point_and_symmetric():
    assert haversine_miles(51.5, -0.12, 51.5, -0.12) == 0
    there = haversine_miles(53.48, -2.24, 53.80, -1.55)
    back = haversine_miles(53.80, -1.55, 53.48, -2.24)
    assert there == pytest.approx(back)
    # Manchester to Leeds is roughly 36 miles
    assert 30 < there < 40


def test_no_filters_keeps_everything(listings):
    assert apply_filters(listings, SearchFilters()) == listings
    assert apply_filters(listings, None) == listings


def test_location_matches_address_case_insensitively(listings):
    assert _ids(apply_filters(listings, SearchFilters(location="manchester"))) == ["m1", "m2"]


def test_location_matches_postcode(listings):
    assert _ids(apply_filters(listings, SearchFilters(location="LS17"))) == ["l1"]


def test_query_checks_address_and_description(listings):
    assert _ids(apply_filters(listings, SearchFilters(query="deansgate"))) == ["m2"]
    assert _ids(apply_filters(listings, SearchFilters(query="detached"))) == ["l1"]


def test_property_type_is_a_substring_match(listings):
    assert _ids(apply_filters(listings, SearchFilters(property_type="terrace"))) == ["m1"]


def test_price_range_and_unknown_price(listings):
    assert _ids(apply_filters(listings, SearchFilters(max_price=200_000))) == ["m1", "u1"]
    assert _ids(apply_filters(listings, SearchFilters(min_price=1))) == ["m1", "m2", "l1"]


def test_bedroom_and_bathroom_bounds(listings):
    assert _ids(apply_filters(listings, SearchFilters(min_bedrooms=3))) == ["m1", "l1"]
    assert _ids(apply_filters(listings, SearchFilters(max_bedrooms=2))) == ["m2", "u1"]
    assert _ids(apply_filters(listings, SearchFilters(min_bathrooms=2))) == ["m2", "l1"]


def test_radius_replaces_location_text(listings):
    filters = SearchFilters(location="M1 1AA", latitude=53.48, longitude=-2.24, radius_miles=5)
    assert _ids(apply_filters(listings, filters)) == ["m1", "m2"]


def test_radius_excludes_listings_without_coordinates(listings):
    filters = SearchFilters(latitude=53.38, longitude=-1.47, radius_miles=50)
    assert "u1" not in _ids(apply_filters(listings, filters))


def test_limit_applies_after_filtering(listings):
    assert _ids(apply_filters(listings, SearchFilters(location="manchester", limit=1))) == ["m1"]


def test_matches_single_listing(listings):
    assert matches(listings[0], SearchFilters(min_bedrooms=3, max_price=190_000))
    assert not matches(listings[0], SearchFilters(min_bathrooms=2))
