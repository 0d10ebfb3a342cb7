import pytest

from propscout.services.financials import estimate_financials
from propscout.services.normalizer import normalize, normalize_many, select_price
from propscout.utils.text import PLACEHOLDER_IMAGES, bedrooms_from_text


def _zoopla_record(**overrides):
    record = {
        "_id": "z-77",
        "address": "3 bed semi-detached house, Oak Lane, Leeds LS6 2AB",
        "price": "£250,000",
        "bathrooms": 2,
        "property_size": "1,050 sq ft",
        "property_images": '["https://img.example/1.jpg", "https://img.example/2.jpg"]',
        "agent_details": '{"name": "Oak Estates", "phone": "0113 000 000"}',
        "google_map_location": '{"lat": 53.82, "lng": -1.57}',
    }
    record.update(overrides)
    return record


def test_zoopla_record_is_fully_normalized():
    listing = normalize(_zoopla_record(), "zoopla")

    assert listing.id == "z-77"
    assert listing.price == 250_000
    assert listing.property_type == "Semi-detached"
    assert listing.bedrooms == 3 and not listing.bedrooms_estimated
    assert listing.square_feet == 1050 and not listing.square_feet_estimated
    assert listing.postcode == "LS6 2AB"
    assert listing.image_url == "https://img.example/1.jpg"
    assert listing.agent.name == "Oak Estates"
    assert listing.location.latitude == pytest.approx(53.82)
    # 70 + bedrooms + bathrooms + size
    assert listing.investment_score == 85
    assert listing.source == "zoopla"


def test_attached_financials_match_a_fresh_estimate():
    listing = normalize(_zoopla_record(), "zoopla")
    expected = estimate_financials(listing.price, listing.bedrooms, listing.property_type)
    assert listing.financials_derived
    assert listing.rental_estimate == expected.rental_estimate
    assert listing.roi_estimate == pytest.approx(expected.roi_estimate)


def test_sparse_database_row_gets_every_gap_filled():
    listing = normalize({"id": "db-9", "address": "Flat 2, High Street, Bath", "price": 150_000}, "database")

    assert listing.property_type == "Flat"
    assert listing.bedrooms == 2 and listing.bedrooms_estimated
    assert listing.square_feet == 800 and listing.square_feet_estimated
    assert listing.rental_estimate == 110
    assert listing.investment_score == 80
    assert listing.description.startswith("A 2 bedroom flat located in Bath.")
    assert listing.image_url in PLACEHOLDER_IMAGES["flat"]
    assert listing.property_details.market_demand == "Medium"
    assert listing.market_trends.appreciation_rate == 3.2


def test_placeholder_image_is_stable():
    first = normalize({"id": "a", "address": "7 Hill Road, Derby", "price": 90_000}, "database")
    second = normalize({"id": "b", "address": "7 Hill Road, Derby", "price": 95_000}, "database")
    assert first.image_url == second.image_url


def test_supplied_financials_and_score_are_kept():
    listing = normalize(
        {
            "id": "db-2",
            "address": "27 Deansgate, Manchester",
            "price": 215_000,
            "rental_estimate": 1250,
            "roi_estimate": 6.98,
            "investment_score": 72,
        },
        "database",
    )
    assert listing.rental_estimate == 1250
    assert listing.roi_estimate == 6.98
    assert not listing.financials_derived
    assert listing.investment_score == 72


def test_out_of_range_supplied_score_is_clamped():
    listing = normalize({"id": "x", "address": "1 A Street, Hull", "price": 1, "investment_score": 140}, "database")
    assert listing.investment_score == 100


def test_price_falls_back_to_last_sold_price():
    assert select_price({"price": None, "asking_price": "", "last_sold_price": "£99,500"}) == 99_500
    assert select_price({"asking_price": "120000"}) == 120_000
    assert select_price({}) == 0

    listing = normalize({"id": "db-3", "address": "2 Low Road, Leeds", "last_sold_price": 172_000}, "database")
    assert listing.price == 172_000
    assert listing.last_sold_price == 172_000


def test_missing_price_is_kept_as_unknown():
    listing = normalize({"id": "db-4", "address": "9 Quay Street, Bristol"}, "database")
    assert listing.price == 0
    assert listing.rental_estimate == 0
    assert listing.roi_estimate == 0


def test_unusable_records_yield_none():
    assert normalize(["not", "a", "mapping"], "zoopla") is None
    assert normalize(None, "database") is None
    assert normalize({"price": 100_000}, "database") is None
    assert normalize({"id": "neg", "address": "1 Road, York", "price": -5}, "database") is None


def test_patma_square_meters_are_converted_and_id_is_stable():
    record = {
        "address": "12 Elm Grove, Sheffield S7 1AB",
        "asking_price": 160_000,
        "bedrooms": 3,
        "floor_area_sqm": 100,
        "sold_history": [{"price": 140_000, "date": "2019-04-01"}],
    }
    first = normalize(record, "patma")
    second = normalize(dict(record), "patma")

    assert first.square_feet == pytest.approx(1076.4)
    assert not first.square_feet_estimated
    assert first.price == 160_000
    assert first.last_sold_price == 140_000
    assert first.id.startswith("patma-")
    assert first.id == second.id


def test_realty_nested_address_is_flattened():
    listing = normalize(
        {
            "property_id": "r1",
            "address": {"line": "10 Main St", "city": "Austin", "state": "TX", "postal_code": "78701"},
            "price": 420_000,
            "beds": 3,
            "baths": 2,
            "building_size": {"size": 1800, "units": "sqft"},
            "photos": ["https://img.example/r1.jpg"],
        },
        "realty",
    )
    assert listing.address == "10 Main St, Austin, TX, 78701"
    assert listing.square_feet == 1800
    assert listing.bathrooms == 2


def test_scraped_page_uses_title_for_bedrooms_and_description_for_features():
    listing = normalize(
        {
            "url": "https://agent.example/p/1",
            "title": "4 bedroom detached house for sale",
            "address": "Bramble Way, Norwich",
            "priceValue": 310_000,
            "description": "Large garden, double glazing and a modern kitchen.",
        },
        "scraper",
    )
    assert listing.bedrooms == 4
    assert listing.property_type == "Detached"
    assert listing.features == ["Garden", "Modern", "Double Glazing"]
    assert listing.listing_url == "https://agent.example/p/1"


def test_unknown_property_details_are_kept_aside():
    listing = normalize(
        {
            "id": "db-5",
            "address": "3 Bank Street, Leeds",
            "price": 120_000,
            "features": ["Garden", "Garage", "Parking", "Loft"],
            "property_details": '{"energy_rating": "B", "flood_risk": "Low"}',
        },
        "database",
    )
    assert listing.property_details.energy_rating == "B"
    assert listing.property_details.extra == {"flood_risk": "Low"}
    assert listing.property_details.property_features == ["Garden", "Garage", "Parking"]


def test_normalize_many_drops_bad_records():
    rows = [
        {"id": "ok-1", "address": "1 Park Road, Leeds", "price": 100_000},
        "garbage",
        {"price": 5},
        {"id": "ok-2", "address": "2 Park Road, Leeds", "price": 110_000},
    ]
    listings = normalize_many(rows, "database")
    assert [listing.id for listing in listings] == ["ok-1", "ok-2"]
    assert normalize_many(None, "database") == []


def test_flat_without_bedrooms_gets_one_bedroom_estimate():
    listing = normalize(
        {"id": "f1", "address": "Flat 3, Canal Street, Leeds", "price": 110_000, "property_type": "Flat"},
        "database",
    )
    assert listing.bedrooms == 1
    assert listing.bedrooms_estimated is True


def test_street_name_is_not_a_bedroom_count():
    listing = normalize({"id": "b1", "address": "12 Bedford Road, Leeds", "price": 150_000}, "database")
    assert listing.bedrooms == 3
    assert listing.bedrooms_estimated is True


def test_bedroom_phrases_in_addresses():
    assert bedrooms_from_text("12 Bedford Road, Leeds") is None
    assert bedrooms_from_text("3 bedrooms, Elm Grove") == 3
    assert bedrooms_from_text("2-bed flat, Park Row") == 2
    assert bedrooms_from_text("4 bed house") == 4
    assert bedrooms_from_text("5 beds") == 5
    assert bedrooms_from_text("1 Bedale Close") is None


@pytest.mark.parametrize("bedrooms", ["1e999", "inf", float("inf"), float("nan")])
def test_unusable_bedroom_counts_are_estimated(bedrooms):
    listing = normalize(
        {"id": "x", "address": "1 Acre Road, York", "price": 100_000, "bedrooms": bedrooms}, "database"
    )
    assert listing is not None
    assert listing.bedrooms == 2
    assert listing.bedrooms_estimated is True


def test_infinite_supplied_score_is_recomputed():
    rows = [
        {"id": "a", "address": "1 Park Road, Leeds", "price": 100_000},
        {"id": "b", "address": "2 Park Road, Leeds", "price": 110_000, "investment_score": "inf"},
    ]
    listings = normalize_many(rows, "database")
    assert [listing.id for listing in listings] == ["a", "b"]
    assert listings[1].investment_score == 80


def test_overlong_price_falls_back_to_last_sale():
    listing = normalize(
        {"id": "p", "address": "5 Park Road, Leeds", "price": "9" * 400, "last_sold_price": 95_000},
        "database",
    )
    assert listing.price == 95_000
    assert listing.rental_estimate > 0
