import dataclasses

import pytest

from localradar_ai.semantic_db.models import (
    CatalogItem, Collection, Match, attributes_to_text, calculate_distance,
    coerce_attribute_value, parse_distance,
)

ORIGIN = (13.041820, 77.528481)


def test_distance_to_same_point_is_zero():
    assert calculate_distance(13.04, 77.52, 13.04, 77.52) == 0


def test_distance_is_symmetric():
    points = [(13.04182, 77.528481, 12.9716, 77.5946), (51.5074, -0.1278, 48.8566, 2.3522), (-33.9, 151.2, 40.7, -74.0)]
    for lat1, lon1, lat2, lon2 in points:
        assert calculate_distance(lat1, lon1, lat2, lon2) == calculate_distance(lat2, lon2, lat1, lon1)


def test_one_degree_of_latitude():
    assert calculate_distance(0, 0, 1, 0) == pytest.approx(111.19, abs=0.01)


def test_london_to_paris():
    assert calculate_distance(51.5074, -0.1278, 48.8566, 2.3522) == pytest.approx(343.5, abs=1.0)


def test_antipodal_points_do_not_raise():
    assert calculate_distance(0, 0, 0, 180) == pytest.approx(20015.09, abs=0.1)


def test_geo_document_gets_rounded_distance_from_attribute_coordinates():
    data = {"attributes": {"name": "Corner bakery", "latitude": 13.0450, "longitude": 77.5300}}
    item = CatalogItem.from_document("shop_1", data, Collection.SHOPS, origin=ORIGIN)

    expected = round(calculate_distance(ORIGIN[0], ORIGIN[1], 13.0450, 77.5300), 2)
    assert item.latitude == 13.0450
    assert item.distance_km == expected
    assert item.to_dict()["distance"] == expected


def test_top_level_coordinates_are_used():
    data = {"attributes": {"name": "Jazz night"}, "lat": "13.0410", "lon": "77.5400"}
    item = CatalogItem.from_document("event_1", data, Collection.EVENTS, origin=ORIGIN)
    assert item.longitude == 77.54
    assert item.distance_km is not None


def test_non_geo_collection_has_no_distance():
    data = {"attributes": {"name": "jacket", "latitude": 13.0, "longitude": 77.5}}
    item = CatalogItem.from_document("item_1", data, Collection.ITEMS, origin=ORIGIN)
    assert item.distance_km is None
    assert "distance" not in item.to_dict()


def test_unusable_coordinates_are_ignored():
    data = {"attributes": {"name": "Plumber", "latitude": "north", "longitude": None}}
    item = CatalogItem.from_document("shop_2", data, Collection.SHOPS, origin=ORIGIN)
    assert item.latitude is None
    assert item.distance_km is None


def test_missing_attributes_become_empty_mapping():
    item = CatalogItem.from_document("x", {"attributes": "oops"}, Collection.ITEMS)
    assert item.attributes == {}


def test_attributes_to_text_skips_empty_values():
    text = attributes_to_text({"type": "items", "color": "red", "size": None, "brand": "", "count": 0})
    assert text == "type: items, color: red, count: 0"


@pytest.mark.parametrize("value,expected", [
    ("5", 5.0), (5, 5.0), (2.5, 2.5), ("5 km", 5.0), (" 12.5km", 12.5),
    ("near", None), (None, None), (True, None), ("", None),
])
def test_parse_distance(value, expected):
    assert parse_distance(value) == expected


def test_coerce_attribute_value():
    assert coerce_attribute_value("  red ") == "red"
    assert coerce_attribute_value(3) == 3
    assert coerce_attribute_value(None) is None
    assert coerce_attribute_value(["red", "blue"]) == "red, blue"
    assert coerce_attribute_value([]) is None
    assert coerce_attribute_value({"min": 1}) == '{"min": 1}'


def test_match_to_dict_carries_both_scores():
    item = CatalogItem(id="i1", collection=Collection.SHOPS, attributes={"name": "bakery"}, distance_km=3.0)
    match = Match(category=Collection.SHOPS, item=item, similarity=0.8, original_similarity=0.5, distance_km=3.0)

    data = match.to_dict()
    assert data["category"] == "shops"
    assert data["similarity"] == 0.8
    assert data["originalSimilarity"] == 0.5
    assert data["distance"] == 3.0
    assert match.adjusted_similarity == 0.8


def test_catalog_items_are_read_only():
    document = {"attributes": {"name": "bakery", "color": "brown"}, "owner": "ana"}
    item = CatalogItem.from_document("s1", document, Collection.SHOPS)
    match = Match(category=Collection.SHOPS, item=item, similarity=0.8, original_similarity=0.6)

    with pytest.raises(dataclasses.FrozenInstanceError):
        match.item.distance_km = 1.0
    with pytest.raises(TypeError):
        match.item.attributes["color"] = "red"
    with pytest.raises(TypeError):
        match.item.data["owner"] = "ben"

    document["attributes"]["color"] = "red"
    assert item.attributes["color"] == "brown"
    assert item.to_dict()["attributes"] == {"name": "bakery", "color": "brown"}
