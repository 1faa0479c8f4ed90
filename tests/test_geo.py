import pytest

from green_access_map.geo import (
    Feature,
    FeatureCollection,
    assign_ids,
    bbox_intersects,
    geometry_bbox,
    parse_bbox,
)


def test_assign_ids_synthesizes_unique_ids():
    records = [
        {"id": 2, "geometry": None, "properties": {"n": "a"}},
        {"id": "x", "geometry": None, "properties": {"n": "b"}},
        {"id": 2, "geometry": None, "properties": {"n": "c"}},
        {"geometry": None, "properties": {"n": "d"}},
        {"id": 0, "geometry": None, "properties": {"n": "e"}},
        {"id": -4, "geometry": None, "properties": {"n": "f"}},
        {"id": True, "geometry": None, "properties": {"n": "g"}},
    ]
    features = assign_ids(records)
    ids = [f.id for f in features]
    assert len(ids) == len(set(ids))
    assert ids[0] == 2
    assert ids[4] == 0
    assert all(isinstance(i, int) and i >= 0 for i in ids)
    # Synthesized ids skip values claimed explicitly.
    assert ids[1] == 1 and ids[2] == 3


def test_assign_ids_counter_is_scoped_to_the_call():
    first = assign_ids([{"geometry": None}, {"geometry": None}])
    second = assign_ids([{"geometry": None}])
    assert [f.id for f in first] == [0, 1]
    assert [f.id for f in second] == [0]


def test_feature_properties_are_read_only():
    f = Feature(id=1, geometry=None, properties={"a": 1})
    with pytest.raises(TypeError):
        f.properties["a"] = 2
    assert f.get("a") == 1
    assert f.to_geojson_feature()["properties"] == {"a": 1}


def test_exported_geometry_is_a_copy():
    source = {"type": "LineString", "coordinates": [[0.0, 0.0], [1.0, 1.0]]}
    f = Feature(id=1, geometry=source, properties={"tags": ["a"]})
    source["coordinates"].append([2.0, 2.0])
    assert f.geometry["coordinates"] == [[0.0, 0.0], [1.0, 1.0]]

    exported = f.to_geojson_feature()
    exported["geometry"]["coordinates"][0][0] = 99.0
    exported["geometry"]["type"] = "Point"
    exported["properties"]["tags"].append("b")
    assert f.geometry == {"type": "LineString", "coordinates": [[0.0, 0.0], [1.0, 1.0]]}
    assert f.get("tags") == ["a"]


def test_collection_helpers():
    fc = FeatureCollection(assign_ids([{"properties": {"k": i}} for i in range(4)]))
    assert len(fc) == 4
    assert fc.by_id(2).get("k") == 2
    assert fc.by_id(99) is None
    assert fc.filter(lambda f: f.get("k") % 2 == 0).ids() == [0, 2]
    assert fc.to_geojson()["type"] == "FeatureCollection"
    assert len(FeatureCollection.empty()) == 0


def test_parse_bbox():
    assert parse_bbox("2.1, 41.3,2.2,41.4") == (2.1, 41.3, 2.2, 41.4)
    with pytest.raises(ValueError):
        parse_bbox("1,2,3")
    with pytest.raises(ValueError):
        parse_bbox("2.2,41.3,2.1,41.4")
    with pytest.raises(ValueError):
        parse_bbox("a,b,c,d")


def test_bbox_intersection_is_closed():
    assert bbox_intersects((0, 0, 1, 1), (1, 1, 2, 2))
    assert not bbox_intersects((0, 0, 1, 1), (1.01, 0, 2, 1))


def test_geometry_bbox():
    assert geometry_bbox(None) is None
    assert geometry_bbox({"type": "Point", "coordinates": [1, 2]}) == (1.0, 2.0, 1.0, 2.0)
    gc = {
        "type": "GeometryCollection",
        "geometries": [
            {"type": "Point", "coordinates": [1, 2]},
            {"type": "LineString", "coordinates": [[-1, 0], [3, 5]]},
        ],
    }
    assert geometry_bbox(gc) == (-1.0, 0.0, 3.0, 5.0)
