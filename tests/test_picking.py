from green_access_map.geo import FeatureCollection, assign_ids
from green_access_map.picking import FeatureIndex

from conftest import square


def test_pick_returns_topmost_feature():
    fc = FeatureCollection(
        assign_ids(
            [
                {"geometry": square(0.0, 0.0, 2.0), "properties": {"name": "below"}},
                {"geometry": square(1.0, 1.0, 2.0), "properties": {"name": "above"}},
                {"geometry": None, "properties": {"name": "no geometry"}},
            ]
        )
    )
    index = FeatureIndex(fc)
    assert len(index) == 2
    assert index.pick(1.5, 1.5).get("name") == "above"
    assert index.pick(0.5, 0.5).get("name") == "below"
    assert index.pick(9.0, 9.0) is None
    assert [f.get("name") for f in index.pick_all(1.5, 1.5)] == ["above", "below"]


def test_lines_are_picked_within_tolerance():
    fc = FeatureCollection(
        assign_ids(
            [{"geometry": {"type": "LineString", "coordinates": [[0.0, 0.0], [1.0, 0.0]]}}]
        )
    )
    assert FeatureIndex(fc).pick(0.5, 0.00005) is None
    assert FeatureIndex(fc, tolerance=1e-4).pick(0.5, 0.00005) is not None


def test_empty_collection():
    assert FeatureIndex(FeatureCollection.empty()).pick(0, 0) is None
