"""
Unit tests for viewport bounding boxes.
"""

import pytest

from streetcam.geo.bbox import (
    CLUSTER_AREA_EXTEND, BoundingBox, split_antimeridian, visible_areas, zoom_for_bounds,
)


class TestBoundingBox:
    """Test bounding box construction and geometry."""

    def test_reversed_edges_are_normalised(self):
        bbox = BoundingBox(north=9.0, south=10.0, east=4.0, west=5.0)
        assert (bbox.north, bbox.south, bbox.east, bbox.west) == (10.0, 9.0, 5.0, 4.0)

    def test_degenerate_box_rejected(self):
        with pytest.raises(ValueError, match="Degenerate"):
            BoundingBox(north=10.0, south=10.0, east=5.0, west=4.0)

    def test_expand_by_cluster_margin(self, area):
        wide = area.expand(CLUSTER_AREA_EXTEND)
        assert (wide.north, wide.south, wide.east, wide.west) == (10.004, 8.996, 5.004, 3.996)
        # expand returns a copy
        assert area.north == 10.0

    def test_geometry_helpers(self, area):
        assert area.width == 1.0
        assert area.height == 1.0
        assert area.center == (9.5, 4.5)
        assert area.contains(9.5, 4.5)
        assert not area.contains(11.0, 4.5)
        assert area.to_polygon().bounds == (4.0, 9.0, 5.0, 10.0)


class TestSplitAntimeridian:
    """Test viewports crossing longitude 180."""

    def test_regular_viewport_is_one_box(self):
        boxes = split_antimeridian(north=10.0, south=9.0, east=5.0, west=4.0)
        assert boxes == [BoundingBox(10.0, 9.0, 5.0, 4.0)]

    def test_crossing_viewport_is_two_boxes(self):
        boxes = split_antimeridian(north=10.0, south=9.0, east=-179.5, west=179.5)
        assert boxes == [
            BoundingBox(10.0, 9.0, 180.0, 179.5),
            BoundingBox(10.0, 9.0, -179.5, -180.0),
        ]


class TestVisibleAreas:
    """Test merging of viewport boxes into search areas."""

    def test_no_boxes(self):
        assert visible_areas([]) == []

    def test_overlapping_boxes_collapse(self):
        areas = visible_areas([
            BoundingBox(10.0, 9.0, 5.0, 4.0),
            BoundingBox(10.0, 9.0, 5.5, 4.5),
        ])
        assert areas == [BoundingBox(10.0, 9.0, 5.5, 4.0)]

    def test_l_shaped_union_searched_as_envelope(self):
        # overlapping boxes of different heights form an L
        areas = visible_areas([
            BoundingBox(10.0, 9.0, 5.0, 4.0),
            BoundingBox(9.5, 9.0, 6.0, 4.5),
        ])
        assert areas == [BoundingBox(10.0, 9.0, 6.0, 4.0)]

    def test_disjoint_boxes_sorted_west_to_east(self):
        east_box = BoundingBox(10.0, 9.0, 20.0, 19.0)
        west_box = BoundingBox(10.0, 9.0, 5.0, 4.0)
        assert visible_areas([east_box, west_box]) == [west_box, east_box]


class TestZoomForBounds:
    """Test zoom estimation from a box and a screen width."""

    def test_whole_world_in_one_tile(self):
        world = BoundingBox(85.0, -85.0, 180.0, -180.0)
        assert zoom_for_bounds(world, 256) == 0

    def test_one_degree_on_one_tile(self, area):
        assert zoom_for_bounds(area, 256) == 8

    def test_clamped_to_max_zoom(self):
        tiny = BoundingBox(10.0000001, 10.0, 5.0000001, 5.0)
        assert zoom_for_bounds(tiny, 4096) == 22

    def test_invalid_width(self, area):
        with pytest.raises(ValueError):
            zoom_for_bounds(area, 0)
