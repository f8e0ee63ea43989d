"""
Bounding boxes for map viewports.

A viewport is described by one or more ``BoundingBox`` values: more than
one when the visible map crosses the antimeridian or when several disjoint
layers are visible at once.  Cluster searches widen their box by a fixed
margin so clusters whose centroid falls just outside the view are still
returned.

Usage
-----
    from streetcam.geo.bbox import BoundingBox, split_antimeridian

    boxes = split_antimeridian(north=10.0, south=9.0, east=-179.5, west=179.5)
    wide = boxes[0].expand(CLUSTER_AREA_EXTEND)
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List

from shapely.geometry import MultiPolygon, box
from shapely.ops import unary_union

# Degrees added on every side of a cluster search area
CLUSTER_AREA_EXTEND = 0.004

# Rounding applied to expanded coordinates (about 0.1 m)
_COORD_DIGITS = 6

_TILE_PX = 256
_MAX_ZOOM = 22


@dataclass(frozen=True)
class BoundingBox:
    """Immutable lat/lon rectangle in degrees."""

    north: float
    south: float
    east: float
    west: float

    def __post_init__(self) -> None:
        north, south = float(self.north), float(self.south)
        east, west = float(self.east), float(self.west)
        if north < south:
            north, south = south, north
        if east < west:
            east, west = west, east
        if north == south or east == west:
            raise ValueError(f"Degenerate bounding box: {self}")
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "north", north)
        object.__setattr__(self, "south", south)
        object.__setattr__(self, "east", east)
        object.__setattr__(self, "west", west)

    @property
    def width(self) -> float:
        return self.east - self.west

    @property
    def height(self) -> float:
        return self.north - self.south

    @property
    def center(self) -> tuple:
        """(lat, lon) of the box centre."""
        return ((self.north + self.south) / 2.0, (self.east + self.west) / 2.0)

    def expand(self, margin: float) -> "BoundingBox":
        """Return a copy widened by *margin* degrees on all four sides."""
        return BoundingBox(
            north=round(self.north + margin, _COORD_DIGITS),
            south=round(self.south - margin, _COORD_DIGITS),
            east=round(self.east + margin, _COORD_DIGITS),
            west=round(self.west - margin, _COORD_DIGITS),
        )

    def contains(self, lat: float, lon: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lon <= self.east

    def to_polygon(self):
        return box(self.west, self.south, self.east, self.north)


def split_antimeridian(north: float, south: float, east: float, west: float) -> List[BoundingBox]:
    """Build the boxes covering a viewport that may cross longitude ±180.

    A viewport whose western edge lies east of its eastern edge wraps
    around the antimeridian and is returned as two boxes, west part first.
    """
    if west <= east:
        return [BoundingBox(north=north, south=south, east=east, west=west)]
    return [
        BoundingBox(north=north, south=south, east=180.0, west=west),
        BoundingBox(north=north, south=south, east=east, west=-180.0),
    ]


def visible_areas(boxes: Iterable[BoundingBox]) -> List[BoundingBox]:
    """Union the given boxes and return the envelope of each disjoint part.

    Overlapping or touching boxes collapse into one search area so the
    same region is never fetched twice.  Order follows the west→east,
    south→north position of each part.

    Each part is replaced by its envelope, so a non-rectangular union
    (e.g. two overlapping boxes forming an L) is searched as a larger box
    than what is visible; the services only accept rectangles.
    """
    polygons = [b.to_polygon() for b in boxes]
    if not polygons:
        return []

    merged = unary_union(polygons)
    parts = list(merged.geoms) if isinstance(merged, MultiPolygon) else [merged]

    areas: List[BoundingBox] = []
    for part in parts:
        if part.is_empty:
            continue
        minx, miny, maxx, maxy = part.bounds
        areas.append(BoundingBox(north=maxy, south=miny, east=maxx, west=minx))
    areas.sort(key=lambda a: (a.west, a.south))
    return areas


def zoom_for_bounds(area: BoundingBox, width_px: int) -> int:
    """Web-map zoom level at which *area* spans *width_px* screen pixels."""
    if width_px <= 0:
        raise ValueError("width_px must be > 0")
    zoom = math.log2(width_px * 360.0 / (_TILE_PX * area.width))
    return max(0, min(_MAX_ZOOM, int(math.floor(zoom))))
