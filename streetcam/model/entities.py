"""
Entities returned by the imagery services.

Photos, detections, clusters and segments are identity-bearing records:
two instances with the same ``id`` compare equal regardless of their other
fields.  ``HighZoomResultSet`` and ``DataSet`` are the containers handed
between the search handler, the view-mode controller and the map layer.

Absent vs empty
───────────────
In ``HighZoomResultSet`` and ``DataSet`` a field set to ``None`` means the
data type was not requested or its fetch failed.  An empty list means it
was requested and succeeded but nothing is left to show.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


class DataType(enum.Enum):
    """Kind of remote entity a query targets."""
    PHOTO = "PHOTO"
    DETECTION = "DETECTION"
    CLUSTER = "CLUSTER"
    SEGMENT = "SEGMENT"


@dataclass(frozen=True)
class LatLon:
    lat: float
    lon: float


@dataclass(frozen=True)
class Author:
    """Author reference; the identity provider is always OSM."""
    external_id: str
    user_name: Optional[str] = None
    type: str = "OSM"


@dataclass(frozen=True)
class Sign:
    """A road-sign class as known by the detection service."""
    internal_name: str
    type: str = ""
    name: str = ""
    region: str = ""


@dataclass(eq=False)
class Photo:
    id: int
    sequence_id: int
    sequence_index: int
    location: LatLon
    name: str = ""
    large_thumbnail_name: str = ""
    thumbnail_name: str = ""
    timestamp: Optional[int] = None     # ms since epoch
    heading: Optional[float] = None
    username: str = ""

    def __eq__(self, other) -> bool:
        return isinstance(other, Photo) and self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


@dataclass(eq=False)
class Detection:
    """One recognised road-sign observation."""
    id: int
    point: LatLon
    sign: Optional[Sign] = None
    sequence_id: Optional[int] = None
    sequence_index: Optional[int] = None
    edit_status: str = ""
    mode: str = ""
    osm_comparison: str = ""
    confidence_level: Optional[float] = None

    def __eq__(self, other) -> bool:
        return isinstance(other, Detection) and self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


@dataclass(eq=False)
class Cluster:
    """Detections of the same sign aggregated into one map point.

    ``detection_ids`` is ``None`` when the service did not report the
    members; such a cluster claims no detections.
    """
    id: int
    point: LatLon
    detection_ids: Optional[List[int]] = None
    sign: Optional[Sign] = None
    confidence_level: Optional[float] = None
    detections_count: int = 0

    def __eq__(self, other) -> bool:
        return isinstance(other, Cluster) and self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


@dataclass(eq=False)
class Segment:
    """Road portion with photo coverage, shown at coarse zoom."""
    id: int
    geometry: List[LatLon] = field(default_factory=list)
    coverage: int = 0

    def __eq__(self, other) -> bool:
        return isinstance(other, Segment) and self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


@dataclass(frozen=True)
class Paging:
    """Page window for photo listings (pages start at 1)."""
    page: int = 1
    items: int = 1000


# Shared paging window for every sub-area of a high-zoom search
NEARBY_PHOTOS_DEFAULT = Paging(1, 1000)


@dataclass
class PhotoDataSet:
    """One page of photos."""
    photos: List[Photo] = field(default_factory=list)
    page: int = 1
    total_items: int = 0

    def has_items(self) -> bool:
        return bool(self.photos)

    def add_photos(self, photos: List[Photo]) -> None:
        self.photos.extend(photos)


@dataclass
class HighZoomResultSet:
    photo_data_set: Optional[PhotoDataSet] = None
    detections: Optional[List[Detection]] = None
    clusters: Optional[List[Cluster]] = None


@dataclass
class DataSet:
    """Everything the map layer displays at once."""
    segments: Optional[List[Segment]] = None
    photo_data_set: Optional[PhotoDataSet] = None
    detections: Optional[List[Detection]] = None
    clusters: Optional[List[Cluster]] = None

    @classmethod
    def from_high_zoom(cls, result: HighZoomResultSet) -> "DataSet":
        return cls(
            photo_data_set=result.photo_data_set,
            detections=result.detections,
            clusters=result.clusters,
        )

    @property
    def photos(self) -> Optional[List[Photo]]:
        return self.photo_data_set.photos if self.photo_data_set else None

    def counts(self) -> Tuple[int, int, int, int]:
        """(segments, photos, detections, clusters); 0 for absent fields."""
        return (
            len(self.segments or ()),
            len(self.photos or ()),
            len(self.detections or ()),
            len(self.clusters or ()),
        )
