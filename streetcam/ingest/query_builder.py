"""
Query grammar for the photo and detection services.

Builds the normalised query descriptor (``ServiceQuery``) for every
endpoint the clients call.  A descriptor is a method path plus an ordered
list of already-encoded ``name=value`` pairs; the transport appends it to
the configured service base URL.

Grammar
───────
  format=json                                       searches and listings
  north=<f>&south=<f>&east=<f>&west=<f>             area searches
  date=<YYYY-MM-DD>                                 when a date is set (UTC)
  externalId=<id>&authorType=OSM                    when an author is set
  <collection>=<percent-encoded comma-joined set>   omitted when empty
  excludedSignTypes=BLURRING                        detection searches only

Cluster searches widen their box by ``CLUSTER_AREA_EXTEND`` on all sides
before encoding.  Edit status ``MAPPED`` is sent as the two raw statuses
``FIXED`` and ``ALREADY_FIXED``.

Usage
-----
    from streetcam.ingest.query_builder import QueryBuilder

    query = QueryBuilder().search_clusters(area, search_filter)
    url = query.url("https://apollo.example.org/")
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple
from urllib.parse import quote

from ..geo.bbox import CLUSTER_AREA_EXTEND, BoundingBox
from ..model.entities import Author, Paging
from ..model.filters import DetectionFilter, EditStatus, SearchFilter, SignType

# ── Endpoints ─────────────────────────────────────────────────────────

SEARCH_DETECTIONS = "searchDetections"
SEARCH_CLUSTERS = "searchClusters"
RETRIEVE_DETECTION = "retrieveDetection"
RETRIEVE_CLUSTER = "retrieveCluster"
RETRIEVE_CLUSTER_DETECTIONS = "retrieveClusterDetections"
RETRIEVE_CLUSTER_PHOTOS = "retrieveClusterPhotos"
RETRIEVE_SEQUENCE_DETECTIONS = "retrieveSequenceDetections"
RETRIEVE_PHOTO_DETECTIONS = "retrievePhotoDetections"
LIST_NEARBY_PHOTOS = "list/nearby-photos"
LIST_MATCHED_TRACKS = "list/matched-tracks"

# ── Parameter names and fixed values ──────────────────────────────────

FORMAT = "format"
FORMAT_VAL = "json"
NORTH, SOUTH, EAST, WEST = "north", "south", "east", "west"
DATE = "date"
EXTERNAL_ID = "externalId"
AUTHOR_TYPE = "authorType"
OSM_COMPARISONS = "osmComparisons"
EDIT_STATUSES = "editStatuses"
INCLUDED_SIGN_TYPES = "includedSignTypes"
INCLUDED_SIGN_NAMES = "includedSignInternalNames"
MODES = "modes"
REGION = "region"
MIN_CONFIDENCE = "minConfidenceLevel"
MAX_CONFIDENCE = "maxConfidenceLevel"
EXCLUDED_SIGN_TYPES = "excludedSignTypes"
ID = "id"
SEQUENCE_ID = "sequenceId"
SEQUENCE_INDEX = "sequenceIndex"
ZOOM = "zoom"
PAGE = "page"
ITEMS_PER_PAGE = "itemsPerPage"

EDIT_STATUS_FIXED = "FIXED"
EDIT_STATUS_ALREADY_FIXED = "ALREADY_FIXED"
BLURRING_TYPE = SignType.BLURRING.value

_DATE_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True)
class ServiceQuery:
    """Method path + encoded parameters for one service call."""
    method: str
    params: Tuple[Tuple[str, str], ...]

    @property
    def query_string(self) -> str:
        return "&".join(f"{name}={value}" for name, value in self.params)

    def url(self, base_url: str) -> str:
        return f"{base_url}{self.method}?{self.query_string}"

    def get(self, name: str) -> Optional[str]:
        """Value of the first parameter called *name*, or None."""
        for key, value in self.params:
            if key == name:
                return value
        return None


def encode_set(values: Iterable[str]) -> str:
    """Percent-encode a set of tokens as one comma-joined value."""
    return quote(",".join(sorted(set(values))), safe="")


def format_date(value: datetime.date) -> str:
    if isinstance(value, datetime.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(datetime.timezone.utc)
        value = value.date()
    return value.strftime(_DATE_FORMAT)


def raw_edit_statuses(statuses: Iterable[EditStatus]) -> List[str]:
    """Map UI edit statuses onto the service vocabulary."""
    raw = set()
    for status in statuses:
        if status is EditStatus.MAPPED:
            raw.add(EDIT_STATUS_FIXED)
            raw.add(EDIT_STATUS_ALREADY_FIXED)
        else:
            raw.add(status.value)
    return sorted(raw)


def cluster_search_area(area: BoundingBox) -> BoundingBox:
    """Search box for clusters: the viewport plus a fixed margin."""
    return area.expand(CLUSTER_AREA_EXTEND)


class _Params:
    """Ordered parameter accumulator."""

    def __init__(self, with_format: bool = True) -> None:
        self._items: List[Tuple[str, str]] = [(FORMAT, FORMAT_VAL)] if with_format else []

    def add(self, name: str, value) -> None:
        self._items.append((name, str(value)))

    def add_set(self, name: str, values: Optional[Iterable[str]]) -> None:
        values = list(values or ())
        if values:
            self._items.append((name, encode_set(values)))

    def add_area(self, area: BoundingBox) -> None:
        self.add(NORTH, repr(area.north))
        self.add(SOUTH, repr(area.south))
        self.add(EAST, repr(area.east))
        self.add(WEST, repr(area.west))

    def add_date(self, value: Optional[datetime.date]) -> None:
        if value is not None:
            self.add(DATE, format_date(value))

    def add_author(self, author: Optional[Author]) -> None:
        if author is not None:
            self.add(EXTERNAL_ID, author.external_id)
            self.add(AUTHOR_TYPE, author.type)

    def add_excluded_sign_types(self) -> None:
        self.add(EXCLUDED_SIGN_TYPES, quote(BLURRING_TYPE, safe=""))

    def freeze(self) -> Tuple[Tuple[str, str], ...]:
        return tuple(self._items)


class QueryBuilder:
    """Builds ``ServiceQuery`` descriptors from search filters."""

    # ── Area searches ─────────────────────────────────────────────────

    def search_detections(self, area: BoundingBox, search_filter: Optional[SearchFilter]) -> ServiceQuery:
        params = _Params()
        params.add_area(area)
        det = search_filter.detection_filter if search_filter else None
        if search_filter is not None:
            params.add_date(search_filter.date)
            params.add_author(_author(search_filter.osm_user_id))
        if det is not None:
            self._add_detection_criteria(params, det)
            params.add_set(EDIT_STATUSES, raw_edit_statuses(det.edit_statuses))
            params.add_set(MODES, [m.value for m in det.modes])
        params.add_excluded_sign_types()
        return ServiceQuery(SEARCH_DETECTIONS, params.freeze())

    def search_clusters(self, area: BoundingBox, search_filter: Optional[SearchFilter]) -> ServiceQuery:
        params = _Params()
        params.add_area(cluster_search_area(area))
        det = search_filter.detection_filter if search_filter else None
        if search_filter is not None:
            params.add_date(search_filter.date)
        if det is not None:
            self._add_detection_criteria(params, det)
            conf = det.confidence_level
            if conf is not None:
                if conf.min_confidence_level is not None:
                    params.add(MIN_CONFIDENCE, conf.min_confidence_level)
                if conf.max_confidence_level is not None:
                    params.add(MAX_CONFIDENCE, conf.max_confidence_level)
        return ServiceQuery(SEARCH_CLUSTERS, params.freeze())

    def list_nearby_photos(
        self,
        area: BoundingBox,
        search_filter: Optional[SearchFilter],
        paging: Paging,
    ) -> ServiceQuery:
        params = _Params()
        params.add_area(area)
        if search_filter is not None:
            params.add_date(search_filter.date)
            params.add_author(_author(search_filter.osm_user_id))
        params.add(PAGE, paging.page)
        params.add(ITEMS_PER_PAGE, paging.items)
        return ServiceQuery(LIST_NEARBY_PHOTOS, params.freeze())

    def list_matched_tracks(
        self,
        area: BoundingBox,
        search_filter: Optional[SearchFilter],
        zoom: int,
    ) -> ServiceQuery:
        params = _Params()
        params.add_area(area)
        params.add(ZOOM, int(zoom))
        if search_filter is not None:
            params.add_date(search_filter.date)
            params.add_author(_author(search_filter.osm_user_id))
        return ServiceQuery(LIST_MATCHED_TRACKS, params.freeze())

    # ── Retrieval by id ───────────────────────────────────────────────

    def retrieve_detection(self, detection_id: int) -> ServiceQuery:
        return self._by_id(RETRIEVE_DETECTION, detection_id)

    def retrieve_cluster(self, cluster_id: int) -> ServiceQuery:
        return self._by_id(RETRIEVE_CLUSTER, cluster_id)

    def retrieve_cluster_detections(self, cluster_id: int) -> ServiceQuery:
        return self._by_id(RETRIEVE_CLUSTER_DETECTIONS, cluster_id)

    def retrieve_cluster_photos(self, cluster_id: int) -> ServiceQuery:
        return self._by_id(RETRIEVE_CLUSTER_PHOTOS, cluster_id)

    def retrieve_sequence_detections(self, sequence_id: int) -> ServiceQuery:
        params = _Params(with_format=False)
        params.add(SEQUENCE_ID, int(sequence_id))
        params.add_excluded_sign_types()
        return ServiceQuery(RETRIEVE_SEQUENCE_DETECTIONS, params.freeze())

    def retrieve_photo_detections(self, sequence_id: int, sequence_index: int) -> ServiceQuery:
        params = _Params(with_format=False)
        params.add(SEQUENCE_ID, int(sequence_id))
        params.add(SEQUENCE_INDEX, int(sequence_index))
        params.add_excluded_sign_types()
        return ServiceQuery(RETRIEVE_PHOTO_DETECTIONS, params.freeze())

    # ── Internals ─────────────────────────────────────────────────────

    @staticmethod
    def _by_id(method: str, entity_id: int) -> ServiceQuery:
        params = _Params(with_format=False)
        params.add(ID, int(entity_id))
        return ServiceQuery(method, params.freeze())

    @staticmethod
    def _add_detection_criteria(params: _Params, det: DetectionFilter) -> None:
        """Criteria shared by detection and cluster searches."""
        params.add_set(OSM_COMPARISONS, [c.value for c in det.osm_comparisons])
        params.add_set(INCLUDED_SIGN_TYPES, [t.value for t in det.sign_types])
        if det.specific_signs is not None:
            params.add_set(INCLUDED_SIGN_NAMES, [s.internal_name for s in det.specific_signs])
        if det.region:
            params.add(REGION, quote(det.region, safe=""))


def _author(osm_user_id: Optional[int]) -> Optional[Author]:
    return Author(external_id=str(osm_user_id)) if osm_user_id is not None else None
