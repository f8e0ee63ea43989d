"""
Detection service client — road-sign detections and detection clusters.

Area searches
  searchDetections   detections inside the viewport (blurring signs excluded)
  searchClusters     clusters inside the viewport widened by 0.004°

Retrieval
  retrieveDetection / retrieveCluster                    single entity by id
  retrieveClusterDetections / retrieveClusterPhotos      members of a cluster
  retrieveSequenceDetections / retrievePhotoDetections   detections on a track

Responses wrap their payload under a named key, e.g.
``{"status": {...}, "detections": [...]}`` or ``{"cluster": {...}}``.

Usage
-----
    from streetcam.ingest.detection_client import DetectionService
    service = DetectionService(base_url="https://apollo.example.org/")
    clusters = service.search_clusters(area, search_filter)
"""
from __future__ import annotations

import logging
from typing import List, Optional

import requests

from . import fetch_json
from .query_builder import QueryBuilder, ServiceQuery
from ..errors import ClusterServiceError, DetectionServiceError
from ..geo.bbox import BoundingBox
from ..model.entities import Cluster, Detection, LatLon, Photo, Sign
from ..model.filters import SearchFilter

log = logging.getLogger(__name__)


# ── JSON parsing ──────────────────────────────────────────────────────

def _parse_point(raw: dict) -> LatLon:
    return LatLon(float(raw["lat"]), float(raw["lon"]))


def _parse_sign(raw: Optional[dict]) -> Optional[Sign]:
    if not isinstance(raw, dict) or not raw.get("internalName"):
        return None
    return Sign(
        internal_name=raw["internalName"],
        type=raw.get("type", "") or "",
        name=raw.get("name", "") or "",
        region=raw.get("region", "") or "",
    )


def _parse_detection(item: dict) -> Optional[Detection]:
    try:
        return Detection(
            id=int(item["id"]),
            point=_parse_point(item["point"]),
            sign=_parse_sign(item.get("sign")),
            sequence_id=item.get("sequenceId"),
            sequence_index=item.get("sequenceIndex"),
            edit_status=item.get("editStatus", "") or "",
            mode=item.get("mode", "") or "",
            osm_comparison=item.get("osmComparison", "") or "",
            confidence_level=item.get("confidenceLevel"),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        log.debug("Failed to parse detection: %s", exc)
        return None


def _parse_cluster(item: dict) -> Optional[Cluster]:
    try:
        ids = item.get("detectionIds")
        return Cluster(
            id=int(item["id"]),
            point=_parse_point(item["point"]),
            detection_ids=[int(i) for i in ids] if ids is not None else None,
            sign=_parse_sign(item.get("sign")),
            confidence_level=item.get("confidenceLevel"),
            detections_count=int(item.get("detectionsCount", 0) or 0),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        log.debug("Failed to parse cluster: %s", exc)
        return None


def _parse_photo(item: dict) -> Optional[Photo]:
    try:
        point = _parse_point(item["point"])
        return Photo(
            id=int(item["id"]),
            sequence_id=int(item["sequenceId"]),
            sequence_index=int(item["sequenceIndex"]),
            location=point,
            name=item.get("photoName", "") or "",
            large_thumbnail_name=item.get("largeThumbnailName", "") or "",
            thumbnail_name=item.get("thumbnailName", "") or "",
            timestamp=item.get("timestamp"),
            heading=item.get("heading"),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        log.debug("Failed to parse cluster photo: %s", exc)
        return None


class DetectionService:
    """Client for the detection (sign recognition) service."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 20.0,
        session: Optional[requests.Session] = None,
        query_builder: Optional[QueryBuilder] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self._queries = query_builder or QueryBuilder()

    # ── Area searches ─────────────────────────────────────────────────

    def search_detections(
        self, area: BoundingBox, search_filter: Optional[SearchFilter]
    ) -> List[Detection]:
        """Detections inside *area*; raises DetectionServiceError on failure."""
        query = self._queries.search_detections(area, search_filter)
        detections = self._list(query, "detections", _parse_detection, DetectionServiceError)
        log.info("Detection search: %d detections", len(detections))
        return detections

    def search_clusters(
        self, area: BoundingBox, search_filter: Optional[SearchFilter]
    ) -> List[Cluster]:
        """Clusters around *area*; raises ClusterServiceError on failure."""
        query = self._queries.search_clusters(area, search_filter)
        clusters = self._list(query, "clusters", _parse_cluster, ClusterServiceError)
        log.info("Cluster search: %d clusters", len(clusters))
        return clusters

    # ── Retrieval ─────────────────────────────────────────────────────

    def retrieve_detection(self, detection_id: int) -> Optional[Detection]:
        query = self._queries.retrieve_detection(detection_id)
        return self._single(query, "detection", _parse_detection, DetectionServiceError)

    def retrieve_cluster(self, cluster_id: int) -> Optional[Cluster]:
        query = self._queries.retrieve_cluster(cluster_id)
        return self._single(query, "cluster", _parse_cluster, ClusterServiceError)

    def retrieve_cluster_detections(self, cluster_id: int) -> List[Detection]:
        query = self._queries.retrieve_cluster_detections(cluster_id)
        return self._list(query, "detections", _parse_detection, ClusterServiceError)

    def retrieve_cluster_photos(self, cluster_id: int) -> List[Photo]:
        query = self._queries.retrieve_cluster_photos(cluster_id)
        return self._list(query, "photos", _parse_photo, ClusterServiceError)

    def retrieve_sequence_detections(self, sequence_id: int) -> List[Detection]:
        query = self._queries.retrieve_sequence_detections(sequence_id)
        return self._list(query, "detections", _parse_detection, DetectionServiceError)

    def retrieve_photo_detections(self, sequence_id: int, sequence_index: int) -> List[Detection]:
        query = self._queries.retrieve_photo_detections(sequence_id, sequence_index)
        return self._list(query, "detections", _parse_detection, DetectionServiceError)

    # ── Internals ─────────────────────────────────────────────────────

    def _get(self, query: ServiceQuery, error_cls: type) -> dict:
        data = fetch_json(
            query.url(self.base_url),
            error_cls=error_cls,
            session=self.session,
            timeout=self.timeout,
        )
        if not isinstance(data, dict):
            raise error_cls(f"Malformed {query.method} response")
        return data

    def _list(self, query: ServiceQuery, key: str, parse, error_cls: type) -> list:
        data = self._get(query, error_cls)
        items = data.get(key)
        if items is None:
            # the service omits the key when nothing matched
            return []
        if not isinstance(items, list):
            raise error_cls(f"Malformed {query.method} response: '{key}' is not a list")
        return [e for e in (parse(i) for i in items) if e is not None]

    def _single(self, query: ServiceQuery, key: str, parse, error_cls: type):
        data = self._get(query, error_cls)
        item = data.get(key)
        return parse(item) if isinstance(item, dict) else None
