"""
Search handler — concurrent multi-type searches for the map viewport.

At high zoom the map shows any combination of photo locations, detections
and clusters.  Each requested data type gets its own worker; a type's
sub-areas are fetched one after the other inside that worker while the
other types run in parallel.  A failing type only blanks its own field in
the result.

Data flow
─────────
  search_high_zoom_data(areas, filter)
    → one SourceQuery per requested type          (worker pool, 1 per type)
    → per-area fetches, combined per type
    → join all workers
    → one suppressible prompt per failed type
    → drop detections claimed by a cluster
    → HighZoomResultSet

Usage
-----
    handler = SearchHandler(photo_service, detection_service, policy, prompt)
    result = handler.search_high_zoom_data(areas, search_filter)
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence

from .merge import filter_cluster_detections
from .source_query import ClusterQuery, DetectionQuery, PhotoQuery, SegmentQuery, SourceQuery
from .suppression import ErrorPrompt, ErrorSuppressionPolicy
from ..errors import ServiceError
from ..geo.bbox import BoundingBox
from ..model.entities import (
    NEARBY_PHOTOS_DEFAULT,
    DataType,
    HighZoomResultSet,
    Paging,
    PhotoDataSet,
    Segment,
)
from ..model.filters import SearchFilter

log = logging.getLogger(__name__)

# Data types served by a high-zoom search, in join order
HIGH_ZOOM_TYPES = (DataType.PHOTO, DataType.DETECTION, DataType.CLUSTER)


class SearchHandler:
    """Runs service searches and merges their results.

    Parameters
    ----------
    photo_service
        Object with ``list_nearby_photos`` and ``list_matched_tracks``.
    detection_service
        Object with ``search_detections`` and ``search_clusters``.
    suppression : ErrorSuppressionPolicy
        Gate deciding whether a failure is shown to the user.
    prompt : ErrorPrompt, optional
        Blocking yes/no dialog; without one failures are only logged.
    default_paging : Paging
        Page window shared by every sub-area of a high-zoom photo search.
    """

    def __init__(
        self,
        photo_service,
        detection_service,
        suppression: ErrorSuppressionPolicy,
        prompt: Optional[ErrorPrompt] = None,
        default_paging: Paging = NEARBY_PHOTOS_DEFAULT,
    ):
        self._photo_service = photo_service
        self._detection_service = detection_service
        self._suppression = suppression
        self._prompt = prompt
        self._default_paging = default_paging

    # ── High zoom ─────────────────────────────────────────────────────

    def search_high_zoom_data(
        self,
        areas: Sequence[BoundingBox],
        search_filter: SearchFilter,
    ) -> HighZoomResultSet:
        """Search photos, detections and clusters in *areas*.

        Blocks until every requested type finished or failed.  Fields of
        types that were not requested or failed are None.
        """
        types = [dt for dt in HIGH_ZOOM_TYPES if dt in search_filter.data_types]
        if not types or not areas:
            return HighZoomResultSet()

        queries: Dict[DataType, SourceQuery] = {
            dt: self._source_query(dt, search_filter) for dt in types
        }
        results: Dict[DataType, object] = {}
        failed: List[DataType] = []

        log.debug("High zoom search: %d area(s), types=%s",
                  len(areas), ",".join(dt.value for dt in types))

        with ThreadPoolExecutor(max_workers=len(queries), thread_name_prefix="search") as executor:
            futures = {
                dt: executor.submit(query.run, list(areas))
                for dt, query in queries.items()
            }
            for dt, future in futures.items():
                try:
                    results[dt] = future.result()
                except ServiceError as exc:
                    log.warning("%s search failed: %s", dt.value.lower(), exc)
                    failed.append(dt)
                except Exception as exc:
                    # any other worker error only blanks its own type
                    log.error("%s search error: %s", dt.value.lower(), exc, exc_info=True)
                    failed.append(dt)

        for dt in failed:
            self._suppression.notify_failure(dt, self._prompt)

        detections = results.get(DataType.DETECTION)
        clusters = results.get(DataType.CLUSTER)
        if detections is not None and clusters is not None:
            detections = filter_cluster_detections(clusters, detections)

        result = HighZoomResultSet(
            photo_data_set=results.get(DataType.PHOTO),
            detections=detections,
            clusters=clusters,
        )
        log.info(
            "High zoom search: photos=%s detections=%s clusters=%s",
            _size(result.photo_data_set.photos if result.photo_data_set else None),
            _size(result.detections),
            _size(result.clusters),
        )
        return result

    def list_nearby_photos(
        self,
        area: BoundingBox,
        search_filter: Optional[SearchFilter],
        paging: Paging,
    ) -> Optional[PhotoDataSet]:
        """Fetch one explicit page of photos for a single area."""
        try:
            return PhotoQuery(self._photo_service, search_filter, paging).fetch(area)
        except ServiceError as exc:
            log.warning("Photo page %d failed: %s", paging.page, exc)
            self._suppression.notify_failure(DataType.PHOTO, self._prompt)
            return None

    # ── Coarse zoom ───────────────────────────────────────────────────

    def list_matched_tracks(
        self,
        areas: Sequence[BoundingBox],
        search_filter: Optional[SearchFilter],
        zoom: int,
    ) -> Optional[List[Segment]]:
        """Segments with coverage in *areas*; None when the fetch failed."""
        try:
            segments = SegmentQuery(self._photo_service, search_filter, zoom).run(areas)
        except ServiceError as exc:
            log.warning("Segment search failed: %s", exc)
            return None
        log.info("Segment search: %d segments in %d area(s)", len(segments), len(areas))
        return segments

    # ── Internals ─────────────────────────────────────────────────────

    def _source_query(self, data_type: DataType, search_filter: SearchFilter) -> SourceQuery:
        if data_type is DataType.PHOTO:
            return PhotoQuery(self._photo_service, search_filter, self._default_paging)
        if data_type is DataType.DETECTION:
            return DetectionQuery(self._detection_service, search_filter)
        if data_type is DataType.CLUSTER:
            return ClusterQuery(self._detection_service, search_filter)
        raise ValueError(f"{data_type} is not a high zoom data type")


def _size(items) -> str:
    return "-" if items is None else str(len(items))
