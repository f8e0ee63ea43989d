"""
Typed remote fetches used by the search handler.

A ``SourceQuery`` wraps one data type's service call: ``fetch`` hits the
service for a single area, ``combine`` folds the per-area results into the
value stored in the result set, and ``run`` does both sequentially for all
areas of a search.  Any ``ServiceError`` escapes ``run`` unchanged so the
caller can degrade that one data type.
"""
from __future__ import annotations

import itertools
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from .merge import merge_photo_data_sets
from ..geo.bbox import BoundingBox
from ..model.entities import NEARBY_PHOTOS_DEFAULT, DataType, Paging
from ..model.filters import SearchFilter

log = logging.getLogger(__name__)


class SourceQuery(ABC):
    data_type: DataType

    def __init__(self, search_filter: Optional[SearchFilter]):
        self.search_filter = search_filter

    @abstractmethod
    def fetch(self, area: BoundingBox) -> Any:
        """Fetch this data type for one area."""

    @abstractmethod
    def combine(self, partials: List[Any]) -> Any:
        """Fold per-area results (in area order) into one value."""

    def run(self, areas: Sequence[BoundingBox]) -> Any:
        log.debug("%s query over %d area(s)", self.data_type.value.lower(), len(areas))
        partials = [self.fetch(area) for area in areas]
        return self.combine(partials)


class _ListQuery(SourceQuery):
    def combine(self, partials: List[Any]) -> list:
        # areas are expected not to overlap, no cross-area dedup
        return list(itertools.chain.from_iterable(partials))


class PhotoQuery(SourceQuery):
    data_type = DataType.PHOTO

    def __init__(self, service, search_filter: Optional[SearchFilter],
                 paging: Paging = NEARBY_PHOTOS_DEFAULT):
        super().__init__(search_filter)
        self._service = service
        self.paging = paging

    def fetch(self, area: BoundingBox):
        return self._service.list_nearby_photos(area, self.search_filter, self.paging)

    def combine(self, partials):
        return merge_photo_data_sets(partials)


class DetectionQuery(_ListQuery):
    data_type = DataType.DETECTION

    def __init__(self, service, search_filter: Optional[SearchFilter]):
        super().__init__(search_filter)
        self._service = service

    def fetch(self, area: BoundingBox):
        return self._service.search_detections(area, self.search_filter)


class ClusterQuery(_ListQuery):
    data_type = DataType.CLUSTER

    def __init__(self, service, search_filter: Optional[SearchFilter]):
        super().__init__(search_filter)
        self._service = service

    def fetch(self, area: BoundingBox):
        return self._service.search_clusters(area, self.search_filter)


class SegmentQuery(_ListQuery):
    data_type = DataType.SEGMENT

    def __init__(self, service, search_filter: Optional[SearchFilter], zoom: int):
        super().__init__(search_filter)
        self._service = service
        self.zoom = zoom

    def fetch(self, area: BoundingBox):
        return self._service.list_matched_tracks(area, self.search_filter, self.zoom)
