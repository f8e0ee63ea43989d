"""
Photo service client — photo locations and matched-track coverage.

Two endpoints are used:

1. **Nearby photos** — one page of photo locations inside a bounding box,
   optionally restricted by date and author.
2. **Matched tracks** — road segments that have photo coverage, shown
   instead of individual photos at coarse zoom.

Both return JSON of the form::

    {"status": {"apiCode": 600, "apiMessage": "..."},
     "currentPageItems": [...],
     "totalFilteredItems": [1234]}

Usage
-----
    from streetcam.ingest.photo_client import PhotoService
    service = PhotoService(base_url="https://photos.example.org/")
    page = service.list_nearby_photos(area, search_filter, Paging(1, 1000))
    print(page.page, len(page.photos))
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

import requests

from . import fetch_json
from .query_builder import QueryBuilder
from ..errors import PhotoServiceError, SegmentServiceError
from ..geo.bbox import BoundingBox
from ..model.entities import LatLon, Paging, Photo, PhotoDataSet, Segment
from ..model.filters import SearchFilter

log = logging.getLogger(__name__)


def _parse_photo(item: dict) -> Optional[Photo]:
    """Parse one JSON photo item; None when required keys are missing."""
    try:
        return Photo(
            id=int(item["id"]),
            sequence_id=int(item["sequence_id"]),
            sequence_index=int(item["sequence_index"]),
            location=LatLon(float(item["lat"]), float(item["lng"])),
            name=item.get("name", "") or "",
            large_thumbnail_name=item.get("lth_name", "") or "",
            thumbnail_name=item.get("th_name", "") or "",
            timestamp=int(item["timestamp"]) if item.get("timestamp") is not None else None,
            heading=float(item["heading"]) if item.get("heading") is not None else None,
            username=item.get("username", "") or "",
        )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        log.debug("Failed to parse photo item: %s", exc)
        return None


def _parse_segment(item: dict) -> Optional[Segment]:
    try:
        geometry = [LatLon(float(p[0]), float(p[1])) for p in item.get("track") or []]
        return Segment(
            id=int(item["id"]),
            geometry=geometry,
            coverage=int(item.get("coverage", 0) or 0),
        )
    except (AttributeError, KeyError, TypeError, ValueError, IndexError) as exc:
        log.debug("Failed to parse segment item: %s", exc)
        return None


def _page_items(data, error_cls: type) -> List[dict]:
    if not isinstance(data, dict) or not isinstance(data.get("currentPageItems"), list):
        raise error_cls("Malformed response: missing currentPageItems")
    return data["currentPageItems"]


def _total_items(data: Dict, default: int) -> int:
    total = data.get("totalFilteredItems")
    if isinstance(total, list):
        total = total[0] if total else None
    try:
        return int(total) if total is not None else default
    except (TypeError, ValueError):
        return default


class PhotoService:
    """Client for the photo listing service."""

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

    def list_nearby_photos(
        self,
        area: BoundingBox,
        search_filter: Optional[SearchFilter],
        paging: Paging,
    ) -> PhotoDataSet:
        """Fetch one page of photos inside *area*.

        Raises
        ------
        PhotoServiceError
            On network failure, non-2xx status or an undecodable body.
        """
        query = self._queries.list_nearby_photos(area, search_filter, paging)
        data = fetch_json(
            query.url(self.base_url),
            error_cls=PhotoServiceError,
            session=self.session,
            timeout=self.timeout,
        )
        items = _page_items(data, PhotoServiceError)
        photos = [p for p in (_parse_photo(i) for i in items) if p is not None]

        log.info("Nearby photos page %d: %d photos", paging.page, len(photos))
        return PhotoDataSet(
            photos=photos,
            page=paging.page,
            total_items=_total_items(data, len(photos)),
        )

    def list_matched_tracks(
        self,
        area: BoundingBox,
        search_filter: Optional[SearchFilter],
        zoom: int,
    ) -> List[Segment]:
        """Fetch road segments with photo coverage inside *area*."""
        query = self._queries.list_matched_tracks(area, search_filter, zoom)
        data = fetch_json(
            query.url(self.base_url),
            error_cls=SegmentServiceError,
            session=self.session,
            timeout=self.timeout,
        )
        items = _page_items(data, SegmentServiceError)
        segments = [s for s in (_parse_segment(i) for i in items) if s is not None]

        log.info("Matched tracks at zoom %d: %d segments", zoom, len(segments))
        return segments
