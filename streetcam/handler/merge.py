"""
Result merging for multi-area, multi-type searches.

Photos from several sub-areas are concatenated into one page; detections
already represented by a cluster in the same result are dropped so the map
never shows a sign twice.
"""
from __future__ import annotations

from typing import Iterable, List, Optional, Set

from ..model.entities import Cluster, Detection, PhotoDataSet


def cluster_detection_ids(clusters: Iterable[Cluster]) -> Set[int]:
    """Union of member ids; clusters without ids contribute nothing."""
    ids: Set[int] = set()
    for cluster in clusters:
        if cluster.detection_ids is not None:
            ids.update(cluster.detection_ids)
    return ids


def filter_cluster_detections(
    clusters: Optional[List[Cluster]],
    detections: List[Detection],
) -> List[Detection]:
    """Remove detections that belong to one of *clusters*.

    With ``clusters`` absent the detections pass through unchanged.
    """
    if clusters is None:
        return detections
    claimed = cluster_detection_ids(clusters)
    return [d for d in detections if d.id not in claimed]


def merge_photo_data_sets(data_sets: Iterable[PhotoDataSet]) -> Optional[PhotoDataSet]:
    """Concatenate per-area pages, keeping the first page's metadata.

    Returns None when nothing was merged or the merged page is empty, so
    consumers only ever check for absence.
    """
    merged: Optional[PhotoDataSet] = None
    for data_set in data_sets:
        if merged is None:
            merged = PhotoDataSet(
                photos=list(data_set.photos),
                page=data_set.page,
                total_items=data_set.total_items,
            )
        else:
            merged.add_photos(data_set.photos)
    if merged is None or not merged.has_items():
        return None
    return merged
