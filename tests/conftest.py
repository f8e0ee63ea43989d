"""
Shared fixtures for the streetcam test suite.
"""

from unittest.mock import Mock

import pytest

from streetcam.config import Config
from streetcam.geo.bbox import BoundingBox
from streetcam.model.entities import Cluster, Detection, LatLon, Photo, PhotoDataSet
from streetcam.storage.preferences import SqlitePreferenceStore


@pytest.fixture
def area():
    return BoundingBox(north=10.0, south=9.0, east=5.0, west=4.0)


@pytest.fixture
def config():
    return Config(
        photo_service_url="https://photos.test/",
        detection_service_url="https://detections.test/",
        map_data_zoom=10,
        map_photo_zoom=15,
        default_photo_zoom=16,
        nearby_photos_max_items=1000,
    )


@pytest.fixture
def store():
    prefs = SqlitePreferenceStore(":memory:")
    yield prefs
    prefs.close()


@pytest.fixture
def make_photo():
    def _make(photo_id, lat=9.5, lon=4.5):
        return Photo(id=photo_id, sequence_id=1, sequence_index=photo_id,
                     location=LatLon(lat, lon))
    return _make


@pytest.fixture
def make_detection():
    def _make(detection_id):
        return Detection(id=detection_id, point=LatLon(9.5, 4.5))
    return _make


@pytest.fixture
def make_cluster():
    def _make(cluster_id, detection_ids=None):
        return Cluster(id=cluster_id, point=LatLon(9.5, 4.5), detection_ids=detection_ids)
    return _make


@pytest.fixture
def make_page(make_photo):
    def _make(*photo_ids, page=1, total_items=None):
        photos = [make_photo(i) for i in photo_ids]
        total = len(photos) if total_items is None else total_items
        return PhotoDataSet(photos=photos, page=page, total_items=total)
    return _make


@pytest.fixture
def prompt():
    """Error prompt that never asks to suppress."""
    mock = Mock()
    mock.ask_suppress.return_value = False
    return mock
