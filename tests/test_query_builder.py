"""
Unit tests for service query encoding.
"""

import datetime

import pytest

from streetcam.ingest.query_builder import (
    QueryBuilder, encode_set, format_date, raw_edit_statuses,
)
from streetcam.model.entities import DataType, Paging, Sign
from streetcam.model.filters import (
    ConfidenceLevelFilter, DetectionFilter, DetectionMode, EditStatus,
    OsmComparison, SearchFilter, SignType,
)


@pytest.fixture
def builder():
    return QueryBuilder()


def detection_filter(**kwargs):
    return SearchFilter(
        data_types=frozenset({DataType.DETECTION, DataType.CLUSTER}),
        detection_filter=DetectionFilter(**kwargs),
    )


class TestEncodingHelpers:
    """Test the value encoders shared by all queries."""

    def test_encode_set_sorts_and_percent_encodes(self):
        assert encode_set(["NEW", "CHANGED", "NEW"]) == "CHANGED%2CNEW"

    def test_mapped_expands_to_two_raw_statuses(self):
        assert raw_edit_statuses([EditStatus.MAPPED]) == ["ALREADY_FIXED", "FIXED"]
        assert raw_edit_statuses([EditStatus.OPEN, EditStatus.MAPPED]) == [
            "ALREADY_FIXED", "FIXED", "OPEN",
        ]

    def test_format_date_uses_utc_day(self):
        aware = datetime.datetime(
            2020, 3, 1, 1, 30, tzinfo=datetime.timezone(datetime.timedelta(hours=3))
        )
        assert format_date(aware) == "2020-02-29"
        assert format_date(datetime.date(2021, 7, 4)) == "2021-07-04"


class TestDetectionSearch:
    """Test searchDetections queries."""

    def test_unfiltered_query(self, builder, area):
        query = builder.search_detections(area, None)
        assert query.method == "searchDetections"
        assert query.query_string == (
            "format=json&north=10.0&south=9.0&east=5.0&west=4.0"
            "&excludedSignTypes=BLURRING"
        )

    def test_mapped_status_in_query(self, builder, area):
        query = builder.search_detections(
            area, detection_filter(edit_statuses=[EditStatus.MAPPED])
        )
        assert query.get("editStatuses") == "ALREADY_FIXED%2CFIXED"

    def test_full_filter(self, builder, area):
        search_filter = SearchFilter(
            data_types=frozenset({DataType.DETECTION}),
            osm_user_id=42,
            date=datetime.date(2021, 5, 3),
            detection_filter=DetectionFilter(
                osm_comparisons=[OsmComparison.NEW, OsmComparison.CHANGED],
                sign_types=[SignType.STOP],
                modes=[DetectionMode.MANUAL],
                region="EU",
                specific_signs=[Sign(internal_name="STOP_SIGN")],
            ),
        )
        query = builder.search_detections(area, search_filter)
        assert query.get("date") == "2021-05-03"
        assert query.get("externalId") == "42"
        assert query.get("authorType") == "OSM"
        assert query.get("osmComparisons") == "CHANGED%2CNEW"
        assert query.get("includedSignTypes") == "STOP"
        assert query.get("includedSignInternalNames") == "STOP_SIGN"
        assert query.get("modes") == "MANUAL"
        assert query.get("region") == "EU"
        # the blurring exclusion always closes a detection query
        assert query.params[-1] == ("excludedSignTypes", "BLURRING")

    def test_empty_collections_omitted(self, builder, area):
        query = builder.search_detections(area, detection_filter())
        names = [name for name, _ in query.params]
        assert "osmComparisons" not in names
        assert "editStatuses" not in names
        assert "includedSignTypes" not in names
        assert "modes" not in names


class TestClusterSearch:
    """Test searchClusters queries."""

    def test_area_is_expanded(self, builder, area):
        query = builder.search_clusters(area, None)
        assert query.method == "searchClusters"
        assert query.query_string == (
            "format=json&north=10.004&south=8.996&east=5.004&west=3.996"
        )

    def test_no_author_and_no_exclusion(self, builder, area):
        search_filter = SearchFilter(osm_user_id=42, detection_filter=DetectionFilter())
        query = builder.search_clusters(area, search_filter)
        assert query.get("externalId") is None
        assert query.get("excludedSignTypes") is None

    def test_confidence_bounds(self, builder, area):
        query = builder.search_clusters(area, detection_filter(
            confidence_level=ConfidenceLevelFilter(0.5, 0.9),
        ))
        assert query.get("minConfidenceLevel") == "0.5"
        assert query.get("maxConfidenceLevel") == "0.9"


class TestPhotoQueries:
    """Test photo service listings."""

    def test_nearby_photos_paging(self, builder, area):
        query = builder.list_nearby_photos(area, SearchFilter(), Paging(3, 500))
        assert query.method == "list/nearby-photos"
        assert query.params[-2:] == (("page", "3"), ("itemsPerPage", "500"))

    def test_matched_tracks_zoom(self, builder, area):
        query = builder.list_matched_tracks(area, None, 12)
        assert query.query_string == (
            "format=json&north=10.0&south=9.0&east=5.0&west=4.0&zoom=12"
        )

    def test_url_joins_base(self, builder, area):
        query = builder.list_matched_tracks(area, None, 12)
        assert query.url("https://photos.test/").startswith(
            "https://photos.test/list/matched-tracks?format=json&"
        )


class TestRetrieval:
    """Test by-id and sequence retrieval queries."""

    def test_by_id(self, builder):
        assert builder.retrieve_cluster(7).query_string == "id=7"
        assert builder.retrieve_detection(8).method == "retrieveDetection"

    def test_photo_detections(self, builder):
        query = builder.retrieve_photo_detections(3, 4)
        assert query.query_string == "sequenceId=3&sequenceIndex=4&excludedSignTypes=BLURRING"

    def test_sequence_detections(self, builder):
        query = builder.retrieve_sequence_detections(3)
        assert query.query_string == "sequenceId=3&excludedSignTypes=BLURRING"
