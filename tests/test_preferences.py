"""
Unit tests for the SQLite preference store and the suppression policy.
"""

import datetime
from unittest.mock import Mock

import pytest

from streetcam.handler.suppression import ErrorSuppressionPolicy, SuppressionState
from streetcam.model.entities import DataType, Sign
from streetcam.model.filters import (
    ConfidenceLevelFilter, DetectionFilter, EditStatus, SearchFilter, SignType,
)
from streetcam.storage.preferences import (
    SEARCH_FILTER, MapViewSettings, SqlitePreferenceStore,
)


class TestPreferenceStore:
    """Test preference persistence."""

    def test_data_type(self, store):
        assert store.load_data_type() is None
        store.save_data_type(DataType.PHOTO)
        assert store.load_data_type() is DataType.PHOTO
        store.save_data_type(None)
        assert store.load_data_type() is None

    def test_map_view_settings_defaults(self, store):
        settings = store.load_map_view_settings(default_photo_zoom=16)
        assert settings == MapViewSettings(photo_zoom=16, manual_switch=False)

    def test_map_view_settings_saved(self, store):
        store.save_map_view_settings(MapViewSettings(photo_zoom=14, manual_switch=True))
        assert store.load_map_view_settings(16) == MapViewSettings(14, True)

    def test_search_filter(self, store):
        search_filter = SearchFilter(
            data_types=frozenset({DataType.PHOTO, DataType.CLUSTER}),
            osm_user_id=7,
            date=datetime.date(2022, 1, 31),
            detection_filter=DetectionFilter(
                edit_statuses=[EditStatus.MAPPED],
                sign_types=[SignType.STOP],
                specific_signs=[Sign(internal_name="STOP_SIGN", type="STOP")],
                confidence_level=ConfidenceLevelFilter(0.2, None),
            ),
        )
        store.save_search_filter(search_filter)
        assert store.load_search_filter() == search_filter

    def test_invalid_search_filter_falls_back(self, store):
        store.set(SEARCH_FILTER, {"data_types": ["NOT_A_TYPE"]})
        assert store.load_search_filter() == SearchFilter()

    def test_unreadable_value(self, store):
        store._conn.execute(
            "INSERT INTO preferences (key, value_json) VALUES (?, ?)", ("broken", "{not json")
        )
        assert store.get("broken", "fallback") == "fallback"

    def test_values_survive_reopen(self, tmp_path):
        db_path = tmp_path / "nested" / "prefs.db"
        first = SqlitePreferenceStore(db_path)
        first.save_data_type(DataType.SEGMENT)
        first.close()

        second = SqlitePreferenceStore(db_path)
        try:
            assert second.load_data_type() is DataType.SEGMENT
        finally:
            second.close()


class TestSuppressionState:
    """Test per data type suppression flags."""

    def test_default_is_ask(self, store):
        for data_type in (DataType.PHOTO, DataType.DETECTION, DataType.CLUSTER):
            assert store.load_suppression_state(data_type) is SuppressionState.ASK

    def test_segments_never_prompt(self, store):
        assert store.load_suppression_state(DataType.SEGMENT) is SuppressionState.SUPPRESSED

    def test_flags_are_independent(self, store):
        store.save_suppression_state(DataType.CLUSTER, SuppressionState.SUPPRESSED)
        assert store.load_suppression_state(DataType.CLUSTER) is SuppressionState.SUPPRESSED
        assert store.load_suppression_state(DataType.PHOTO) is SuppressionState.ASK

    def test_reset(self, store):
        store.save_suppression_state(DataType.PHOTO, SuppressionState.SUPPRESSED)
        store.reset_suppression()
        assert store.load_suppression_state(DataType.PHOTO) is SuppressionState.ASK


class TestErrorSuppressionPolicy:
    """Test the prompt gate."""

    @pytest.fixture
    def policy(self, store):
        return ErrorSuppressionPolicy(store)

    def test_prompt_answer_recorded(self, policy, store):
        prompt = Mock()
        prompt.ask_suppress.return_value = True

        assert policy.notify_failure(DataType.DETECTION, prompt) is True
        assert policy.should_notify(DataType.DETECTION) is False
        assert store.load_suppression_state(DataType.DETECTION) is SuppressionState.SUPPRESSED

    def test_declined_keeps_asking(self, policy, prompt):
        policy.notify_failure(DataType.PHOTO, prompt)
        assert policy.notify_failure(DataType.PHOTO, prompt) is True
        assert prompt.ask_suppress.call_count == 2

    def test_no_prompt_available(self, policy):
        assert policy.notify_failure(DataType.PHOTO, None) is False

    def test_segment_failures_not_prompted(self, policy, prompt):
        assert policy.notify_failure(DataType.SEGMENT, prompt) is False
        prompt.ask_suppress.assert_not_called()
