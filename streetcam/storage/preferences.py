"""
SQLite-backed user preferences.

Holds the values the view-mode controller and the search handler share
across viewport changes: the current data type, the manual switch flag,
the per-layer photo zoom, the search filter and the error suppression
states.  Every value is a single JSON-encoded row, so concurrent writers
simply overwrite each other.

Usage
-----
    store = SqlitePreferenceStore(Path("data/prefs.db"))
    store.save_data_type(DataType.PHOTO)
    settings = store.load_map_view_settings(default_photo_zoom=16)
"""
from __future__ import annotations

import json
import logging
import sqlite3
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from ..handler.suppression import SuppressionState
from ..model.entities import DataType
from ..model.filters import SearchFilter

log = logging.getLogger(__name__)

_DEFAULT_DB = Path("data") / "streetcam_prefs.db"

DATA_TYPE = "data_type"
MANUAL_SWITCH = "manual_switch"
PHOTO_ZOOM = "photo_zoom"
SEARCH_FILTER = "search_filter"
_SUPPRESS_KEYS = {
    DataType.PHOTO: "photos_error_suppress",
    DataType.DETECTION: "detections_error_suppress",
    DataType.CLUSTER: "clusters_error_suppress",
}


@dataclass(frozen=True)
class MapViewSettings:
    """Switching preferences for the map layer."""
    photo_zoom: int
    manual_switch: bool = False


class SqlitePreferenceStore:
    """Key/value preference table.

    Thread-safe: uses check_same_thread=False and serialises writes
    through a lock so search workers and the GUI can share one store.
    """

    def __init__(self, db_path: Optional[Path] = None):
        self._path = Path(db_path) if db_path is not None else _DEFAULT_DB
        if str(self._path) != ":memory:":
            self._path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._path), check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._write_lock = threading.Lock()
        self._create_tables()
        log.info("Preference store opened: %s", self._path)

    def _create_tables(self) -> None:
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS preferences (
                key         TEXT PRIMARY KEY,
                value_json  TEXT NOT NULL
            );
        """)
        self._conn.commit()

    # ── Raw access ────────────────────────────────────────────────────

    def get(self, key: str, default: Any = None) -> Any:
        with self._write_lock:
            row = self._conn.execute(
                "SELECT value_json FROM preferences WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            return default
        try:
            return json.loads(row[0])
        except ValueError:
            log.warning("Discarding unreadable preference %r", key)
            return default

    def set(self, key: str, value: Any) -> None:
        with self._write_lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO preferences (key, value_json) VALUES (?, ?)",
                (key, json.dumps(value)),
            )
            self._conn.commit()

    def delete(self, key: str) -> None:
        with self._write_lock:
            self._conn.execute("DELETE FROM preferences WHERE key = ?", (key,))
            self._conn.commit()

    # ── Data type ─────────────────────────────────────────────────────

    def load_data_type(self) -> Optional[DataType]:
        raw = self.get(DATA_TYPE)
        try:
            return DataType(raw) if raw is not None else None
        except ValueError:
            return None

    def save_data_type(self, data_type: Optional[DataType]) -> None:
        if data_type is None:
            self.delete(DATA_TYPE)
        else:
            self.set(DATA_TYPE, data_type.value)

    # ── Map view settings ─────────────────────────────────────────────

    def load_map_view_settings(self, default_photo_zoom: int) -> MapViewSettings:
        return MapViewSettings(
            photo_zoom=int(self.get(PHOTO_ZOOM, default_photo_zoom)),
            manual_switch=bool(self.get(MANUAL_SWITCH, False)),
        )

    def save_map_view_settings(self, settings: MapViewSettings) -> None:
        self.set(PHOTO_ZOOM, settings.photo_zoom)
        self.set(MANUAL_SWITCH, settings.manual_switch)

    # ── Search filter ─────────────────────────────────────────────────

    def load_search_filter(self) -> SearchFilter:
        raw = self.get(SEARCH_FILTER)
        if not raw:
            return SearchFilter()
        try:
            return SearchFilter.from_dict(raw)
        except (KeyError, TypeError, ValueError) as exc:
            log.warning("Stored search filter is invalid, using default: %s", exc)
            return SearchFilter()

    def save_search_filter(self, search_filter: SearchFilter) -> None:
        self.set(SEARCH_FILTER, search_filter.as_dict())

    # ── Error suppression ─────────────────────────────────────────────

    def load_suppression_state(self, data_type: DataType) -> SuppressionState:
        key = _SUPPRESS_KEYS.get(data_type)
        if key is None:
            return SuppressionState.SUPPRESSED
        try:
            return SuppressionState(self.get(key, SuppressionState.ASK.value))
        except ValueError:
            return SuppressionState.ASK

    def save_suppression_state(self, data_type: DataType, state: SuppressionState) -> None:
        self.set(_SUPPRESS_KEYS[data_type], state.value)

    def reset_suppression(self) -> None:
        for key in _SUPPRESS_KEYS.values():
            self.delete(key)

    def close(self) -> None:
        try:
            self._conn.close()
        except sqlite3.Error as exc:
            log.debug("Closing preference store failed: %s", exc)
