from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import Config, load_config
from .errors import StreetcamError
from .geo.bbox import BoundingBox, split_antimeridian, zoom_for_bounds
from .handler.search import SearchHandler
from .handler.suppression import ErrorSuppressionPolicy
from .handler.view_mode import ViewModeController, Viewport
from .ingest.detection_client import DetectionService
from .ingest.photo_client import PhotoService
from .logger import setup_logging
from .model.entities import NEARBY_PHOTOS_DEFAULT, DataSet, DataType, Paging
from .storage.preferences import MapViewSettings, SqlitePreferenceStore

log = logging.getLogger(__name__)


class ConsolePrompt:
    """Asks on stdin whether to suppress further errors of a kind.

    Without a terminal the answer is always "no", so every failure keeps
    being reported in the log.
    """

    def ask_suppress(self, data_type: DataType) -> bool:
        if not sys.stdin.isatty():
            return False
        answer = input(
            f"Loading {data_type.value.lower()} data failed. "
            "Hide further errors of this kind? [y/N] "
        )
        return answer.strip().lower() in ("y", "yes")


class LoggingSink:
    """Render sink that reports what the map layer would display."""

    def __init__(self):
        self.data_set: Optional[DataSet] = None
        self.paging = (False, False)

    def publish(self, data_set: Optional[DataSet], check_selection: bool) -> None:
        self.data_set = data_set
        if data_set is None:
            log.info("Layer cleared")
            return
        segments, photos, detections, clusters = data_set.counts()
        log.info(
            "Layer data: segments=%d photos=%d detections=%d clusters=%d",
            segments, photos, detections, clusters,
        )

    def enable_paging(self, previous: bool, next_: bool) -> None:
        self.paging = (previous, next_)

    def update_switch_button(self, data_type: Optional[DataType], enabled: Optional[bool]) -> None:
        log.debug("Switch button: %s enabled=%s", data_type, enabled)


def build_controller(config: Config, store: SqlitePreferenceStore, sink, prompt=None) -> ViewModeController:
    photo_service = PhotoService(config.photo_service_url, timeout=config.request_timeout_s)
    detection_service = DetectionService(config.detection_service_url, timeout=config.request_timeout_s)
    handler = SearchHandler(
        photo_service,
        detection_service,
        ErrorSuppressionPolicy(store),
        prompt,
        default_paging=Paging(NEARBY_PHOTOS_DEFAULT.page, config.nearby_photos_max_items),
    )
    return ViewModeController(config, store, handler, sink)


def viewport_zoom(areas: List[BoundingBox], width_px: int) -> int:
    """Zoom level at which *areas* side by side fill *width_px* pixels."""
    # split parts share the screen width in proportion to their span
    span = sum(a.width for a in areas)
    return min(zoom_for_bounds(a, max(1, int(width_px * a.width / span))) for a in areas)


def main() -> None:
    parser = argparse.ArgumentParser(
        description=(
            "Street-level imagery viewer backend.\n"
            "Runs one map update for the given viewport and logs what the\n"
            "map layer would show: segments at coarse zoom, photos with\n"
            "detections and clusters at high zoom."
        )
    )
    parser.add_argument("--north", type=float, required=True)
    parser.add_argument("--south", type=float, required=True)
    parser.add_argument("--east", type=float, required=True)
    parser.add_argument("--west", type=float, required=True,
                        help="A west edge east of --east crosses the antimeridian.")
    parser.add_argument(
        "--zoom",
        type=int,
        help="Map zoom level (default: derived from the viewport and --width-px).",
    )
    parser.add_argument(
        "--width-px",
        type=int,
        default=1024,
        help="Screen width of the map in pixels, used when --zoom is omitted.",
    )
    parser.add_argument(
        "--types",
        nargs="+",
        choices=["photo", "detection", "cluster"],
        help="Data types to search at high zoom (default: the stored filter).",
    )
    parser.add_argument(
        "--manual",
        action="store_true",
        help="Switch between segments and photos manually instead of by zoom.",
    )
    parser.add_argument(
        "--track-selected",
        action="store_true",
        help="Behave as if a track is selected (always show photos).",
    )
    parser.add_argument(
        "--next-page",
        action="store_true",
        help="After the update, load the next page of photos.",
    )
    parser.add_argument("--config", type=Path, help="JSON file overriding config/defaults.json.")
    parser.add_argument("--db", type=Path, help="Preference database (default: from config).")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    setup_logging(args.log_level)

    try:
        config = load_config(args.config)
        areas = split_antimeridian(args.north, args.south, args.east, args.west)
        zoom = args.zoom
        if zoom is None:
            zoom = viewport_zoom(areas, args.width_px)
            log.info("Derived zoom %d for a %d px wide map", zoom, args.width_px)
    except (StreetcamError, ValueError) as exc:
        log.error("%s", exc)
        sys.exit(2)

    store = SqlitePreferenceStore(args.db or Path(config.preferences_db))
    try:
        current = store.load_map_view_settings(config.default_photo_zoom)
        store.save_map_view_settings(MapViewSettings(current.photo_zoom, args.manual))
        if args.types:
            search_filter = store.load_search_filter()
            store.save_search_filter(dataclasses.replace(
                search_filter,
                data_types=frozenset(DataType(t.upper()) for t in args.types),
            ))

        sink = LoggingSink()
        controller = build_controller(config, store, sink, ConsolePrompt())
        mode = controller.update_data(
            Viewport(zoom=zoom, areas=tuple(areas), track_selected=args.track_selected)
        )
        log.info("View mode: %s (data type %s)", mode.state.value,
                 mode.data_type.value if mode.data_type else "-")

        if args.next_page:
            if controller.photo_data_set_download_allowed() and sink.paging[1]:
                controller.download_photos(load_next=True)
            else:
                log.info("No next photo page available")
    finally:
        store.close()


if __name__ == "__main__":
    main()
