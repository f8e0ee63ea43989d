"""
View-mode controller — decides what the map layer shows at each zoom.

States
──────
  DORMANT   zoom below ``map_data_zoom``: nothing is fetched
  SEGMENT   road segments with photo coverage
  PHOTO     photo locations, plus detections/clusters when requested

Rules, evaluated in order on every viewport change:

  1. zoom < map_data_zoom                → DORMANT
  2. a track is selected                 → PHOTO (photos near a track are
                                           always shown; the stored data
                                           type is left alone)
  3. manual switch enabled               → the switch button is enabled iff
                                           zoom ≥ map_photo_zoom; below that
                                           PHOTO falls back to SEGMENT; above
                                           it the user's last choice is kept
  4. automatic                           → SEGMENT below the layer's photo
                                           zoom, PHOTO at or above it

Switching mode clears what is currently displayed before the new fetch
starts, so old and new data are never painted together.  The chosen data
type is persisted as a preference; everything else is recomputed on each
call.

Usage
-----
    controller = ViewModeController(config, prefs, search_handler, sink)
    mode = controller.update_data(Viewport(zoom=17, areas=(area,)))
    next_page = controller.download_photos(load_next=True)
"""
from __future__ import annotations

import dataclasses
import enum
import logging
import threading
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple

from .search import SearchHandler
from ..config import Config
from ..geo.bbox import BoundingBox, visible_areas
from ..model.entities import DataSet, DataType, Paging, PhotoDataSet
from ..model.filters import SearchFilter

log = logging.getLogger(__name__)


class ViewState(enum.Enum):
    DORMANT = "DORMANT"
    SEGMENT = "SEGMENT"
    PHOTO = "PHOTO"


@dataclass(frozen=True)
class Viewport:
    """One viewport change event."""
    zoom: int
    areas: Tuple[BoundingBox, ...] = ()
    track_selected: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "areas", tuple(self.areas))


@dataclass(frozen=True)
class ViewMode:
    """Outcome of one controller decision."""
    state: ViewState
    data_type: Optional[DataType]
    zoom: int
    manual_switch: bool
    track_selected: bool
    switch_enabled: Optional[bool] = None   # only set in manual mode


class RenderSink(Protocol):
    """The map layer, as seen by the controller."""

    def publish(self, data_set: Optional[DataSet], check_selection: bool) -> None: ...

    def enable_paging(self, previous: bool, next_: bool) -> None: ...

    def update_switch_button(self, data_type: Optional[DataType], enabled: Optional[bool]) -> None: ...


class Preferences(Protocol):
    def load_data_type(self) -> Optional[DataType]: ...

    def save_data_type(self, data_type: Optional[DataType]) -> None: ...

    def load_map_view_settings(self, default_photo_zoom: int): ...

    def load_search_filter(self) -> SearchFilter: ...


class ViewModeController:
    def __init__(
        self,
        config: Config,
        preferences: Preferences,
        search_handler: SearchHandler,
        sink: RenderSink,
    ):
        self._config = config
        self._prefs = preferences
        self._search = search_handler
        self._sink = sink
        self._data_set: Optional[DataSet] = None
        self._viewport: Optional[Viewport] = None
        self._lock = threading.Lock()

    @property
    def data_set(self) -> Optional[DataSet]:
        """What the controller last handed to the map layer."""
        with self._lock:
            return self._data_set

    # ── Viewport changes ──────────────────────────────────────────────

    def update_data(self, viewport: Viewport, check_selection: bool = False) -> ViewMode:
        """Pick the view mode for *viewport* and fetch its data.

        ``check_selection`` is forwarded to the map layer, which drops the
        selected element when the new data no longer contains it.
        """
        self._viewport = viewport
        zoom = viewport.zoom
        settings = self._prefs.load_map_view_settings(self._config.default_photo_zoom)

        if zoom < self._config.map_data_zoom:
            log.debug("Zoom %d below map data zoom %d, nothing to fetch",
                      zoom, self._config.map_data_zoom)
            return self._mode(ViewState.DORMANT, viewport, settings.manual_switch)

        if viewport.track_selected:
            # photos near a selected track are always shown; the stored
            # data type stays the user's choice
            self._update_photos(viewport, settings.manual_switch, check_selection)
            return self._mode(ViewState.PHOTO, viewport, settings.manual_switch,
                              data_type=DataType.PHOTO)

        if settings.manual_switch:
            return self._manual_switch_flow(viewport, check_selection)
        return self._normal_flow(viewport, settings.photo_zoom, check_selection)

    def _manual_switch_flow(self, viewport: Viewport, check_selection: bool) -> ViewMode:
        zoom = viewport.zoom
        data_type = self._prefs.load_data_type()
        switch_enabled = zoom >= self._config.map_photo_zoom
        self._sink.update_switch_button(data_type, switch_enabled)

        if zoom < self._config.map_photo_zoom:
            if data_type is DataType.PHOTO:
                # zoomed out of photo view
                self._prefs.save_data_type(DataType.SEGMENT)
            self._update_segments(viewport, True, check_selection)
            state = ViewState.SEGMENT
        elif data_type is DataType.PHOTO:
            self._update_photos(viewport, True, check_selection)
            state = ViewState.PHOTO
        else:
            self._update_segments(viewport, True, check_selection)
            state = ViewState.SEGMENT
        return self._mode(state, viewport, True, switch_enabled)

    def _normal_flow(self, viewport: Viewport, photo_zoom: int, check_selection: bool) -> ViewMode:
        data_type = self._prefs.load_data_type()
        if viewport.zoom < photo_zoom:
            if data_type is None or data_type is DataType.PHOTO:
                self._prefs.save_data_type(DataType.SEGMENT)
            self._update_segments(viewport, False, check_selection)
            state = ViewState.SEGMENT
        else:
            if data_type is None or data_type is DataType.SEGMENT:
                self._prefs.save_data_type(DataType.PHOTO)
            self._update_photos(viewport, False, check_selection)
            state = ViewState.PHOTO
        return self._mode(state, viewport, False)

    # ── Fetches ───────────────────────────────────────────────────────

    def _update_segments(self, viewport: Viewport, manual_switch: bool, check_selection: bool) -> None:
        displayed = self.data_set
        if displayed is not None and _has_high_zoom_data(displayed):
            if manual_switch:
                self._sink.update_switch_button(DataType.SEGMENT, None)
            self._publish(None, True)

        areas = visible_areas(viewport.areas)
        if not areas:
            return
        search_filter = self._prefs.load_search_filter()
        segments = self._search.list_matched_tracks(areas, search_filter, viewport.zoom)

        # the mode may have changed while the fetch was running
        data_type = self._prefs.load_data_type()
        if data_type is None or data_type is DataType.SEGMENT:
            self._publish(DataSet(segments=segments), check_selection)

    def _update_photos(self, viewport: Viewport, manual_switch: bool, check_selection: bool) -> None:
        displayed = self.data_set
        if displayed is not None and displayed.segments is not None:
            if manual_switch:
                self._sink.update_switch_button(DataType.PHOTO, None)
            self._publish(None, False)

        self._sink.enable_paging(False, False)
        areas = visible_areas(viewport.areas)
        if not areas:
            return
        search_filter = self._prefs.load_search_filter()
        result = self._search.search_high_zoom_data(areas, search_filter)

        if self._photos_wanted(self._viewport):
            self._publish(DataSet.from_high_zoom(result), check_selection)
            self._enable_paging_for(result.photo_data_set)

    # ── Paging ────────────────────────────────────────────────────────

    def download_photos(self, load_next: bool) -> Optional[PhotoDataSet]:
        """Replace the displayed photos with the next or previous page.

        Does nothing and returns None when no photos are displayed.
        """
        displayed = self.data_set
        current = displayed.photo_data_set if displayed is not None else None
        if current is None:
            return None

        page = current.page + 1 if load_next else current.page - 1
        if page < 1:
            log.debug("No page before page %d", current.page)
            return None

        areas = visible_areas(self._viewport.areas) if self._viewport else []
        if not areas:
            return None

        self._sink.enable_paging(False, False)
        paging = Paging(page, self._config.nearby_photos_max_items)
        search_filter = self._prefs.load_search_filter()
        result = self._search.list_nearby_photos(areas[0], search_filter, paging)
        if result is None:
            self._enable_paging_for(current)
            return None
        if not self._photos_wanted(self._viewport):
            log.debug("Photo page %d dropped, view left photo mode", page)
            return None

        self._publish(dataclasses.replace(displayed, photo_data_set=result), True)
        self._enable_paging_for(result)
        log.info("Photo page %d loaded: %d photos", page, len(result.photos))
        return result

    def photo_data_set_download_allowed(self) -> bool:
        """Whether next/previous photo pages may be requested right now."""
        if self._viewport is None:
            return False
        zoom = self._viewport.zoom
        settings = self._prefs.load_map_view_settings(self._config.default_photo_zoom)
        if settings.manual_switch:
            return (zoom >= self._config.map_photo_zoom
                    and self._prefs.load_data_type() is DataType.PHOTO)
        if zoom >= settings.photo_zoom:
            return not self._viewport.track_selected
        return False

    # ── Internals ─────────────────────────────────────────────────────

    def _publish(self, data_set: Optional[DataSet], check_selection: bool) -> None:
        with self._lock:
            self._data_set = data_set
        self._sink.publish(data_set, check_selection)

    def _photos_wanted(self, viewport: Viewport) -> bool:
        """Whether photo results may still be shown for *viewport*."""
        if viewport.zoom < self._config.map_data_zoom:
            return False
        return viewport.track_selected or self._prefs.load_data_type() is DataType.PHOTO

    def _enable_paging_for(self, photo_data_set: Optional[PhotoDataSet]) -> None:
        if photo_data_set is None:
            return
        max_items = self._config.nearby_photos_max_items
        has_previous = photo_data_set.page > 1
        has_next = (len(photo_data_set.photos) >= max_items
                    or photo_data_set.total_items > photo_data_set.page * max_items)
        self._sink.enable_paging(has_previous, has_next)

    def _mode(
        self,
        state: ViewState,
        viewport: Viewport,
        manual_switch: bool,
        switch_enabled: Optional[bool] = None,
        data_type: Optional[DataType] = None,
    ) -> ViewMode:
        mode = ViewMode(
            state=state,
            data_type=data_type or self._prefs.load_data_type(),
            zoom=viewport.zoom,
            manual_switch=manual_switch,
            track_selected=viewport.track_selected,
            switch_enabled=switch_enabled,
        )
        log.debug("View mode: %s", mode)
        return mode


def _has_high_zoom_data(data_set: DataSet) -> bool:
    return (data_set.photo_data_set is not None
            or data_set.detections is not None
            or data_set.clusters is not None)
