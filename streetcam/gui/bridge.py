"""
Qt bridge — delivers controller output to the map layer on the GUI thread.

The view-mode controller runs on a worker thread so the map stays
responsive while the services answer.  Everything it produces goes through
``MapLayerBridge``, which re-posts each call onto the Qt event loop and
re-emits it as a signal.  The map layer is the single consumer of those
signals.

Data flow
─────────
  viewport change (GUI thread)
    → ViewportUpdater.request(viewport)        (worker thread)
    → ViewModeController.update_data()
    → MapLayerBridge.publish / enable_paging / update_switch_button
    → queued to the GUI thread
    → data_ready / paging_changed / switch_button_changed

Usage
-----
    bridge = MapLayerBridge()
    bridge.data_ready.connect(layer.show_data)
    prompt = QtErrorPrompt(parent=main_window)
    controller = ViewModeController(config, prefs, handler, bridge)
    updater = ViewportUpdater(controller, bridge)
    updater.request(Viewport(zoom=17, areas=(area,)))
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

from PyQt5 import QtCore, QtWidgets

from ..handler.view_mode import ViewModeController, Viewport
from ..model.entities import DataSet, DataType

log = logging.getLogger(__name__)

_PROMPT_TITLE = "Search error"
_PROMPT_TEXT = (
    "Loading {kind} failed.\n\n"
    "Do you want to hide further errors of this kind?"
)
_KIND = {
    DataType.PHOTO: "photos",
    DataType.DETECTION: "detections",
    DataType.CLUSTER: "clusters",
    DataType.SEGMENT: "segments",
}


class MapLayerBridge(QtCore.QObject):
    """Render sink that hands controller output to the GUI thread.

    Signals
    -------
    data_ready(DataSet | None, bool)
        New data to display (None clears the layer) and whether the
        current selection has to be re-checked against it.
    paging_changed(bool, bool)
        Enabled state of the previous / next photo page actions.
    switch_button_changed(DataType | None, bool | None)
        Manual switch button: data type to show and enabled state
        (None leaves the enabled state unchanged).
    status_message(str)
        Informational messages for the status bar.
    """

    data_ready = QtCore.pyqtSignal(object, bool)
    paging_changed = QtCore.pyqtSignal(bool, bool)
    switch_button_changed = QtCore.pyqtSignal(object, object)
    status_message = QtCore.pyqtSignal(str)

    def __init__(self, parent: Optional[QtCore.QObject] = None):
        super().__init__(parent)

    # ── Render sink (any thread) ──────────────────────────────────────

    def publish(self, data_set: Optional[DataSet], check_selection: bool) -> None:
        QtCore.QMetaObject.invokeMethod(
            self, "_emit_data",
            QtCore.Qt.QueuedConnection,
            QtCore.Q_ARG(object, data_set),
            QtCore.Q_ARG(bool, check_selection),
        )

    def enable_paging(self, previous: bool, next_: bool) -> None:
        QtCore.QMetaObject.invokeMethod(
            self, "_emit_paging",
            QtCore.Qt.QueuedConnection,
            QtCore.Q_ARG(bool, previous),
            QtCore.Q_ARG(bool, next_),
        )

    def update_switch_button(self, data_type: Optional[DataType], enabled: Optional[bool]) -> None:
        QtCore.QMetaObject.invokeMethod(
            self, "_emit_switch",
            QtCore.Qt.QueuedConnection,
            QtCore.Q_ARG(object, data_type),
            QtCore.Q_ARG(object, enabled),
        )

    def report(self, message: str) -> None:
        QtCore.QMetaObject.invokeMethod(
            self, "_emit_status",
            QtCore.Qt.QueuedConnection,
            QtCore.Q_ARG(str, message),
        )

    # ── Signal emitters (main thread) ─────────────────────────────────

    @QtCore.pyqtSlot(object, bool)
    def _emit_data(self, data_set: Optional[DataSet], check_selection: bool) -> None:
        self.data_ready.emit(data_set, check_selection)

    @QtCore.pyqtSlot(bool, bool)
    def _emit_paging(self, previous: bool, next_: bool) -> None:
        self.paging_changed.emit(previous, next_)

    @QtCore.pyqtSlot(object, object)
    def _emit_switch(self, data_type, enabled) -> None:
        self.switch_button_changed.emit(data_type, enabled)

    @QtCore.pyqtSlot(str)
    def _emit_status(self, msg: str) -> None:
        self.status_message.emit(msg)


class QtErrorPrompt(QtCore.QObject):
    """Blocking yes/no dialog asking to suppress further search errors.

    Safe to call from a worker thread: the dialog is always shown on the
    thread owning this object and the caller waits for the answer.
    """

    def __init__(self, parent: Optional[QtWidgets.QWidget] = None):
        super().__init__(parent)
        self._dialog_parent = parent

    def ask_suppress(self, data_type: DataType) -> bool:
        kind = _KIND.get(data_type, data_type.value.lower())
        if QtCore.QThread.currentThread() == self.thread():
            return self._ask(kind)
        return QtCore.QMetaObject.invokeMethod(
            self, "_ask",
            QtCore.Qt.BlockingQueuedConnection,
            QtCore.Q_RETURN_ARG(bool),
            QtCore.Q_ARG(str, kind),
        )

    @QtCore.pyqtSlot(str, result=bool)
    def _ask(self, kind: str) -> bool:
        answer = QtWidgets.QMessageBox.question(
            self._dialog_parent,
            _PROMPT_TITLE,
            _PROMPT_TEXT.format(kind=kind),
            QtWidgets.QMessageBox.Yes | QtWidgets.QMessageBox.No,
            QtWidgets.QMessageBox.No,
        )
        return answer == QtWidgets.QMessageBox.Yes


class ViewportUpdater:
    """Runs controller updates off the GUI thread, one at a time.

    A request arriving while an update is still running is kept and run
    next; intermediate requests are dropped since only the latest
    viewport matters.
    """

    def __init__(self, controller: ViewModeController, bridge: MapLayerBridge):
        self._controller = controller
        self._bridge = bridge
        self._lock = threading.Lock()
        self._pending: Optional[Viewport] = None
        self._check_selection = False
        self._running = False

    def request(self, viewport: Viewport, check_selection: bool = False) -> None:
        with self._lock:
            self._pending = viewport
            self._check_selection = check_selection
            if self._running:
                return
            self._running = True
        threading.Thread(
            target=self._run, daemon=True, name="viewport-update"
        ).start()

    def _run(self) -> None:
        while True:
            with self._lock:
                viewport = self._pending
                check_selection = self._check_selection
                self._pending = None
                if viewport is None:
                    self._running = False
                    return
            try:
                mode = self._controller.update_data(viewport, check_selection)
            except Exception as exc:
                log.error("Viewport update failed: %s", exc)
                self._bridge.report(f"Map update failed: {exc}")
                continue
            self._bridge.report(f"Zoom {mode.zoom}: {mode.state.value.lower()} view")

    def request_page(self, load_next: bool) -> None:
        """Load the next or previous photo page on a worker thread."""
        if not self._controller.photo_data_set_download_allowed():
            return
        threading.Thread(
            target=self._controller.download_photos, args=(load_next,),
            daemon=True, name="photo-page",
        ).start()
