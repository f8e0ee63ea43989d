"""
Unit tests for the Qt bridge between controller and map layer.
"""

import threading
from unittest.mock import Mock

import pytest

QtCore = pytest.importorskip("PyQt5.QtCore")
QtWidgets = pytest.importorskip("PyQt5.QtWidgets")

from streetcam.gui.bridge import MapLayerBridge, QtErrorPrompt, ViewportUpdater  # noqa: E402
from streetcam.handler.view_mode import ViewMode, Viewport, ViewState  # noqa: E402
from streetcam.model.entities import DataSet, DataType, Segment  # noqa: E402


@pytest.fixture(scope="module")
def app():
    return QtCore.QCoreApplication.instance() or QtCore.QCoreApplication([])


class TestMapLayerBridge:
    """Test that controller output arrives as signals on the event loop."""

    def test_publish_delivered_on_event_loop(self, app):
        bridge = MapLayerBridge()
        received = []
        bridge.data_ready.connect(lambda data, check: received.append((data, check)))
        data_set = DataSet(segments=[Segment(1)])

        bridge.publish(data_set, True)
        assert received == []
        app.processEvents()

        assert received == [(data_set, True)]

    def test_clear_and_paging(self, app):
        bridge = MapLayerBridge()
        received = []
        bridge.data_ready.connect(lambda data, check: received.append(("data", data, check)))
        bridge.paging_changed.connect(lambda prev, nxt: received.append(("paging", prev, nxt)))

        bridge.publish(None, False)
        bridge.enable_paging(True, False)
        app.processEvents()

        assert received == [("data", None, False), ("paging", True, False)]

    def test_switch_button(self, app):
        bridge = MapLayerBridge()
        received = []
        bridge.switch_button_changed.connect(lambda dt, enabled: received.append((dt, enabled)))

        bridge.update_switch_button(DataType.PHOTO, None)
        app.processEvents()

        assert received == [(DataType.PHOTO, None)]

    def test_publish_from_worker_thread(self, app):
        bridge = MapLayerBridge()
        received = []
        bridge.data_ready.connect(lambda data, check: received.append(data))

        worker = threading.Thread(target=bridge.publish, args=(None, True))
        worker.start()
        worker.join(timeout=5)
        app.processEvents()

        assert received == [None]


class TestQtErrorPrompt:
    """Test the suppress-errors dialog."""

    def test_yes_means_suppress(self, app, monkeypatch):
        asked = []

        def question(parent, title, text, *_args):
            asked.append(text)
            return QtWidgets.QMessageBox.Yes

        monkeypatch.setattr(QtWidgets.QMessageBox, "question", question)

        assert QtErrorPrompt().ask_suppress(DataType.CLUSTER) is True
        assert "clusters" in asked[0]

    def test_no_keeps_asking(self, app, monkeypatch):
        monkeypatch.setattr(
            QtWidgets.QMessageBox, "question", lambda *_args: QtWidgets.QMessageBox.No
        )
        assert QtErrorPrompt().ask_suppress(DataType.PHOTO) is False


class TestViewportUpdater:
    """Test background controller updates."""

    def test_update_runs_off_caller_thread(self, app):
        done = threading.Event()
        threads = []

        def update_data(viewport, check_selection):
            threads.append(threading.current_thread())
            done.set()
            return ViewMode(ViewState.DORMANT, None, viewport.zoom, False, False)

        controller = Mock()
        controller.update_data.side_effect = update_data
        updater = ViewportUpdater(controller, MapLayerBridge())

        updater.request(Viewport(zoom=5))

        assert done.wait(timeout=5)
        assert threads[0] is not threading.current_thread()
        assert controller.update_data.call_args[0][0] == Viewport(zoom=5)

    def test_page_request_ignored_when_not_allowed(self, app):
        controller = Mock()
        controller.photo_data_set_download_allowed.return_value = False
        updater = ViewportUpdater(controller, MapLayerBridge())

        updater.request_page(load_next=True)

        controller.download_photos.assert_not_called()
