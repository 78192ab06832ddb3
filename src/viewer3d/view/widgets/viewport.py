"""
3D Viewport Widget (PyVista Wrapper) - Scene Session
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Any, Callable, Deque, Optional, Tuple

import pyvista as pv
from PySide6.QtCore import QTimer, Signal
from PySide6.QtGui import QCloseEvent, QResizeEvent
from PySide6.QtWidgets import QVBoxLayout, QWidget
from pyvistaqt import QtInteractor

from viewer3d import config
from viewer3d.controller.importer import AssetImporter
from viewer3d.controller.relationships import RelationshipManager
from viewer3d.controller.workers import AssetReadWorker
from viewer3d.model.errors import AssetImportError
from viewer3d.model.scene import SpatialPrimitive
from viewer3d.view.widgets.pyvista_engine import PyVistaEngine

logger = logging.getLogger(__name__)


class ViewportWidget(QWidget):
    """
    Owns one viewport session: the interactor (engine + scene), camera, light,
    the per-frame loop and the scene core bound to it.

    Callers mutate the scene through 'manager' and load files through
    'start_import' (background read, results via signals) or the
    'import_asset' coroutine; nothing else touches the plotter.
    """
    # Emitted on the GUI thread once an asset was adopted into the scene
    import_finished = Signal(str, object)  # (filename, root SpatialPrimitive)
    import_failed = Signal(str)

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        self.layout_box: QVBoxLayout = QVBoxLayout(self)
        self.layout_box.setContentsMargins(0, 0, 0, 0)

        self.plotter: QtInteractor = QtInteractor(self)
        self.layout_box.addWidget(self.plotter)

        self._init_plotter()

        # --- Scene core ---
        self.engine = PyVistaEngine(self.plotter)
        self.manager = RelationshipManager(self.engine)
        self.importer = AssetImporter(self.manager)

        # --- Render loop ---
        self._frame_callback: Optional[Callable[[], None]] = None
        self._frame_timer = QTimer(self)
        self._frame_timer.setInterval(config.FRAME_INTERVAL_MS)
        self._frame_timer.timeout.connect(self._on_frame)

        # --- Background imports (one reader thread at a time) ---
        self._pending_imports: Deque[Tuple[str, str]] = deque()
        self._read_worker: Optional[AssetReadWorker] = None

        self._closed: bool = False

    # ------------------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------------------

    @property
    def is_closed(self) -> bool:
        return self._closed

    def run_render_loop(self, callback: Optional[Callable[[], None]] = None) -> None:
        """
        Start rendering once per frame until teardown.
        'callback' runs before each render and may mutate the scene.
        """
        self._frame_callback = callback
        if not self._frame_timer.isActive():
            self._frame_timer.start()
            logger.debug(f"Render loop started ({config.FRAME_INTERVAL_MS} ms/frame).")

    def stop_render_loop(self) -> None:
        self._frame_timer.stop()

    async def import_asset(self, path: str, filename: str) -> Optional[SpatialPrimitive]:
        root = await self.importer.import_asset(path, filename)
        if root is not None and not self._closed:
            self.plotter.reset_camera()
            self.plotter.render()
        return root

    def start_import(self, path: str, filename: str) -> None:
        """
        Queue an asset file for import. The file is parsed on a worker thread;
        actors are built and adopted on the GUI thread. Imports run in request
        order, one at a time. Outcome arrives via import_finished/import_failed.
        """
        if self._closed:
            return
        self._pending_imports.append((path, filename))
        if self._read_worker is None:
            self._start_next_import()

    def teardown(self) -> None:
        """Dispose the scene and close the interactor. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self._frame_timer.stop()
        self._pending_imports.clear()
        if self._read_worker is not None:
            # The reader holds no scene state; its late result is ignored
            self._read_worker.wait()
        self.manager.dispose()
        self.plotter.close()
        logger.info("Viewport closed.")

    # ------------------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------------------

    def _init_plotter(self) -> None:
        self.plotter.set_background(config.BACKGROUND_COLOR)
        self.plotter.camera_position = [
            config.CAMERA_POSITION,
            config.CAMERA_FOCAL_POINT,
            config.CAMERA_VIEW_UP,
        ]
        # Mouse/keyboard orbit around the focal point
        self.plotter.enable_trackball_style()

        self.plotter.remove_all_lights()
        light = pv.Light(
            position=config.LIGHT_POSITION,
            focal_point=(0.0, 0.0, 0.0),
            color=config.LIGHT_COLOR,
            intensity=config.LIGHT_INTENSITY,
            light_type='scene light',
        )
        light.positional = False
        self.plotter.add_light(light)

    def _start_next_import(self) -> None:
        if self._closed or not self._pending_imports:
            return
        path, filename = self._pending_imports.popleft()
        worker = AssetReadWorker(self.engine.read_dataset, path, filename)
        worker.loaded.connect(self._on_dataset_read)
        worker.error_occurred.connect(self._on_read_failed)
        worker.finished.connect(self._on_read_worker_finished)
        self._read_worker = worker
        worker.start()

    def _on_dataset_read(self, filename: str, dataset: Any) -> None:
        if self._closed:
            logger.warning(f"Viewport closed while reading '{filename}'; dropping the result.")
            return
        loaded = self.engine.build_asset(dataset, filename)
        try:
            root = self.importer.adopt(loaded, filename)
        except AssetImportError as e:
            self.import_failed.emit(str(e))
            return
        if root is not None:
            self.plotter.reset_camera()
            self.plotter.render()
            self.import_finished.emit(filename, root)

    def _on_read_failed(self, filename: str, message: str) -> None:
        msg = f"Failed to load asset '{filename}': {message}"
        logger.error(msg)
        self.import_failed.emit(msg)

    def _on_read_worker_finished(self) -> None:
        if self._read_worker is not None:
            self._read_worker.deleteLater()
        self._read_worker = None
        self._start_next_import()

    def _on_frame(self) -> None:
        if self._closed:
            return
        if self._frame_callback is not None:
            self._frame_callback()
        self.plotter.render()

    def resizeEvent(self, event: QResizeEvent) -> None:
        super().resizeEvent(event)
        if not self._closed:
            self.engine.resize()

    def closeEvent(self, event: QCloseEvent) -> None:
        self.teardown()
        event.accept()
