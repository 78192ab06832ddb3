"""
Main Application Window
=======================
The primary GUI container: a toolbar over the shared 3D viewport.

Why is this file needed?
------------------------
1. Layout: It hosts the ViewportWidget that owns the scene session.
2. Routing: It connects toolbar actions (add, connect, move, import, remove)
   to the RelationshipManager and reports rejected operations to the user.
"""
import logging
import os
from typing import List

from PySide6.QtGui import QAction, QCloseEvent
from PySide6.QtWidgets import QFileDialog, QMainWindow, QMessageBox, QToolBar

from viewer3d import config
from viewer3d.model.errors import NotFoundError, SceneError
from viewer3d.model.scene import MeshKind, SpatialPrimitive
from viewer3d.view.widgets.viewport import ViewportWidget

logger = logging.getLogger(__name__)

VISIBLE_APP_NAME = "Viewer 3D"
# Distance between consecutively added primitives along X
PLACEMENT_STEP = 3.0


class MainWindow(QMainWindow):
    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle(VISIBLE_APP_NAME)
        self.resize(1200, 800)

        # --- RIGHT SIDE: Shared 3D Visualization ---
        self.viewport = ViewportWidget(self)
        self.setCentralWidget(self.viewport)
        self.viewport.import_finished.connect(self.on_import_finished)
        self.viewport.import_failed.connect(self.on_import_failed)

        # Primitives in creation order (most recent last)
        self._placed: List[SpatialPrimitive] = []

        self._create_actions()
        self._create_toolbar()

        self.viewport.run_render_loop()

    def _create_actions(self) -> None:
        self.act_add_box = QAction("Přidat kvádr", self)
        self.act_add_box.triggered.connect(lambda: self.on_add_primitive(MeshKind.BOX))

        self.act_add_sphere = QAction("Přidat kouli", self)
        self.act_add_sphere.triggered.connect(lambda: self.on_add_primitive(MeshKind.SPHERE))

        self.act_connect = QAction("Spojit poslední dva", self)
        self.act_connect.triggered.connect(self.on_connect_last)

        self.act_move = QAction("Posunout poslední", self)
        self.act_move.triggered.connect(self.on_move_last)

        self.act_import = QAction("Importovat...", self)
        self.act_import.setShortcut("Ctrl+I")
        self.act_import.triggered.connect(self.on_import)

        self.act_remove = QAction("Odstranit poslední", self)
        self.act_remove.setShortcut("Del")
        self.act_remove.triggered.connect(self.on_remove_last)

    def _create_toolbar(self) -> None:
        toolbar = QToolBar("Scéna", self)
        toolbar.setMovable(False)
        for action in (
            self.act_add_box, self.act_add_sphere, self.act_connect,
            self.act_move, self.act_import, self.act_remove
        ):
            toolbar.addAction(action)
        self.addToolBar(toolbar)

    # ------------------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------------------

    def on_add_primitive(self, kind: MeshKind) -> None:
        position = {"x": PLACEMENT_STEP * len(self._placed), "y": 0.0, "z": 0.0}
        primitive = self.viewport.manager.create(kind, position=position)
        self._placed.append(primitive)

    def on_connect_last(self) -> None:
        if len(self._placed) < 2:
            self.statusBar().showMessage("Ke spojení jsou potřeba alespoň dva objekty.", 3000)
            return
        self.viewport.manager.add_connector(self._placed[-2], self._placed[-1])

    def on_move_last(self) -> None:
        if not self._placed:
            return
        self.viewport.manager.move_by(self._placed[-1], {"y": 1.0})

    def on_remove_last(self) -> None:
        if not self._placed:
            return
        primitive = self._placed[-1]
        try:
            self.viewport.manager.remove_all_connectors_on(primitive)
            self.viewport.manager.remove(primitive)
        except NotFoundError:
            # Already gone from the scene, stop tracking it
            logger.warning(f"Primitive '{primitive.id}' was no longer in the scene.")
        except SceneError as e:
            QMessageBox.warning(self, "Chyba", str(e))
            return
        self._placed.pop()

    def on_import(self) -> None:
        filepath, _ = QFileDialog.getOpenFileName(
            self,
            "Importovat model",
            config.ASSETS_PATH,
            "3D modely (*.obj *.stl *.ply *.vtk *.vtp *.vtu *.vtm *.gltf *.glb);;Všechny soubory (*)"
        )
        if not filepath:
            return

        directory, filename = os.path.split(filepath)
        # Parsed on a worker thread; the result arrives through on_import_finished
        self.viewport.start_import(directory, filename)
        self.statusBar().showMessage(f"Načítám: {filename}...")

    def on_import_finished(self, filename: str, root: SpatialPrimitive) -> None:
        self.viewport.manager.move_to(root, {"x": PLACEMENT_STEP * len(self._placed)})
        self._placed.append(root)
        self.statusBar().showMessage(f"Importováno: {filename}", 3000)

    def on_import_failed(self, message: str) -> None:
        self.statusBar().clearMessage()
        QMessageBox.critical(self, "Chyba importu", message)

    def closeEvent(self, event: QCloseEvent) -> None:
        self.viewport.teardown()
        event.accept()
