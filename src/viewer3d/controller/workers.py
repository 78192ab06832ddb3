"""
Background Workers (Threading)
==============================
This module contains QThread subclasses for handling long-running tasks.

Why is this file needed?
------------------------
1. Responsiveness: Parsing a large asset file on the main thread freezes the
   GUI. The worker only reads the file; actors are created afterwards on the
   GUI thread, which owns the plotter.
2. Signals: The parsed dataset (or the error) is handed back to the GUI
   thread through Qt Signals.

Classes:
    AssetReadWorker: Reads one asset file.
"""
import logging
from typing import Any, Callable

from PySide6.QtCore import QThread, Signal

logger = logging.getLogger(__name__)


class AssetReadWorker(QThread):
    # Signals to hand the result back to the GUI thread
    loaded = Signal(str, object)  # (filename, parsed dataset)
    error_occurred = Signal(str, str)  # (filename, message)

    def __init__(self, read: Callable[[str, str], Any], path: str, filename: str):
        super().__init__()
        self.read = read
        self.path = path
        self.filename = filename

    def run(self):
        try:
            logger.info(f"Reading '{self.filename}' in background thread...")
            dataset = self.read(self.path, self.filename)
            self.loaded.emit(self.filename, dataset)

        except Exception as e:
            logger.error(f"Error in AssetReadWorker: {e}")
            self.error_occurred.emit(self.filename, str(e))
