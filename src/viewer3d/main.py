"""
Application Initialization
==========================
This module builds the main window and starts the Qt Event Loop.

Why is this file needed?
------------------------
It acts as the composition root. It:
1. Configures logging.
2. Creates the QApplication.
3. Instantiates the Main Window, which owns the viewport session.
"""
import logging
import sys

from PySide6.QtWidgets import QApplication

from viewer3d.logging_config import setup_logging
from viewer3d.view.main_window import MainWindow, VISIBLE_APP_NAME


def main() -> None:
    # 1. Setup Logging (use logging.DEBUG to trace every bind/resync)
    setup_logging(level=logging.INFO)

    # 2. Create the Qt Application
    app = QApplication(sys.argv)
    app.setApplicationName(VISIBLE_APP_NAME)

    # 3. Initialize the Main Window
    window = MainWindow()
    window.show()

    # 4. Start Event Loop
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
