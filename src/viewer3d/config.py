"""
Configuration & Path Management
===============================
This module serves as the central registry for file paths and global constants.

Why is this file needed?
------------------------
1. Abstraction: It prevents hardcoded paths and magic numbers (camera setup,
   colours, frame rate) scattered throughout the code.
2. Deployment: It handles the logic required by PyInstaller (sys._MEIPASS) to
   find assets when the app is frozen into an .exe.

Exports:
    ASSETS_PATH (str): Absolute path to the assets directory.
    SAMPLE_ASSET (str): File name of the bundled sample asset.
"""
import logging
import sys
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def get_resource_path(relative_path: str) -> str:
    """
    Get absolute path to resource, works for dev and for PyInstaller.
    """
    if hasattr(sys, '_MEIPASS'):
        # PyInstaller temp folder
        base_path: str = getattr(sys, '_MEIPASS')
        return os.path.join(base_path, relative_path)

    # Development mode: resolve relative to this file
    # config.py is in src/viewer3d/
    current_file_path: Path = Path(__file__)
    project_root: Path = current_file_path.parent.parent.parent
    return os.path.join(str(project_root), relative_path)


# Global Constants
ASSETS_PATH: str = get_resource_path("assets")
SAMPLE_ASSET: str = "sample_cube.obj"

# Camera: orbit around the world origin, starting above and behind it
CAMERA_POSITION: tuple[float, float, float] = (0.0, 50.0, -50.0)
CAMERA_FOCAL_POINT: tuple[float, float, float] = (0.0, 0.0, 0.0)
CAMERA_VIEW_UP: tuple[float, float, float] = (0.0, 1.0, 0.0)

# Hemisphere-style light shining down the +Y axis
LIGHT_POSITION: tuple[float, float, float] = (0.0, 1.0, 0.0)
LIGHT_COLOR: str = "white"
LIGHT_INTENSITY: float = 1.0

BACKGROUND_COLOR: str = "white"
FRAME_INTERVAL_MS: int = 16  # ~60 fps

PRIMITIVE_COLOR: str = "#A0C4FF"
IMPORTED_COLOR: str = "#BDB2FF"
CONNECTOR_COLOR: str = "black"
CONNECTOR_WIDTH: float = 2.0

if not os.path.exists(ASSETS_PATH):
    logger.warning(f"Assets path not found at {ASSETS_PATH}")
