"""
Logging Configuration
Sets up the 'viewer3d' logger and routes VTK/Python warnings into it.
"""
import logging
import sys
from typing import Optional

from vtkmodules.vtkCommonCore import vtkObject

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    show_vtk_warnings: bool = False
) -> logging.Logger:
    """
    Configures the logger for the 'viewer3d' namespace.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to save logs to a file.
        show_vtk_warnings: Keep VTK's own warning window/console output.
            Off by default: VTK complains loudly when actors are recreated
            every frame during a drag.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger("viewer3d")
    logger.setLevel(level)

    # Reconfiguring (e.g. from tests) must not stack handlers
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # warnings.warn() from numpy/pyvista ends up in 'py.warnings'
    logging.captureWarnings(True)
    logging.getLogger("py.warnings").handlers = list(logger.handlers)

    vtkObject.SetGlobalWarningDisplay(1 if show_vtk_warnings else 0)

    logger.info("Logging initialized.")
    return logger
