import logging

import pytest

pytest.importorskip("vtkmodules")

from viewer3d.logging_config import setup_logging


def test_setup_logging_does_not_stack_handlers(tmp_path):
    log_file = tmp_path / "viewer.log"
    setup_logging(logging.DEBUG)
    logger = setup_logging(logging.DEBUG, log_file=str(log_file))

    assert logger.name == "viewer3d"
    assert len(logger.handlers) == 2
    assert logger.level == logging.DEBUG

    logging.getLogger("viewer3d.controller.relationships").debug("child message")
    for handler in logger.handlers:
        handler.flush()
    assert "child message" in log_file.read_text(encoding="utf-8")

    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logging.getLogger("py.warnings").handlers.clear()
