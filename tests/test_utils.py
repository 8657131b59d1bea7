from __future__ import annotations

import json
import logging
import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

from geocells.utils.logging_utils import LOGGER_NAME, setup_logging  # noqa: E402
from geocells.utils.metadata import collect_metadata  # noqa: E402


def test_setup_logging_writes_file_once(tmp_path: pathlib.Path) -> None:
    log_path = tmp_path / "logs" / "cover.log"
    logger = setup_logging(log_path)
    try:
        assert logger.name == LOGGER_NAME
        assert len(logger.handlers) == 2
        again = setup_logging(log_path, logging.DEBUG)
        assert again is logger
        assert len(logger.handlers) == 2
        assert logger.level == logging.DEBUG

        logging.getLogger("geocells.covering.rings").info("ring search finished")
        for handler in logger.handlers:
            handler.flush()
        assert "ring search finished" in log_path.read_text()
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(logging.NOTSET)


def test_collect_metadata() -> None:
    metadata = collect_metadata({"scheme": "h3", "max_cells": 50})
    for key in (
        "timestamp",
        "python_version",
        "platform",
        "working_directory",
        "git_commit",
        "geocells_version",
    ):
        assert key in metadata
    assert metadata["scheme"] == "h3"
    assert metadata["max_cells"] == 50
    json.dumps(metadata)
