from __future__ import annotations

import logging

import pytest

from tenantadmin.core.logging_setup import ROOT_LOGGER, configure_logging


@pytest.fixture(autouse=True)
def _reset_logger():
    yield
    logger = logging.getLogger(ROOT_LOGGER)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


def test_configure_is_idempotent():
    configure_logging("INFO")
    logger = configure_logging("DEBUG")

    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG


def test_unknown_level_falls_back_to_warning():
    assert configure_logging("chatty").level == logging.WARNING


def test_file_handler_writes_utf8(tmp_path):
    log_file = tmp_path / "logs" / "run.log"
    configure_logging("INFO", str(log_file))

    logging.getLogger("tenantadmin.licensing.catalog").info("parsed Planner – Premium")
    for h in logging.getLogger(ROOT_LOGGER).handlers:
        h.flush()

    text = log_file.read_text(encoding="utf-8")
    assert "[INFO] tenantadmin.licensing.catalog: parsed Planner – Premium" in text
