"""Logging setup tests"""

import logging
import logging.handlers

import pytest

from draftkit import log
from draftkit.config import Config


@pytest.fixture
def reset_draftkit_logger():
    yield
    logger = logging.getLogger("draftkit")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_build_config_points_file_handler_at_logfile(tmp_path):
    logfile = tmp_path / "logs" / "draftkit.log"

    config = log.build_config(str(logfile), console_level="WARNING")

    assert config["handlers"]["file"]["filename"] == str(logfile.resolve())
    assert config["handlers"]["console"]["level"] == "WARNING"
    assert logfile.parent.is_dir()
    # The module default is left alone.
    assert log.LOGGING_CONFIG["handlers"]["file"]["filename"] == "data/draftkit.log"
    assert log.LOGGING_CONFIG["handlers"]["console"]["level"] == logging.INFO


@pytest.mark.usefixtures("reset_draftkit_logger")
def test_setup_writes_to_requested_file(tmp_path):
    logfile = tmp_path / "logs" / "draftkit.log"

    log.setup(str(logfile))
    logging.getLogger("draftkit.tests").info("hello")

    handlers = logging.getLogger("draftkit").handlers
    assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in handlers)
    for handler in handlers:
        handler.flush()
    assert "hello" in logfile.read_text()


@pytest.mark.usefixtures("reset_draftkit_logger")
def test_setup_from_config(tmp_path, monkeypatch):
    logfile = tmp_path / "app.log"
    monkeypatch.setenv("DRAFTKIT_LOG_FILE", str(logfile))
    monkeypatch.setenv("DRAFTKIT_LOG_LEVEL", "error")

    log.setup_from_config(Config())

    console = [
        h
        for h in logging.getLogger("draftkit").handlers
        if not isinstance(h, logging.handlers.RotatingFileHandler)
    ]
    assert console[0].level == logging.ERROR
