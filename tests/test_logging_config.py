from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from producthunt_scraper.logging_config import PACKAGE_LOGGER, configure_logging, get_logger


@pytest.fixture(autouse=True)
def _restore_logging(monkeypatch):
    yield
    monkeypatch.undo()
    configure_logging(force=True)


def test_configure_logging_reads_environment_when_called(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("LOG_LEVEL", "debug")

    root = configure_logging(force=True)

    assert root.level == logging.DEBUG
    file_handlers = [handler for handler in root.handlers if isinstance(handler, RotatingFileHandler)]
    assert len(file_handlers) == 1
    assert Path(file_handlers[0].baseFilename).parent == tmp_path / "logs"
    assert get_logger("producthunt_scraper.crawler").getEffectiveLevel() == logging.DEBUG


def test_configure_logging_without_force_keeps_handlers(tmp_path, monkeypatch) -> None:
    root = configure_logging(force=True)
    handlers = list(root.handlers)

    monkeypatch.setenv("LOG_DIR", str(tmp_path / "other"))
    assert configure_logging().handlers == handlers
    assert not (tmp_path / "other").exists()


def test_get_logger_nests_foreign_names_under_package() -> None:
    assert get_logger("__main__").name == f"{PACKAGE_LOGGER}.__main__"
    assert get_logger(PACKAGE_LOGGER).name == PACKAGE_LOGGER
