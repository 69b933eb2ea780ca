from __future__ import annotations

import logging

import pytest

from goldfinger.config import LoggingConfig
from goldfinger.logging_setup import LOG_FILE_NAME, configure_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


def test_configure_logging_sets_level_and_file(tmp_path) -> None:
    configure_logging(LoggingConfig(level="DEBUG", log_dir=str(tmp_path / "logs")))

    logging.getLogger("goldfinger.test").debug("hello")

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("urllib3").level == logging.WARNING
    assert (tmp_path / "logs" / LOG_FILE_NAME).exists()


def test_env_override(monkeypatch) -> None:
    monkeypatch.setenv("GOLDFINGER_LOG_LEVEL", "warning")

    configure_logging(LoggingConfig(level="DEBUG", log_dir=None))

    assert logging.getLogger().level == logging.WARNING


def test_invalid_level_raises() -> None:
    with pytest.raises(ValueError):
        configure_logging(LoggingConfig(level="LOUD", log_dir=None))
