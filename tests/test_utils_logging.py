import logging

from pythonjsonlogger import jsonlogger

import src.utils.logging as log_utils


def test_setup_logging_production_writes_json_and_file(monkeypatch, tmp_path):
    monkeypatch.setattr(log_utils.settings, "ENVIRONMENT", "production", raising=False)
    monkeypatch.setattr(log_utils.settings, "LOG_LEVEL", "INFO", raising=False)

    logger = log_utils.setup_logging("atlas_prod", log_dir=str(tmp_path))

    assert len(logger.handlers) == 2
    assert all(isinstance(h.formatter, jsonlogger.JsonFormatter) for h in logger.handlers)
    assert any(p.name.startswith("atlas_prod_") for p in tmp_path.iterdir())
    assert logging.getLogger().handlers == logger.handlers


def test_setup_logging_development_console_only(monkeypatch):
    monkeypatch.setattr(log_utils.settings, "ENVIRONMENT", "development", raising=False)
    monkeypatch.setattr(log_utils.settings, "LOG_LEVEL", "debug", raising=False)

    logger = log_utils.setup_logging("atlas_dev", log_dir="")

    assert len(logger.handlers) == 1
    assert not isinstance(logger.handlers[0].formatter, jsonlogger.JsonFormatter)
    assert logger.level == logging.DEBUG
    assert logger.propagate is False


def test_get_logger_returns_named_logger():
    assert log_utils.get_logger("src.processing.ratios").name == "src.processing.ratios"
