import json
import logging

from bk_project.logging_config import JsonFormatter, get_logging_config


def test_json_formatter_emits_one_object():
    record = logging.LogRecord(
        "books_core.services.invoicing", logging.INFO, __file__, 1,
        "Created invoice %s", ("INV-202501-001",), None,
    )
    payload = json.loads(JsonFormatter().format(record))
    assert payload["level"] == "INFO"
    assert payload["logger"] == "books_core.services.invoicing"
    assert payload["message"] == "Created invoice INV-202501-001"


def test_format_follows_debug_flag(monkeypatch):
    monkeypatch.delenv("LOG_FORMAT", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)

    debug = get_logging_config(debug=True)
    assert "()" not in debug["formatters"]["default"]
    assert debug["loggers"]["books_core"]["level"] == "DEBUG"

    prod = get_logging_config(debug=False)
    assert prod["formatters"]["default"]["()"].endswith("JsonFormatter")
    assert prod["loggers"]["books_core"]["level"] == "INFO"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("LOG_FORMAT", "console")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    config = get_logging_config(debug=False)
    assert config["formatters"]["default"]["style"] == "{"
    assert config["loggers"]["books_core"]["level"] == "WARNING"
