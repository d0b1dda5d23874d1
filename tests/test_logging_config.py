import json
import logging

from pythonjsonlogger.json import JsonFormatter

from info_hub.core import logging_config


def test_module_loggers_live_under_service_namespace():
    assert logging_config.create_logger("info_hub.services.fan_out").name == "info_hub.services.fan_out"
    assert logging_config.create_logger("scripts").name == "info_hub.scripts"


def test_json_config_renames_core_fields():
    config = logging_config.get_json_logging_config()
    formatter_config = dict(config["formatters"]["default"])
    factory = formatter_config.pop("()")
    assert factory is JsonFormatter

    formatter = factory(**formatter_config)
    record = logging.LogRecord("info_hub.test", logging.WARNING, __file__, 1, "Fan-out task failed", None, None)
    record.identifier = "BBC News"

    payload = json.loads(formatter.format(record))

    assert payload["level"] == "WARNING"
    assert payload["message"] == "Fan-out task failed"
    assert payload["identifier"] == "BBC News"
    assert "service" in payload


def test_text_config_shares_handler_layout():
    config = logging_config.get_text_logging_config()

    assert set(config["loggers"]) == {"", "info_hub"}
    assert config["handlers"]["console"]["formatter"] == "default"
