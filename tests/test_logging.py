import json
import logging

from crowdfund.config import Settings
from crowdfund.core.logging import ServiceJsonFormatter, setup_logging


def test_formatter_stamps_service_and_env():
    formatter = ServiceJsonFormatter(service="crowdfund", env="test")
    record = logging.LogRecord("crowdfund.ledger", logging.INFO, __file__, 1, "Payment applied", None, None)
    record.campaign_id = 7

    payload = json.loads(formatter.format(record))

    assert payload["message"] == "Payment applied"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "crowdfund.ledger"
    assert payload["service"] == "crowdfund"
    assert payload["env"] == "test"
    assert payload["campaign_id"] == 7


def test_setup_logging_installs_one_json_handler(monkeypatch):
    root_logger = logging.getLogger()
    monkeypatch.setattr(root_logger, "handlers", [])
    monkeypatch.setattr(root_logger, "level", root_logger.level)
    settings = Settings(LOG_LEVEL="debug")

    setup_logging(settings)
    setup_logging(settings)

    assert len(root_logger.handlers) == 1
    assert isinstance(root_logger.handlers[0].formatter, ServiceJsonFormatter)
    assert root_logger.level == logging.DEBUG
    assert logging.getLogger("apscheduler").level == logging.WARNING
