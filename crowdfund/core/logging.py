"""JSON logging for the API process and its scheduler jobs."""
from __future__ import annotations

import logging

from pythonjsonlogger import jsonlogger

from crowdfund.config import AppInfo, Settings

# Third-party loggers that drown ledger events at INFO.
QUIET_LOGGERS = ("apscheduler", "stripe", "sqlalchemy.engine")


class ServiceJsonFormatter(jsonlogger.JsonFormatter):
    """Stamps every record with the service name and deployment environment."""

    def __init__(self, *, service: str, env: str) -> None:
        super().__init__(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
        )
        self.service = service
        self.env = env

    def add_fields(self, log_record, record, message_dict) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.setdefault("service", self.service)
        log_record.setdefault("env", self.env)


def setup_logging(settings: Settings) -> None:
    """Route root logging through a single JSON stream handler."""

    root_logger = logging.getLogger()
    # Drop handlers from a previous startup (reload, tests).
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    root_logger.setLevel(settings.LOG_LEVEL.upper())

    handler = logging.StreamHandler()
    handler.setFormatter(ServiceJsonFormatter(service=AppInfo().name, env=settings.app_env))
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["ServiceJsonFormatter", "setup_logging"]
