import logging
from typing import Optional

from leaveflow.repositories.base import LogStore, RequestStore


class BaseService:
    """Common wiring for services that work against the request and log stores."""

    def __init__(self, requests: RequestStore, transactions: LogStore, logger: Optional[logging.Logger] = None):
        self.requests = requests
        self.transactions = transactions
        self._logger = logger or logging.getLogger(self.__class__.__module__)

    def log_info(self, message: str, **extra):
        self._logger.info(message, extra=extra or None)

    def log_warning(self, message: str, **extra):
        self._logger.warning(message, extra=extra or None)

    def log_error(self, message: str, **extra):
        self._logger.error(message, extra=extra or None)
