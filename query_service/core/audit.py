import logging
from typing import Protocol


class AuditSink(Protocol):
    def record(self, sql: str) -> None: ...


class LoggingAuditSink:
    """Writes every accepted query to the audit logger."""

    def __init__(self, logger_name: str = "query_service.audit"):
        self.logger = logging.getLogger(logger_name)

    def record(self, sql: str) -> None:
        self.logger.info(f"query: {sql}")
