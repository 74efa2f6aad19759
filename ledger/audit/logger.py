"""
Audit Logger

DESIGN DECISION: Every committed ledger mutation is logged.
This provides:
1. Traceability of cascades (renames, account deletes)
2. Debugging capability
3. A record of destructive choices made by the user

The audit logger:
- Is synchronous, like the engine it observes
- Gracefully handles failures (a broken log sink never fails a commit)
- Keeps the most recent events in memory for inspection
"""

import logging
from collections import deque
from typing import Optional

import structlog

from ledger.config import LoggingSettings, get_settings
from ledger.models.audit import AuditSeverity, LedgerEvent


def configure_logging(settings: Optional[LoggingSettings] = None) -> None:
    """Configure structlog (and the stdlib root level) from settings."""
    settings = settings or get_settings().logging
    renderer = (
        structlog.processors.JSONRenderer()
        if settings.json_output
        else structlog.dev.ConsoleRenderer()
    )
    logging.basicConfig(format="%(message)s", level=settings.level)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events to the structured local log and keeps a bounded
    in-memory history of the most recent events.
    """

    def __init__(self, history_size: int = 200):
        """
        Initialize audit logger.

        Args:
            history_size: How many recent events to keep in memory.
        """
        self._logger = structlog.get_logger("ledger.audit")
        self._history: deque[LedgerEvent] = deque(maxlen=history_size)

    @property
    def recent_events(self) -> list[LedgerEvent]:
        """Recent events, oldest first."""
        return list(self._history)

    def log(self, event: LedgerEvent) -> None:
        """Log a ledger event. Never raises."""
        self._history.append(event)
        log_dict = event.to_log_dict()

        try:
            if event.severity == AuditSeverity.ERROR:
                self._logger.error("ledger_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("ledger_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("ledger_event", **log_dict)
            else:
                self._logger.info("ledger_event", **log_dict)
        except Exception as e:
            # A failing sink must not turn a committed mutation into an error
            logging.getLogger(__name__).warning("audit log failed: %s", e)

    def clear(self) -> None:
        self._history.clear()
