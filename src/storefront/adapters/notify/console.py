"""
Console notifier adapter - Implements Notifier protocol.

This module provides a logging-based implementation of the domain's
notification port. Each transient notification becomes one log record.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleNotifier:
    """
    Implements Notifier protocol via logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Stands in for toast messages when no presentation layer is attached.
    """

    def success(self, message: str) -> None:
        """Log a success notification at INFO level."""
        logger.info("[NOTIFY] %s", message)

    def error(self, message: str) -> None:
        """Log an error notification at WARNING level."""
        logger.warning("[NOTIFY] %s", message)
