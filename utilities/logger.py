"""
Structured logging system using structlog.
Provides structured logging with different output formats and levels,
plus an audit logger for authentication and circulation events.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Optional, Union

import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[Union[str, Path]] = None,
    debug: bool = False
) -> None:
    """
    Set up structured logging with configurable output formats.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format (json or console)
        log_file: Optional log file path
        debug: Enable debug mode for more verbose logging
    """

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    # Configure structlog processors
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if debug:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                {
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                }
            )
        )

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    # Set up file logging if specified
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(getattr(logging, log_level.upper()))
        file_handler.setFormatter(logging.Formatter('%(message)s'))

        logging.getLogger().addHandler(file_handler)

    logger = structlog.get_logger(__name__)
    logger.info(
        "Logging system initialized",
        level=log_level,
        format=log_format,
        file=str(log_file) if log_file else None,
        debug=debug
    )


class AuditLogger:
    """
    Specialized logger for security and circulation events.
    Never pass plaintext credentials or session tokens to it.
    """

    def __init__(self, name: str = "audit"):
        self.logger = structlog.get_logger(name)

    def log_login_attempt(self, handle: str, outcome: str, **details: Any) -> None:
        """Log the outcome of a login attempt."""
        level = "info" if outcome == "success" else "warning"
        getattr(self.logger, level)(
            "Login attempt evaluated",
            handle=handle,
            outcome=outcome,
            **details
        )

    def log_lockout(self, user_id: int, failed_attempts: int, cooldown_seconds: int) -> None:
        """Log an account entering the lockout window."""
        self.logger.warning(
            "Account locked after repeated failures",
            user_id=user_id,
            failed_attempts=failed_attempts,
            cooldown_seconds=cooldown_seconds
        )

    def log_recovery_issued(self, user_id: int, expires_at: Any) -> None:
        """Log issuance of a temporary credential."""
        self.logger.info(
            "Temporary credential issued",
            user_id=user_id,
            expires_at=str(expires_at)
        )

    def log_delivery_failure(self, recipient: str, error: Optional[str] = None) -> None:
        """Log a mail delivery failure."""
        self.logger.error(
            "Mail delivery failed",
            recipient=recipient,
            error=error
        )

    def log_loan_event(self, action: str, success: bool = True, **details: Any) -> None:
        """Log a loan ledger event (created, returned or rejected)."""
        level = "info" if success else "warning"
        getattr(self.logger, level)(
            "Loan ledger event",
            action=action,
            success=success,
            **details
        )

    def log_store_error(self, operation: str, error: str, **details: Any) -> None:
        """Log a store failure surfaced to the caller."""
        self.logger.error(
            "Store operation failed",
            operation=operation,
            error=error,
            **details
        )
