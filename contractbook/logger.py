"""
Structured logging system for contractbook.

Provides centralized logging with console and file outputs, log levels,
and metrics tracking for monitoring settlement and deposit health.
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import json

OPERATIONS = ("pay_job", "deposit")


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for settlement and deposit operations.
    """

    def __init__(
        self,
        name: str = "contractbook",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.handlers.clear()  # Remove existing handlers

        # Metrics tracking
        self.metrics = {
            "operations": {
                op: {"attempts": 0, "successes": 0, "failures": 0} for op in OPERATIONS
            },
            "errors_by_kind": {},
            "transient_retries": 0,
        }

        # Console handler
        if enable_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        # File handler
        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"contractbook_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        """Log critical message with optional context."""
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        """Internal logging method with context."""
        if context:
            # Decimal amounts and datetimes are rendered with str()
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def _operation(self, operation: str) -> dict:
        return self.metrics["operations"].setdefault(
            operation, {"attempts": 0, "successes": 0, "failures": 0}
        )

    def record_attempt(self, operation: str):
        """Record an attempt of a settlement or deposit operation."""
        self._operation(operation)["attempts"] += 1

    def record_success(self, operation: str):
        """Record a successful operation."""
        self._operation(operation)["successes"] += 1

    def record_failure(self, operation: str, kind: str):
        """Record a failed operation and its error kind."""
        self._operation(operation)["failures"] += 1

        # Track error kinds
        if kind not in self.metrics["errors_by_kind"]:
            self.metrics["errors_by_kind"][kind] = 0
        self.metrics["errors_by_kind"][kind] += 1

    def record_retry(self):
        """Increment the transient retry counter."""
        self.metrics["transient_retries"] += 1

    def get_metrics(self) -> dict:
        """Return current metrics."""
        # Calculate success rates
        metrics_copy = self.metrics.copy()
        for operation, stats in metrics_copy["operations"].items():
            if stats["attempts"] > 0:
                stats["success_rate"] = round(
                    stats["successes"] / stats["attempts"], 3
                )

        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        self.info("=== Ledger Session Metrics ===")
        for operation, stats in metrics["operations"].items():
            rate = stats.get("success_rate", 0) * 100
            self.info(f"  {operation}: {stats['successes']}/{stats['attempts']} ({rate:.1f}% success)")

        self.info(f"Transient retries: {metrics['transient_retries']}")

        if metrics["errors_by_kind"]:
            self.info("Error Kinds:")
            for kind, count in metrics["errors_by_kind"].items():
                self.info(f"  {kind}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "contractbook",
    level: str = "INFO",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
