"""
Structured logging module.

Provides JSON file logging and readable console output with a run-scoped
context (domain, stage, run_id) that propagates across async tasks.
"""

from core.logging.context import clear_log_context, get_log_context, set_log_context
from core.logging.formatters import ConsoleFormatter, JSONFormatter
from core.logging.setup import generate_run_id, get_logger, setup_logging
from core.logging.utilities import (
    LoggedClass,
    log_exception,
    log_with_context,
    logged_operation,
)

__all__ = [
    "clear_log_context",
    "get_log_context",
    "set_log_context",
    "ConsoleFormatter",
    "JSONFormatter",
    "generate_run_id",
    "get_logger",
    "setup_logging",
    "LoggedClass",
    "log_exception",
    "log_with_context",
    "logged_operation",
]
