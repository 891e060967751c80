"""
Logging helpers for structured context and exceptions.

Provides log_with_context/log_exception and the LoggedClass mixin used by
the gateway and store clients.
"""

import functools
import inspect
import logging
from typing import Any, Callable, Dict, Optional, TypeVar

from core.logging.setup import get_logger

F = TypeVar("F", bound=Callable[..., Any])

MAX_ERROR_MESSAGE_LENGTH = 500


def log_with_context(
    logger: logging.Logger,
    level: int,
    msg: str,
    **kwargs: Any,
) -> None:
    """
    Log with structured context fields.

    Example:
        log_with_context(
            logger, logging.INFO, "Fetched payload",
            cid=cid,
            duration_ms=elapsed,
            http_status=200,
        )
    """
    logger.log(level, msg, extra=kwargs)


def log_exception(
    logger: logging.Logger,
    exc: Exception,
    msg: str,
    level: int = logging.ERROR,
    include_traceback: bool = True,
    **kwargs: Any,
) -> None:
    """
    Log exception with context and optional traceback.

    Automatically extracts error_category from PipelineError subclasses.
    """
    error_category = kwargs.get("error_category")
    if error_category is None and hasattr(exc, "category"):
        cat = exc.category
        kwargs["error_category"] = cat.value if hasattr(cat, "value") else str(cat)

    error_msg = str(exc)
    if len(error_msg) > MAX_ERROR_MESSAGE_LENGTH:
        error_msg = error_msg[:MAX_ERROR_MESSAGE_LENGTH] + "..."
    kwargs["error_message"] = error_msg

    if include_traceback:
        logger.log(level, msg, exc_info=exc, extra=kwargs)
    else:
        logger.log(level, msg, extra=kwargs)


def logged_operation(
    level: int = logging.DEBUG,
    log_start: bool = False,
    operation_name: Optional[str] = None,
) -> Callable[[F], F]:
    """
    Decorator for automatic operation logging on async class methods.

    Example:
        class PostgresStore(LoggedClass):
            @logged_operation(level=logging.DEBUG)
            async def app_data_without_full(self):
                ...
    """

    def decorator(func: F) -> F:
        if not inspect.iscoroutinefunction(func):
            raise TypeError("logged_operation only supports async methods")

        @functools.wraps(func)
        async def async_wrapper(self, *args, **kwargs):
            _logger = getattr(self, "_logger", None) or get_logger(
                self.__class__.__module__
            )
            full_op = f"{self.__class__.__name__}.{operation_name or func.__name__}"

            if log_start:
                log_with_context(_logger, level, f"{full_op} starting")

            try:
                result = await func(self, *args, **kwargs)
            except Exception as e:
                log_exception(
                    _logger, e, f"{full_op} failed", include_traceback=False
                )
                raise
            log_with_context(_logger, level, f"{full_op} completed")
            return result

        return async_wrapper  # type: ignore

    return decorator


class LoggedClass:
    """
    Mixin providing logging infrastructure for classes.

    Provides:
    - self._logger: Logger instance
    - self._log(): Log with auto-extracted context
    """

    log_component: Optional[str] = None  # Optional logger name suffix

    # Instance attributes copied into every log record when present
    context_attrs = ("base_url",)

    def __init__(self, *args, **kwargs):
        logger_name = self.__class__.__module__
        if self.log_component:
            logger_name = f"{logger_name}.{self.log_component}"
        self._logger = get_logger(logger_name)
        super().__init__(*args, **kwargs)

    def _extract_context(self) -> Dict[str, Any]:
        ctx: Dict[str, Any] = {}
        for attr in self.context_attrs:
            value = getattr(self, attr, None)
            if value is not None:
                ctx["url" if attr == "base_url" else attr] = value
        return ctx

    def _log(self, level: int, msg: str, **extra: Any) -> None:
        context = self._extract_context()
        context.update(extra)
        log_with_context(self._logger, level, msg, **context)

