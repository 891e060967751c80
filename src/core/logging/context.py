"""Log context propagated across async boundaries via contextvars."""

from contextvars import ContextVar
from typing import Dict, Optional

_domain: ContextVar[Optional[str]] = ContextVar("log_domain", default=None)
_stage: ContextVar[Optional[str]] = ContextVar("log_stage", default=None)
_run_id: ContextVar[Optional[str]] = ContextVar("log_run_id", default=None)


def set_log_context(
    domain: Optional[str] = None,
    stage: Optional[str] = None,
    run_id: Optional[str] = None,
) -> None:
    """Set context fields. Fields left as None are not changed."""
    if domain is not None:
        _domain.set(domain)
    if stage is not None:
        _stage.set(stage)
    if run_id is not None:
        _run_id.set(run_id)


def get_log_context() -> Dict[str, Optional[str]]:
    """Return the current context as a dict."""
    return {
        "domain": _domain.get(),
        "stage": _stage.get(),
        "run_id": _run_id.get(),
    }


def clear_log_context() -> None:
    """Reset all context fields."""
    _domain.set(None)
    _stage.set(None)
    _run_id.set(None)
