# common/log_calls.py
import inspect
import time
from functools import wraps
from typing import Any, Callable, Dict, Optional

from ..src.logging import jlog
from .context import get_context, new_correlation_id, reset_context, set_context
from .sanitize import sanitize_value

CALL_LOGGER_ENABLED = True

def _bind_args(func: Callable, *args, **kwargs) -> Dict[str, Any]:
    sig = inspect.signature(func)
    bound = sig.bind_partial(*args, **kwargs)
    bound.apply_defaults()
    arguments = dict(bound.arguments)
    arguments.pop("self", None)
    return arguments

def log_calls(name: Optional[str] = None):
    """
    Structured call logger for client operations.
    - Logs start/end/error with sanitized args and duration_ms.
    - Opens a correlation id for the outermost call; nested calls reuse it.
    """
    def decorator(func: Callable):
        func_name = name or func.__qualname__

        @wraps(func)
        def wrapper(*args, **kwargs):
            if not CALL_LOGGER_ENABLED:
                return func(*args, **kwargs)

            cid, _ = get_context()
            tokens = set_context(cid or new_correlation_id(), func_name)
            cid, _ = get_context()

            start = time.time()
            san_args = {k: sanitize_value(k, v) for k, v in _bind_args(func, *args, **kwargs).items()}
            jlog(event="call_start", fn=func_name, args=san_args, correlation_id=cid)

            try:
                result = func(*args, **kwargs)
                dur = int((time.time() - start) * 1000)
                jlog(event="call_end", fn=func_name, duration_ms=dur,
                     ret=sanitize_value("return", result), correlation_id=cid)
                return result
            except Exception as e:
                dur = int((time.time() - start) * 1000)
                jlog(event="call_error", fn=func_name, duration_ms=dur, error=str(e),
                     error_type=type(e).__name__, correlation_id=cid, severity="ERROR")
                raise
            finally:
                reset_context(tokens)

        return wrapper
    return decorator
