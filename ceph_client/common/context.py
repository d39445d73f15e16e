import contextvars
import uuid
from typing import Optional, Tuple

_correlation_id = contextvars.ContextVar("correlation_id", default=None)
_operation = contextvars.ContextVar("operation", default=None)

def set_context(correlation_id: Optional[str], operation: Optional[str]) -> Tuple[contextvars.Token, contextvars.Token]:
    return _correlation_id.set(correlation_id), _operation.set(operation)  # type: ignore

def reset_context(tokens: Tuple[contextvars.Token, contextvars.Token]) -> None:
    cid_token, op_token = tokens
    _correlation_id.reset(cid_token)
    _operation.reset(op_token)

def get_context() -> Tuple[Optional[str], Optional[str]]:
    return _correlation_id.get(), _operation.get()

def new_correlation_id() -> str:
    return uuid.uuid4().hex
