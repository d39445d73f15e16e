from opentelemetry import trace
import os, logging, time, json

from ..common.context import get_context
from .config import settings

SERVICE_NAME = os.getenv("SERVICE_NAME", settings.service_name)
ENV = os.getenv("ENVIRONMENT", "local")

# A library logger: handlers are the application's business
_logger = logging.getLogger("ceph_client")
_logger.setLevel(os.getenv("LOG_LEVEL", settings.log_level).upper())
_logger.addHandler(logging.NullHandler())

def _trace_ids():
    ctx = trace.get_current_span().get_span_context()
    if not ctx.is_valid:
        return None, None
    return f"{ctx.trace_id:032x}", f"{ctx.span_id:016x}"

def jlog(event: str = "", severity: str = "INFO", **fields):
    """
    Emit one JSON record on the `ceph_client` logger.

    The correlation id and operation of the current client call (see
    common.log_calls) are attached when set, so every transport retry and
    task poll can be traced back to the call that caused it.
    """
    level = getattr(logging, severity, logging.INFO)
    if not _logger.isEnabledFor(level):
        return

    trace_id, span_id = _trace_ids()
    correlation_id, operation = get_context()

    record = {
        "event": event,
        "severity": severity,
        "service": SERVICE_NAME,
        "env": ENV,
        "ts": time.time(),
        "trace_id": trace_id,
        "span_id": span_id,
    }
    if correlation_id:
        record["correlation_id"] = correlation_id
    if operation:
        record["call"] = operation
    record.update(fields)
    _logger.log(level, json.dumps(record, ensure_ascii=False, default=str))
