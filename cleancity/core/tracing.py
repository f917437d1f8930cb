import json
import time
import uuid
from typing import Any

from fastapi import Request

from .logger import RequestLog, ctl, trace

# These keys are masked in logs to protect sensitive data
SENSITIVE_KEYS = {"password", "token", "authorization"}
MASK = "***"


def mask_sensitive(obj: Any) -> Any:
    """Return a copy of obj with sensitive values replaced by a mask"""
    if isinstance(obj, dict):
        return {
            key: MASK if str(key).lower() in SENSITIVE_KEYS else mask_sensitive(value)
            for key, value in obj.items()
        }
    if isinstance(obj, (list, tuple)):
        return [mask_sensitive(item) for item in obj]
    return obj


def new_trace_id() -> str:
    """Short, human-readable id used to correlate logs for a single request"""
    return uuid.uuid4().hex[:8]


async def trace_requests(request: Request, call_next):
    """
    Tag every request with a trace id, log the inbound and outbound lines
    and echo the id back in the X-Request-ID header.
    """
    trace_id = new_trace_id()
    request.state.trace_id = trace_id
    request.state.log = RequestLog(ctl, trace_id)

    log = RequestLog(trace, trace_id)
    start = time.perf_counter()

    log.info("→ %s %s", request.method, request.url.path)
    log.debug("headers: %s", json.dumps(mask_sensitive(dict(request.headers))))

    try:
        response = await call_next(request)
    except Exception as exc:
        # The 500 body and its X-Request-ID come from the app-level handler
        duration_ms = (time.perf_counter() - start) * 1000
        log.error("← %s %s failed (%s) %.0fms", request.method, request.url.path, type(exc).__name__, duration_ms)
        raise

    duration_ms = (time.perf_counter() - start) * 1000
    log.info("← %s %s %s %.0fms", request.method, request.url.path, response.status_code, duration_ms)
    response.headers["X-Request-ID"] = trace_id
    return response


def get_request_log(request: Request) -> RequestLog:
    """Dependency handing the request-scoped logger to route handlers"""
    log = getattr(request.state, "log", None)
    if log is None:
        log = RequestLog(ctl, new_trace_id())
        request.state.log = log
    return log
