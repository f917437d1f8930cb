"""
Logging setup.

Namespaces by concern:
    cleancity.ctl    request handlers
    cleancity.trace  request tracing middleware
    cleancity.db     store operations
"""
import logging
from typing import Any, MutableMapping, Optional, Tuple

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

ctl = logging.getLogger("cleancity.ctl")
trace = logging.getLogger("cleancity.trace")
db = logging.getLogger("cleancity.db")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger("cleancity").setLevel(level.upper())


class RequestLog(logging.LoggerAdapter):
    """Logger adapter that tags every record with the request's trace id."""

    def __init__(self, logger: logging.Logger, trace_id: Optional[str] = None):
        super().__init__(logger, {"trace_id": trace_id or "-"})

    @property
    def trace_id(self) -> str:
        return self.extra["trace_id"]

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs.setdefault("extra", {}).update(self.extra)
        return f"[{self.trace_id}] {msg}", kwargs

    def bind(self, logger: logging.Logger) -> "RequestLog":
        """Same trace id, different namespace."""
        return RequestLog(logger, self.trace_id)

    @classmethod
    def detached(cls, logger: logging.Logger = ctl) -> "RequestLog":
        """For calls made outside of a request (scripts, tests)."""
        return cls(logger)
