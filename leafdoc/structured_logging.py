"""
Logging setup for the Leafdoc AI Service.

Every record is stamped with the current request ID by a handler filter, so
JSON lines and plain-text lines both carry it. Keyword data passed to
StructuredLogger ends up under "data" in JSON output.
"""

import ipaddress
import json
import logging
import re
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

SERVICE_NAME = "leafdoc"
NO_REQUEST = "-"

PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Client-supplied IDs are echoed back and written to logs
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._\-]{1,64}$")


def current_request_id() -> Optional[str]:
    return request_id_var.get()


def bind_request_id(header_value: Optional[str] = None) -> str:
    """Adopt the client's X-Request-ID if it looks sane, else mint one."""
    if header_value and _REQUEST_ID_RE.match(header_value):
        request_id = header_value
    else:
        request_id = uuid.uuid4().hex[:12]
    request_id_var.set(request_id)
    return request_id


class RequestContextFilter(logging.Filter):
    """Attach service name and request ID to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = SERVICE_NAME
        record.request_id = current_request_id() or NO_REQUEST
        return True


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": getattr(record, "service", SERVICE_NAME),
            "request_id": getattr(record, "request_id", NO_REQUEST),
        }
        data = getattr(record, "data", None)
        if data:
            entry["data"] = data
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class StructuredLogger:
    """Logger whose calls take keyword data: logger.info("msg", plant="Rose")."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def info(self, message: str, **data: Any) -> None:
        self.logger.info(message, extra={"data": data})

    def warning(self, message: str, **data: Any) -> None:
        self.logger.warning(message, extra={"data": data})

    def error(self, message: str, **data: Any) -> None:
        self.logger.error(message, extra={"data": data})

    def exception(self, message: str, **data: Any) -> None:
        self.logger.exception(message, extra={"data": data})


def setup_logging(level: int = logging.INFO, use_json: bool = True) -> None:
    """Replace root handlers with a single stderr handler.

    Args:
        level: Root logging level
        use_json: JSON lines when True, plain text otherwise
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(RequestContextFilter())
    handler.setFormatter(JsonLineFormatter() if use_json else logging.Formatter(PLAIN_FORMAT))

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for noisy in ("httpx", "httpcore", "google_genai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def client_network(host: Optional[str]) -> Optional[str]:
    """Reduce a client address to its /16 (IPv4) or /48 (IPv6) network."""
    if not host:
        return None
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return None
    prefix = 16 if address.version == 4 else 48
    return str(ipaddress.ip_network(f"{address}/{prefix}", strict=False))


access_logger = StructuredLogger("leafdoc.access")


def log_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    outcome: Optional[str] = None,
    client_host: Optional[str] = None,
) -> None:
    """Write the access line for one request.

    `outcome` is what the route concluded (reply, diagnosis, rejection,
    invalid or error); server errors are logged at ERROR.
    """
    data = {
        "method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": round(duration_ms, 2),
    }
    if outcome:
        data["outcome"] = outcome
    network = client_network(client_host)
    if network:
        data["client_network"] = network

    message = f"{method} {path} {status_code}"
    if status_code >= 500:
        access_logger.error(message, **data)
    else:
        access_logger.info(message, **data)
