"""
Structured Logging Configuration

Every record carries the request id and, once known, the tenant and the
custom domain the work is about: the middleware binds them per request, the
domain lifecycle binds the domain for a verification run. Unbound fields are
left out of the output instead of being printed as placeholders.

  - JSON in production / staging (ELK / Loki), one readable line in dev
  - Secrets masked before formatting: bearer tokens and bare JWTs, URL
    credentials and signed query strings (TLS webhook), emails
"""

import json
import logging
import re
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional

from app.config import settings

# ── Context variables for request tracking ──
request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
tenant_id_ctx: ContextVar[Optional[str]] = ContextVar("tenant_id", default=None)
domain_ctx: ContextVar[Optional[str]] = ContextVar("domain", default=None)

_CONTEXT: Dict[str, ContextVar] = {
    "request_id": request_id_ctx,
    "tenant_id": tenant_id_ctx,
    "domain": domain_ctx,
}


def generate_request_id() -> str:
    return uuid.uuid4().hex[:8]


@contextmanager
def log_context(**values: Optional[str]) -> Iterator[None]:
    """Bind ``request_id`` / ``tenant_id`` / ``domain`` for the duration of a block."""
    tokens = [(_CONTEXT[name], _CONTEXT[name].set(value)) for name, value in values.items()]
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def current_context() -> Dict[str, str]:
    """Bound context values; unset ones are omitted."""
    context = {}
    for name, var in _CONTEXT.items():
        value = var.get()
        if value:
            context[name] = value
    return context


# ═══════════════════════════════════════════
#  Masking
# ═══════════════════════════════════════════

_EMAIL_PATTERN = re.compile(r'([a-zA-Z0-9._%+-]+)@([a-zA-Z0-9.-]+\.[a-zA-Z]{2,})')

# Applied in order, before emails (URL userinfo would otherwise read as an email)
_REDACT_PATTERNS = [
    (re.compile(r'("?(?:password|token|secret|authorization)"?\s*[:=]\s*)"[^"]*"', re.I), r'\1"***"'),
    (re.compile(r'(Bearer\s+)[A-Za-z0-9._-]+'), r'\1***'),
    (re.compile(r'\beyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*'), '<jwt>'),
    (re.compile(r'(://)[^/\s:@]+:[^/\s@]+@'), r'\1***@'),
    (re.compile(r'([?&](?:token|key|api_key|sig|signature)=)[^&\s]+', re.I), r'\1***'),
]


def _mask_email(match: re.Match) -> str:
    local = match.group(1)
    domain = match.group(2)
    if len(local) <= 2:
        return f"{local[0]}***@{domain}"
    return f"{local[0]}***{local[-1]}@{domain}"


def mask_pii(text: str) -> str:
    """Mask secrets and personal data in a log message."""
    for pattern, replacement in _REDACT_PATTERNS:
        text = pattern.sub(replacement, text)
    return _EMAIL_PATTERN.sub(_mask_email, text)


class ContextFilter(logging.Filter):
    """Snapshots the bound context onto the record and masks its message."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.context = current_context()
        record.msg = mask_pii(record.getMessage())
        record.args = None
        return True


# ═══════════════════════════════════════════
#  Formatters
# ═══════════════════════════════════════════

class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter for production."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S.000Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_entry.update(getattr(record, "context", None) or current_context())

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = mask_pii(self.formatException(record.exc_info))

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class HumanFormatter(logging.Formatter):
    """Readable formatter for development: ``[rid tenant=… domain=…]`` prefix."""

    FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(context_label)s%(message)s"

    def format(self, record: logging.LogRecord) -> str:
        context = dict(getattr(record, "context", None) or current_context())
        parts = [context.pop("request_id", "")]
        parts += [f"{key.split('_')[0]}={value}" for key, value in context.items()]
        label = " ".join(p for p in parts if p)
        record.context_label = f"[{label}] " if label else ""
        return super().format(record)


# ═══════════════════════════════════════════
#  Setup
# ═══════════════════════════════════════════

def setup_logging() -> None:
    """Configure application-wide logging."""
    root = logging.getLogger()
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ContextFilter())
    if settings.is_production or settings.is_staging:
        handler.setFormatter(JSONFormatter())
        root.setLevel(logging.INFO)
    else:
        handler.setFormatter(
            HumanFormatter(HumanFormatter.FORMAT, datefmt="%H:%M:%S")
        )
        root.setLevel(logging.DEBUG)

    root.addHandler(handler)

    # Quiet noisy third-party loggers; dnspython and the webhook client log per query
    for name in ("uvicorn.access", "httpcore", "httpx", "asyncio", "sqlalchemy.engine", "dns"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
