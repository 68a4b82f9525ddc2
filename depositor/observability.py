"""
Depositor Observability

Structured logging for the CLI and the lifecycle orchestrator.

Each ``DepositorLogger`` owns a private ``logging.Logger`` that is not
registered with the global logging manager, so verbosity lives on the
logger object that was handed to a component rather than in process-wide
state. Two output formats are supported: ``text`` (one readable line per
record, the CLI default) and ``json`` (one ``LogLine`` document per line).

    log = DepositorLogger("resolver", DepositorLayer.RESOLVER, level=LogLevel.DEBUG)
    log.warning("Deposit address xyz is not a valid address.")
    log.debug("Attempting liquidation", deposit="0xabc", method="notifyFundingTimedOut")

A ``deposit=`` keyword is lifted out of the context into its own field so
every line about one deposit can be found with a single filter.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import traceback
import uuid
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, TextIO

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "depositor_invocation", default=""
)


class LogLevel(Enum):
    """Verbosity, named as in the config file."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def numeric(self) -> int:
        return getattr(logging, self.name)


class DepositorLayer(Enum):
    """Component that emitted a record."""
    CLI = "cli"
    RESOLVER = "resolver"
    ORCHESTRATOR = "orchestrator"
    QUERY = "query"
    CONFIG = "config"


@dataclass
class LogLine:
    """One JSON log line."""
    timestamp: str
    level: str
    component: str
    message: str
    invocation: str = ""
    layer: str = ""
    deposit: str = ""
    operation: str = ""
    duration_ms: Optional[float] = None
    context: Dict[str, Any] = field(default_factory=dict)
    traceback: Optional[str] = None

    @classmethod
    def from_record(cls, record: logging.LogRecord) -> "LogLine":
        return cls(
            timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            level=record.levelname.lower(),
            component=record.name,
            message=record.getMessage(),
            invocation=correlation_id_var.get(),
            layer=getattr(record, "layer", ""),
            deposit=getattr(record, "deposit", ""),
            operation=getattr(record, "operation", ""),
            duration_ms=getattr(record, "duration_ms", None),
            context=getattr(record, "context", {}),
            traceback=_format_exc(record),
        )

    def to_json(self) -> str:
        populated = {k: v for k, v in asdict(self).items() if v not in (None, "", {})}
        return json.dumps(populated, default=str)


def _format_exc(record: logging.LogRecord) -> Optional[str]:
    if not record.exc_info:
        return None
    return "".join(traceback.format_exception(*record.exc_info)).rstrip()


class _LineHandler(logging.Handler, ABC):
    """Writes one rendered line per record to a stream (stderr by default)."""

    def __init__(self, stream: Optional[TextIO] = None):
        super().__init__()
        self.stream = stream or sys.stderr

    @abstractmethod
    def render(self, record: logging.LogRecord) -> str:
        ...

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.stream.write(self.render(record) + "\n")
            self.stream.flush()
        except Exception:
            self.handleError(record)


class StructuredHandler(_LineHandler):
    """JSON lines."""

    def render(self, record: logging.LogRecord) -> str:
        return LogLine.from_record(record).to_json()


class TextHandler(_LineHandler):
    """The message, then ``deposit=`` and other ``key=value`` context."""

    def render(self, record: logging.LogRecord) -> str:
        pairs = dict(getattr(record, "context", {}))
        deposit = getattr(record, "deposit", "")
        if deposit:
            pairs = {"deposit": deposit, **pairs}

        line = record.getMessage()
        if pairs:
            line += " " + " ".join(f"{k}={v}" for k, v in pairs.items())
        exc = _format_exc(record)
        return f"{line}\n{exc}" if exc else line


class DepositorLogger:
    """
    Logger handed to a depositor component.

    The level is fixed when the logger is built; components receive the
    logger they should use instead of reaching for a global one. ``child``
    derives a logger for a collaborating component that shares the same
    verbosity, format and stream.
    """

    def __init__(
        self,
        name: str,
        layer: DepositorLayer,
        level: LogLevel = LogLevel.INFO,
        fmt: str = "text",
        stream: Optional[TextIO] = None,
    ):
        self.name = name
        self.layer = layer
        self.level = level
        self.fmt = fmt
        self.stream = stream
        # Not registered with logging.getLogger(); level and handlers stay local.
        self._logger = logging.Logger(f"depositor.{layer.value}.{name}", level.numeric)
        self._logger.propagate = False
        self._logger.addHandler(
            StructuredHandler(stream) if fmt == "json" else TextHandler(stream)
        )

    def child(self, name: str, layer: DepositorLayer) -> "DepositorLogger":
        return DepositorLogger(name, layer, level=self.level, fmt=self.fmt, stream=self.stream)

    def _log(
        self,
        level: int,
        message: str,
        *,
        deposit: str = "",
        operation: str = "",
        duration_ms: Optional[float] = None,
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return
        self._logger.log(
            level,
            message,
            exc_info=exc_info,
            extra={
                "layer": self.layer.value,
                "deposit": deposit,
                "operation": operation,
                "duration_ms": duration_ms,
                "context": context,
            },
        )

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(logging.WARNING, message, **context)

    def error(self, message: str, **context: Any) -> None:
        self._log(logging.ERROR, message, **context)

    def operation(
        self,
        name: str,
        duration_ms: float,
        success: bool = True,
        **context: Any,
    ) -> None:
        """Timed flow outcome: debug when it finished, warning when it did not."""
        self._log(
            logging.DEBUG if success else logging.WARNING,
            f"{name} {'finished' if success else 'did not finish'}",
            operation=name,
            duration_ms=round(duration_ms, 2),
            **context,
        )


# =============================================================================
# INVOCATION IDS
# =============================================================================

def bind_invocation_id(invocation_id: Optional[str] = None) -> str:
    """Tag everything logged or published from here on with one id."""
    invocation_id = invocation_id or f"dep-{uuid.uuid4().hex[:12]}"
    correlation_id_var.set(invocation_id)
    return invocation_id


def current_invocation_id() -> Optional[str]:
    return correlation_id_var.get() or None


def quiet_logger(name: str = "quiet", layer: DepositorLayer = DepositorLayer.CLI) -> DepositorLogger:
    """A logger that only lets errors through, for library callers that pass none."""
    return DepositorLogger(name, layer, level=LogLevel.ERROR)
