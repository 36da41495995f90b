"""
Diagnostic sinks and version lookup.

Normalization gaps (unknown service codes, rates without a code) are not
errors. Carriers report them to an injected sink instead, so a caller can
audit what was dropped without the carrier touching process-wide state.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from importlib import metadata
from typing import Any, Callable, Dict, List, Protocol

logger = logging.getLogger("shipbridge.diagnostics")

VersionProvider = Callable[[], str]


@dataclass(frozen=True)
class DiagnosticRecord:
    carrier: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)
    recorded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class DiagnosticSink(Protocol):
    def record(self, carrier: str, message: str, **context: Any) -> None:
        ...


class LoggingDiagnosticSink:
    """Default sink: writes each record to the shipbridge.diagnostics logger at debug level."""

    def record(self, carrier: str, message: str, **context: Any) -> None:
        logger.debug(f"{carrier}: {message} {context}")


class MemoryDiagnosticSink:
    """Keeps records in memory (tests, audits)."""

    def __init__(self):
        self.records: List[DiagnosticRecord] = []

    def record(self, carrier: str, message: str, **context: Any) -> None:
        self.records.append(DiagnosticRecord(carrier=carrier, message=message, context=context))

    def clear(self):
        self.records = []


def installed_version() -> str:
    """Installed distribution version, or the in-tree version when running from a checkout."""
    try:
        return metadata.version("shipbridge")
    except metadata.PackageNotFoundError:
        from shipbridge import __version__
        return __version__
