"""
Diagnostics collected while generating a unit.

A collector is created per unit and threaded through every pass, so
warnings never go through global state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    """Severity of a diagnostic."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Diagnostic:
    """A single structured message tied to the element that caused it."""

    severity: Severity
    message: str
    element: str | None = None
    path: str | None = None

    def __str__(self) -> str:
        location = ":".join(part for part in (self.path, self.element) if part)
        prefix = f"{location}: " if location else ""
        return f"{prefix}{self.severity.value}: {self.message}"


@dataclass
class DiagnosticCollector:
    """Ordered collection of diagnostics for one unit."""

    path: str | None = None
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def report(self, severity: Severity, message: str, element: str | None = None) -> Diagnostic:
        diagnostic = Diagnostic(severity, message, element, self.path)
        self.diagnostics.append(diagnostic)
        logger.debug("Recorded %s", diagnostic)
        return diagnostic

    def info(self, message: str, element: str | None = None) -> Diagnostic:
        return self.report(Severity.INFO, message, element)

    def warning(self, message: str, element: str | None = None) -> Diagnostic:
        return self.report(Severity.WARNING, message, element)

    def error(self, message: str, element: str | None = None) -> Diagnostic:
        return self.report(Severity.ERROR, message, element)

    def __iter__(self):
        return iter(self.diagnostics)

    def __len__(self) -> int:
        return len(self.diagnostics)
