"""Non-fatal findings collected alongside the generated documents."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DiagnosticSeverity(str, Enum):
    """Severity levels for pipeline diagnostics."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A reconciliation gap or advisory finding recorded during a build."""

    severity: DiagnosticSeverity
    code: str
    summary: str
    subject: Optional[str] = None
