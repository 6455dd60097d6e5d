"""Diagnostic and metric types for xml block compilation and building.

Tolerated problems (unresolved prefixes, namespace collisions under the
``warn`` policy, dropped arguments) are never silent: each one becomes a
``DiagnosticEntry`` attached to the document that was built.
"""

import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Optional


class DiagnosticSeverity(Enum):
    """Severity levels for diagnostic entries."""

    DEBUG = auto()      # Debug-level information
    INFO = auto()       # Informational messages
    WARNING = auto()    # Tolerated problems, build continued
    ERROR = auto()      # Problems that aborted part of the build
    CRITICAL = auto()   # Build aborted


class DiagnosticCode(Enum):
    """Machine readable codes for diagnostics."""

    UNRESOLVED_PREFIX = auto()
    NAMESPACE_COLLISION = auto()
    MALFORMED_ARGUMENT = auto()
    DUPLICATE_ATTRIBUTE = auto()
    UNDEFINED_VARIABLE = auto()
    GENERAL = auto()


@dataclass
class DiagnosticEntry:
    """Single diagnostic entry with context information."""

    severity: DiagnosticSeverity
    message: str
    component: str
    code: DiagnosticCode = DiagnosticCode.GENERAL
    position: Optional[Dict[str, int]] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: float = field(default_factory=time.time)
    correlation_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate diagnostic entry."""
        if not self.message:
            raise ValueError("Diagnostic message cannot be empty")
        if not self.component:
            raise ValueError("Diagnostic component cannot be empty")

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "severity": self.severity.name,
            "code": self.code.name,
            "message": self.message,
            "component": self.component,
        }
        if self.position:
            result["position"] = dict(self.position)
        if self.details:
            result["details"] = dict(self.details)
        return result


class DiagnosticLog:
    """Ordered collection of diagnostics produced during one build."""

    def __init__(self, correlation_id: Optional[str] = None) -> None:
        self.correlation_id = correlation_id
        self.entries: List[DiagnosticEntry] = []

    def add(
        self,
        severity: DiagnosticSeverity,
        message: str,
        component: str,
        code: DiagnosticCode = DiagnosticCode.GENERAL,
        position: Optional[Dict[str, int]] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> DiagnosticEntry:
        """Append a diagnostic entry and return it."""
        entry = DiagnosticEntry(
            severity=severity,
            message=message,
            component=component,
            code=code,
            position=position,
            details=details,
            correlation_id=self.correlation_id,
        )
        self.entries.append(entry)
        return entry

    def warning(
        self,
        message: str,
        component: str,
        code: DiagnosticCode,
        **kwargs: Any,
    ) -> DiagnosticEntry:
        return self.add(DiagnosticSeverity.WARNING, message, component, code, **kwargs)

    def by_severity(self, severity: DiagnosticSeverity) -> List[DiagnosticEntry]:
        """Get diagnostics of specific severity level."""
        return [entry for entry in self.entries if entry.severity == severity]

    def by_code(self, code: DiagnosticCode) -> List[DiagnosticEntry]:
        """Get diagnostics carrying a specific code."""
        return [entry for entry in self.entries if entry.code == code]

    def has_errors(self) -> bool:
        return any(
            entry.severity in (DiagnosticSeverity.ERROR, DiagnosticSeverity.CRITICAL)
            for entry in self.entries
        )

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)


@dataclass
class BuildMetrics:
    """Counters collected while building one document."""

    processing_time_ms: float = 0.0
    elements_built: int = 0
    attributes_emitted: int = 0
    blocks_executed: int = 0
    blocks_compiled: int = 0
    duds_rewritten: int = 0
    cache_hits: int = 0
    cache_misses: int = 0

    @property
    def cache_hit_rate(self) -> float:
        """Calculate template cache hit rate."""
        total_accesses = self.cache_hits + self.cache_misses
        if total_accesses == 0:
            return 0.0
        return self.cache_hits / total_accesses

    @property
    def elements_per_second(self) -> float:
        if self.processing_time_ms <= 0:
            return 0.0
        return (self.elements_built * 1000.0) / self.processing_time_ms
