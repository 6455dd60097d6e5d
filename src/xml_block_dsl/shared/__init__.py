"""Shared utilities for xml block compilation and building.

This module provides the configuration objects, diagnostic types, exception
hierarchy and logging helpers used by every other layer.
"""

from .config import (
    BuilderConfig,
    CompilerConfig,
    ConfigError,
    ConfigValidationError,
    DocumentConfig,
    DuplicateAttributePolicy,
    NamespaceCollisionPolicy,
    RuntimeConfig,
    XmlBlockConfig,
)
from .errors import (
    BuildDepthError,
    BuildError,
    CommandNotFoundError,
    CompilationError,
    DuplicateAttributeError,
    HostCapabilityUnavailableError,
    MalformedArgumentError,
    NamespaceCollisionError,
    ScriptRuntimeError,
    ScriptSyntaxError,
    UndefinedVariableError,
    XmlBlockError,
)
from .logging import (
    CorrelationLogger,
    configure_logging,
    get_logger,
)
from .result import (
    BuildMetrics,
    DiagnosticCode,
    DiagnosticEntry,
    DiagnosticLog,
    DiagnosticSeverity,
)

__all__ = [
    "BuilderConfig",
    "CompilerConfig",
    "ConfigError",
    "ConfigValidationError",
    "DocumentConfig",
    "DuplicateAttributePolicy",
    "NamespaceCollisionPolicy",
    "RuntimeConfig",
    "XmlBlockConfig",
    "BuildDepthError",
    "BuildError",
    "CommandNotFoundError",
    "CompilationError",
    "DuplicateAttributeError",
    "HostCapabilityUnavailableError",
    "MalformedArgumentError",
    "NamespaceCollisionError",
    "ScriptRuntimeError",
    "ScriptSyntaxError",
    "UndefinedVariableError",
    "XmlBlockError",
    "CorrelationLogger",
    "configure_logging",
    "get_logger",
    "BuildMetrics",
    "DiagnosticCode",
    "DiagnosticEntry",
    "DiagnosticLog",
    "DiagnosticSeverity",
]
