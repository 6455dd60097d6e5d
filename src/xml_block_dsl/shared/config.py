"""Configuration classes for xml block compilation and building.

This module provides configuration objects for the compiler, the block
runtime, the element builder and the document assembler.
"""

import codecs
import json
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Any, Dict, List, Optional

from .errors import XmlBlockError

_COMPONENTS = ("compiler", "runtime", "builder", "document")


class NamespaceCollisionPolicy(Enum):
    """What to do when a prefix is rebound to a different URI."""

    WARN = auto()      # Report, keep the first binding
    STRICT = auto()    # Raise NamespaceCollisionError


class DuplicateAttributePolicy(Enum):
    """What to do when an element receives the same attribute twice."""

    REJECT = auto()    # Raise DuplicateAttributeError
    FIRST = auto()     # Keep the first value, report the second
    LAST = auto()      # Keep the last value, report the replacement


@dataclass
class CompilerConfig:
    """Configuration for classifying and rewriting content blocks."""

    element_ctor_name: str = "New-XElement"
    enable_template_cache: bool = True
    cache_size_limit: int = 256

    def __post_init__(self) -> None:
        """Validate compiler configuration."""
        if not self.element_ctor_name or any(
            ch.isspace() for ch in self.element_ctor_name
        ):
            raise ValueError("element_ctor_name must be a non-empty word")
        if self.cache_size_limit < 0:
            raise ValueError("cache_size_limit must be >= 0")


@dataclass
class RuntimeConfig:
    """Configuration for executing content blocks."""

    strict_variables: bool = False
    case_insensitive_commands: bool = True
    register_builtins: bool = True

    def __post_init__(self) -> None:
        """Validate runtime configuration."""
        # All fields are flags; nothing to range-check.


@dataclass
class BuilderConfig:
    """Configuration for the argument classifier / element builder."""

    namespace_collision_policy: NamespaceCollisionPolicy = NamespaceCollisionPolicy.WARN
    duplicate_attribute_policy: DuplicateAttributePolicy = DuplicateAttributePolicy.REJECT
    strict_arguments: bool = False
    max_depth: int = 64
    content_marker: str = "CONTENT"

    def __post_init__(self) -> None:
        """Validate builder configuration."""
        if self.max_depth <= 0:
            raise ValueError("max_depth must be > 0")
        if not self.content_marker or not self.content_marker.isalpha():
            raise ValueError("content_marker must be a non-empty alphabetic word")


@dataclass
class DocumentConfig:
    """Default XML declaration values for assembled documents."""

    version: str = "1.0"
    encoding: str = "utf-8"
    standalone: str = "yes"

    def __post_init__(self) -> None:
        """Validate document configuration."""
        if self.version not in ("1.0", "1.1"):
            raise ValueError("version must be '1.0' or '1.1'")
        if self.standalone not in ("yes", "no"):
            raise ValueError("standalone must be 'yes' or 'no'")
        try:
            codecs.lookup(self.encoding)
        except LookupError as e:
            raise ValueError(f"unknown encoding: {self.encoding}") from e


class ConfigError(XmlBlockError):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []


@dataclass(frozen=True)
class XmlBlockConfig:
    """Complete configuration for building documents from content blocks.

    Immutable so one instance can be shared by every build that uses it.
    """

    compiler: CompilerConfig = field(default_factory=CompilerConfig)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    builder: BuilderConfig = field(default_factory=BuilderConfig)
    document: DocumentConfig = field(default_factory=DocumentConfig)

    name: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate the complete configuration."""
        try:
            self.compiler.__post_init__()
            self.runtime.__post_init__()
            self.builder.__post_init__()
            self.document.__post_init__()
        except ValueError as e:
            raise ConfigValidationError(str(e)) from e

        if (
            not self.runtime.register_builtins
            and self.compiler.element_ctor_name == CompilerConfig.element_ctor_name
        ):
            raise ConfigValidationError(
                "Built-in commands are disabled but the element constructor "
                "name still refers to the built-in command",
                field_name="runtime.register_builtins",
                suggestions=[
                    "Enable runtime.register_builtins",
                    "Register a custom constructor and set compiler.element_ctor_name",
                ],
            )

    def override(self, **kwargs: Any) -> "XmlBlockConfig":
        """Create a new configuration with specific overrides.

        Example:
            >>> config = XmlBlockConfig()
            >>> config.override(builder__max_depth=16, name="shallow").builder.max_depth
            16
        """
        nested_overrides: Dict[str, Any] = {}
        for key, value in kwargs.items():
            if "__" in key:
                component, field_name = key.split("__", 1)
                if component not in _COMPONENTS:
                    raise ConfigValidationError(
                        f"Unknown configuration component: {component}",
                        field_name=key,
                    )
                nested_overrides.setdefault(component, {})[field_name] = value
            else:
                nested_overrides[key] = value

        new_fields: Dict[str, Any] = {}
        for key, value in nested_overrides.items():
            if key in _COMPONENTS and isinstance(value, dict):
                try:
                    new_fields[key] = replace(getattr(self, key), **value)
                except (TypeError, ValueError) as e:
                    raise ConfigValidationError(str(e), field_name=key) from e
            else:
                new_fields[key] = value

        return replace(self, **new_fields)

    def to_dict(self) -> Dict[str, Any]:
        def _dataclass_to_dict(obj: Any) -> Any:
            if hasattr(obj, "__dataclass_fields__"):
                return {
                    name: _dataclass_to_dict(getattr(obj, name))
                    for name in obj.__dataclass_fields__
                }
            if isinstance(obj, Enum):
                return obj.name
            return obj

        return _dataclass_to_dict(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "XmlBlockConfig":
        """Create configuration from a dictionary produced by ``to_dict``."""

        def _dict_to_dataclass(data_dict: Dict[str, Any], target_class: type) -> Any:
            field_values: Dict[str, Any] = {}
            for field_name, field_info in target_class.__dataclass_fields__.items():
                if field_name not in data_dict:
                    continue
                value = data_dict[field_name]
                field_type = field_info.type

                if hasattr(field_type, "__dataclass_fields__"):
                    field_values[field_name] = _dict_to_dataclass(value, field_type)
                elif isinstance(field_type, type) and issubclass(field_type, Enum):
                    try:
                        field_values[field_name] = (
                            field_type[value] if isinstance(value, str) else value
                        )
                    except KeyError as e:
                        raise ConfigValidationError(
                            f"Invalid value {value!r} for {field_name}",
                            field_name=field_name,
                            suggestions=list(field_type.__members__),
                        ) from e
                else:
                    field_values[field_name] = value
            try:
                return target_class(**field_values)
            except ValueError as e:
                raise ConfigValidationError(str(e)) from e

        return _dict_to_dataclass(data, cls)

    @classmethod
    def from_json(cls, json_str: str) -> "XmlBlockConfig":
        return cls.from_dict(json.loads(json_str))

    # Preset factory methods
    @classmethod
    def lenient(cls) -> "XmlBlockConfig":
        """Best-effort generation: tolerate and report every recoverable problem."""
        return cls(
            builder=BuilderConfig(
                namespace_collision_policy=NamespaceCollisionPolicy.WARN,
                duplicate_attribute_policy=DuplicateAttributePolicy.LAST,
                strict_arguments=False,
            ),
            runtime=RuntimeConfig(strict_variables=False),
            name="lenient",
            description="Report recoverable problems as diagnostics and keep building",
        )

    @classmethod
    def strict(cls) -> "XmlBlockConfig":
        """Fail the build on the first questionable construct."""
        return cls(
            builder=BuilderConfig(
                namespace_collision_policy=NamespaceCollisionPolicy.STRICT,
                duplicate_attribute_policy=DuplicateAttributePolicy.REJECT,
                strict_arguments=True,
            ),
            runtime=RuntimeConfig(strict_variables=True),
            name="strict",
            description="Raise on namespace collisions, dropped arguments and "
                        "undefined variables",
        )
