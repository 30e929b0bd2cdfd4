"""
Tracing Configuration Module

Read-only view of the handler tracing settings used by the interceptor:
enablement flag, service name and the path -> function name resolver.
"""

import re
from dataclasses import dataclass, field
from typing import Any

from .constants import DEFAULT_SPAN_NAME_PREFIX
from .exceptions import TracingConfigError
from .settings import HoneycombSettings, Settings


@dataclass(frozen=True)
class FunctionMapping:
    """A logical function name and the compiled path pattern selecting it."""

    name: str
    pattern: re.Pattern

    def matches(self, path: str) -> bool:
        return self.pattern.match(path) is not None


@dataclass
class TracingConfiguration:
    """
    Configuration consumed by the handler instrumentation.

    Built once at startup and shared by every invocation; nothing mutates it
    afterwards, so it needs no locking.

    Attributes:
        enabled: Whether handler tracing is active
        service_name: Value of the ``service`` span field
        functions: Ordered function mappings; first match wins
        span_name_prefix: Prefix applied to function names to form span names
        root_fields: Static fields attached to every root span

    Examples:
        >>> config = TracingConfiguration.from_mapping(
        ...     {"download": r"/api/foo"}, enabled=True, service_name="sidecar-svc"
        ... )
        >>> config.get_function_name("/api/foo/bar.tgz")
        'download'
        >>> config.get_function_name("/unmapped/x") is None
        True
    """

    enabled: bool = False
    service_name: str = "sidecar"
    functions: tuple[FunctionMapping, ...] = ()
    span_name_prefix: str = DEFAULT_SPAN_NAME_PREFIX
    root_fields: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(
        cls,
        functions: dict[str, str],
        enabled: bool = True,
        service_name: str = "sidecar",
        span_name_prefix: str = DEFAULT_SPAN_NAME_PREFIX,
        root_fields: dict[str, Any] | None = None,
    ) -> "TracingConfiguration":
        """Build a configuration from a function name -> path regex mapping.

        Raises:
            TracingConfigError: If a pattern is not a valid regular expression
        """
        mappings = []
        for name, pattern in functions.items():
            if not name:
                raise TracingConfigError("Function name must not be empty", config_value=pattern)
            try:
                compiled = re.compile(pattern)
            except re.error as e:
                raise TracingConfigError(
                    f"Invalid path pattern for function '{name}': {e}",
                    config_key=f"honeycomb.functions.{name}",
                    config_value=pattern,
                ) from e
            mappings.append(FunctionMapping(name=name, pattern=compiled))

        return cls(
            enabled=enabled,
            service_name=service_name,
            functions=tuple(mappings),
            span_name_prefix=span_name_prefix,
            root_fields=dict(root_fields or {}),
        )

    @classmethod
    def from_settings(cls, settings: Settings | HoneycombSettings) -> "TracingConfiguration":
        """Build a configuration from loaded settings."""
        honeycomb = settings.honeycomb if isinstance(settings, Settings) else settings
        return cls.from_mapping(
            honeycomb.functions,
            enabled=honeycomb.enabled,
            service_name=honeycomb.service_name,
            span_name_prefix=honeycomb.span_name_prefix,
            root_fields=honeycomb.root_fields,
        )

    def is_enabled(self) -> bool:
        return self.enabled

    def get_service_name(self) -> str:
        return self.service_name

    def get_function_name(self, path: str | None) -> str | None:
        """Resolve the logical function name for a request path.

        Args:
            path: Request path (without query string)

        Returns:
            The first matching function name, or None when nothing matches
        """
        if not path:
            return None
        for mapping in self.functions:
            if mapping.matches(path):
                return mapping.name
        return None

    def span_name(self, function_name: str) -> str:
        """Namespaced span name for a resolved function."""
        return f"{self.span_name_prefix}{function_name}"


__all__ = ["FunctionMapping", "TracingConfiguration"]
