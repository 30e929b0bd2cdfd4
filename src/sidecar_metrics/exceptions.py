"""Sidecar metrics exception hierarchy.

These exceptions are raised at startup or handler registration time only.
Nothing in this package raises while a request is being served: failures of
the instrumentation itself are logged and swallowed, and failures of the
instrumented handler are re-raised to the caller untouched.

Exception Hierarchy:
    SidecarMetricsError (base)
    ├── TracingConfigError
    └── CarrierNotDeclaredError
"""

from typing import Optional


class SidecarMetricsError(Exception):
    """Base exception for all sidecar metrics errors.

    All package exceptions inherit from this class to allow catching
    them with a single except clause.
    """

    def __init__(self, message: str, context: Optional[dict] = None):
        """Initialize sidecar metrics exception.

        Args:
            message: Error message
            context: Optional context dictionary for debugging
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return string representation with context."""
        if self.context:
            context_str = "; ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class TracingConfigError(SidecarMetricsError):
    """Raised when tracing configuration cannot be loaded or validated.

    Attributes:
        config_key: Configuration key that failed validation
        config_value: The invalid configuration value
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[str] = None,
        context: Optional[dict] = None,
    ):
        """Initialize tracing config error.

        Args:
            message: Error message
            config_key: The config key
            config_value: The config value (truncated)
            context: Additional context
        """
        if context is None:
            context = {}
        if config_key:
            context["config_key"] = config_key
        if config_value:
            context["config_value"] = str(config_value)[:100]
        super().__init__(message, context)
        self.config_key = config_key
        self.config_value = config_value


class CarrierNotDeclaredError(SidecarMetricsError):
    """Raised when a decorated handler does not declare the carrier parameter.

    Attributes:
        handler_name: Qualified name of the handler being registered
        carrier: The parameter name the decorator expected
    """

    def __init__(
        self,
        message: str,
        handler_name: Optional[str] = None,
        carrier: Optional[str] = None,
        context: Optional[dict] = None,
    ):
        if context is None:
            context = {}
        if handler_name:
            context["handler"] = handler_name
        if carrier:
            context["carrier"] = carrier
        super().__init__(message, context)
        self.handler_name = handler_name
        self.carrier = carrier


__all__ = [
    "SidecarMetricsError",
    "TracingConfigError",
    "CarrierNotDeclaredError",
]
