"""
Abstract base class for latency metrics.

Provides a pluggable interface for exporting handler latency and
instrumentation health to a metrics backend, with a zero-overhead default.
"""

from abc import ABC, abstractmethod


class MetricsCollector(ABC):
    """
    Abstract base class for metrics collection.

    Implementations are called from completion callbacks on arbitrary
    threads and must be thread-safe.
    """

    @abstractmethod
    def increment(
        self, metric: str, value: int = 1, labels: dict[str, str] | None = None
    ) -> None:
        """
        Increment a counter metric.

        Args:
            metric: Metric name (e.g., 'sidecar.instrumentation.failures')
            value: Amount to increment (default: 1)
            labels: Optional labels (e.g., {'function': 'download'})
        """
        pass

    @abstractmethod
    def histogram(
        self, metric: str, value: float, labels: dict[str, str] | None = None
    ) -> None:
        """
        Record a histogram observation.

        Args:
            metric: Metric name (e.g., 'sidecar.handler.latency')
            value: Observed value
            labels: Optional labels
        """
        pass

    def timing(
        self, metric: str, value_ms: float, labels: dict[str, str] | None = None
    ) -> None:
        """Record a duration in milliseconds (convenience wrapper for histogram)."""
        self.histogram(metric, value_ms, labels)


class NoOpMetrics(MetricsCollector):
    """
    No-operation metrics collector.

    Default implementation; all methods do nothing.
    """

    def increment(
        self, metric: str, value: int = 1, labels: dict[str, str] | None = None
    ) -> None:
        pass

    def histogram(
        self, metric: str, value: float, labels: dict[str, str] | None = None
    ) -> None:
        pass


__all__ = ["MetricsCollector", "NoOpMetrics"]
