"""
Prometheus metrics collector implementation.

Exports handler latency through the prometheus_client library.
"""

import threading
from typing import Any

from .base import MetricsCollector


class PrometheusMetrics(MetricsCollector):
    """
    Prometheus metrics collector.

    Creates Counter and Histogram metrics lazily, on first use, with the
    label names of that first call.

    Note: prometheus_client is an optional dependency. Install with:
        pip install sidecar-metrics[prometheus]

    Example:
        >>> from sidecar_metrics.metrics import PrometheusMetrics, SidecarMetrics
        >>> metrics = PrometheusMetrics()
        >>> metrics.timing(SidecarMetrics.HANDLER_LATENCY_MS, 150.0, labels={"function": "download"})
    """

    # Handler latencies in milliseconds
    LATENCY_BUCKETS_MS = (5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000)

    def __init__(self, registry: Any | None = None) -> None:
        """
        Initialize Prometheus metrics collector.

        Args:
            registry: Optional prometheus_client CollectorRegistry.
                     If None, uses the default REGISTRY.
        """
        try:
            from prometheus_client import REGISTRY, Counter, Histogram
        except ImportError as e:
            raise ImportError(
                "prometheus_client is required for PrometheusMetrics. "
                "Install with: pip install prometheus-client"
            ) from e

        self._registry = registry or REGISTRY
        self._Counter = Counter
        self._Histogram = Histogram

        self._counters: dict[str, Any] = {}
        self._histograms: dict[str, Any] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _sanitize_metric_name(metric: str) -> str:
        """Convert dotted metric names to Prometheus naming."""
        return metric.replace(".", "_").replace("-", "_")

    def _get_or_create(
        self, cache: dict[str, Any], factory: Any, metric: str, labels: dict[str, str], **kwargs: Any
    ) -> Any:
        metric_name = self._sanitize_metric_name(metric)
        with self._lock:
            if metric_name not in cache:
                cache[metric_name] = factory(
                    metric_name,
                    f"{factory.__name__} for {metric}",
                    list(labels.keys()),
                    registry=self._registry,
                    **kwargs,
                )
            collector = cache[metric_name]
        return collector.labels(**labels) if labels else collector

    def increment(
        self, metric: str, value: int = 1, labels: dict[str, str] | None = None
    ) -> None:
        labels = labels or {}
        self._get_or_create(self._counters, self._Counter, metric, labels).inc(value)

    def histogram(
        self, metric: str, value: float, labels: dict[str, str] | None = None
    ) -> None:
        labels = labels or {}
        self._get_or_create(
            self._histograms, self._Histogram, metric, labels, buckets=self.LATENCY_BUCKETS_MS
        ).observe(value)


__all__ = ["PrometheusMetrics"]
