"""
Latency metrics for sidecar handlers.

Example:
    >>> from sidecar_metrics.metrics import NoOpMetrics, PrometheusMetrics
    >>>
    >>> # No-op metrics (default)
    >>> metrics = NoOpMetrics()
    >>> metrics.timing('sidecar.handler.latency', 150.0)  # No-op
    >>>
    >>> # Prometheus metrics
    >>> metrics = PrometheusMetrics()
    >>> metrics.timing('sidecar.handler.latency', 150.0, labels={'function': 'download'})
"""

from .base import MetricsCollector, NoOpMetrics
from .constants import MetricLabels, SidecarMetrics
from .prometheus import PrometheusMetrics

__all__ = [
    "MetricsCollector",
    "NoOpMetrics",
    "PrometheusMetrics",
    "SidecarMetrics",
    "MetricLabels",
]
