"""
Prometheus metrics for the Accounts Access Layer.
"""

from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, Info, generate_latest

SERVICE_VERSION = "1.0.0"

# name -> (help text, label names)
COUNTERS = {
    "http_requests_total": ("Total HTTP requests", ["method", "endpoint", "status_code"]),
    "health_check_total": ("Total health check requests", ["status"]),
    "cache_hits_total": ("Accounts cache hits", ["cache_type"]),
    "cache_misses_total": ("Accounts cache misses", ["cache_type"]),
    "cache_errors_total": ("Accounts cache store failures", ["operation"]),
    "cache_invalidations_total": ("Accounts cache flushes after admin actions and auth events", ["action"]),
}

HISTOGRAMS = {
    "http_request_duration_seconds": ("HTTP request duration in seconds", ["method", "endpoint"]),
}


class MetricsCollector:
    """Metrics for one service, registered in the collector's own registry.

    Each collector gets a fresh :class:`CollectorRegistry` unless one is
    passed in, so several services (or tests) can live in one process.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}

        info = Info("service", "Service information", registry=self.registry)
        info.info({"service": service_name, "version": SERVICE_VERSION})
        self._metrics["service_info"] = info

        for name, (description, labels) in COUNTERS.items():
            self._metrics[name] = Counter(name, description, labels, registry=self.registry)
        for name, (description, labels) in HISTOGRAMS.items():
            self._metrics[name] = Histogram(name, description, labels, registry=self.registry)

    def get_metric(self, name: str):
        return self._metrics.get(name)

    def export(self) -> bytes:
        """Registry contents in the Prometheus text format."""
        return generate_latest(self.registry)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        self.increment_counter("http_requests_total", method=method, endpoint=endpoint, status_code=str(status_code))
        self._metrics["http_request_duration_seconds"].labels(method=method, endpoint=endpoint).observe(duration)

    def record_health_check(self, status: str):
        self.increment_counter("health_check_total", status=status)

    def record_cache_access(self, cache_type: str, hit: bool):
        """Count one cache probe for ``cache_type`` (list, account or count)."""
        self.increment_counter("cache_hits_total" if hit else "cache_misses_total", cache_type=cache_type)

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter; unknown names are ignored."""
        metric = self._metrics.get(metric_name)
        if isinstance(metric, Counter):
            metric.labels(**labels).inc()


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    return MetricsCollector(service_name, registry)
