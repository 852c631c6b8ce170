"""Prometheus metrics for request accounting.

The request counter and latency histogram live on an explicitly constructed
``MetricsRegistry`` rather than the process-wide default registry. One
registry is created per application at startup and handed to the access
log middleware, so tests can assert against a fresh registry each time.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from exapi.core.constants import DEFAULT_METRICS_NAMESPACE, METRICS_LABELS


class MetricsRegistry:
    """Request counter and latency histogram keyed by status, path and method.

    Args:
        namespace: Prefix for the metric family names.
        registry: Collector registry to register into. A private registry is
            created when omitted.
    """

    content_type = CONTENT_TYPE_LATEST

    def __init__(
        self,
        namespace: str = DEFAULT_METRICS_NAMESPACE,
        registry: CollectorRegistry | None = None,
    ) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self.request_count = Counter(
            "req_count",
            "server request count",
            METRICS_LABELS,
            namespace=namespace,
            registry=self.registry,
        )
        self.request_latency = Histogram(
            "req_latency",
            "server request latency in seconds",
            METRICS_LABELS,
            namespace=namespace,
            registry=self.registry,
        )

    def observe_request(
        self, status_code: int | str, path: str, method: str, latency_seconds: float
    ) -> None:
        """Record one completed request.

        Args:
            status_code: Final transport status of the response.
            path: Request path.
            method: HTTP method.
            latency_seconds: Time spent in the handler chain.
        """
        labels = (str(status_code), path, method)
        self.request_count.labels(*labels).inc()
        self.request_latency.labels(*labels).observe(latency_seconds)

    def render(self) -> bytes:
        """Render the registry in the Prometheus text exposition format."""
        return generate_latest(self.registry)
