"""Metrics collection for the index service.

Provides a thin convenience wrapper around ``prometheus_client`` so the
service can consistently record HTTP, index lifecycle and query metrics.

Design notes
- Metrics and labels are predeclared to avoid cardinality explosions
- A registry is kept per collector (inject one for testing)
- HTTP metrics are labelled by route template, never by raw path, since
  index names are user supplied
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest
import structlog

logger = structlog.get_logger("metrics")


class MetricsCollector:
    """Centralized metrics collection for the index service.

    Parameters
    - service_name: Logical name used for scoping/labels if desired
    - registry: Optional custom ``CollectorRegistry`` (e.g. for testing)

    Exposes typed helpers for common events to keep label sets consistent.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        self.request_count = Counter(
            'http_requests_total',
            'Total HTTP requests',
            ['method', 'endpoint', 'status'],
            registry=self.registry
        )

        self.request_duration = Histogram(
            'http_request_duration_seconds',
            'HTTP request duration',
            ['method', 'endpoint'],
            registry=self.registry
        )

        self.index_operations = Counter(
            'index_operations_total',
            'Index lifecycle operations partitioned by outcome',
            ['operation', 'outcome'],
            registry=self.registry
        )

        self.query_requests = Counter(
            'index_query_requests_total',
            'Total query requests',
            ['scope'],
            registry=self.registry
        )

        self.query_duration = Histogram(
            'index_query_duration_seconds',
            'Query duration',
            ['scope'],
            registry=self.registry
        )

        self.open_indices = Gauge(
            'index_open_indices',
            'Number of currently open indices',
            registry=self.registry
        )

    def record_http_request(
        self,
        method: str,
        endpoint: str,
        status: int,
        duration: float
    ) -> None:
        """Record HTTP request metrics.

        duration is expected in seconds to match Prometheus histogram units.
        """
        self.request_count.labels(method=method, endpoint=endpoint, status=status).inc()
        self.request_duration.labels(method=method, endpoint=endpoint).observe(duration)

    def record_index_operation(self, operation: str, outcome: str) -> None:
        """Record a create/remove/restore outcome."""
        self.index_operations.labels(operation=operation, outcome=outcome).inc()

    def record_query(self, scope: str, duration: float) -> None:
        """Record query metrics. ``scope`` is ``single`` or ``all``."""
        self.query_requests.labels(scope=scope).inc()
        self.query_duration.labels(scope=scope).observe(duration)

    def set_open_indices(self, count: int) -> None:
        """Set the number of currently open indices."""
        self.open_indices.set(count)

    def get_metrics(self) -> str:
        """Get metrics in Prometheus exposition format for scraping."""
        return generate_latest(self.registry).decode('utf-8')
