"""
Prometheus metrics for the factory-events service.
"""
from prometheus_client import Counter, Histogram, Gauge, Info, CollectorRegistry
import psutil
import os


class Metrics:
    """
    Centralized metrics for the factory-events service.
    """

    def __init__(self, service_name: str = "factory-events", version: str = "0.1.0", registry=None):
        self.service_name = service_name
        self.version = version
        self.registry = registry or CollectorRegistry()

        # HTTP Metrics
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["service", "method", "path", "status"],
            registry=self.registry,
        )

        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["service", "method", "path"],
            registry=self.registry,
        )

        self.http_requests_active = Gauge(
            "http_requests_active",
            "Number of active HTTP requests",
            registry=self.registry,
        )

        # Application Info
        self.app_info = Info(
            "app",
            "Application information",
            registry=self.registry,
        )
        self.app_info.info({"service": service_name, "version": version})

        self.app_up = Gauge(
            "app_up",
            "Application up status (1=up, 0=down)",
            ["service", "version"],
            registry=self.registry,
        )
        self.app_up.labels(service=service_name, version=version).set(1)

        # Ingestion metrics
        self.events_ingested_total = Counter(
            "factory_events_ingested_total",
            "Events processed by outcome",
            ["outcome"],
            registry=self.registry,
        )

        self.batch_size = Histogram(
            "factory_events_batch_size",
            "Number of events per ingested batch",
            buckets=(1, 10, 50, 100, 500, 1000, 5000, 10000),
            registry=self.registry,
        )

        self.batch_duration = Histogram(
            "factory_events_batch_duration_seconds",
            "Time spent processing one batch",
            registry=self.registry,
        )

        # System Metrics
        self.process_memory_bytes = Gauge(
            "process_resident_memory_bytes",
            "Resident memory size in bytes",
            ["service"],
            registry=self.registry,
        )

        self.process_open_fds = Gauge(
            "process_open_fds",
            "Number of open file descriptors",
            ["service"],
            registry=self.registry,
        )

        self.update_system_metrics()

    def update_system_metrics(self):
        """Update system metrics from psutil."""
        try:
            process = psutil.Process(os.getpid())
            self.process_memory_bytes.labels(service=self.service_name).set(process.memory_info().rss)
            try:
                self.process_open_fds.labels(service=self.service_name).set(process.num_fds())
            except AttributeError:
                # num_fds() not available on all platforms
                pass
        except psutil.Error:
            pass

    def record_ingest_outcome(self, outcome: str):
        """Count one event by reconciliation outcome."""
        self.events_ingested_total.labels(outcome=outcome).inc()

    def record_batch(self, size: int, duration_seconds: float):
        """Record a processed batch."""
        self.batch_size.observe(size)
        self.batch_duration.observe(duration_seconds)
