"""
Prometheus metrics for the clinic sync API.
"""
import time
from functools import wraps

from prometheus_client import Counter, Histogram


SYNC_DURATION_BUCKETS = [0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]


class MetricsRegistry:
    """
    Central metrics registry.

    Provides typed access to all application metrics.
    """

    def __init__(self):
        self._setup_metrics()

    def _setup_metrics(self):
        # ===================================================================
        # HTTP Metrics
        # ===================================================================
        self.http_requests_total = Counter(
            'http_requests_total',
            'Total HTTP requests',
            ['path', 'method', 'status']
        )

        self.http_request_duration_seconds = Histogram(
            'http_request_duration_seconds',
            'HTTP request duration in seconds',
            ['path', 'method'],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
        )

        self.exceptions_total = Counter(
            'exceptions_total',
            'Total exceptions',
            ['exception_type', 'location']
        )

        # ===================================================================
        # Sync Metrics
        # ===================================================================
        self.sync_push_total = Counter(
            'sync_push_total',
            'Sync push requests',
            ['result']  # success, malformed, error
        )

        self.sync_rows_submitted_total = Counter(
            'sync_rows_submitted_total',
            'Rows submitted by devices (stale rows included)',
            ['collection']
        )

        self.sync_pull_total = Counter(
            'sync_pull_total',
            'Sync pull requests',
            ['result', 'mode']  # mode: pull, restore
        )

        self.sync_rows_served_total = Counter(
            'sync_rows_served_total',
            'Rows returned to devices by pull or restore',
            ['collection']
        )

        self.sync_push_duration_seconds = Histogram(
            'sync_push_duration_seconds',
            'Duration of a push transaction',
            buckets=SYNC_DURATION_BUCKETS
        )

        self.sync_pull_duration_seconds = Histogram(
            'sync_pull_duration_seconds',
            'Duration of a pull transaction',
            buckets=SYNC_DURATION_BUCKETS
        )

        # ===================================================================
        # Records Metrics
        # ===================================================================
        self.queue_status_transitions_total = Counter(
            'queue_status_transitions_total',
            'Queue entry status changes made through the records API',
            ['to_status']
        )

        self.prescriptions_finalized_total = Counter(
            'prescriptions_finalized_total',
            'Draft prescriptions signed and finalized'
        )

    def track_duration(self, histogram_metric):
        """
        Decorator to track function duration.

        Usage:
            @metrics.track_duration(metrics.sync_push_duration_seconds)
            def push_changes(clinic, payload):
                ...
        """
        def decorator(func):
            @wraps(func)
            def wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    return func(*args, **kwargs)
                finally:
                    histogram_metric.observe(time.time() - start_time)
            return wrapper
        return decorator


# Global metrics instance
metrics = MetricsRegistry()
