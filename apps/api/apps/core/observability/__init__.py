"""
Observability for the clinic sync API.

Structured logging with PHI redaction, Prometheus metrics, OpenTelemetry
spans and health checks.
"""
from .metrics import metrics
from .events import log_domain_event
from .logging import get_sanitized_logger

__all__ = ['metrics', 'log_domain_event', 'get_sanitized_logger']
