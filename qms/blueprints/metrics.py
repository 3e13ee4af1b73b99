"""
Prometheus metrics blueprint.

Exposes /metrics with HTTP request counters, latency and in-flight requests.
The endpoint is unauthenticated; restrict it to the monitoring network.
"""
from flask import Blueprint, Response, request, g
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CollectorRegistry, CONTENT_TYPE_LATEST
from prometheus_client import multiprocess, REGISTRY
import time
import os

metrics_bp = Blueprint('metrics', __name__)

# Gunicorn workers share metrics through PROMETHEUS_MULTIPROC_DIR
MULTIPROCESS_MODE = os.environ.get('PROMETHEUS_MULTIPROC_DIR') is not None

if MULTIPROCESS_MODE:
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
else:
    registry = REGISTRY

http_requests_total = Counter(
    'qms_http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'http_status'],
    registry=registry if not MULTIPROCESS_MODE else None
)

http_request_duration_seconds = Histogram(
    'qms_http_request_duration_seconds',
    'HTTP request latency in seconds',
    ['method', 'endpoint'],
    registry=registry if not MULTIPROCESS_MODE else None,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
)

http_requests_in_flight = Gauge(
    'qms_http_requests_in_flight',
    'Number of HTTP requests currently being processed',
    registry=registry if not MULTIPROCESS_MODE else None
)

quotations_created_total = Counter(
    'qms_quotations_created_total',
    'Quotations and price information records created',
    ['kind'],
    registry=registry if not MULTIPROCESS_MODE else None
)


CREATE_ENDPOINTS = ('quotations.create', 'price_information.create')


def setup_metrics_instrumentation(app):
    """Register before/after request hooks that record request metrics."""

    @app.before_request
    def before_request_metrics():
        g._metrics_start_time = time.time()
        http_requests_in_flight.inc()

    @app.after_request
    def after_request_metrics(response):
        try:
            if hasattr(g, '_metrics_start_time'):
                duration = time.time() - g._metrics_start_time
                endpoint = request.endpoint or 'unknown'

                http_request_duration_seconds.labels(
                    method=request.method,
                    endpoint=endpoint
                ).observe(duration)

                http_requests_total.labels(
                    method=request.method,
                    endpoint=endpoint,
                    http_status=response.status_code
                ).inc()

                if endpoint in CREATE_ENDPOINTS and response.status_code == 201:
                    quotations_created_total.labels(kind=endpoint.split('.')[0]).inc()

                http_requests_in_flight.dec()
        except Exception as e:
            # Metrics must never break a response
            app.logger.warning(f"Failed to record metrics: {e}")

        return response


@metrics_bp.route('/metrics')
def metrics():
    """Prometheus exposition (text format)."""
    return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)
