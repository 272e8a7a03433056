"""
Prometheus metrics definitions for the gateway.
All metrics are registered here and can be imported by other modules.
"""
from prometheus_client import Counter, Histogram

# HTTP request metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0]
)

# Error metrics
errors_total = Counter(
    'errors_total',
    'Total errors',
    ['error_type']
)

# Upload / download metrics
uploads_total = Counter(
    'uploads_total',
    'Total upload attempts',
    ['status']  # completed | rejected | aborted | failed
)

upload_bytes_total = Counter(
    'upload_bytes_total',
    'Total bytes written to the object store (store-confirmed)'
)

downloads_total = Counter(
    'downloads_total',
    'Total read requests',
    ['status']  # served | missing
)

# Object store metrics
store_operation_duration_seconds = Histogram(
    'store_operation_duration_seconds',
    'Object store operation latency in seconds',
    ['backend', 'operation'],
    buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0, 120.0, 600.0]
)
