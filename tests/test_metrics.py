"""Unit tests for the per-server metrics registry."""

from metrics import MetricsRegistry


def test_connection_counters_track_peak() -> None:
    metrics = MetricsRegistry()

    metrics.connection_opened()
    metrics.connection_opened()
    metrics.connection_closed()
    metrics.connection_opened()
    metrics.connection_closed()
    metrics.connection_closed()
    metrics.connection_closed()

    snapshot = metrics.snapshot()
    assert snapshot["total_connections"] == 3
    assert snapshot["active_connections"] == 0
    assert snapshot["peak_active_connections"] == 2


def test_request_and_error_counters() -> None:
    metrics = MetricsRegistry()

    metrics.record_request(status_code=200, duration_ms=3.0, bytes_sent=100)
    metrics.record_request(status_code=404, duration_ms=700.0, bytes_sent=50)
    metrics.record_read_error("MalformedRequestError")
    metrics.record_write_error("BrokenPipeError")
    metrics.record_accept_error()
    metrics.record_aborted_connection()

    snapshot = metrics.snapshot()
    assert snapshot["total_requests"] == 2
    assert snapshot["status_counts"] == {"200": 1, "404": 1}
    assert snapshot["bytes_sent_total"] == 150
    assert snapshot["latency_buckets_ms"] == {"<= 5ms": 1, "<= 1000ms": 1}
    assert snapshot["read_errors_by_type"] == {"MalformedRequestError": 1}
    assert snapshot["write_errors_by_type"] == {"BrokenPipeError": 1}
    assert snapshot["accept_errors"] == 1
    assert snapshot["aborted_connections"] == 1
