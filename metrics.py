"""Thread-safe in-memory metrics for a server instance."""

from __future__ import annotations

import threading
from collections import Counter

LATENCY_BUCKETS_MS = (5, 10, 25, 50, 100, 250, 500, 1000, 2000, 5000)


class MetricsRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total_connections = 0
        self._total_requests = 0
        self._active_connections = 0
        self._peak_active_connections = 0
        self._status_counts: Counter[str] = Counter()
        self._latency_buckets: Counter[str] = Counter()
        self._bytes_sent_total = 0
        self._read_errors_by_type: Counter[str] = Counter()
        self._write_errors_by_type: Counter[str] = Counter()
        self._accept_errors = 0
        self._aborted_connections = 0

    def connection_opened(self) -> None:
        with self._lock:
            self._total_connections += 1
            self._active_connections += 1
            self._peak_active_connections = max(
                self._peak_active_connections,
                self._active_connections,
            )

    def connection_closed(self) -> None:
        with self._lock:
            self._active_connections = max(0, self._active_connections - 1)

    def record_request(self, status_code: int, duration_ms: float, bytes_sent: int) -> None:
        with self._lock:
            self._total_requests += 1
            self._status_counts[str(status_code)] += 1
            self._bytes_sent_total += bytes_sent
            self._latency_buckets[self._bucket_label(duration_ms)] += 1

    def record_read_error(self, error_type: str) -> None:
        with self._lock:
            self._read_errors_by_type[error_type] += 1

    def record_write_error(self, error_type: str) -> None:
        with self._lock:
            self._write_errors_by_type[error_type] += 1

    def record_accept_error(self) -> None:
        with self._lock:
            self._accept_errors += 1

    def record_aborted_connection(self) -> None:
        with self._lock:
            self._aborted_connections += 1

    def snapshot(self) -> dict[str, object]:
        with self._lock:
            return {
                "total_connections": self._total_connections,
                "total_requests": self._total_requests,
                "active_connections": self._active_connections,
                "peak_active_connections": self._peak_active_connections,
                "status_counts": dict(self._status_counts),
                "latency_buckets_ms": dict(self._latency_buckets),
                "bytes_sent_total": self._bytes_sent_total,
                "read_errors_by_type": dict(self._read_errors_by_type),
                "write_errors_by_type": dict(self._write_errors_by_type),
                "accept_errors": self._accept_errors,
                "aborted_connections": self._aborted_connections,
            }

    def _bucket_label(self, duration_ms: float) -> str:
        for limit in LATENCY_BUCKETS_MS:
            if duration_ms <= limit:
                return f"<= {limit}ms"
        return "> 5000ms"
