"""Metrics collector — thread-safe counters for collector deliveries."""

import collections
import threading
import time

# latency stats cover the most recent requests only
SEND_TIME_WINDOW = 1000


class ForwarderMetrics:
    """Counts requests, events and failures across flush units."""

    def __init__(self, window: int = SEND_TIME_WINDOW) -> None:
        self._lock = threading.Lock()
        self._requests_sent: int = 0
        self._events_sent: int = 0
        self._bytes_sent: int = 0
        self._failed_requests: int = 0
        self._skipped_events: int = 0
        self._send_times: collections.deque[float] = collections.deque(maxlen=window)
        self._start_time = time.monotonic()

    def record_request(self, events: int, bytes_sent: int, send_time_ms: float) -> None:
        """Record one accepted request.

        Args:
            events: Number of envelopes in the request body.
            bytes_sent: Encoded body size in bytes.
            send_time_ms: Round trip time, in milliseconds.
        """
        with self._lock:
            self._requests_sent += 1
            self._events_sent += events
            self._bytes_sent += bytes_sent
            self._send_times.append(send_time_ms)

    def record_failure(self) -> None:
        with self._lock:
            self._failed_requests += 1

    def record_skipped(self, count: int = 1) -> None:
        with self._lock:
            self._skipped_events += count

    def snapshot(self) -> dict:
        """Return a point-in-time snapshot of all counters.

        Send latency figures cover the most recent *window* requests.
        """
        with self._lock:
            send_times = list(self._send_times)
            avg_send = sum(send_times) / len(send_times) if send_times else 0.0
            return {
                "requests_sent": self._requests_sent,
                "events_sent": self._events_sent,
                "bytes_sent": self._bytes_sent,
                "failed_requests": self._failed_requests,
                "skipped_events": self._skipped_events,
                "avg_send_time_ms": avg_send,
                "p95_send_time_ms": self._percentile(send_times, 95),
                "uptime_seconds": time.monotonic() - self._start_time,
            }

    @staticmethod
    def _percentile(data: list, pct: float) -> float:
        """Interpolated percentile of *data*, or 0.0 if empty."""
        if not data:
            return 0.0
        ordered = sorted(data)
        rank = (pct / 100) * (len(ordered) - 1)
        below = int(rank)
        above = min(below + 1, len(ordered) - 1)
        return float(ordered[below] + (rank - below) * (ordered[above] - ordered[below]))
