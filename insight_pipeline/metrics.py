"""In-memory ledger of per-request model call metrics."""
import threading

from .models import RequestMetrics


class MetricsStore:
    """Thread-safe map of request id to RequestMetrics.

    Entries live for the lifetime of the process or until clear(). Records
    are frozen models, so a reader never sees one half-written.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: dict[str, RequestMetrics] = {}

    def put(self, request_id: str, metrics: RequestMetrics) -> None:
        """Insert metrics for a request id."""
        with self._lock:
            self._entries[request_id] = metrics

    def get(self, request_id: str) -> RequestMetrics | None:
        """Return metrics for a request id, or None if unknown."""
        with self._lock:
            return self._entries.get(request_id)

    def list(self) -> dict[str, RequestMetrics]:
        """Return a snapshot copy of every entry."""
        with self._lock:
            return dict(self._entries)

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, request_id: object) -> bool:
        with self._lock:
            return request_id in self._entries
