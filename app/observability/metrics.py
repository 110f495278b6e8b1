from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Any

COUNTERS = (
    "http_requests_total",
    "snippets_created_total",
    "snippet_views_total",
    "auth_failures_total",
)

STATUS_CLASSES = ("2xx", "3xx", "4xx", "5xx")


@dataclass
class LatencySeries:
    count: int = 0
    sum_ms: float = 0.0
    min_ms: float | None = None
    max_ms: float = 0.0

    def add(self, elapsed_ms: float) -> None:
        elapsed_ms = float(elapsed_ms)
        self.count += 1
        self.sum_ms += elapsed_ms
        self.max_ms = max(self.max_ms, elapsed_ms)
        self.min_ms = elapsed_ms if self.min_ms is None else min(self.min_ms, elapsed_ms)

    def as_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "sum_ms": round(self.sum_ms, 3),
            "min_ms": round(self.min_ms, 3) if self.min_ms is not None else None,
            "max_ms": round(self.max_ms, 3),
            "mean_ms": round(self.sum_ms / self.count, 3) if self.count else 0.0,
        }


def status_class(status_code: int) -> str:
    bucket = f"{status_code // 100}xx"
    return bucket if bucket in STATUS_CLASSES else "5xx"


class InMemoryMetrics:
    """Process-local counters and latency series behind one lock.

    Counter names are fixed by ``COUNTERS``; an unknown name is a programming
    error and raises ``KeyError``.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._init_state()

    def _init_state(self) -> None:
        self._counters: dict[str, int] = dict.fromkeys(COUNTERS, 0)
        self._responses: dict[str, int] = dict.fromkeys(STATUS_CLASSES, 0)
        self._latency: dict[str, LatencySeries] = {"http_request_ms": LatencySeries()}

    def observe_http_request(self, elapsed_ms: float, status_code: int = 200) -> None:
        with self._lock:
            self._counters["http_requests_total"] += 1
            self._responses[status_class(status_code)] += 1
            self._latency["http_request_ms"].add(elapsed_ms)

    def increment(self, name: str, amount: int = 1) -> None:
        if name not in self._counters:
            raise KeyError(f"Unknown counter: {name}")
        with self._lock:
            self._counters[name] += amount

    def value(self, name: str) -> int:
        with self._lock:
            return self._counters[name]

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "responses_by_status": dict(self._responses),
                "latency_ms": {name: series.as_dict() for name, series in self._latency.items()},
            }

    def reset(self) -> None:
        with self._lock:
            self._init_state()


_METRICS: InMemoryMetrics | None = None


def get_metrics() -> InMemoryMetrics:
    global _METRICS
    if _METRICS is None:
        _METRICS = InMemoryMetrics()
    return _METRICS


def reset_metrics() -> None:
    get_metrics().reset()
