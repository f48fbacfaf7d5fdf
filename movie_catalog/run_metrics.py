from __future__ import annotations

"""
movie_catalog/run_metrics.py

Métricas del proceso (thread-safe) para llamadas a TMDB y agregaciones.

Uso:
    from movie_catalog.run_metrics import METRICS

    METRICS.incr("tmdb.http.requests")
    METRICS.observe_ms("tmdb.http.latency_ms", elapsed_ms)
    METRICS.add_error("tmdb", "fetch", endpoint="/movie/1/credits", detail="unreachable")

    summary = METRICS.snapshot()
"""

import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ErrorEvent:
    ts: float
    subsystem: str   # "tmdb" | "aggregate"
    action: str      # "fetch" | "person" | "credits" | ...
    endpoint: str | None
    detail: str


class RunMetrics:
    """
    - counters: dict[str, int]
    - timings_ms: dict[str, {"count", "sum", "min", "max"}] (+ "avg" en snapshot)
    - errors: ventana acotada (se descartan los más antiguos)
    """

    def __init__(self, *, max_error_events: int = 2000) -> None:
        self._lock = threading.Lock()
        self._counters: dict[str, int] = {}
        self._timings: dict[str, dict[str, float]] = {}
        self._errors: deque[ErrorEvent] = deque(maxlen=max(1, int(max_error_events)))

    def incr(self, key: str, n: int = 1) -> None:
        if not key:
            return
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + int(n)

    def observe_ms(self, key: str, ms: float) -> None:
        if not key:
            return
        v = float(ms)
        with self._lock:
            t = self._timings.get(key)
            if t is None:
                self._timings[key] = {"count": 1.0, "sum": v, "min": v, "max": v}
                return
            t["count"] += 1.0
            t["sum"] += v
            t["min"] = min(t["min"], v)
            t["max"] = max(t["max"], v)

    def add_error(self, subsystem: str, action: str, *, endpoint: str | None, detail: str) -> None:
        ev = ErrorEvent(
            ts=time.time(),
            subsystem=str(subsystem),
            action=str(action),
            endpoint=endpoint,
            detail=str(detail)[:800],
        )
        with self._lock:
            self._errors.append(ev)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._timings.clear()
            self._errors.clear()

    def top_counters(self, n: int) -> list[tuple[str, int]]:
        """Top-N por valor desc (empates por key), ignorando ceros."""
        with self._lock:
            items = [(k, v) for k, v in self._counters.items() if v != 0]
        items.sort(key=lambda kv: (-kv[1], kv[0]))
        return items[: max(1, int(n))]

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            counters = dict(self._counters)
            timings = {k: dict(v) for k, v in self._timings.items()}
            errors = list(self._errors)

        by_subsystem: dict[str, int] = {}
        for e in errors:
            by_subsystem[e.subsystem] = by_subsystem.get(e.subsystem, 0) + 1

        for t in timings.values():
            t["avg"] = t["sum"] / max(1.0, t["count"])

        return {
            "counters": counters,
            "timings_ms": timings,
            "errors": errors,
            "derived": {"errors.total": len(errors), "errors.by_subsystem": by_subsystem},
        }


# Singleton del proceso
METRICS = RunMetrics()
