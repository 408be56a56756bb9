from __future__ import annotations

import threading
import time
from collections import defaultdict
from typing import Dict, Optional


_lock = threading.Lock()
_counters: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
_latency: Dict[str, Dict[str, Dict[str, float]]] = defaultdict(
    lambda: defaultdict(lambda: {"sum": 0.0, "count": 0})
)


def increment(metric: str, label: str, value: int = 1) -> None:
    with _lock:
        _counters[metric][label] += value


def observe_latency(metric: str, label: str, duration_seconds: float) -> None:
    with _lock:
        bucket = _latency[metric][label]
        bucket["sum"] += duration_seconds
        bucket["count"] += 1


def record_model_call(kind: str, model: str, outcome: str, duration_seconds: float) -> None:
    label = f"kind={kind} model={model}"
    increment("model_calls_total", f"{label} outcome={outcome}")
    observe_latency("model_call_seconds", label, duration_seconds)


def record_fallback(kind: str) -> None:
    increment("fallback_hops_total", f"kind={kind}")


def snapshot() -> Dict[str, Dict[str, object]]:
    with _lock:
        counters_copy = {k: dict(v) for k, v in _counters.items()}
        latency_copy = {
            metric: {label: dict(bucket) for label, bucket in per_label.items()}
            for metric, per_label in _latency.items()
        }
    return {"counters": counters_copy, "latency": latency_copy}


def reset() -> None:
    with _lock:
        _counters.clear()
        _latency.clear()


class Timer:
    """Measures a block; ``elapsed`` is available after exit."""

    def __init__(self, metric: Optional[str] = None, label: str = "") -> None:
        self.metric = metric
        self.label = label
        self.start = time.perf_counter()
        self.elapsed = 0.0

    def stop(self) -> float:
        self.elapsed = time.perf_counter() - self.start
        if self.metric:
            observe_latency(self.metric, self.label, self.elapsed)
        return self.elapsed

    def __enter__(self) -> "Timer":
        self.start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, traceback) -> None:
        self.stop()
