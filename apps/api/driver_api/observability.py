import json
import logging
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Iterator

# Structured fields a log line may carry besides the message itself.
CONTEXT_FIELDS = ("request_id", "order_id", "driver_id", "blob_name")

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)
_events = logging.getLogger("driver_api.events")


class JsonFormatter(logging.Formatter):
    """One JSON object per line; context fields that are unset are left out."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if field == "request_id" and value is None:
                value = _request_id.get()
            if value is not None:
                payload[field] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging() -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(logging.INFO)


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def log_event(
    message: str,
    *,
    order_id: int | None = None,
    driver_id: int | None = None,
    blob_name: str | None = None,
) -> None:
    _events.info(
        message,
        extra={"order_id": order_id, "driver_id": driver_id, "blob_name": blob_name},
    )


@dataclass
class MetricsSnapshot:
    counters: dict[str, int]
    timings: dict[str, dict[str, float]]


@dataclass
class _Timing:
    count: int = 0
    total_s: float = 0.0
    max_s: float = 0.0

    def add(self, value_s: float) -> None:
        self.count += 1
        self.total_s += value_s
        self.max_s = max(self.max_s, value_s)


class MetricsStore:
    """In-process counters and running timing aggregates, reset on restart."""

    def __init__(self) -> None:
        self._counters: dict[str, int] = {}
        self._timings: dict[str, _Timing] = {}

    def increment(self, name: str, amount: int = 1) -> None:
        self._counters[name] = self._counters.get(name, 0) + amount

    def observe(self, name: str, value_s: float) -> None:
        self._timings.setdefault(name, _Timing()).add(value_s)

    def reset(self) -> None:
        self._counters.clear()
        self._timings.clear()

    def snapshot(self) -> MetricsSnapshot:
        timings = {
            name: {
                "count": timing.count,
                "avg_s": timing.total_s / timing.count,
                "max_s": timing.max_s,
            }
            for name, timing in self._timings.items()
        }
        return MetricsSnapshot(counters=dict(self._counters), timings=timings)


metrics_store = MetricsStore()


@contextmanager
def observe_timing(metric_name: str) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        metrics_store.observe(metric_name, time.perf_counter() - start)
