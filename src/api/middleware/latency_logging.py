"""Per-request latency logging and the in-memory samples behind /health/stats."""

import logging
import re
import time
from collections import defaultdict, deque
from typing import Callable

from fastapi import Request, Response

logger = logging.getLogger(__name__)

# Log level thresholds in milliseconds. Taps redirect a phone that is
# waiting on a blank page, so they get a lower threshold.
SLOW_REQUEST_MS = 1000
VERY_SLOW_REQUEST_MS = 3000
SLOW_TAP_MS = 300

PROBE_PATHS = frozenset({"/health", "/health/ready", "/health/stats"})

_UUID = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE)
_TAP = re.compile(r"^(/api/v1)?/t/[^/]+")
_PUBLIC = re.compile(r"^/api/v1/public/[^/]+")


def route_label(request: Request) -> str:
    """Path template used to group samples, e.g. ``/api/v1/public/{handle}``.

    Falls back to replacing ids, tag uids and handles when no route
    matched (404s and requests cut off by the size limit).
    """
    route = request.scope.get("route")
    template = getattr(route, "path", None)
    if template:
        return template
    path = _UUID.sub("{id}", request.url.path)
    path = _TAP.sub(lambda m: f"{m.group(1) or ''}/t/{{tag}}", path)
    return _PUBLIC.sub("/api/v1/public/{handle}", path)


def is_tap(label: str) -> bool:
    return "/t/{" in label


class LatencyStats:
    """Bounded buffer of recent ``(route, latency_ms)`` samples."""

    def __init__(self, max_samples: int = 1000) -> None:
        self._samples: deque[tuple[str, float]] = deque(maxlen=max_samples)

    def record(self, label: str, latency_ms: float) -> None:
        self._samples.append((label, latency_ms))

    def get_stats(self) -> dict[str, float | int]:
        """Request count, mean, p50 and p95 over the buffer."""
        latencies = sorted(latency for _, latency in self._samples)
        total = len(latencies)
        if not total:
            return {"total_requests": 0, "avg_latency_ms": 0, "p50_latency_ms": 0, "p95_latency_ms": 0}
        return {
            "total_requests": total,
            "avg_latency_ms": round(sum(latencies) / total, 2),
            "p50_latency_ms": round(latencies[total // 2], 2),
            "p95_latency_ms": round(latencies[min(int(total * 0.95), total - 1)], 2),
        }

    def get_stats_by_path(self) -> dict[str, dict[str, float | int]]:
        """Sample count and mean latency per route label."""
        grouped: dict[str, list[float]] = defaultdict(list)
        for label, latency in self._samples:
            grouped[label].append(latency)
        return {
            label: {"count": len(values), "avg_ms": round(sum(values) / len(values), 2)}
            for label, values in grouped.items()
        }


_latency_stats: LatencyStats | None = None


def get_latency_stats() -> LatencyStats:
    """Get or create the process-wide stats buffer."""
    global _latency_stats
    if _latency_stats is None:
        _latency_stats = LatencyStats()
    return _latency_stats


async def latency_logging_middleware(request: Request, call_next: Callable) -> Response:
    """Time each request, log it and keep a sample for /health/stats.

    Probe requests are logged at debug and not sampled. Slow requests,
    4xx and 5xx responses are logged at raised levels.
    """
    started = time.perf_counter()
    response: Response | None = None
    try:
        response = await call_next(request)
        return response
    finally:
        latency_ms = (time.perf_counter() - started) * 1000
        status_code = response.status_code if response is not None else 500
        path = request.url.path
        line = "%s %s - %d - %.2fms"
        args = (request.method, path, status_code, latency_ms)

        if path in PROBE_PATHS:
            logger.debug(line, *args)
        else:
            label = route_label(request)
            get_latency_stats().record(label, latency_ms)
            slow_ms = SLOW_TAP_MS if is_tap(label) else SLOW_REQUEST_MS
            if status_code >= 500 or latency_ms > VERY_SLOW_REQUEST_MS:
                logger.error(line, *args)
            elif latency_ms > slow_ms:
                logger.warning("Slow request: " + line, *args)
            elif status_code >= 400:
                logger.warning(line, *args)
            else:
                logger.info(line, *args)
