"""Link exchange statistics.

Every request the client sends over the camera link is recorded here with
its duration and outcome, grouped by exchange kind ("handshake", "status",
"command"). Summaries expose success rate, latency percentiles and failure
counts per error type, which is the quickest way to tell a flaky Wi-Fi link
from a camera that rejects commands.

Thread-safe: the poller timer thread and caller threads record
concurrently.

Example:
    stats = LinkStats()
    stats.record_exchange("status", duration_ms=42.0, success=True)
    stats.record_exchange("command", duration_ms=0.0, success=False,
                          error_type="rejected")

    summary = stats.get_summary("status")
    print(f"p95 status latency: {summary.p95_duration_ms:.1f}ms")
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

#: Exchanges retained per kind for duration statistics. At the default
#: two-second poll interval this is a little over half an hour of status
#: polls.
DEFAULT_STATS_WINDOW_SIZE: int = 1000


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class StatsSummary:
    """Summary of one exchange kind.

    Attributes:
        kind: Exchange kind the summary describes.
        total_exchanges: All exchanges recorded since the last reset.
        successful_exchanges: Exchanges that got an accepted response.
        failed_exchanges: Rejected or failed exchanges.
        success_rate: successful / total, 0.0 when nothing was recorded.
        min_duration_ms: Fastest successful exchange in the window.
        max_duration_ms: Slowest successful exchange in the window.
        avg_duration_ms: Mean successful duration in the window.
        p95_duration_ms: 95th percentile successful duration.
        error_counts: Failure count per error type.
        last_exchange_time: UTC time of the most recent exchange.
        uptime_seconds: Seconds since the collector was created or reset.
    """

    kind: str
    total_exchanges: int = 0
    successful_exchanges: int = 0
    failed_exchanges: int = 0
    success_rate: float = 0.0
    min_duration_ms: float = 0.0
    max_duration_ms: float = 0.0
    avg_duration_ms: float = 0.0
    p95_duration_ms: float = 0.0
    error_counts: dict[str, int] = field(default_factory=dict)
    last_exchange_time: datetime | None = None
    uptime_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable copy of the summary.

        ``last_exchange_time`` is rendered as an ISO 8601 string (or None)
        and ``error_counts`` is copied so callers cannot mutate the summary.
        """
        return {
            "kind": self.kind,
            "total_exchanges": self.total_exchanges,
            "successful_exchanges": self.successful_exchanges,
            "failed_exchanges": self.failed_exchanges,
            "success_rate": self.success_rate,
            "min_duration_ms": self.min_duration_ms,
            "max_duration_ms": self.max_duration_ms,
            "avg_duration_ms": self.avg_duration_ms,
            "p95_duration_ms": self.p95_duration_ms,
            "error_counts": self.error_counts.copy(),
            "last_exchange_time": (
                self.last_exchange_time.isoformat()
                if self.last_exchange_time
                else None
            ),
            "uptime_seconds": self.uptime_seconds,
        }


@dataclass(slots=True)
class ExchangeRecord:
    """One recorded exchange."""

    timestamp: float  # monotonic
    duration_ms: float
    success: bool
    error_type: str | None = None


class ExchangeStatsCollector:
    """Rolling statistics for a single exchange kind."""

    def __init__(
        self,
        kind: str,
        window_size: int = DEFAULT_STATS_WINDOW_SIZE,
    ) -> None:
        """Create an empty collector.

        Args:
            kind: Exchange kind label, used in summaries.
            window_size: Records kept for duration statistics. Totals and
                error counts are cumulative and unaffected by the window.
        """
        self.kind = kind
        self._records: deque[ExchangeRecord] = deque(maxlen=window_size)
        self._error_counts: dict[str, int] = {}
        self._total = 0
        self._successful = 0
        self._start_time = time.monotonic()
        self._last_exchange_time: datetime | None = None
        self._lock = threading.Lock()

    def record(
        self,
        duration_ms: float,
        success: bool,
        error_type: str | None = None,
    ) -> None:
        """Record one exchange outcome.

        Args:
            duration_ms: Wall time of the exchange in milliseconds.
            success: True when the device accepted the request.
            error_type: Failure category ("rejected", "transport",
                "busy", ...). Ignored for successful exchanges.
        """
        record = ExchangeRecord(
            timestamp=time.monotonic(),
            duration_ms=duration_ms,
            success=success,
            error_type=error_type,
        )

        with self._lock:
            self._records.append(record)
            self._total += 1
            if success:
                self._successful += 1
            elif error_type:
                self._error_counts[error_type] = (
                    self._error_counts.get(error_type, 0) + 1
                )
            self._last_exchange_time = _utc_now()

    def get_summary(self) -> StatsSummary:
        """Compute a summary snapshot.

        Counters are copied under the lock; sorting for the percentile
        happens outside it.
        """
        with self._lock:
            total = self._total
            successful = self._successful
            error_counts = self._error_counts.copy()
            last_exchange_time = self._last_exchange_time
            start_time = self._start_time
            durations = [
                r.duration_ms for r in self._records if r.success and r.duration_ms > 0
            ]

        if durations:
            min_dur = min(durations)
            max_dur = max(durations)
            avg_dur = sum(durations) / len(durations)
            p95_dur = _percentile(sorted(durations), 95)
        else:
            min_dur = max_dur = avg_dur = p95_dur = 0.0

        return StatsSummary(
            kind=self.kind,
            total_exchanges=total,
            successful_exchanges=successful,
            failed_exchanges=total - successful,
            success_rate=successful / total if total > 0 else 0.0,
            min_duration_ms=min_dur,
            max_duration_ms=max_dur,
            avg_duration_ms=avg_dur,
            p95_duration_ms=p95_dur,
            error_counts=error_counts,
            last_exchange_time=last_exchange_time,
            uptime_seconds=time.monotonic() - start_time,
        )

    def reset(self) -> None:
        """Clear records, counters and uptime."""
        with self._lock:
            self._records.clear()
            self._error_counts.clear()
            self._total = 0
            self._successful = 0
            self._start_time = time.monotonic()
            self._last_exchange_time = None


class LinkStats:
    """Per-kind exchange statistics for one camera link.

    Collectors are created lazily the first time a kind is recorded or
    queried. All kinds share the same window size.
    """

    def __init__(self, window_size: int = DEFAULT_STATS_WINDOW_SIZE) -> None:
        self._window_size = window_size
        self._collectors: dict[str, ExchangeStatsCollector] = {}
        self._lock = threading.Lock()

    def _get_collector(self, kind: str) -> ExchangeStatsCollector:
        with self._lock:
            collector = self._collectors.get(kind)
            if collector is None:
                collector = ExchangeStatsCollector(kind, self._window_size)
                self._collectors[kind] = collector
            return collector

    def record_exchange(
        self,
        kind: str,
        duration_ms: float,
        success: bool,
        error_type: str | None = None,
    ) -> None:
        """Record one exchange of the given kind. See ExchangeStatsCollector.record."""
        self._get_collector(kind).record(duration_ms, success, error_type)

    def get_summary(self, kind: str) -> StatsSummary:
        """Summary for ``kind``; an unrecorded kind yields an empty summary."""
        return self._get_collector(kind).get_summary()

    def get_all_summaries(self) -> dict[str, StatsSummary]:
        """Summaries for every kind recorded so far, keyed by kind."""
        with self._lock:
            collectors = list(self._collectors.values())
        return {c.kind: c.get_summary() for c in collectors}

    def reset(self, kind: str | None = None) -> None:
        """Reset one kind, or every kind when ``kind`` is None."""
        if kind is not None:
            self._get_collector(kind).reset()
            return
        with self._lock:
            collectors = list(self._collectors.values())
        for collector in collectors:
            collector.reset()

    def to_dict(self) -> dict[str, Any]:
        """All summaries as plain dicts, keyed by kind."""
        return {kind: s.to_dict() for kind, s in self.get_all_summaries().items()}


def _percentile(sorted_data: list[float], percentile: float) -> float:
    """Linear-interpolated percentile of pre-sorted data.

    Args:
        sorted_data: Values in ascending order.
        percentile: 0-100.

    Returns:
        The interpolated value, or 0.0 for empty input.

    Example:
        >>> _percentile([10.0, 20.0, 30.0, 40.0], 50)
        25.0
    """
    if not sorted_data:
        return 0.0
    if len(sorted_data) == 1:
        return sorted_data[0]

    k = (len(sorted_data) - 1) * (percentile / 100)
    f = int(k)
    c = min(f + 1, len(sorted_data) - 1)
    if f == c:
        return sorted_data[f]
    return sorted_data[f] + (k - f) * (sorted_data[c] - sorted_data[f])
