"""
Per-round statistics: running totals plus exact nearest-rank latency percentiles.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, List

from configuration import BYTES_PER_KB, BYTES_PER_MB, MS_PER_SECOND

logger = logging.getLogger(__name__)

# Percentiles reported for every round, in display order
PERCENTILES: Dict[str, float] = {
    "p25": 0.25,
    "p50": 0.50,
    "p75": 0.75,
    "p90": 0.90,
    "p99": 0.99,
}


@dataclass(frozen=True)
class Result:
    """Outcome of one successful storage operation."""

    latency_ms: float
    size: int


def percentile_index(count: int, percentile: float) -> int:
    """Nearest-rank index ``floor(count * p) - 1`` clamped to the sample."""
    index = math.floor(count * percentile) - 1
    return min(max(index, 0), count - 1)


def byte_format(num_bytes: float) -> str:
    """Format a byte count as KiB or MiB."""
    if num_bytes >= BYTES_PER_MB:
        return f"{num_bytes / BYTES_PER_MB:.2f} MiB"
    return f"{num_bytes / BYTES_PER_KB:.2f} KiB"


class Stats:
    """Aggregate of every Result of one round.

    Updates come from a single consumer task, so no locking is done here.
    """

    def __init__(self, title: str, clock: Callable[[], float] = time.monotonic):
        self.title = title
        self.clock = clock
        self.start = clock()
        self.samples: List[Result] = []
        self.count = 0
        self.sum_bytes = 0
        self.sum_latency_ms = 0.0
        self.rate = 0.0
        self.object_rate = 0.0
        # Latency snapshot in milliseconds, filled by refresh()
        self.latency: Dict[str, float] = {}

    def update(self, result: Result) -> None:
        """Fold one result into the running totals."""
        self.sum_bytes += result.size
        self.sum_latency_ms += result.latency_ms
        self.samples.append(result)
        self.count += 1

        elapsed = self.clock() - self.start
        if elapsed > 0:
            self.rate = self.sum_bytes / elapsed
            self.object_rate = self.count / elapsed

    @property
    def elapsed_seconds(self) -> float:
        return self.clock() - self.start

    def refresh(self) -> None:
        """Recompute min/avg/percentiles/max. Leaves prior values when empty."""
        if self.count <= 0:
            return

        latencies = sorted(result.latency_ms for result in self.samples)
        self.latency["avg"] = self.sum_latency_ms / self.count
        self.latency["min"] = latencies[0]
        self.latency["max"] = latencies[-1]
        for name, percentile in PERCENTILES.items():
            self.latency[name] = latencies[percentile_index(self.count, percentile)]

    def get_data(self) -> List[str]:
        """One report row: title, throughput, object rate, latencies in ms."""
        row = [
            self.title,
            f"{byte_format(self.rate)}/s",
            f"{self.object_rate:.0f} obj/s",
            f"{self.latency.get('avg', 0.0):.0f}",
        ]
        row.extend(f"{self.latency.get(name, 0.0):.0f}" for name in PERCENTILES)
        row.append(f"{self.latency.get('max', 0.0):.0f}")
        return row

    def __repr__(self) -> str:
        return (
            f"Stats(title='{self.title}', count={self.count}, "
            f"sum_bytes={self.sum_bytes}, elapsed={self.elapsed_seconds * MS_PER_SECOND:.0f}ms)"
        )
