"""
Tests for round statistics and percentile computation.
"""

import os
import random
import sys
import unittest

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from persistence.stats import Result, Stats, byte_format, percentile_index


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestPercentileIndex(unittest.TestCase):
    """Nearest-rank index floor(count * p) - 1, clamped."""

    def test_four_samples(self):
        self.assertEqual(percentile_index(4, 0.25), 0)
        self.assertEqual(percentile_index(4, 0.50), 1)
        self.assertEqual(percentile_index(4, 0.75), 2)
        self.assertEqual(percentile_index(4, 0.90), 2)
        self.assertEqual(percentile_index(4, 0.99), 2)

    def test_clamped_to_first_sample(self):
        # floor(1 * 0.25) - 1 == -1
        self.assertEqual(percentile_index(1, 0.25), 0)
        self.assertEqual(percentile_index(1, 0.99), 0)

    def test_hundred_samples(self):
        self.assertEqual(percentile_index(100, 0.50), 49)
        self.assertEqual(percentile_index(100, 0.99), 98)


class TestStats(unittest.TestCase):
    """Stats aggregation."""

    def setUp(self):
        self.clock = FakeClock()
        self.stats = Stats("PUT 4", clock=self.clock)

    def test_four_payload_scenario(self):
        """Sizes 10..40 bytes with latencies 1..4 ms."""
        for size, latency in [(10, 1.0), (20, 2.0), (30, 3.0), (40, 4.0)]:
            self.clock.now += 0.5
            self.stats.update(Result(latency_ms=latency, size=size))

        self.stats.refresh()

        self.assertEqual(self.stats.count, 4)
        self.assertEqual(self.stats.sum_bytes, 100)
        self.assertAlmostEqual(self.stats.latency["avg"], 2.5)
        self.assertEqual(self.stats.latency["min"], 1.0)
        self.assertEqual(self.stats.latency["max"], 4.0)
        self.assertEqual(self.stats.latency["p50"], 2.0)
        self.assertEqual(self.stats.latency["p25"], 1.0)
        self.assertEqual(self.stats.latency["p99"], 3.0)

    def test_rates_use_elapsed_time(self):
        self.clock.now += 2.0
        self.stats.update(Result(latency_ms=5.0, size=2048))
        self.assertAlmostEqual(self.stats.rate, 1024.0)
        self.assertAlmostEqual(self.stats.object_rate, 0.5)

    def test_zero_elapsed_keeps_rates_at_zero(self):
        self.stats.update(Result(latency_ms=5.0, size=2048))
        self.assertEqual(self.stats.rate, 0.0)
        self.assertEqual(self.stats.object_rate, 0.0)

    def test_count_matches_samples_after_every_update(self):
        for i in range(50):
            self.clock.now += 0.01
            self.stats.update(Result(latency_ms=float(i % 7), size=i))
            self.assertEqual(self.stats.count, len(self.stats.samples))

    def test_percentiles_are_monotonic(self):
        rng = random.Random(42)
        for _ in range(997):
            self.clock.now += 0.001
            self.stats.update(Result(latency_ms=rng.uniform(0.1, 500.0), size=1))
        self.stats.refresh()

        order = ["min", "p25", "p50", "p75", "p90", "p99", "max"]
        values = [self.stats.latency[name] for name in order]
        self.assertEqual(values, sorted(values))

    def test_refresh_does_not_reorder_samples(self):
        for latency in (9.0, 1.0, 5.0):
            self.stats.update(Result(latency_ms=latency, size=1))
        self.stats.refresh()
        self.assertEqual([r.latency_ms for r in self.stats.samples], [9.0, 1.0, 5.0])

    def test_refresh_on_empty_stats_is_noop(self):
        self.stats.refresh()
        self.assertEqual(self.stats.count, 0)
        self.assertEqual(self.stats.latency, {})

    def test_get_data_row(self):
        self.clock.now += 1.0
        for latency in (1.0, 2.0, 3.0, 4.0):
            self.stats.update(Result(latency_ms=latency, size=512))
        self.stats.refresh()

        row = self.stats.get_data()

        self.assertEqual(len(row), 10)
        self.assertEqual(row[0], "PUT 4")
        self.assertEqual(row[1], "2.00 KiB/s")
        self.assertEqual(row[2], "4 obj/s")
        # p25, p50, p75, p90, p99, max
        self.assertEqual(row[4:], ["1", "2", "3", "3", "3", "4"])

    def test_get_data_before_any_result(self):
        row = self.stats.get_data()
        self.assertEqual(row[0], "PUT 4")
        self.assertEqual(row[1], "0.00 KiB/s")
        self.assertEqual(row[3:], ["0"] * 7)


class TestByteFormat(unittest.TestCase):
    """Throughput formatting."""

    def test_kib(self):
        self.assertEqual(byte_format(1536), "1.50 KiB")

    def test_mib_threshold(self):
        self.assertEqual(byte_format(1024 * 1024), "1.00 MiB")
        self.assertEqual(byte_format(1024 * 1024 - 1), "1024.00 KiB")


if __name__ == '__main__':
    unittest.main()
