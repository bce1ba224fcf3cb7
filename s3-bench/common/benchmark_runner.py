"""
Benchmark runner: one round per (action, concurrency), run strictly one after another.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from tqdm import tqdm

from configuration import (
    JOB_QUEUE_SIZE,
    MAX_WORKER_FAILURES,
    PROGRESS_MIN_INTERVAL_SECONDS,
    RESULT_QUEUE_SIZE,
)
from common.channel import Channel
from common.job_feeder import JobFeeder
from common.worker_pool import ACTIONS, WorkerPool
from persistence.stats import Stats

logger = logging.getLogger(__name__)

# Row title prefix per action, e.g. "PUT 16"
TITLE_PREFIXES = {
    "upload": "PUT",
    "download": "GET",
    "clean": "DEL",
}


@dataclass(frozen=True)
class RoundConfig:
    """Immutable input of one round."""

    action: str
    concurrency: int
    max_jobs: int = 0

    def __post_init__(self):
        if self.action not in ACTIONS:
            raise ValueError(f"Unknown action: {self.action}")
        if self.concurrency <= 0:
            raise ValueError(f"Concurrency must be positive, got {self.concurrency}")
        if self.max_jobs < 0:
            raise ValueError(f"max_jobs must not be negative, got {self.max_jobs}")

    @property
    def title(self) -> str:
        return f"{TITLE_PREFIXES[self.action]} {self.concurrency}"


@dataclass
class RoundResult:
    """What a finished round hands back to the caller."""

    config: RoundConfig
    stats: Stats
    jobs_fed: int
    failures: int
    duration_seconds: float


class BenchmarkRunner:
    """Wires feeder -> job channel -> workers -> result channel -> stats for each round."""

    def __init__(
        self,
        storage_system,
        payload_source=None,
        max_failures: int = MAX_WORKER_FAILURES,
        show_progress: bool = True,
    ):
        self.storage_system = storage_system
        self.payload_source = payload_source
        self.max_failures = max_failures
        self.show_progress = show_progress

        # Stats of every round started so far, including an aborted one
        self.stats_list: List[Stats] = []

    async def run_round(self, config: RoundConfig) -> RoundResult:
        """Run one round to completion.

        Raises:
            JobFeederError: The job source failed before any worker started
            FatalWorkerError: A worker exceeded the failure threshold
        """
        logger.info(f"{config.action} test with {config.concurrency} workers")
        round_start = time.monotonic()

        jobs = Channel(JOB_QUEUE_SIZE, name=f"{config.title} jobs")
        results = Channel(RESULT_QUEUE_SIZE, name=f"{config.title} results")

        feeder = JobFeeder(
            config.action,
            jobs,
            max_jobs=config.max_jobs,
            storage_system=self.storage_system,
            payload_source=self.payload_source,
        )
        expected = await feeder.prepare()

        feeder_task = asyncio.create_task(feeder.run(), name=f"{config.title} feeder")
        started_task = asyncio.create_task(feeder.started.wait())
        await asyncio.wait({feeder_task, started_task}, return_when=asyncio.FIRST_COMPLETED)
        if not started_task.done():
            started_task.cancel()
        if feeder_task.done():
            # Source failed before producing anything: no worker is started
            feeder_task.result()

        stats = Stats(config.title)
        self.stats_list.append(stats)

        progress = tqdm(
            total=expected,
            desc=config.title,
            unit="obj",
            mininterval=PROGRESS_MIN_INTERVAL_SECONDS,
            disable=not self.show_progress,
        )

        pool = WorkerPool(self.storage_system, config.action, self.max_failures)
        pool.start(config.concurrency, jobs, results)
        consumer_task = asyncio.create_task(
            self._consume(results, stats, progress), name=f"{config.title} stats"
        )

        try:
            await pool.wait()
            jobs_fed = await feeder_task
            await results.close()
            await consumer_task
        except BaseException:
            for task in (feeder_task, consumer_task):
                task.cancel()
            await asyncio.gather(feeder_task, consumer_task, return_exceptions=True)
            raise
        finally:
            progress.close()

        stats.refresh()
        failures = pool.failures
        if stats.count + failures != jobs_fed:
            logger.warning(
                f"{config.title}: {jobs_fed} jobs fed but {stats.count} results "
                f"and {failures} failures recorded"
            )
        if failures:
            logger.warning(f"{config.title}: {failures} operations failed")

        duration_seconds = time.monotonic() - round_start
        logger.info(
            f"{config.title}: {stats.count} operations in {duration_seconds:.1f}s "
            f"({jobs_fed} jobs fed, {failures} failed)"
        )

        return RoundResult(
            config=config,
            stats=stats,
            jobs_fed=jobs_fed,
            failures=failures,
            duration_seconds=duration_seconds,
        )

    @staticmethod
    async def _consume(results: Channel, stats: Stats, progress: tqdm) -> None:
        """Single consumer: the only writer of ``stats``."""
        async for result in results:
            stats.update(result)
            progress.update(1)

    async def run_sweep(
        self,
        worker_counts: List[int],
        cleaning_workers: int,
        upload: bool = False,
        download: bool = False,
        clean: bool = False,
        max_jobs: int = 0,
        on_round: Optional[Callable[[List[Stats]], None]] = None,
    ) -> List[RoundResult]:
        """Run every requested round in order.

        For each worker count: upload then download, both bounded by
        ``max_jobs``. A single unbounded clean round with ``cleaning_workers``
        follows the sweep. ``on_round`` receives all stats so far after each
        round.
        """
        round_results: List[RoundResult] = []

        async def run(config: RoundConfig) -> None:
            round_results.append(await self.run_round(config))
            if on_round is not None:
                on_round(self.stats_list)

        for concurrency in worker_counts:
            if upload:
                await run(RoundConfig("upload", concurrency, max_jobs))
            if download:
                await run(RoundConfig("download", concurrency, max_jobs))

        if clean:
            await run(RoundConfig("clean", cleaning_workers, 0))

        return round_results
