"""
Async worker pool performing upload, download or delete jobs against object storage.
"""

import asyncio
import hashlib
import logging
from typing import Dict, Any, List, Optional

from configuration import KEY_PREFIX, MAX_WORKER_FAILURES
from common.channel import Channel, ChannelClosed
from persistence.stats import Result

logger = logging.getLogger(__name__)

ACTIONS = ("upload", "download", "clean")


def content_key(payload: bytes) -> str:
    """Content-addressed key: identical payloads always map to the same object."""
    return f"{KEY_PREFIX}{hashlib.sha1(payload).hexdigest()}"


class FatalWorkerError(RuntimeError):
    """A worker exceeded the failure threshold. Aborts the whole run."""

    def __init__(self, action: str, worker_id: int, failures: int, last_error: BaseException):
        super().__init__(
            f"s3: {action}: too many failures in worker {worker_id} "
            f"({failures}). Last: {last_error}"
        )
        self.action = action
        self.worker_id = worker_id
        self.failures = failures
        self.last_error = last_error


class WorkerPool:
    """Fixed-size pool of workers sharing one job channel and one result channel.

    Each worker handles one job at a time and keeps its own failure count
    for its whole lifetime. Successes do not reset it.
    """

    def __init__(
        self,
        storage_system,
        action: str,
        max_failures: int = MAX_WORKER_FAILURES,
    ):
        """Initialize the worker pool.

        Args:
            storage_system: Object storage shared by all workers
            action: One of 'upload', 'download' or 'clean'
            max_failures: Failures a single worker may accumulate before the run aborts
        """
        if action not in ACTIONS:
            raise ValueError(f"Unknown action: {action}")

        self.storage_system = storage_system
        self.action = action
        self.max_failures = max_failures

        self.worker_tasks: List[asyncio.Task] = []
        self.worker_states: Dict[int, Dict[str, Any]] = {}

        self._operations = {
            "upload": self._upload,
            "download": self._download,
            "clean": self._delete,
        }

    @property
    def failures(self) -> int:
        """Failures summed over every worker of the pool."""
        return sum(state["failures"] for state in self.worker_states.values())

    @property
    def completed(self) -> int:
        return sum(state["completed"] for state in self.worker_states.values())

    def start(self, concurrency: int, jobs: Channel, results: Channel) -> None:
        """Start exactly ``concurrency`` workers."""
        if concurrency <= 0:
            raise ValueError(f"Concurrency must be positive, got {concurrency}")

        for worker_id in range(concurrency):
            self.worker_states[worker_id] = {
                "failures": 0,
                "completed": 0,
            }
            task = asyncio.create_task(
                self._worker_task(worker_id, jobs, results),
                name=f"{self.action}-worker-{worker_id}",
            )
            self.worker_tasks.append(task)

        logger.debug(f"Started {concurrency} {self.action} workers")

    async def _worker_task(self, worker_id: int, jobs: Channel, results: Channel) -> None:
        """Pull jobs until the channel is closed and drained."""
        state = self.worker_states[worker_id]
        operation = self._operations[self.action]

        while True:
            try:
                job = await jobs.receive()
            except ChannelClosed:
                break

            try:
                result = await operation(job)
            except Exception as e:
                state["failures"] += 1
                logger.debug(
                    f"Worker {worker_id} {self.action} failure "
                    f"{state['failures']}/{self.max_failures}: {e}"
                )
                if state["failures"] > self.max_failures:
                    raise FatalWorkerError(self.action, worker_id, state["failures"], e) from e
                continue

            state["completed"] += 1
            await results.send(result)

    async def _upload(self, payload: bytes) -> Result:
        latency_ms = await self.storage_system.put(content_key(payload), payload)
        return Result(latency_ms=latency_ms, size=len(payload))

    async def _download(self, key: str) -> Result:
        body, latency_ms = await self.storage_system.get(key)
        return Result(latency_ms=latency_ms, size=len(body))

    async def _delete(self, key: str) -> Result:
        latency_ms = await self.storage_system.delete(key)
        return Result(latency_ms=latency_ms, size=0)

    async def wait(self) -> None:
        """Wait for every worker to return.

        Raises:
            FatalWorkerError: The first worker fault; the other workers are stopped
        """
        if not self.worker_tasks:
            return

        done, pending = await asyncio.wait(
            self.worker_tasks, return_when=asyncio.FIRST_EXCEPTION
        )

        fault: Optional[BaseException] = None
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                fault = task.exception()
                break

        if fault is not None:
            logger.error(f"Stopping {len(pending)} {self.action} workers: {fault}")
            await self.stop_workers()
            raise fault

        logger.debug(
            f"All {len(self.worker_tasks)} {self.action} workers finished: "
            f"{self.completed} completed, {self.failures} failed"
        )

    async def stop_workers(self) -> None:
        """Cancel workers that are still running and wait for them."""
        for task in self.worker_tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*self.worker_tasks, return_exceptions=True)
