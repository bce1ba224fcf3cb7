"""
Job feeder: fills the job channel of a round with payloads or object keys.
"""

import asyncio
import logging
from typing import Optional

from configuration import KEY_PREFIX
from common.channel import Channel
from systems.base import StopListing
from sources.public_inbox import PayloadUnavailable

logger = logging.getLogger(__name__)

# Marks exhaustion of the history iterator when stepped from a thread
_EXHAUSTED = object()


class JobFeederError(Exception):
    """The job source failed before producing a single job."""


class JobFeeder:
    """Sole producer and sole closer of one round's job channel.

    Upload rounds read payloads from a history-backed source, download and
    clean rounds list keys under ``KEY_PREFIX``. The number of jobs fed is
    owned by the feeder and returned from ``run``.
    """

    def __init__(
        self,
        action: str,
        jobs: Channel,
        max_jobs: int = 0,
        storage_system=None,
        payload_source=None,
        prefix: str = KEY_PREFIX,
    ):
        """Initialize the feeder.

        Args:
            action: 'upload', 'download' or 'clean'
            jobs: Channel receiving the jobs; closed when feeding ends
            max_jobs: Maximum number of jobs to produce (0 = unbounded)
            storage_system: Storage used for key listings (download/clean)
            payload_source: Source of upload payloads (upload)
            prefix: Key namespace to list
        """
        if action == "upload" and payload_source is None:
            raise ValueError("upload requires a payload source")
        if action in ("download", "clean") and storage_system is None:
            raise ValueError(f"{action} requires a storage system")

        self.action = action
        self.jobs = jobs
        self.max_jobs = max_jobs
        self.storage_system = storage_system
        self.payload_source = payload_source
        self.prefix = prefix

        self.fed = 0
        # Set once the first job is queued
        self.started = asyncio.Event()

    def _bound_reached(self) -> bool:
        return bool(self.max_jobs) and self.fed >= self.max_jobs

    async def prepare(self) -> Optional[int]:
        """Count the payload source ahead of feeding (upload only).

        Returns:
            Expected number of jobs, or None when it is not known in advance

        Raises:
            JobFeederError: The payload source cannot be read
        """
        if self.action != "upload":
            # Listings are not counted ahead, the bound is only an upper limit
            return None

        loop = asyncio.get_running_loop()
        try:
            count = await loop.run_in_executor(
                None, self.payload_source.count_entries, self.max_jobs
            )
        except Exception as e:
            raise JobFeederError(f"cannot read payload source: {e}") from e
        return min(count, self.max_jobs) if self.max_jobs else count

    async def run(self) -> int:
        """Feed jobs until the source is exhausted or ``max_jobs`` is reached.

        Returns:
            Number of jobs sent on the channel

        Raises:
            JobFeederError: The source failed before the first job
        """
        try:
            if self.action == "upload":
                await self._feed_upload()
            else:
                await self._feed_keys()
        except Exception as e:
            if self.fed == 0:
                await self.jobs.close()
                raise JobFeederError(f"{self.action}: job source failed: {e}") from e
            logger.warning(
                f"{self.action}: job source failed after {self.fed} jobs, "
                f"ending the stream: {e}"
            )

        await self.jobs.close()
        logger.debug(f"{self.action}: fed {self.fed} jobs")
        return self.fed

    async def _send(self, job) -> None:
        await self.jobs.send(job)
        self.fed += 1
        self.started.set()

    async def _feed_upload(self) -> None:
        """Emit payloads newest-first, skipping entries without one."""
        loop = asyncio.get_running_loop()
        source = self.payload_source
        entries = await loop.run_in_executor(None, source.iter_entries)

        while not self._bound_reached():
            entry = await loop.run_in_executor(None, next, entries, _EXHAUSTED)
            if entry is _EXHAUSTED:
                break
            try:
                payload = await loop.run_in_executor(None, source.read_payload, entry)
            except PayloadUnavailable as e:
                logger.debug(f"Skipping history entry: {e}")
                continue
            await self._send(payload)

    async def _feed_keys(self) -> None:
        """Emit every key of the listing, up to the bound."""
        if self._bound_reached():
            return

        async def visit(key: str) -> None:
            await self._send(key)
            if self._bound_reached():
                raise StopListing()

        await self.storage_system.list_objects(self.prefix, visit)
