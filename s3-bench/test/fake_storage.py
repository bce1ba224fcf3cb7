"""
In-memory stand-ins for the storage system and the payload source.
"""

import asyncio
from typing import Dict, List, Optional

from systems.base import StopListing
from sources.public_inbox import PayloadUnavailable


class InMemoryStorage:
    """Dict-backed object store with the same async surface as ObjectStorageSystem.

    ``latencies`` are handed out in order for successive operations (the
    last one repeats); ``fail_puts``/``fail_gets``/``fail_deletes`` make the
    first N calls of that kind raise.
    """

    def __init__(
        self,
        objects: Optional[Dict[str, bytes]] = None,
        latencies: Optional[List[float]] = None,
        delay: float = 0.0,
        fail_puts: int = 0,
        fail_gets: int = 0,
        fail_deletes: int = 0,
        list_error: Optional[Exception] = None,
        list_error_after: int = 0,
    ):
        self.objects: Dict[str, bytes] = dict(objects or {})
        self.latencies = list(latencies or [1.0])
        self.delay = delay
        self.fail_puts = fail_puts
        self.fail_gets = fail_gets
        self.fail_deletes = fail_deletes
        self.list_error = list_error
        self.list_error_after = list_error_after
        self.calls: List[tuple] = []
        self._latency_index = 0

    def _next_latency(self) -> float:
        latency = self.latencies[min(self._latency_index, len(self.latencies) - 1)]
        self._latency_index += 1
        return latency

    async def _pause(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        else:
            await asyncio.sleep(0)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def setup(self) -> None:
        pass

    async def health_check(self) -> None:
        pass

    async def put(self, key: str, body: bytes) -> float:
        self.calls.append(("put", key))
        await self._pause()
        if self.fail_puts > 0:
            self.fail_puts -= 1
            raise ConnectionError(f"put {key} refused")
        self.objects[key] = body
        return self._next_latency()

    async def get(self, key: str):
        self.calls.append(("get", key))
        await self._pause()
        if self.fail_gets > 0:
            self.fail_gets -= 1
            raise ConnectionError(f"get {key} refused")
        return self.objects[key], self._next_latency()

    async def delete(self, key: str) -> float:
        self.calls.append(("delete", key))
        await self._pause()
        if self.fail_deletes > 0:
            self.fail_deletes -= 1
            raise ConnectionError(f"delete {key} refused")
        self.objects.pop(key, None)
        return self._next_latency()

    async def list_objects(self, prefix: str, visit) -> None:
        listed = 0
        try:
            for key in sorted(k for k in self.objects if k.startswith(prefix)):
                if self.list_error is not None and listed >= self.list_error_after:
                    raise self.list_error
                await visit(key)
                listed += 1
            if self.list_error is not None and listed >= self.list_error_after:
                raise self.list_error
        except StopListing:
            pass


class ListPayloadSource:
    """Payload source over a plain list; ``None`` entries have no payload."""

    def __init__(self, payloads: List[Optional[bytes]], fail_after: Optional[int] = None,
                 open_error: Optional[Exception] = None):
        self.payloads = payloads
        self.fail_after = fail_after
        self.open_error = open_error
        self.entries_read = 0

    def count_entries(self, limit: int = 0) -> int:
        if self.open_error is not None:
            raise self.open_error
        count = len(self.payloads)
        return min(count, limit) if limit else count

    def iter_entries(self):
        if self.open_error is not None:
            raise self.open_error
        for index, payload in enumerate(self.payloads):
            if self.fail_after is not None and index >= self.fail_after:
                raise OSError("history read failed")
            self.entries_read += 1
            yield payload

    def read_payload(self, entry) -> bytes:
        if entry is None:
            raise PayloadUnavailable("entry has no payload")
        return entry
