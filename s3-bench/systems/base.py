"""
Async base class for S3-compatible object storage systems.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Tuple

import aioboto3
from botocore.config import Config

from configuration import (
    CONNECT_TIMEOUT_SECONDS,
    HEALTH_CHECK_BODY,
    HEALTH_CHECK_KEY,
    MS_PER_SECOND,
    REQUEST_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)


class StopListing(Exception):
    """Raised by a listing visitor to stop iteration early."""


class IncompleteBodyError(Exception):
    """The response body ended before the advertised content length."""

    def __init__(self, key: str, expected: int, received: int):
        super().__init__(
            f"incomplete body for {key}: expected {expected} bytes, got {received}"
        )
        self.key = key
        self.expected = expected
        self.received = received


class ObjectStorageSystem:
    """Async S3 client wrapper shared by every worker of a round.

    The underlying aiobotocore client owns its connection pool and is safe
    for concurrent use, so workers call into it without extra locking.
    All latencies are wall-clock milliseconds of the whole call.
    """

    def __init__(
        self,
        endpoint: str,
        bucket_name: str,
        credentials: dict,
        max_pool_connections: int = 64,
    ):
        self.endpoint = endpoint
        self.bucket_name = bucket_name
        self.credentials = credentials
        self.region_name = credentials.get("region_name")

        self._config = self._create_config(max_pool_connections)

        self.session = aioboto3.Session(
            aws_access_key_id=credentials.get("access_key_id") or None,
            aws_secret_access_key=credentials.get("secret_access_key") or None,
            region_name=self.region_name,
        )

        self.client = None

        logger.debug(
            f"Initialized storage for {endpoint or 'default endpoint'} "
            f"(bucket={bucket_name}, max_pool_connections={max_pool_connections})"
        )

    def _create_config(self, max_pool_connections: int) -> Config:
        """Create the botocore config used by the client."""
        return Config(
            max_pool_connections=max_pool_connections,
            connect_timeout=CONNECT_TIMEOUT_SECONDS,
            read_timeout=REQUEST_TIMEOUT_SECONDS,
            # Retries would hide failures from the worker failure counter
            retries={"max_attempts": 1, "mode": "standard"},
            s3={
                # Custom endpoints rarely support bucket-in-host addressing
                "addressing_style": "path" if self.endpoint else "auto",
            },
            tcp_keepalive=True,
        )

    async def __aenter__(self):
        """Async context manager entry."""
        self.client = await self.session.client(
            "s3",
            endpoint_url=self.endpoint or None,
            config=self._config,
        ).__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self.client:
            await self.client.__aexit__(exc_type, exc_val, exc_tb)
            self.client = None

    def _require_client(self):
        if not self.client:
            raise RuntimeError("Storage client not initialized. Use async context manager.")
        return self.client

    async def setup(self) -> None:
        """Prepare the bucket before benchmarking. Subclasses may extend."""
        self._require_client()

    async def health_check(self) -> None:
        """Write then delete a small probe object.

        Raises whatever the client raises, so the caller can abort early.
        """
        logger.info(f"Checking access to bucket {self.bucket_name}")
        await self.put(HEALTH_CHECK_KEY, HEALTH_CHECK_BODY)
        await self.delete(HEALTH_CHECK_KEY)
        logger.info(f"Bucket {self.bucket_name} is writable")

    async def put(self, key: str, body: bytes) -> float:
        """Upload ``body`` under ``key``. Returns latency in milliseconds."""
        client = self._require_client()
        start_time = time.perf_counter()
        await asyncio.wait_for(
            client.put_object(Bucket=self.bucket_name, Key=key, Body=body),
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        return (time.perf_counter() - start_time) * MS_PER_SECOND

    async def get(self, key: str) -> Tuple[bytes, float]:
        """Download ``key`` completely.

        Latency covers the full body drain, not only the response headers.

        Returns:
            Tuple of (body bytes, latency_ms)
        """
        client = self._require_client()
        start_time = time.perf_counter()

        async def _fetch() -> Tuple[bytes, Optional[int]]:
            response = await client.get_object(Bucket=self.bucket_name, Key=key)
            async with response["Body"] as stream:
                data = await stream.read()
            return data, response.get("ContentLength")

        data, content_length = await asyncio.wait_for(
            _fetch(), timeout=REQUEST_TIMEOUT_SECONDS
        )
        latency_ms = (time.perf_counter() - start_time) * MS_PER_SECOND

        if content_length is not None and len(data) != content_length:
            raise IncompleteBodyError(key, content_length, len(data))

        return data, latency_ms

    async def delete(self, key: str) -> float:
        """Delete ``key``. Returns latency in milliseconds."""
        client = self._require_client()
        start_time = time.perf_counter()
        await asyncio.wait_for(
            client.delete_object(Bucket=self.bucket_name, Key=key),
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        return (time.perf_counter() - start_time) * MS_PER_SECOND

    async def list_objects(
        self, prefix: str, visit: Callable[[str], Awaitable[None]]
    ) -> None:
        """Call ``visit`` for every key under ``prefix``, page by page.

        A visitor raising ``StopListing`` ends the listing without error.
        """
        client = self._require_client()
        paginator = client.get_paginator("list_objects_v2")
        try:
            async for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix):
                for obj in page.get("Contents", []):
                    await visit(obj["Key"])
        except StopListing:
            logger.debug(f"Listing of {prefix} stopped by visitor")
