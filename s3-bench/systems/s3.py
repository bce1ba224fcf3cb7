"""
S3-compatible object storage system implementation.
"""

import logging

from botocore.exceptions import ClientError

from systems.base import ObjectStorageSystem

logger = logging.getLogger(__name__)

# us-east-1 rejects an explicit location constraint
_DEFAULT_LOCATION = "us-east-1"


class S3System(ObjectStorageSystem):
    """Any S3-compatible endpoint (AWS, Scaleway, MinIO, ...)."""

    def __init__(
        self,
        endpoint: str,
        bucket_name: str,
        credentials: dict = None,
        create_bucket: bool = False,
        max_pool_connections: int = 64,
    ):
        if credentials is None:
            credentials = {}

        super().__init__(
            endpoint=endpoint,
            bucket_name=bucket_name,
            credentials=credentials,
            max_pool_connections=max_pool_connections,
        )
        self.create_bucket = create_bucket
        logger.info(f"Initialized S3 system for {endpoint or 'AWS'} in {self.region_name}")

    async def setup(self) -> None:
        """Create the bucket when asked to, tolerating one we already own."""
        await super().setup()
        if not self.create_bucket:
            return

        params = {"Bucket": self.bucket_name}
        if self.region_name and self.region_name != _DEFAULT_LOCATION:
            params["CreateBucketConfiguration"] = {
                "LocationConstraint": self.region_name
            }

        try:
            await self.client.create_bucket(**params)
            logger.info(f"Created bucket {self.bucket_name}")
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code != "BucketAlreadyOwnedByYou":
                raise
            logger.info(f"Bucket {self.bucket_name} already exists")
