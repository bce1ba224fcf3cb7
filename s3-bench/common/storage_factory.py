"""
Factory module for creating storage system instances.
"""

import logging

# Keep boto3/botocore quiet before any boto-related module is imported
logging.getLogger('botocore').setLevel(logging.CRITICAL)
logging.getLogger('botocore.credentials').setLevel(logging.CRITICAL)
logging.getLogger('boto3').setLevel(logging.CRITICAL)
logging.getLogger('aioboto3').setLevel(logging.CRITICAL)
logging.getLogger('urllib3').setLevel(logging.CRITICAL)
logging.getLogger('s3transfer').setLevel(logging.CRITICAL)

from systems.s3 import S3System
from configuration import (
    AWS_ACCESS_KEY_ID,
    AWS_SECRET_ACCESS_KEY,
    DEFAULT_REGION,
)

logger = logging.getLogger(__name__)

# Headroom on top of the widest round for the health check and listings
_POOL_HEADROOM = 8


def create_storage_system(
    endpoint: str,
    bucket_name: str,
    region: str = None,
    create_bucket: bool = False,
    max_concurrency: int = 0,
) -> S3System:
    """Create the storage system used by every round of a run.

    Args:
        endpoint: S3 endpoint URL (empty for the AWS default)
        bucket_name: Bucket holding the benchmark objects
        region: Signing region and bucket location (default: DEFAULT_REGION)
        create_bucket: Create the bucket during setup
        max_concurrency: Widest worker count of the run, sizes the connection pool

    Raises:
        ValueError: If no bucket name is given
    """
    if not bucket_name:
        raise ValueError("A bucket name is required")

    credentials = {
        "access_key_id": AWS_ACCESS_KEY_ID,
        "secret_access_key": AWS_SECRET_ACCESS_KEY,
        "region_name": region or DEFAULT_REGION,
    }
    return S3System(
        endpoint=endpoint,
        bucket_name=bucket_name,
        credentials=credentials,
        create_bucket=create_bucket,
        max_pool_connections=max(max_concurrency, 1) + _POOL_HEADROOM,
    )
