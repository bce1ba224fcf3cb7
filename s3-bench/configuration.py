"""
Configuration constants for the S3 benchmark.

This module contains all configuration parameters including:
- Object storage credentials and endpoints
- Channel capacities and worker failure policy
- Sweep defaults (worker counts, message bound)
- Payload source settings and size constants
"""

import os
from typing import List

# =============================================================================
# OBJECT STORAGE CONFIGURATION
# =============================================================================

# Endpoint and bucket can also be given on the command line
BUCKET_NAME: str = os.getenv("BUCKET_NAME", "")
S3_ENDPOINT: str = os.getenv("S3_ENDPOINT", "")

# Empty credentials fall back to the default botocore credential chain
AWS_ACCESS_KEY_ID: str = os.getenv("AWS_ACCESS_KEY_ID", "")
AWS_SECRET_ACCESS_KEY: str = os.getenv("AWS_SECRET_ACCESS_KEY", "")
DEFAULT_REGION: str = "fr-par"

# Every benchmark object lives under this prefix
KEY_PREFIX: str = "s3bench/"
HEALTH_CHECK_KEY: str = KEY_PREFIX + "test"
HEALTH_CHECK_BODY: bytes = b"test"

# =============================================================================
# ROUND PIPELINE
# =============================================================================

JOB_QUEUE_SIZE: int = 64  # Feeder -> workers
RESULT_QUEUE_SIZE: int = 8  # Workers -> stats consumer

# A worker exceeding this many failures aborts the whole run
MAX_WORKER_FAILURES: int = 10

# =============================================================================
# TIMEOUTS
# =============================================================================

# Applies to every S3 call, including draining the body
REQUEST_TIMEOUT_SECONDS: int = 180
CONNECT_TIMEOUT_SECONDS: int = 10

# =============================================================================
# SWEEP DEFAULTS
# =============================================================================

DEFAULT_WORKERS: List[int] = [4, 8, 16, 32]
DEFAULT_CLEANING_WORKERS: int = 16
DEFAULT_MAX_MESSAGES: int = 100_000

# =============================================================================
# PAYLOAD SOURCE
# =============================================================================

# public-inbox stores each message in a file named "m" in its commit tree
PAYLOAD_FILE_NAME: str = "m"
PAYLOAD_REVISION: str = "HEAD"

# =============================================================================
# PROGRESS AND REPORTING
# =============================================================================

PROGRESS_MIN_INTERVAL_SECONDS: float = 0.1

# =============================================================================
# FILE SIZE CONSTANTS
# =============================================================================

BYTES_PER_KB: int = 1024
BYTES_PER_MB: int = 1024 * 1024
MS_PER_SECOND: float = 1000.0
