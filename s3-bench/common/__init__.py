"""
Common utilities for the S3 benchmark.
"""

from .channel import Channel, ChannelClosed
from .job_feeder import JobFeeder, JobFeederError
from .worker_pool import FatalWorkerError, WorkerPool
from .benchmark_runner import BenchmarkRunner, RoundConfig, RoundResult

__all__ = [
    'Channel', 'ChannelClosed', 'JobFeeder', 'JobFeederError',
    'FatalWorkerError', 'WorkerPool', 'BenchmarkRunner', 'RoundConfig', 'RoundResult',
]
