import os
import sys
import logging
import argparse
from typing import List

import uvloop

# Add the current directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from configuration import (
    BUCKET_NAME, S3_ENDPOINT, DEFAULT_REGION, DEFAULT_WORKERS,
    DEFAULT_CLEANING_WORKERS, DEFAULT_MAX_MESSAGES,
)
from common.storage_factory import create_storage_system
from common.benchmark_runner import BenchmarkRunner
from common.job_feeder import JobFeederError
from common.worker_pool import FatalWorkerError
from persistence.report import print_stats, write_csv
from sources.public_inbox import PublicInboxSource

# Set up logging (only if not already configured)
if not logging.root.handlers:
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def parse_worker_counts(value: str) -> List[int]:
    """Parse a comma-separated list of positive worker counts."""
    try:
        counts = [int(part) for part in value.split(',') if part.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid worker list: {value!r}")
    if any(count <= 0 for count in counts):
        raise argparse.ArgumentTypeError(f"worker counts must be positive: {value!r}")
    return counts


class SimpleS3BenchCLI:
    """CLI interface for the S3 PUT/GET/DEL benchmark."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self):
        """Create the argument parser."""
        default_workers = ','.join(str(count) for count in DEFAULT_WORKERS)
        parser = argparse.ArgumentParser(
            description='S3 throughput and latency benchmark',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Upload 10k messages, then download them, with 4 and 16 workers
  python cli.py --endpoint https://s3.fr-par.scw.cloud --bucket-name bench \\
      -r ~/lkml/git/0.git --max-messages 10000 -w 4,16 --upload --download

  # Remove everything the benchmark uploaded and write the table as CSV
  python cli.py --endpoint https://s3.fr-par.scw.cloud --bucket-name bench \\
      --clean --csv results.csv
            """
        )

        parser.add_argument('-r', '--public-inbox-repo', type=str, default='',
                            help='public-inbox repository path')
        parser.add_argument('-w', '--workers', type=parse_worker_counts, default=list(DEFAULT_WORKERS),
                            help=f'number of workers, separated by comma (default: {default_workers})')
        parser.add_argument('--cleaning-workers', type=int, default=DEFAULT_CLEANING_WORKERS,
                            help=f'number of cleaning workers (default: {DEFAULT_CLEANING_WORKERS})')
        parser.add_argument('--max-messages', type=int, default=DEFAULT_MAX_MESSAGES,
                            help=f'maximum messages to upload, 0 for all (default: {DEFAULT_MAX_MESSAGES})')
        parser.add_argument('--endpoint', type=str, default=S3_ENDPOINT,
                            help='S3 endpoint (default: $S3_ENDPOINT)')
        parser.add_argument('--bucket-name', type=str, default=BUCKET_NAME,
                            help='S3 bucket name (default: $BUCKET_NAME)')
        parser.add_argument('--region', type=str, default='',
                            help=f'S3 region (default: {DEFAULT_REGION})')
        parser.add_argument('--createbucket', action='store_true',
                            help='creates the S3 bucket for you')
        parser.add_argument('--csv', type=str, default='',
                            help='write statistics out to the CSV file specified (- for stdout)')
        parser.add_argument('--upload', action='store_true',
                            help='upload test data (requires --public-inbox-repo)')
        parser.add_argument('--download', action='store_true',
                            help='download test data (requires prior upload)')
        parser.add_argument('--clean', action='store_true',
                            help='remove test data (requires prior upload)')
        parser.add_argument('--no-progress', action='store_true',
                            help='do not draw progress bars')
        parser.add_argument('-v', '--verbose', action='store_true',
                            help='enable debug logging')

        return parser

    def validate(self, args) -> bool:
        """Check the argument combination. Prints the problem and usage on failure."""
        problem = None
        if args.upload and not args.public_inbox_repo:
            problem = '--public-inbox-repo is mandatory for upload'
        elif not args.bucket_name:
            problem = '--bucket-name is mandatory'
        elif not args.endpoint:
            problem = '--endpoint is mandatory'
        elif not args.workers:
            problem = '--workers must be non empty'
        elif args.cleaning_workers <= 0:
            problem = '--cleaning-workers must be positive'
        elif args.max_messages < 0:
            problem = '--max-messages must not be negative'
        elif not (args.upload or args.download or args.clean):
            problem = 'either --upload --download or --clean MUST be specified'

        if problem:
            print(problem)
            self.parser.print_usage()
            return False
        return True

    async def run_benchmark(self, args):
        """Open the inputs and the CSV destination, then run the sweep."""
        payload_source = None
        if args.upload:
            try:
                payload_source = PublicInboxSource(args.public_inbox_repo)
            except Exception as e:
                logger.error(f"git: cannot open repository {args.public_inbox_repo}: {e}")
                return 1

        # Opened before any request so a bad path cannot waste a whole sweep
        csv_file = None
        if args.csv == '-':
            csv_file = sys.stdout
        elif args.csv:
            try:
                csv_file = open(args.csv, 'w', newline='')
            except OSError as e:
                logger.error(f"csv: cannot open {args.csv}: {e}")
                return 1

        try:
            return await self._run_sweep(args, payload_source, csv_file)
        finally:
            if csv_file is not None and csv_file is not sys.stdout:
                csv_file.close()

    async def _run_sweep(self, args, payload_source, csv_file):
        """Set up storage, run the sweep and report."""
        region = args.region or DEFAULT_REGION
        storage_system = create_storage_system(
            endpoint=args.endpoint,
            bucket_name=args.bucket_name,
            region=region,
            create_bucket=args.createbucket,
            max_concurrency=max(args.workers + [args.cleaning_workers]),
        )

        async with storage_system:
            try:
                logger.info(f"s3: setup using {args.endpoint}")
                await storage_system.setup()
                logger.info("s3: testing")
                await storage_system.health_check()
            except Exception as e:
                logger.error(f"s3: setup failed: {e}")
                return 1

            runner = BenchmarkRunner(
                storage_system,
                payload_source=payload_source,
                show_progress=not args.no_progress,
            )

            try:
                await runner.run_sweep(
                    worker_counts=args.workers,
                    cleaning_workers=args.cleaning_workers,
                    upload=args.upload,
                    download=args.download,
                    clean=args.clean,
                    max_jobs=args.max_messages,
                    on_round=print_stats,
                )
            except (FatalWorkerError, JobFeederError) as e:
                logger.error(f"Benchmark aborted: {e}")
                if runner.stats_list:
                    print_stats(runner.stats_list)
                return 1

        if csv_file is not None:
            write_csv(runner.stats_list, csv_file)
            logger.info(f"Statistics written to {args.csv}")

        logger.info("Benchmark completed successfully")
        return 0

    def run(self, args=None):
        """Run the CLI with the given arguments."""
        if args is None:
            args = sys.argv[1:]

        parsed_args = self.parser.parse_args(args)

        if parsed_args.verbose:
            logging.getLogger().setLevel(logging.DEBUG)

        if not self.validate(parsed_args):
            return 1

        try:
            return uvloop.run(self.run_benchmark(parsed_args))
        except KeyboardInterrupt:
            logger.info("Operation interrupted by user")
            return 1
        except Exception as e:
            logger.error(f"Unexpected error: {e}")
            return 1


def main():
    """Main entry point."""
    cli = SimpleS3BenchCLI()
    sys.exit(cli.run())


if __name__ == '__main__':
    main()
