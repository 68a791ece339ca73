"""Entry points for the suite availability calendar sync."""
import json
import logging
import os
import sys
import time
from typing import Dict, Any

from scraper.ical_client import ICalFeedClient
from storage.availability_store import LocalAvailabilityStore, S3AvailabilityStore
from storage.feed_config import (
    ConfigurationError,
    load_feed_config,
    load_feed_config_or_empty,
    seed_feed_config,
)
from sync.feed_synchronizer import FeedSynchronizer


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Diagnostics go to stderr
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def build_store():
    """Create the availability store selected by the environment."""
    bucket = os.environ.get('AVAILABILITY_BUCKET')
    if bucket:
        prefix = os.environ.get('AVAILABILITY_PREFIX', 'availability/')
        return S3AvailabilityStore(bucket=bucket, prefix=prefix)
    return LocalAvailabilityStore(
        os.environ.get('AVAILABILITY_DIR', os.path.join('public', 'availability'))
    )


def run_sync() -> Dict[str, Any]:
    """
    Run one synchronization pass configured from environment variables.

    Returns:
        Response dict with statusCode and summary statistics
    """
    config_path = os.environ.get('FEED_CONFIG_PATH', os.path.join('data', 'config.json'))
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    timeout_seconds = int(os.environ.get('TIMEOUT_SECONDS', '30'))
    max_retries = int(os.environ.get('MAX_RETRIES', '3'))

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    logger.info(
        "Calendar sync started",
        extra={
            'config_path': config_path,
            'timeout_seconds': timeout_seconds
        }
    )

    try:
        config = load_feed_config(config_path)
    except ConfigurationError as e:
        logger.error(
            f"Cannot load feed configuration: {e}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        duration = time.time() - start_time
        return {
            'statusCode': 500,
            'body': json.dumps({
                'message': 'Failed to load feed configuration',
                'error': str(e),
                'error_type': type(e).__name__,
                'duration_seconds': round(duration, 2)
            })
        }

    try:
        client = ICalFeedClient(timeout=timeout_seconds, max_retries=max_retries)
        synchronizer = FeedSynchronizer(client=client, store=build_store())

        logger.info(f"Synchronizing {len(config)} suites")
        result = synchronizer.synchronize(config)

    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Calendar sync failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return {
            'statusCode': 500,
            'body': json.dumps({
                'message': 'Sync failed',
                'error': str(e),
                'error_type': type(e).__name__,
                'duration_seconds': round(duration, 2)
            })
        }

    duration = time.time() - start_time
    logger.info(
        "Calendar sync completed",
        extra={
            'duration_seconds': round(duration, 2),
            'suites_synced': result.synced,
            'suites_skipped': result.skipped,
            'suites_failed': result.failed
        }
    )

    return {
        'statusCode': 200,
        'body': json.dumps({
            'message': 'Sync completed',
            'statistics': {
                'suites_configured': len(config),
                'suites_synced': result.synced,
                'suites_skipped': result.skipped,
                'suites_failed': result.failed,
                'duration_seconds': round(duration, 2)
            },
            'errors': result.errors
        })
    }


def prepare_site() -> int:
    """
    Seed the feed configuration and empty availability records.

    Normalizes the existing config file (or creates an empty one) and
    creates an empty record for every configured suite that has none,
    so the calendar shows its placeholder before the first sync.

    Returns:
        Number of availability records created
    """
    config_path = os.environ.get('FEED_CONFIG_PATH', os.path.join('data', 'config.json'))
    setup_logging(os.environ.get('LOG_LEVEL', 'INFO'))
    logger = logging.getLogger(__name__)

    existing = load_feed_config_or_empty(config_path)
    config = seed_feed_config(
        config_path, [(suite.slug, suite.name) for suite in existing]
    )

    store = build_store()
    created = sum(1 for suite in config if store.ensure_empty_record(suite.slug))
    logger.info(
        f"Prepared {len(config)} suites ({created} empty availability records created)"
    )
    return created


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    AWS Lambda handler running one calendar sync.

    Args:
        event: Invocation payload (unused)
        context: Lambda context object

    Returns:
        Response dict with statusCode and summary statistics
    """
    return run_sync()


def main() -> int:
    """
    Run one calendar sync as a batch job.

    Returns:
        Process exit status: 1 if the run could not be carried out
        (e.g. missing configuration), otherwise 0
    """
    response = run_sync()
    return 0 if response['statusCode'] == 200 else 1


def prepare_main() -> int:
    """Run prepare_site as a batch job; always exits with status 0."""
    prepare_site()
    return 0


if __name__ == '__main__':
    sys.exit(main())
