"""Integration tests for the calendar sync entry points."""
import json
import logging
import os
from unittest.mock import Mock, patch

import pytest
import responses

from lambda_function import (
    build_store,
    lambda_handler,
    main,
    prepare_main,
    prepare_site,
    setup_logging,
)
from processor.models import SuiteSyncOutcome, SyncResult
from storage.availability_store import LocalAvailabilityStore, S3AvailabilityStore

FEED_URL = "https://www.airbnb.com/calendar/ical/1.ics"
SAMPLE_ICS = (
    "BEGIN:VCALENDAR\r\n"
    "BEGIN:VEVENT\r\n"
    "DTSTART;VALUE=DATE:20250310\r\n"
    "DTEND;VALUE=DATE:20250312\r\n"
    "END:VEVENT\r\n"
    "END:VCALENDAR\r\n"
)


@pytest.fixture
def site_dir(tmp_path):
    """Create a config with one configured and one empty suite."""
    data_dir = tmp_path / 'data'
    data_dir.mkdir()
    (data_dir / 'config.json').write_text(json.dumps({
        'casa-yahua-suite-1': {'name': 'Casa Yahua - Suite 1', 'icalUrl': FEED_URL},
        'casa-yahua-suite-2': {'name': 'Casa Yahua - Suite 2', 'icalUrl': ''},
    }), encoding='utf-8')
    return tmp_path


@pytest.fixture
def mock_env(site_dir):
    """Set up environment variables for testing."""
    env_vars = {
        'FEED_CONFIG_PATH': str(site_dir / 'data' / 'config.json'),
        'AVAILABILITY_DIR': str(site_dir / 'public' / 'availability'),
        'LOG_LEVEL': 'INFO',
        'TIMEOUT_SECONDS': '5',
        'MAX_RETRIES': '1'
    }
    with patch.dict(os.environ, env_vars):
        os.environ.pop('AVAILABILITY_BUCKET', None)
        yield env_vars


@pytest.fixture
def mock_context():
    """Create a mock Lambda context."""
    context = Mock()
    context.function_name = 'suite-calendar-sync'
    context.aws_request_id = 'test-request-id'
    return context


class TestLambdaHandler:
    """Test cases for the Lambda handler."""

    @responses.activate
    def test_successful_sync(self, mock_env, mock_context, site_dir):
        """Test end-to-end sync from config file to record file."""
        responses.add(responses.GET, FEED_URL, body=SAMPLE_ICS, status=200)

        response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 200
        body = json.loads(response['body'])
        assert body['message'] == 'Sync completed'
        assert body['statistics']['suites_configured'] == 2
        assert body['statistics']['suites_synced'] == 1
        assert body['statistics']['suites_skipped'] == 1
        assert body['statistics']['suites_failed'] == 0
        assert body['errors'] == []

        record_path = site_dir / 'public' / 'availability' / 'casa-yahua-suite-1.json'
        assert json.loads(record_path.read_text(encoding='utf-8')) == {
            'bookedDates': ['2025-03-10', '2025-03-11']
        }

    @responses.activate
    def test_feed_failure_still_succeeds(self, mock_env, mock_context):
        """Test that per-suite feed failures do not fail the run."""
        responses.add(responses.GET, FEED_URL, body="Forbidden", status=403)

        response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 200
        body = json.loads(response['body'])
        assert body['statistics']['suites_failed'] == 1
        assert 'HTTP 403' in body['errors'][0]

    def test_missing_config(self, mock_env, mock_context, site_dir):
        """Test error handling for a missing configuration file."""
        (site_dir / 'data' / 'config.json').unlink()

        response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 500
        body = json.loads(response['body'])
        assert body['message'] == 'Failed to load feed configuration'
        assert body['error_type'] == 'ConfigurationError'
        assert 'duration_seconds' in body

    @patch('lambda_function.FeedSynchronizer')
    def test_unexpected_error_returns_500(self, mock_synchronizer_class, mock_env, mock_context):
        """Test that an unexpected error during the run returns 500."""
        mock_synchronizer_class.return_value.synchronize.side_effect = OverflowError(
            'date value out of range'
        )

        response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 500
        body = json.loads(response['body'])
        assert body['message'] == 'Sync failed'
        assert body['error'] == 'date value out of range'
        assert body['error_type'] == 'OverflowError'

    @responses.activate
    def test_last_representable_day_feed_completes(self, mock_env, mock_context, site_dir):
        """Test that a feed event on 9999-12-31 does not fail the run."""
        responses.add(
            responses.GET, FEED_URL,
            body="BEGIN:VEVENT\r\nDTSTART;VALUE=DATE:99991231\r\nEND:VEVENT\r\n",
            status=200
        )

        response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 200
        assert json.loads(response['body'])['statistics']['suites_synced'] == 1

    @patch('lambda_function.FeedSynchronizer')
    def test_logging_output(self, mock_synchronizer_class, mock_env, mock_context, caplog):
        """Test that logging output is generated correctly."""
        mock_synchronizer = Mock()
        mock_synchronizer.synchronize.return_value = SyncResult(
            synced=1,
            skipped=1,
            failed=0,
            outcomes=[
                SuiteSyncOutcome('casa-yahua-suite-1', 'Casa Yahua - Suite 1', 'synced', 2),
                SuiteSyncOutcome('casa-yahua-suite-2', 'Casa Yahua - Suite 2', 'skipped'),
            ]
        )
        mock_synchronizer_class.return_value = mock_synchronizer

        with patch('lambda_function.setup_logging'):
            with caplog.at_level(logging.INFO, logger='lambda_function'):
                response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 200
        log_messages = [record.message for record in caplog.records]
        assert any('Calendar sync started' in msg for msg in log_messages)
        assert any('Synchronizing 2 suites' in msg for msg in log_messages)
        assert any('Calendar sync completed' in msg for msg in log_messages)

        config = mock_synchronizer.synchronize.call_args.args[0]
        assert sorted(config.suites) == ['casa-yahua-suite-1', 'casa-yahua-suite-2']


class TestMain:
    """Test cases for the batch entry point exit status."""

    @responses.activate
    def test_exit_zero_with_feed_failures(self, mock_env):
        responses.add(responses.GET, FEED_URL, body="Server Error", status=500)

        assert main() == 0

    def test_exit_one_without_config(self, mock_env, site_dir):
        (site_dir / 'data' / 'config.json').unlink()

        assert main() == 1

    def test_exit_one_with_corrupt_config(self, mock_env, site_dir):
        (site_dir / 'data' / 'config.json').write_text('{', encoding='utf-8')

        assert main() == 1


class TestBuildStore:
    """Test cases for store selection."""

    def test_local_store_by_default(self, mock_env):
        store = build_store()

        assert isinstance(store, LocalAvailabilityStore)
        assert store.directory == mock_env['AVAILABILITY_DIR']

    @patch('storage.availability_store.boto3')
    def test_s3_store_when_bucket_set(self, mock_boto3, mock_env):
        with patch.dict(os.environ, {'AVAILABILITY_BUCKET': 'suite-site'}):
            store = build_store()

        assert isinstance(store, S3AvailabilityStore)
        assert store.bucket == 'suite-site'
        assert store.record_key('suite-1') == 'availability/suite-1.json'
        mock_boto3.client.assert_called_once_with('s3')


class TestSetupLogging:
    """Test cases for logging setup."""

    def test_setup_logging_default_level(self):
        """Test logging setup with default INFO level."""
        setup_logging()
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_debug_level(self):
        """Test logging setup with DEBUG level."""
        setup_logging('DEBUG')
        assert logging.getLogger().level == logging.DEBUG

    def test_json_formatter_output(self):
        """Test that records are formatted as JSON documents."""
        setup_logging('WARNING')
        formatter = logging.getLogger().handlers[0].formatter
        record = logging.LogRecord(
            'sync.feed_synchronizer', logging.WARNING, __file__, 1,
            'Failed for %s', ('Suite 1',), None
        )

        payload = json.loads(formatter.format(record))

        assert payload['level'] == 'WARNING'
        assert payload['message'] == 'Failed for Suite 1'
        assert payload['logger'] == 'sync.feed_synchronizer'


class TestPrepareSite:
    """Test cases for seeding config and empty records."""

    def test_creates_empty_records_once(self, mock_env, site_dir):
        """Test that empty records are created only where none exist."""
        assert prepare_site() == 2
        assert prepare_site() == 0

        record = json.loads(
            (site_dir / 'public' / 'availability' / 'casa-yahua-suite-2.json')
            .read_text(encoding='utf-8')
        )
        assert record['bookedDates'] == []
        assert 'note' in record

    def test_keeps_configured_urls(self, mock_env, site_dir):
        """Test that seeding leaves existing feed URLs in place."""
        prepare_site()

        config = json.loads((site_dir / 'data' / 'config.json').read_text(encoding='utf-8'))
        assert config['casa-yahua-suite-1'] == {
            'name': 'Casa Yahua - Suite 1', 'icalUrl': FEED_URL
        }
        assert config['casa-yahua-suite-2']['icalUrl'] == ''

    def test_missing_config_is_created(self, mock_env, site_dir):
        """Test that a missing config file is replaced by an empty one."""
        (site_dir / 'data' / 'config.json').unlink()

        assert prepare_main() == 0
        assert json.loads((site_dir / 'data' / 'config.json').read_text(encoding='utf-8')) == {}
