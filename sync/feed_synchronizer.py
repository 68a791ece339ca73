"""Synchronization of suite iCal feeds into availability records."""
import logging

from processor.ics_parser import IcsParser, expand_booked_dates
from processor.models import (
    AvailabilityRecord,
    BookingFeedConfig,
    FeedSuite,
    SuiteSyncOutcome,
    SyncResult,
)

logger = logging.getLogger(__name__)

SYNCED = 'synced'
SKIPPED = 'skipped'
FAILED = 'failed'


class FeedSynchronizer:
    """Fetches, parses and persists availability for each configured suite."""

    def __init__(self, client, store, parser: IcsParser = None):
        """
        Initialize the synchronizer.

        Args:
            client: Feed client exposing fetch(url) -> str
            store: Availability store exposing write_record(slug, record)
            parser: Feed parser (default: IcsParser)
        """
        self.client = client
        self.store = store
        self.parser = parser or IcsParser()

    def synchronize(self, config: BookingFeedConfig) -> SyncResult:
        """
        Update the availability record of every suite with a feed URL.

        Suites are processed one at a time. A failing suite keeps its
        previous record and does not stop the others.

        Args:
            config: Booking feed configuration

        Returns:
            SyncResult with per-suite outcomes
        """
        if len(config) == 0:
            logger.info("No suites found in feed configuration")

        outcomes = [self.sync_suite(suite) for suite in config]

        result = SyncResult(
            synced=sum(1 for o in outcomes if o.status == SYNCED),
            skipped=sum(1 for o in outcomes if o.status == SKIPPED),
            failed=sum(1 for o in outcomes if o.status == FAILED),
            outcomes=outcomes
        )
        logger.info(
            f"Sync complete: {result.synced} synced, {result.skipped} skipped, "
            f"{result.failed} failed"
        )
        return result

    def sync_suite(self, suite: FeedSuite) -> SuiteSyncOutcome:
        """
        Fetch, parse and persist a single suite's feed.

        Args:
            suite: Suite configuration entry

        Returns:
            SuiteSyncOutcome for the suite
        """
        if not suite.ical_url:
            logger.info(f"Skipping {suite.name} ({suite.slug}): no iCal URL set")
            return SuiteSyncOutcome(slug=suite.slug, name=suite.name, status=SKIPPED)

        try:
            logger.info(f"Fetching iCal for {suite.name}")
            ics_text = self.client.fetch(suite.ical_url)
            booked_dates = expand_booked_dates(self.parser.parse(ics_text))
            self.store.write_record(
                suite.slug, AvailabilityRecord(booked_dates=booked_dates)
            )
        except Exception as e:
            logger.warning(
                f"Failed for {suite.name}: {e}",
                extra={'suite': suite.slug, 'error_type': type(e).__name__}
            )
            return SuiteSyncOutcome(
                slug=suite.slug,
                name=suite.name,
                status=FAILED,
                error=str(e)
            )

        logger.info(
            f"Saved availability for {suite.slug} ({len(booked_dates)} booked days)"
        )
        return SuiteSyncOutcome(
            slug=suite.slug,
            name=suite.name,
            status=SYNCED,
            booked_days=len(booked_dates)
        )
