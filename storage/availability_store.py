"""Storage backends for per-suite availability records."""
import json
import logging
import os
import tempfile
from datetime import date
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from processor.models import AvailabilityRecord

logger = logging.getLogger(__name__)

EMPTY_RECORD_NOTE = (
    "Add iCal URL in data/config.json and run the calendar sync"
)


class RecordUnavailableError(Exception):
    """Raised when an availability record is missing or malformed."""


def serialize_record(record: AvailabilityRecord) -> str:
    """
    Serialize a record to its JSON document.

    Output is deterministic: dates are sorted ascending.

    Args:
        record: AvailabilityRecord to serialize

    Returns:
        JSON text
    """
    payload = {'bookedDates': record.sorted_iso_dates()}
    if record.note:
        payload['note'] = record.note
    return json.dumps(payload, indent=2)


def deserialize_record(text: str) -> AvailabilityRecord:
    """
    Parse a record document.

    Entries of bookedDates that are not ISO dates are ignored.

    Args:
        text: JSON text

    Returns:
        AvailabilityRecord

    Raises:
        RecordUnavailableError: If the document is not a valid record
    """
    try:
        payload = json.loads(text)
    except ValueError as e:
        raise RecordUnavailableError(f"Invalid availability JSON: {e}") from e

    if not isinstance(payload, dict):
        raise RecordUnavailableError("Availability document is not an object")

    raw_dates = payload.get('bookedDates')
    if not isinstance(raw_dates, list):
        raise RecordUnavailableError("Availability document has no bookedDates list")

    booked = set()
    for value in raw_dates:
        if not isinstance(value, str):
            continue
        try:
            booked.add(date.fromisoformat(value))
        except ValueError:
            continue

    note = payload.get('note')
    return AvailabilityRecord(
        booked_dates=booked,
        note=note if isinstance(note, str) else None
    )


class LocalAvailabilityStore:
    """Availability records stored as <slug>.json files in a directory."""

    def __init__(self, directory: str):
        """
        Initialize the store.

        Args:
            directory: Directory holding the record files
        """
        self.directory = directory

    def record_path(self, slug: str) -> str:
        return os.path.join(self.directory, f"{slug}.json")

    def write_record(self, slug: str, record: AvailabilityRecord) -> str:
        """
        Replace a suite's record atomically.

        The document is written to a temporary file in the same directory
        and renamed over the target, so readers see either the old or the
        new complete document.

        Args:
            slug: Suite identifier
            record: Record to persist

        Returns:
            Path of the written record
        """
        os.makedirs(self.directory, exist_ok=True)
        path = self.record_path(slug)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.directory, prefix=f".{slug}.", suffix='.tmp'
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as handle:
                handle.write(serialize_record(record))
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

        logger.debug(f"Wrote availability record {path}")
        return path

    def read_record(self, slug: str) -> AvailabilityRecord:
        """
        Load a suite's record.

        Raises:
            RecordUnavailableError: If the file is missing or malformed
        """
        path = self.record_path(slug)
        try:
            with open(path, encoding='utf-8') as handle:
                text = handle.read()
        except (OSError, UnicodeDecodeError) as e:
            raise RecordUnavailableError(f"Cannot read {path}: {e}") from e
        return deserialize_record(text)

    def ensure_empty_record(self, slug: str,
                            note: Optional[str] = EMPTY_RECORD_NOTE) -> bool:
        """
        Create an empty record if none exists yet.

        Returns:
            True if a record was created, False if one already existed
        """
        if os.path.exists(self.record_path(slug)):
            return False
        self.write_record(slug, AvailabilityRecord(note=note))
        return True


class S3AvailabilityStore:
    """Availability records stored as objects in an S3 bucket."""

    def __init__(self, bucket: str, prefix: str = 'availability/'):
        """
        Initialize S3 client and bucket reference.

        Args:
            bucket: Name of the S3 bucket
            prefix: Key prefix for record objects
        """
        self.bucket = bucket
        self.prefix = prefix
        self.s3 = boto3.client('s3')
        logger.info(f"Initialized S3AvailabilityStore for bucket: {bucket}")

    def record_key(self, slug: str) -> str:
        return f"{self.prefix}{slug}.json"

    def write_record(self, slug: str, record: AvailabilityRecord) -> str:
        """
        Replace a suite's record with a single PutObject call.

        Returns:
            Object key of the written record
        """
        key = self.record_key(slug)
        self.s3.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=serialize_record(record).encode('utf-8'),
            ContentType='application/json',
            CacheControl='no-store'
        )
        logger.debug(f"Wrote availability record s3://{self.bucket}/{key}")
        return key

    def read_record(self, slug: str) -> AvailabilityRecord:
        """
        Load a suite's record.

        Raises:
            RecordUnavailableError: If the object is missing or malformed
        """
        key = self.record_key(slug)
        try:
            response = self.s3.get_object(Bucket=self.bucket, Key=key)
            text = response['Body'].read().decode('utf-8')
        except (ClientError, BotoCoreError, UnicodeDecodeError) as e:
            raise RecordUnavailableError(
                f"Cannot read s3://{self.bucket}/{key}: {e}"
            ) from e
        return deserialize_record(text)

    def ensure_empty_record(self, slug: str,
                            note: Optional[str] = EMPTY_RECORD_NOTE) -> bool:
        """
        Create an empty record if none exists yet.

        Returns:
            True if a record was created, False if one already existed
        """
        try:
            self.s3.head_object(Bucket=self.bucket, Key=self.record_key(slug))
            return False
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') not in ('404', 'NoSuchKey', 'NotFound'):
                raise
        self.write_record(slug, AvailabilityRecord(note=note))
        return True
