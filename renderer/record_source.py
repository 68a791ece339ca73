"""Sources from which the calendar renderer loads availability records."""
import logging

import requests

from processor.models import AvailabilityRecord
from storage.availability_store import RecordUnavailableError, deserialize_record

logger = logging.getLogger(__name__)


def normalize_base_path(base_path: str) -> str:
    """Return base_path with exactly one leading and trailing slash."""
    if not base_path or base_path == '/':
        return '/'
    base_path = base_path.strip()
    if not base_path.startswith('/'):
        base_path = '/' + base_path
    if not base_path.endswith('/'):
        base_path += '/'
    return base_path


class StoreRecordSource:
    """Reads records straight from an availability store."""

    def __init__(self, store):
        self.store = store

    def load(self, slug: str) -> AvailabilityRecord:
        return self.store.read_record(slug)


class HttpRecordSource:
    """Reads records published under <origin><base_path>availability/."""

    def __init__(self, origin: str, base_path: str = '/', timeout: int = 10):
        """
        Initialize the HTTP source.

        Args:
            origin: Site origin, e.g. "https://example.com"
            base_path: Path prefix the site is served under (default: "/")
            timeout: HTTP request timeout in seconds (default: 10)
        """
        self.origin = origin.rstrip('/')
        self.base_path = normalize_base_path(base_path)
        self.timeout = timeout

    def record_url(self, slug: str) -> str:
        return f"{self.origin}{self.base_path}availability/{slug}.json"

    def load(self, slug: str) -> AvailabilityRecord:
        """
        GET the suite's availability document.

        Raises:
            RecordUnavailableError: On transport failure, a non-2xx status
                or a malformed document
        """
        url = self.record_url(slug)
        try:
            response = requests.get(
                url,
                headers={'Cache-Control': 'no-store'},
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise RecordUnavailableError(f"Cannot load {url}: {e}") from e
        return deserialize_record(response.text)
