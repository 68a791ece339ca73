"""HTTP client for downloading booking iCal feeds."""
import logging
import time
from urllib.parse import urljoin

import requests

logger = logging.getLogger(__name__)


class FeedFetchError(requests.RequestException):
    """Raised when a feed cannot be retrieved under the fetch policy."""


class ICalFeedClient:
    """Client that downloads a single iCal feed per call."""

    MAX_REDIRECT_HOPS = 1

    def __init__(self, timeout: int = 30, max_retries: int = 3,
                 retry_delay: float = 1):
        """
        Initialize the feed client.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
            max_retries: Attempts per URL for transient failures (default: 3)
            retry_delay: Base backoff delay in seconds (default: 1)
        """
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.session = requests.Session()

    def fetch(self, url: str) -> str:
        """
        Fetch feed text, following at most one redirect.

        Args:
            url: Feed URL

        Returns:
            Feed body as text

        Raises:
            FeedFetchError: On a non-2xx status or a second redirect
            requests.RequestException: If all retry attempts fail
        """
        hops = 0
        current_url = url

        while True:
            response = self._get_with_retry(current_url)

            if response.is_redirect:
                location = response.headers.get('Location')
                if hops >= self.MAX_REDIRECT_HOPS:
                    raise FeedFetchError(
                        f"Too many redirects fetching feed (last Location: {location})"
                    )
                hops += 1
                current_url = urljoin(current_url, location)
                logger.info(f"Following redirect to {current_url}")
                continue

            if not 200 <= response.status_code < 300:
                raise FeedFetchError(
                    f"Failed to fetch feed: HTTP {response.status_code}"
                )

            if response.encoding is None:
                response.encoding = 'utf-8'
            return response.text

    def _get_with_retry(self, url: str) -> requests.Response:
        """
        Issue a GET with exponential backoff on transient failures.

        Connection errors, timeouts and 5xx statuses are retried; any
        other response is returned to the caller as-is.

        Args:
            url: URL to request

        Returns:
            Response object (redirects are not followed)

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        for attempt in range(self.max_retries):
            try:
                logger.debug(
                    f"Fetching feed (attempt {attempt + 1}/{self.max_retries})"
                )
                response = self.session.get(
                    url,
                    timeout=self.timeout,
                    allow_redirects=False
                )
                if response.status_code >= 500:
                    raise FeedFetchError(
                        f"Failed to fetch feed: HTTP {response.status_code}"
                    )
                return response

            except (requests.ConnectionError, requests.Timeout, FeedFetchError) as e:
                if attempt < self.max_retries - 1:
                    delay = self.retry_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.max_retries} attempts failed. Last error: {e}"
                    )
                    raise
