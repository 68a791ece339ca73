"""Loading and seeding of the booking feed configuration file."""
import json
import logging
import os
from typing import Iterable, Tuple

from processor.models import BookingFeedConfig, FeedSuite

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when the feed configuration is missing or unreadable."""


def parse_feed_config(payload: dict) -> BookingFeedConfig:
    """
    Build a BookingFeedConfig from a decoded config document.

    Entries that are not objects are ignored; a non-string icalUrl is
    treated as empty.

    Args:
        payload: Mapping of slug to {"name": ..., "icalUrl": ...}

    Returns:
        BookingFeedConfig
    """
    suites = {}
    for slug, entry in payload.items():
        if not isinstance(entry, dict):
            logger.warning(f"Ignoring config entry '{slug}': not an object")
            continue
        ical_url = entry.get('icalUrl')
        name = entry.get('name')
        suites[slug] = FeedSuite(
            slug=slug,
            name=name if isinstance(name, str) and name else slug,
            ical_url=ical_url.strip() if isinstance(ical_url, str) else ''
        )
    return BookingFeedConfig(suites=suites)


def load_feed_config(path: str) -> BookingFeedConfig:
    """
    Load the feed configuration file.

    Args:
        path: Path to the JSON config file

    Returns:
        BookingFeedConfig

    Raises:
        ConfigurationError: If the file is missing, unreadable or not a
            JSON object
    """
    if not os.path.exists(path):
        raise ConfigurationError(f"Missing feed configuration: {path}")

    try:
        with open(path, encoding='utf-8') as handle:
            payload = json.load(handle)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Unreadable feed configuration {path}: {e}") from e

    if not isinstance(payload, dict):
        raise ConfigurationError(f"Feed configuration {path} is not a JSON object")

    return parse_feed_config(payload)


def load_feed_config_or_empty(path: str) -> BookingFeedConfig:
    """
    Load the feed configuration, falling back to an empty one.

    Used when (re)seeding the config, where an unreadable file is
    replaced rather than treated as fatal.
    """
    try:
        return load_feed_config(path)
    except ConfigurationError as e:
        logger.warning(f"Starting from empty feed configuration: {e}")
        return BookingFeedConfig()


def seed_feed_config(path: str, suites: Iterable[Tuple[str, str]]) -> BookingFeedConfig:
    """
    Make sure every known suite has a config entry.

    New suites get an empty icalUrl, names of existing entries are
    refreshed, and existing URLs are kept.

    Args:
        path: Path to the JSON config file
        suites: Iterable of (slug, display name) pairs

    Returns:
        The written BookingFeedConfig
    """
    config = load_feed_config_or_empty(path)

    for slug, name in suites:
        existing = config.suites.get(slug)
        config.suites[slug] = FeedSuite(
            slug=slug,
            name=name,
            ical_url=existing.ical_url if existing else ''
        )

    payload = {
        suite.slug: {'name': suite.name, 'icalUrl': suite.ical_url}
        for suite in config
    }
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as handle:
        json.dump(payload, handle, indent=2)

    logger.info(f"Seeded feed configuration with {len(config)} suites")
    return config
