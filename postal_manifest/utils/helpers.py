"""
Helper Utilities Module.

This module provides common utility functions used throughout the
postal manifest system. Functions here should be generic and reusable
across different modules.

Functions:
    - ensure_directory: Create directory if it doesn't exist
    - utc_now: Current time as an aware UTC datetime
    - to_iso: Format a datetime as ISO 8601
    - parse_timestamp: Parse an ISO 8601 timestamp
    - generate_short_id: Short upper-case alphanumeric identifier
    - safe_filename: Sanitize filenames for filesystem
"""

import re
import secrets
import string
from datetime import datetime, timezone
from pathlib import Path
from typing import Union

from dateutil import parser as date_parser

SHORT_ID_ALPHABET = string.ascii_uppercase + string.digits


def ensure_directory(path: Union[str, Path]) -> Path:
    """Create ``path`` and its parents if missing; return it as a Path."""
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(moment: datetime) -> str:
    """
    Format a datetime as ISO 8601 with millisecond precision.

    Naive datetimes are treated as UTC.

    Example:
        >>> to_iso(datetime(2026, 1, 21, 10, 2, tzinfo=timezone.utc))
        '2026-01-21T10:02:00.000+00:00'
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.isoformat(timespec="milliseconds")


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO 8601 timestamp into an aware datetime.

    Accepts the trailing ``Z`` form as well as explicit offsets; naive
    values are treated as UTC.

    Raises:
        ValueError: If the value is not a valid ISO 8601 timestamp.
    """
    parsed = date_parser.isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def generate_short_id(length: int = 6) -> str:
    """
    Generate a short upper-case alphanumeric identifier.

    Example:
        >>> generate_short_id()
        'K3Z9QD'
    """
    return ''.join(secrets.choice(SHORT_ID_ALPHABET) for _ in range(length))


def safe_filename(filename: str, replacement: str = "_") -> str:
    """
    Replace characters that are unsafe in file names on common filesystems.

    Leading and trailing dots or spaces are dropped; an empty result
    becomes ``"unnamed"``.

    Example:
        >>> safe_filename("MANIFEST:B123/456.csv")
        'MANIFEST_B123_456.csv'
    """
    invalid_chars = r'[<>:"/\\|?*\x00-\x1f]'
    sanitized = re.sub(invalid_chars, replacement, filename)
    sanitized = sanitized.strip('. ')

    if not sanitized:
        sanitized = "unnamed"

    return sanitized
