"""
Utility Module for the Postal Manifest System.

This module provides common utilities used across all other modules:
    - Logging configuration
    - Exception hierarchy and error codes
    - Time, id and file helpers
"""

from .logger import setup_logger, get_logger, set_level
from .helpers import (
    ensure_directory,
    generate_short_id,
    parse_timestamp,
    safe_filename,
    to_iso,
    utc_now,
)

__all__ = [
    'setup_logger',
    'get_logger',
    'set_level',
    'ensure_directory',
    'generate_short_id',
    'parse_timestamp',
    'safe_filename',
    'to_iso',
    'utc_now',
]
