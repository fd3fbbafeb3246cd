"""
Reference Data Module for the Postal Manifest System.

Read-only PIN code tables used by the reconciliation engine.
"""

from .dataset import (
    DIGIT_REGIONS,
    MILITARY_DIGITS,
    ReferenceDataset,
    ReferenceEntry,
    Region,
    load_configured_dataset,
    region_for_digit,
)

__all__ = [
    'DIGIT_REGIONS',
    'MILITARY_DIGITS',
    'ReferenceDataset',
    'ReferenceEntry',
    'Region',
    'load_configured_dataset',
    'region_for_digit',
]
