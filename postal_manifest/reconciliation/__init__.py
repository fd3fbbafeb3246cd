"""
Reconciliation Module for the Postal Manifest System.

This module provides:
    - PIN cleanup and 6-digit validation
    - Address vs. PIN consistency checks (misrouting warnings)
"""

from .engine import PostalReconciler, describe_region
from .validators import PincodeValidator, clean_pincode, is_valid_pincode

__all__ = [
    'PostalReconciler',
    'PincodeValidator',
    'clean_pincode',
    'describe_region',
    'is_valid_pincode',
]
