"""
Postal Manifest System - Core Package.

Scans parcel labels through an external recognition service, checks each
PIN against its address, and collects the accepted units into a dispatch
manifest exported as CSV (optionally XLSX) and archived in SQLite.

Modules:
    - reference: PIN reference dataset and region fallback table
    - reconciliation: PIN/address consistency checks
    - recognition: recognition service client, retry wrapper, extraction adapter
    - input_handler: image preparation
    - session: session aggregator and capture controller
    - output_handler: CSV/Excel export, archive, working-session store

Architecture:
    Image → Recognition (retried) → Reconciliation → Session → Manifest
                                                                ↓
                                                   CSV / XLSX + Archive
"""

__version__ = "1.0.0"
__author__ = "ML Engineering Team"

__all__ = [
    'reference',
    'reconciliation',
    'recognition',
    'input_handler',
    'session',
    'output_handler',
    'utils'
]
