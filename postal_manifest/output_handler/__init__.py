"""
Output Handler Module for the Postal Manifest System.

This module provides functionality for:
    - CSV manifest export (UTF-8 with BOM)
    - Excel manifest export
    - Manifest archive (SQLite history)
    - Working-session snapshot for resume

Author: ML Engineering Team
"""

from .archive import ManifestArchive
from .csv_exporter import ManifestCsvExporter, read_manifest_csv
from .excel_exporter import ManifestExcelExporter
from .handler import OutputHandler
from .session_store import WorkingSessionStore

__all__ = [
    'ManifestArchive',
    'ManifestCsvExporter',
    'ManifestExcelExporter',
    'OutputHandler',
    'WorkingSessionStore',
    'read_manifest_csv',
]
