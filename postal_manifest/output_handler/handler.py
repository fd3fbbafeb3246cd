"""
Main Output Handler Module.

This module provides the OutputHandler class: the export collaborator the
session aggregator calls at finalize. It always writes the CSV manifest and
optionally an XLSX copy.

Author: ML Engineering Team
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

from config import get_config
from postal_manifest.utils.logger import get_logger
from postal_manifest.utils.exceptions import ExportFailureError, OutputError
from postal_manifest.session.models import Manifest
from .csv_exporter import ManifestCsvExporter
from .excel_exporter import ManifestExcelExporter

logger = get_logger(__name__)


class OutputHandler:
    """
    Unified output handler for finalized manifests.

    Attributes:
        excel_enabled: Whether an XLSX copy is written next to the CSV
        output_dir: Directory for output files
        csv_exporter: ManifestCsvExporter instance
        excel_exporter: ManifestExcelExporter instance (created lazily)

    Example:
        >>> handler = OutputHandler(excel_enabled=True)
        >>> handler.export(manifest)
        {'csv_path': 'outputs/MANIFEST_B812345.csv', 'excel_path': 'outputs/MANIFEST_B812345.xlsx'}
    """

    def __init__(
        self,
        excel_enabled: Optional[bool] = None,
        output_dir: Optional[Union[str, Path]] = None
    ) -> None:
        self.excel_enabled = excel_enabled if excel_enabled is not None else \
            get_config("output.excel.enabled", False)
        self.output_dir = output_dir

        self.csv_exporter = ManifestCsvExporter(output_dir)
        self._excel_exporter = None

        logger.debug(f"OutputHandler initialized (excel={self.excel_enabled})")

    @property
    def excel_exporter(self) -> ManifestExcelExporter:
        """Get or create the Excel exporter."""
        if self._excel_exporter is None:
            self._excel_exporter = ManifestExcelExporter(self.output_dir)
        return self._excel_exporter

    def export(self, manifest: Manifest) -> Dict[str, Any]:
        """
        Write all enabled outputs for a manifest.

        Returns:
            Dictionary with output details:
            {
                'csv_path': 'path/to/file.csv',
                'excel_path': 'path/to/file.xlsx' or None
            }

        Raises:
            ExportFailureError: If any enabled output fails.
        """
        output_info = {
            'csv_path': None,
            'excel_path': None
        }

        try:
            output_info['csv_path'] = self.csv_exporter.export(manifest)
            if self.excel_enabled:
                output_info['excel_path'] = self.excel_exporter.export(manifest)
        except OutputError as e:
            self.discard(output_info)
            raise ExportFailureError(manifest.id, str(e)) from e

        return output_info

    def discard(self, output_info: Dict[str, Any]) -> None:
        """
        Delete the files of an export that must not survive.

        Used when a manifest could not be archived, so no file is left
        behind for a session that was never finalized.
        """
        for key in ('csv_path', 'excel_path'):
            path = output_info.get(key)
            if not path:
                continue
            try:
                Path(path).unlink(missing_ok=True)
                logger.info(f"Removed unarchived export {path}")
            except OSError as e:
                logger.error(f"Could not remove {path}: {e}")
