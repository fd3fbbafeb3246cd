"""
Excel Exporter Module.

This module provides XLSX output for finalized manifests using openpyxl.

Features:
    - Formatted headers, same columns as the CSV manifest
    - Rows with a routing warning highlighted
    - Auto-column width
    - Summary sheet (operator, time range, counts)

Author: ML Engineering Team
"""

from pathlib import Path
from typing import Optional, Union

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from config import get_config
from postal_manifest.utils.logger import get_logger
from postal_manifest.utils.helpers import ensure_directory, safe_filename
from postal_manifest.utils.exceptions import ExcelExportError
from postal_manifest.session.models import Manifest
from .csv_exporter import ManifestCsvExporter

logger = get_logger(__name__)


class ManifestExcelExporter:
    """
    Exports manifests to Excel format.

    Attributes:
        output_dir: Directory for output files
        sheet_name: Name of the unit sheet
        filename_pattern: Pattern with a ``{manifest_id}`` placeholder

    Example:
        >>> exporter = ManifestExcelExporter()
        >>> filepath = exporter.export(manifest)
    """

    COLUMNS = ManifestCsvExporter.COLUMNS

    HEADER_FILL = PatternFill(start_color="002855", end_color="002855", fill_type="solid")
    WARNING_FILL = PatternFill(start_color="FDE2E1", end_color="FDE2E1", fill_type="solid")
    SUMMARY_FILL = PatternFill(start_color="548235", end_color="548235", fill_type="solid")

    def __init__(self, output_dir: Optional[Union[str, Path]] = None) -> None:
        self.output_dir = Path(output_dir or get_config("paths.output_dir", "outputs"))
        self.sheet_name = get_config("output.excel.sheet_name", "Manifest")
        self.filename_pattern = get_config(
            "output.excel.filename_pattern",
            "MANIFEST_{manifest_id}.xlsx"
        )

        logger.debug(f"ManifestExcelExporter initialized (output_dir: {self.output_dir})")

    def export(
        self,
        manifest: Manifest,
        filename: Optional[str] = None,
        output_dir: Optional[Union[str, Path]] = None
    ) -> str:
        """
        Export a manifest to an Excel file.

        Args:
            manifest: Finalized manifest.
            filename: Output filename. If None, derived from the manifest id.
            output_dir: Output directory. If None, uses configured dir.

        Returns:
            Path to the created Excel file.

        Raises:
            ExcelExportError: If export fails.
        """
        if filename is None:
            filename = safe_filename(self.filename_pattern.format(manifest_id=manifest.id.upper()))
        filepath = Path(output_dir or self.output_dir) / filename

        try:
            ensure_directory(filepath.parent)
            workbook = openpyxl.Workbook()
            self._create_unit_sheet(workbook, manifest)
            self._create_summary_sheet(workbook, manifest)
            workbook.save(filepath)
        except Exception as e:
            logger.error(f"Excel export failed: {e}")
            raise ExcelExportError(str(filepath), str(e))

        logger.info(f"Excel manifest saved: {filepath} ({manifest.item_count} records)")
        return str(filepath)

    def _create_unit_sheet(self, workbook, manifest: Manifest) -> None:
        sheet = workbook.active
        sheet.title = self.sheet_name

        header_font = Font(bold=True, color="FFFFFF")
        thin = Side(style='thin')
        border = Border(left=thin, right=thin, top=thin, bottom=thin)

        for col, (header_name, _) in enumerate(self.COLUMNS, 1):
            cell = sheet.cell(row=1, column=col, value=header_name)
            cell.font = header_font
            cell.fill = self.HEADER_FILL
            cell.alignment = Alignment(horizontal="center", vertical="center")
            cell.border = border

        for row_num, item in enumerate(manifest.items, 2):
            for col, (_, attr) in enumerate(self.COLUMNS, 1):
                cell = sheet.cell(row=row_num, column=col, value=getattr(item, attr) or '')
                cell.border = border
                if item.warning:
                    cell.fill = self.WARNING_FILL

        for col, (header_name, _) in enumerate(self.COLUMNS, 1):
            max_length = len(header_name)
            for row in range(2, manifest.item_count + 2):
                value = sheet.cell(row=row, column=col).value
                if value:
                    max_length = max(max_length, len(str(value)))
            sheet.column_dimensions[get_column_letter(col)].width = min(max_length + 2, 60)

        sheet.freeze_panes = 'A2'

    def _create_summary_sheet(self, workbook, manifest: Manifest) -> None:
        sheet = workbook.create_sheet(title="Summary")

        rows = [
            ('Manifest ID', manifest.id),
            ('Operator', manifest.operator_name),
            ('Start', manifest.start_timestamp),
            ('End', manifest.end_timestamp),
            ('Units', manifest.item_count),
            ('Routing Warnings', manifest.warning_count),
            ('Verified', manifest.item_count - manifest.warning_count),
        ]
        for row_num, (label, value) in enumerate(rows, 1):
            label_cell = sheet.cell(row=row_num, column=1, value=label)
            label_cell.font = Font(bold=True, color="FFFFFF")
            label_cell.fill = self.SUMMARY_FILL
            sheet.cell(row=row_num, column=2, value=value)

        sheet.column_dimensions['A'].width = 20
        sheet.column_dimensions['B'].width = 36
