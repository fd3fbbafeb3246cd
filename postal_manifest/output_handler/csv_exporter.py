"""
CSV Exporter Module.

Writes a manifest as a spreadsheet-friendly CSV file:
    - UTF-8 with a leading byte-order mark (Excel detects the encoding)
    - comma-separated, ``\\n`` line endings
    - every data field double-quoted, embedded quotes doubled
    - one row per unit in manifest order
    - status column: the routing warning, or VERIFIED

Author: ML Engineering Team
"""

import csv
import io
from pathlib import Path
from typing import Dict, List, Optional, Union

from config import get_config
from postal_manifest.utils.logger import get_logger
from postal_manifest.utils.helpers import ensure_directory, safe_filename
from postal_manifest.utils.exceptions import CsvExportError
from postal_manifest.session.models import Manifest

logger = get_logger(__name__)

ENCODING = "utf-8-sig"


class ManifestCsvExporter:
    """
    Exports manifests to CSV.

    Attributes:
        output_dir: Directory for output files.
        filename_pattern: Pattern with a ``{manifest_id}`` placeholder.

    Example:
        >>> exporter = ManifestCsvExporter()
        >>> path = exporter.export(manifest)
        >>> print(path)
        outputs/MANIFEST_B812345.csv
    """

    # (header, ScanItem attribute)
    COLUMNS = [
        ('Unit ID/UID', 'id'),
        ('Tracking ID', 'tracking_id'),
        ('Recipient Name', 'recipient_name'),
        ('Full Address', 'address'),
        ('Timestamp', 'timestamp'),
        ('Routing/Sort Status', 'status'),
    ]

    HEADERS = [header for header, _ in COLUMNS]

    def __init__(self, output_dir: Optional[Union[str, Path]] = None) -> None:
        self.output_dir = Path(output_dir or get_config("paths.output_dir", "outputs"))
        self.filename_pattern = get_config(
            "output.csv.filename_pattern",
            "MANIFEST_{manifest_id}.csv"
        )

    def filename_for(self, manifest: Manifest) -> str:
        return safe_filename(self.filename_pattern.format(manifest_id=manifest.id.upper()))

    def export(
        self,
        manifest: Manifest,
        filename: Optional[str] = None,
        output_dir: Optional[Union[str, Path]] = None
    ) -> str:
        """
        Write one manifest to a CSV file.

        Args:
            manifest: Finalized manifest.
            filename: Output filename. If None, derived from the manifest id.
            output_dir: Output directory. If None, uses configured dir.

        Returns:
            Path to the created CSV file.

        Raises:
            CsvExportError: If the file cannot be written.
        """
        filepath = Path(output_dir or self.output_dir) / (filename or self.filename_for(manifest))

        try:
            ensure_directory(filepath.parent)
            with open(filepath, 'w', encoding=ENCODING, newline='') as f:
                f.write(self.render(manifest))
        except OSError as e:
            logger.error(f"CSV export failed: {e}")
            raise CsvExportError(str(filepath), str(e))

        logger.info(f"CSV manifest saved: {filepath} ({manifest.item_count} records)")
        return str(filepath)

    def render(self, manifest: Manifest) -> str:
        """
        CSV text for a manifest, without the byte-order mark.

        The header row is written bare; data rows are fully quoted.
        """
        buffer = io.StringIO()
        csv.writer(buffer, lineterminator='\n').writerow(self.HEADERS)

        rows = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
        for item in manifest.items:
            rows.writerow([str(getattr(item, attr) or '') for _, attr in self.COLUMNS])

        return buffer.getvalue()


def read_manifest_csv(path: Union[str, Path]) -> List[Dict[str, str]]:
    """
    Parse an exported manifest back into row dictionaries keyed by header.

    Raises:
        CsvExportError: If the file is missing or its header does not match.
    """
    try:
        with open(path, 'r', encoding=ENCODING, newline='') as f:
            reader = csv.DictReader(f)
            if reader.fieldnames != ManifestCsvExporter.HEADERS:
                raise CsvExportError(str(path), f"unexpected header: {reader.fieldnames}")
            return [dict(row) for row in reader]
    except OSError as e:
        raise CsvExportError(str(path), str(e))
