"""
Manifest Archive Module.

Persistent history of finalized manifests, stored in SQLite.

Tables:
    manifests       one row per finalized session
    manifest_items  one row per unit, with its position in manifest order

Manifests are returned most recent first (by archive insertion order).

Author: ML Engineering Team
"""

import sqlite3
from contextlib import closing
from datetime import date
from pathlib import Path
from typing import List, Optional, Union

from config import get_config
from postal_manifest.utils.logger import get_logger
from postal_manifest.utils.helpers import ensure_directory, to_iso, utc_now
from postal_manifest.utils.exceptions import ArchiveError
from postal_manifest.session.models import Manifest, ScanItem

logger = get_logger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS manifests (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    manifest_id TEXT NOT NULL UNIQUE,
    start_timestamp TEXT NOT NULL,
    end_timestamp TEXT NOT NULL,
    operator_name TEXT,
    item_count INTEGER NOT NULL,
    warning_count INTEGER NOT NULL,
    archived_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS manifest_items (
    manifest_id TEXT NOT NULL REFERENCES manifests (manifest_id),
    position INTEGER NOT NULL,
    unit_id TEXT NOT NULL,
    tracking_id TEXT,
    recipient_name TEXT,
    address TEXT,
    timestamp TEXT NOT NULL,
    warning TEXT,
    PRIMARY KEY (manifest_id, position)
);
"""


class ManifestArchive:
    """
    SQLite-backed history of finalized manifests.

    Attributes:
        db_path: Path to the SQLite database file.

    Example:
        >>> archive = ManifestArchive()
        >>> archive.append(manifest)
        >>> [m.id for m in archive.list_manifests(limit=5)]
        ['B812345', 'B790122']
    """

    def __init__(self, db_path: Optional[Union[str, Path]] = None) -> None:
        if db_path:
            self.db_path = Path(db_path)
        else:
            self.db_path = Path(get_config("paths.archive_db", "outputs/manifest_archive.db"))

        ensure_directory(self.db_path.parent)
        self._create_tables()

        logger.debug(f"ManifestArchive initialized (db: {self.db_path})")

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _create_tables(self) -> None:
        try:
            with closing(self._connect()) as conn:
                conn.executescript(SCHEMA)
                conn.commit()
        except sqlite3.Error as e:
            raise ArchiveError("create tables", str(e))

    def append(self, manifest: Manifest) -> None:
        """
        Archive a finalized manifest with all its items.

        Raises:
            ArchiveError: On duplicate manifest id or any database failure.
                Nothing is written in that case.
        """
        try:
            with closing(self._connect()) as conn:
                with conn:
                    conn.execute(
                        """
                        INSERT INTO manifests (
                            manifest_id, start_timestamp, end_timestamp, operator_name,
                            item_count, warning_count, archived_at
                        ) VALUES (?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            manifest.id,
                            manifest.start_timestamp,
                            manifest.end_timestamp,
                            manifest.operator_name,
                            manifest.item_count,
                            manifest.warning_count,
                            to_iso(utc_now()),
                        ),
                    )
                    conn.executemany(
                        """
                        INSERT INTO manifest_items (
                            manifest_id, position, unit_id, tracking_id,
                            recipient_name, address, timestamp, warning
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        [
                            (
                                manifest.id, position, item.id, item.tracking_id,
                                item.recipient_name, item.address, item.timestamp, item.warning,
                            )
                            for position, item in enumerate(manifest.items)
                        ],
                    )
        except sqlite3.IntegrityError as e:
            raise ArchiveError("append", f"manifest {manifest.id} already archived: {e}")
        except sqlite3.Error as e:
            raise ArchiveError("append", str(e))

        logger.info(f"Archived manifest {manifest.id} ({manifest.item_count} units)")

    def list_manifests(self, limit: Optional[int] = None) -> List[Manifest]:
        """Archived manifests, most recent first."""
        query = "SELECT * FROM manifests ORDER BY seq DESC"
        params: tuple = ()
        if limit:
            query += " LIMIT ?"
            params = (int(limit),)

        try:
            with closing(self._connect()) as conn:
                rows = conn.execute(query, params).fetchall()
                return [self._load_manifest(conn, row) for row in rows]
        except sqlite3.Error as e:
            raise ArchiveError("list", str(e))

    def get(self, manifest_id: str) -> Optional[Manifest]:
        """Archived manifest by id, or None."""
        try:
            with closing(self._connect()) as conn:
                row = conn.execute(
                    "SELECT * FROM manifests WHERE manifest_id = ?", (manifest_id,)
                ).fetchone()
                return self._load_manifest(conn, row) if row else None
        except sqlite3.Error as e:
            raise ArchiveError("get", str(e))

    def count(self) -> int:
        try:
            with closing(self._connect()) as conn:
                return conn.execute("SELECT COUNT(*) FROM manifests").fetchone()[0]
        except sqlite3.Error as e:
            raise ArchiveError("count", str(e))

    def units_on(self, day: date) -> int:
        """
        Units in manifests whose session started on ``day`` (UTC).

        Timestamps are stored as UTC ISO strings, so the date is their
        first ten characters.
        """
        try:
            with closing(self._connect()) as conn:
                row = conn.execute(
                    "SELECT COALESCE(SUM(item_count), 0) FROM manifests "
                    "WHERE substr(start_timestamp, 1, 10) = ?",
                    (day.isoformat(),),
                ).fetchone()
                return row[0]
        except sqlite3.Error as e:
            raise ArchiveError("units_on", str(e))

    def clear(self) -> int:
        """Delete every archived manifest. Returns how many were removed."""
        try:
            with closing(self._connect()) as conn:
                with conn:
                    conn.execute("DELETE FROM manifest_items")
                    removed = conn.execute("DELETE FROM manifests").rowcount
        except sqlite3.Error as e:
            raise ArchiveError("clear", str(e))

        logger.info(f"Cleared manifest archive ({removed} manifests)")
        return removed

    @staticmethod
    def _load_manifest(conn: sqlite3.Connection, row: sqlite3.Row) -> Manifest:
        item_rows = conn.execute(
            "SELECT * FROM manifest_items WHERE manifest_id = ? ORDER BY position",
            (row['manifest_id'],),
        ).fetchall()

        items = tuple(
            ScanItem(
                id=item['unit_id'],
                tracking_id=item['tracking_id'] or '',
                recipient_name=item['recipient_name'] or '',
                address=item['address'] or '',
                timestamp=item['timestamp'],
                warning=item['warning'] or None,
            )
            for item in item_rows
        )
        return Manifest(
            id=row['manifest_id'],
            start_timestamp=row['start_timestamp'],
            end_timestamp=row['end_timestamp'],
            operator_name=row['operator_name'] or '',
            items=items,
        )
