"""
Session Aggregator Module.

In-memory, ordered collection of scan items for the active session.

State machine:
    EMPTY --append--> ACCUMULATING --finalize--> FINALIZED (terminal)

Working order is most-recent-first. ``finalize`` sorts a copy (warned
items first, then newest first), hands the manifest to the export and
archive collaborators, and only then clears the working session. If
either collaborator fails the session is left exactly as it was and
any files already exported for the manifest are removed.

Storage is reached only through injected ports, so the aggregation logic
can be tested with in-memory fakes.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, List, Optional, Protocol, Sequence, Tuple

from postal_manifest.utils.logger import get_logger
from postal_manifest.utils.helpers import generate_short_id, parse_timestamp, to_iso, utc_now
from postal_manifest.utils.exceptions import (
    ArchiveError,
    EmptySessionError,
    ExportFailureError,
    InvalidExtractionError,
    SessionFinalizedError,
    SessionStoreError,
)
from postal_manifest.recognition.extraction_result import ExtractedRecord
from .models import Manifest, ScanItem, SessionState

logger = get_logger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class SessionStorePort(Protocol):
    """Working-session snapshot storage."""

    def save(self, items: Sequence[ScanItem]) -> None: ...

    def load(self) -> List[ScanItem]: ...

    def clear(self) -> None: ...


class ExporterPort(Protocol):
    def export(self, manifest: Manifest) -> Any: ...

    def discard(self, export_result: Any) -> None: ...


class ArchivePort(Protocol):
    def append(self, manifest: Manifest) -> None: ...

    def get(self, manifest_id: str) -> Optional[Manifest]: ...


def sort_items(items: Iterable[ScanItem]) -> List[ScanItem]:
    """
    Manifest order: items with a warning first, then newest first.

    Both passes are stable, so items with equal timestamps keep their
    relative order.
    """
    by_time = sorted(items, key=lambda item: parse_timestamp(item.timestamp), reverse=True)
    return sorted(by_time, key=lambda item: 0 if item.warning else 1)


def session_id_for(moment: datetime) -> str:
    """
    Manifest id derived from the finalize time.

    Example:
        >>> session_id_for(datetime(2026, 1, 21, tzinfo=timezone.utc))
        'B600000'
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    epoch_ms = (moment - EPOCH) // timedelta(milliseconds=1)
    return "B" + str(epoch_ms)[-6:]


class SessionAggregator:
    """
    Accumulates scan items and finalizes them into a manifest.

    Attributes:
        session_store: Port persisting the working snapshot after each append.
        exporter: Port serializing the manifest (CSV/XLSX) at finalize.
        archive: Port appending the manifest to history at finalize.
        last_export: Whatever the exporter returned for the last finalize.
        manifest: The finalized manifest, once FINALIZED.

    Example:
        >>> aggregator = SessionAggregator(store, output_handler, archive)
        >>> aggregator.restore()
        >>> aggregator.append(record)
        >>> manifest = aggregator.finalize("R. Iyer")
    """

    def __init__(
        self,
        session_store: Optional[SessionStorePort] = None,
        exporter: Optional[ExporterPort] = None,
        archive: Optional[ArchivePort] = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = generate_short_id
    ) -> None:
        self.session_store = session_store
        self.exporter = exporter
        self.archive = archive
        self._clock = clock
        self._id_factory = id_factory

        self._items: List[ScanItem] = []
        self._state = SessionState.EMPTY
        self.last_export: Any = None
        self.manifest: Optional[Manifest] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def items(self) -> Tuple[ScanItem, ...]:
        """Items in working order (most recent first)."""
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def restore(self) -> int:
        """
        Resume an interrupted session from the working-session store.

        Returns:
            Number of items restored.
        """
        if self.session_store is None or self._state is not SessionState.EMPTY:
            return 0

        try:
            items = self.session_store.load()
        except SessionStoreError as e:
            logger.warning(f"Session recovery failed: {e}")
            return 0

        if items:
            self._items = list(items)
            self._state = SessionState.ACCUMULATING
            logger.info(f"Restored working session with {len(items)} items")
        return len(items)

    def append(self, record: ExtractedRecord) -> ScanItem:
        """
        Add a valid extraction to the head of the session.

        Raises:
            SessionFinalizedError: If the session is already finalized.
            InvalidExtractionError: If the record is invalid or an error marker.
        """
        if self._state is SessionState.FINALIZED:
            raise SessionFinalizedError(self.manifest.id if self.manifest else None)

        if not record.has_data:
            raise InvalidExtractionError(f"record carries {record.error_code.value}")
        if not record.is_valid:
            raise InvalidExtractionError("record is not valid")

        item = ScanItem.from_record(
            record,
            item_id=self._new_item_id(),
            timestamp=to_iso(self._clock()),
        )
        self._items.insert(0, item)
        self._state = SessionState.ACCUMULATING

        logger.info(
            f"Appended unit {item.id} ({item.tracking_id}) "
            f"{'with warning' if item.warning else 'verified'}; {len(self._items)} in session"
        )
        self._persist()
        return item

    def _new_item_id(self) -> str:
        taken = {item.id for item in self._items}
        while True:
            item_id = self._id_factory()
            if item_id not in taken:
                return item_id

    def _persist(self) -> None:
        if self.session_store is None:
            return
        try:
            self.session_store.save(self.items)
        except SessionStoreError as e:
            # The in-memory session stays authoritative
            logger.error(f"Could not persist working session: {e}")

    def build_manifest(
        self,
        operator_name: str,
        now: datetime,
        manifest_id: Optional[str] = None
    ) -> Manifest:
        """Sorted manifest for the current items, without side effects."""
        start = min(self._items, key=lambda item: parse_timestamp(item.timestamp))
        return Manifest(
            id=manifest_id or session_id_for(now),
            start_timestamp=start.timestamp,
            end_timestamp=to_iso(now),
            operator_name=operator_name,
            items=tuple(sort_items(self._items)),
        )

    def _free_manifest_id(self, now: datetime) -> str:
        """
        Manifest id for ``now``, moved forward a millisecond at a time
        past ids already in the archive.

        The id keeps only six digits of epoch milliseconds, so it wraps
        every 1000 seconds.
        """
        moment = now
        manifest_id = session_id_for(moment)
        if self.archive is None:
            return manifest_id

        while self.archive.get(manifest_id) is not None:
            logger.warning(f"Manifest id {manifest_id} already archived; advancing")
            moment += timedelta(milliseconds=1)
            manifest_id = session_id_for(moment)
        return manifest_id

    def _discard_export(self, export_result: Any) -> None:
        if self.exporter is None or export_result is None:
            return
        try:
            self.exporter.discard(export_result)
        except Exception as e:
            logger.error(f"Could not remove partial export {export_result}: {e}")

    def finalize(self, operator_name: str) -> Manifest:
        """
        Sort, export, archive and clear the session.

        All or nothing: if archiving fails, the files already exported
        for the manifest are removed again.

        Args:
            operator_name: Name recorded on the manifest.

        Returns:
            The finalized Manifest.

        Raises:
            EmptySessionError: No items; nothing changes.
            SessionFinalizedError: Already finalized.
            ExportFailureError: Export or archival failed; session untouched.
        """
        if self._state is SessionState.FINALIZED:
            raise SessionFinalizedError(self.manifest.id if self.manifest else None)
        if not self._items:
            raise EmptySessionError()

        now = self._clock()
        try:
            manifest_id = self._free_manifest_id(now)
        except ArchiveError as e:
            raise ExportFailureError(session_id_for(now), str(e)) from e

        manifest = self.build_manifest(operator_name, now, manifest_id)
        logger.info(
            f"Finalizing manifest {manifest.id}: {manifest.item_count} units, "
            f"{manifest.warning_count} with routing warnings"
        )

        export_result = None
        try:
            if self.exporter is not None:
                export_result = self.exporter.export(manifest)
            if self.archive is not None:
                self.archive.append(manifest)
        except ExportFailureError:
            self._discard_export(export_result)
            logger.error(f"Finalization of {manifest.id} failed; working session kept")
            raise
        except Exception as e:
            self._discard_export(export_result)
            logger.error(f"Finalization of {manifest.id} failed; working session kept: {e}")
            raise ExportFailureError(manifest.id, str(e)) from e

        self._items = []
        self._state = SessionState.FINALIZED
        self.last_export = export_result
        self.manifest = manifest

        if self.session_store is not None:
            try:
                self.session_store.clear()
            except SessionStoreError as e:
                logger.error(f"Manifest {manifest.id} archived but working snapshot not cleared: {e}")

        return manifest
