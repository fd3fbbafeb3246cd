"""
Working Session Store Module.

Single JSON snapshot of the in-progress session, overwritten after every
append and removed at finalize. Used only to resume after an interruption.
"""

import json
import os
from pathlib import Path
from typing import List, Optional, Sequence, Union

from config import get_config
from postal_manifest.utils.logger import get_logger
from postal_manifest.utils.helpers import ensure_directory
from postal_manifest.utils.exceptions import SessionStoreError
from postal_manifest.session.models import ScanItem

logger = get_logger(__name__)


class WorkingSessionStore:
    """
    JSON-file snapshot of the working session.

    Writes go to a temporary file first and are moved into place, so an
    interruption mid-write leaves the previous snapshot intact.

    Example:
        >>> store = WorkingSessionStore("outputs/working_session.json")
        >>> store.save(aggregator.items)
        >>> store.load()
        [ScanItem(id='K3Z9QD', ...)]
    """

    def __init__(self, path: Optional[Union[str, Path]] = None) -> None:
        if path:
            self.path = Path(path)
        else:
            self.path = Path(get_config("paths.session_file", "outputs/working_session.json"))

    def save(self, items: Sequence[ScanItem]) -> None:
        """
        Overwrite the snapshot.

        Raises:
            SessionStoreError: If the file cannot be written.
        """
        payload = [item.to_dict() for item in items]
        tmp_path = self.path.with_name(self.path.name + ".tmp")

        try:
            ensure_directory(self.path.parent)
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise SessionStoreError("save", str(e))

        logger.debug(f"Working session saved ({len(payload)} items)")

    def load(self) -> List[ScanItem]:
        """
        Read the snapshot; an absent file means no session to resume.

        Raises:
            SessionStoreError: If the file exists but is unreadable or malformed.
        """
        if not self.path.exists():
            return []

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                payload = json.load(f)
        except (OSError, ValueError) as e:
            raise SessionStoreError("load", str(e))

        if not isinstance(payload, list):
            raise SessionStoreError("load", "snapshot is not a list")

        try:
            return [ScanItem.from_dict(entry) for entry in payload]
        except (KeyError, TypeError) as e:
            raise SessionStoreError("load", f"bad item: {e}")

    def clear(self) -> None:
        """Remove the snapshot."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise SessionStoreError("clear", str(e))

        logger.debug("Working session cleared")
