"""
Session Data Classes.

ScanItem is one accepted parcel in the working session; Manifest is a
finalized session as exported and archived.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from postal_manifest.recognition.extraction_result import ExtractedRecord

VERIFIED = "VERIFIED"

# Placeholders for fields the service could not read
UNKNOWN_TRACKING_ID = "N/A"
UNKNOWN_RECIPIENT = "UNKNOWN"
UNKNOWN_ADDRESS = "NO ADDRESS"
UNKNOWN_PIN = "000000"


class SessionState(str, Enum):
    EMPTY = "EMPTY"
    ACCUMULATING = "ACCUMULATING"
    FINALIZED = "FINALIZED"


@dataclass(frozen=True)
class ScanItem:
    """
    One accepted parcel.

    Attributes:
        id: Short unit code, unique within its session.
        tracking_id: Tracking number from the label.
        recipient_name: Addressee.
        address: Delivery address with the PIN appended.
        timestamp: ISO 8601 capture time (UTC).
        warning: Routing warning, None when verified.
    """
    id: str
    tracking_id: str
    recipient_name: str
    address: str
    timestamp: str
    warning: Optional[str] = None

    @classmethod
    def from_record(cls, record: ExtractedRecord, item_id: str, timestamp: str) -> 'ScanItem':
        """Build an item, filling unreadable fields with placeholders."""
        address = record.address or UNKNOWN_ADDRESS
        pincode = record.pincode or UNKNOWN_PIN
        return cls(
            id=item_id,
            tracking_id=record.tracking_id or UNKNOWN_TRACKING_ID,
            recipient_name=record.recipient_name or UNKNOWN_RECIPIENT,
            address=f"{address} (PIN: {pincode})",
            timestamp=timestamp,
            warning=record.warning or None,
        )

    @property
    def status(self) -> str:
        """Routing/sort status: the warning text, or VERIFIED."""
        return self.warning or VERIFIED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'tracking_id': self.tracking_id,
            'recipient_name': self.recipient_name,
            'address': self.address,
            'timestamp': self.timestamp,
            'warning': self.warning,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScanItem':
        return cls(
            id=data['id'],
            tracking_id=data.get('tracking_id', ''),
            recipient_name=data.get('recipient_name', ''),
            address=data.get('address', ''),
            timestamp=data['timestamp'],
            warning=data.get('warning') or None,
        )


@dataclass(frozen=True)
class Manifest:
    """
    A finalized scanning session.

    Items are stored in their final sorted order: warned items first,
    then most recent first.
    """
    id: str
    start_timestamp: str
    end_timestamp: str
    operator_name: str
    items: Tuple[ScanItem, ...] = field(default_factory=tuple)

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def warning_count(self) -> int:
        return sum(1 for item in self.items if item.warning)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'start_timestamp': self.start_timestamp,
            'end_timestamp': self.end_timestamp,
            'operator_name': self.operator_name,
            'items': [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Manifest':
        return cls(
            id=data['id'],
            start_timestamp=data['start_timestamp'],
            end_timestamp=data['end_timestamp'],
            operator_name=data.get('operator_name', ''),
            items=tuple(ScanItem.from_dict(item) for item in data.get('items', [])),
        )

    def __repr__(self) -> str:
        return (
            f"Manifest(id={self.id}, operator={self.operator_name!r}, "
            f"items={self.item_count}, warnings={self.warning_count})"
        )
