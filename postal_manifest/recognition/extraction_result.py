"""
Extracted Record Data Class.

This module defines the normalized shape of one recognition result,
independent of which service produced it.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from postal_manifest.utils.exceptions import ErrorCode


@dataclass
class ExtractedRecord:
    """
    Normalized result of recognizing one parcel label.

    Created once per capture and not changed afterwards except for the
    reconciliation ``warning``.

    Attributes:
        tracking_id: Tracking / consignment number.
        recipient_name: Addressee.
        address: Full delivery address as free text.
        pincode: PIN with non-digits stripped.
        is_valid: True if a plausible 6-digit PIN was found.
        warning: Reconciliation warning; None means the address passed.
        error_code: CONFIG_ERROR or CONGESTION for records that carry no data.

    Example:
        >>> record = ExtractedRecord.from_response({
        ...     "trackingId": "EE123456789IN",
        ...     "recipientName": "Asha Rao",
        ...     "address": "12 MG Road, Bengaluru, Karnataka",
        ...     "pincode": "560 001",
        ...     "isValid": True,
        ... })
        >>> record.tracking_id
        'EE123456789IN'
    """
    tracking_id: str = ""
    recipient_name: str = ""
    address: str = ""
    pincode: str = ""
    is_valid: bool = False
    warning: Optional[str] = None
    error_code: Optional[ErrorCode] = None

    @classmethod
    def failed(cls, code: ErrorCode) -> 'ExtractedRecord':
        """Empty, invalid record flagged with ``code``."""
        return cls(is_valid=False, error_code=code)

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> 'ExtractedRecord':
        """
        Shape a raw recognition response.

        Missing or null text fields become empty strings; ``isValid`` is
        taken as asserted by the service and checked later.
        """
        def text(key: str) -> str:
            value = data.get(key)
            return str(value).strip() if value is not None else ""

        return cls(
            tracking_id=text('trackingId'),
            recipient_name=text('recipientName'),
            address=text('address'),
            pincode=text('pincode'),
            is_valid=data.get('isValid') is True,
        )

    @property
    def has_data(self) -> bool:
        return self.error_code is None

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['error_code'] = self.error_code.value if self.error_code else None
        return result

    def __repr__(self) -> str:
        return (
            f"ExtractedRecord("
            f"tracking={self.tracking_id!r}, "
            f"pin={self.pincode!r}, "
            f"valid={self.is_valid}, "
            f"warning={self.warning!r}, "
            f"error={self.error_code.value if self.error_code else None})"
        )
