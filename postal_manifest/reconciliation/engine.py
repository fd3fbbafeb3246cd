"""
Postal Reconciliation Engine Module.

Decides whether the free-text address on a label is consistent with its
declared PIN.

Checks, in order:
    1. Exact PIN entry: the address must name both the entry's state and
       its district (or a known district alias).
    2. No exact entry: the address must name at least one of the state or
       authority tokens registered for the PIN's first digit.
    3. First digit with no registered tokens: the prefix itself is invalid.

Matching is case-insensitive substring containment, because OCR'd
addresses rarely split cleanly into fields.
"""

from typing import Optional

from postal_manifest.utils.logger import get_logger
from postal_manifest.reference.dataset import (
    MILITARY_DIGITS,
    ReferenceDataset,
    ReferenceEntry,
    region_for_digit,
)
from .validators import is_valid_pincode

logger = get_logger(__name__)


class PostalReconciler:
    """
    Cross-checks addresses against a PIN reference dataset.

    Attributes:
        dataset: Injected ReferenceDataset.

    Example:
        >>> reconciler = PostalReconciler(ReferenceDataset.default())
        >>> reconciler.reconcile("12 MG Road, Bengaluru, Karnataka", "560001") is None
        True
        >>> reconciler.reconcile("Anna Salai, Chennai, Tamil Nadu", "110001")
        'MISMATCH: PIN 110001 IS New Delhi, Delhi'
    """

    def __init__(self, dataset: Optional[ReferenceDataset] = None) -> None:
        self.dataset = dataset if dataset is not None else ReferenceDataset.default()

    def reconcile(self, address: str, pin: str) -> Optional[str]:
        """
        Check an address against its PIN.

        Args:
            address: Free-text delivery address.
            pin: Cleaned 6-digit PIN.

        Returns:
            A human-readable warning, or None if the address passed.

        Raises:
            ValueError: If ``pin`` is not exactly 6 digits.
        """
        if not is_valid_pincode(pin):
            raise ValueError(f"PIN must be exactly 6 digits: {pin!r}")

        haystack = (address or '').lower()

        entry = self.dataset.lookup_exact(pin)
        if entry is not None:
            warning = self._check_exact(haystack, pin, entry)
        else:
            warning = self._check_region(haystack, pin)

        if warning:
            logger.info(f"Routing warning for PIN {pin}: {warning}")
        return warning

    def _check_exact(self, haystack: str, pin: str, entry: ReferenceEntry) -> Optional[str]:
        state_match = entry.state.lower() in haystack
        district_names = (entry.district,) + self.dataset.district_aliases(entry.district)
        district_match = any(name.lower() in haystack for name in district_names)

        if state_match and district_match:
            return None
        return f"MISMATCH: PIN {pin} IS {entry.district}, {entry.state}"

    def _check_region(self, haystack: str, pin: str) -> Optional[str]:
        first_digit = pin[0]
        tokens = self.dataset.lookup_fallback(first_digit)

        if not tokens:
            return f"INVALID PIN PREFIX: {pin}"

        if any(token.lower() in haystack for token in tokens):
            return None
        return f"REGION MISMATCH: PIN {pin} IS {describe_region(first_digit)}"


def describe_region(first_digit: str) -> str:
    """
    Human-readable macro region for a first PIN digit.

    Example:
        >>> describe_region("6")
        'SOUTH INDIA'
        >>> describe_region("9")
        'EAST INDIA (ARMY POSTAL SERVICE)'
    """
    region = region_for_digit(first_digit)
    if region is None:
        return "UNKNOWN REGION"

    label = f"{region.value.upper()} INDIA"
    if first_digit in MILITARY_DIGITS:
        label += " (ARMY POSTAL SERVICE)"
    return label
