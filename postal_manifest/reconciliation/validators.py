"""
PIN Code Validators Module.

OCR output is noisy: PINs come back as "560 001", "PIN-560001" or with
stray letters. Everything that is not a digit is stripped before the
6-digit check.
"""

import re
from typing import Tuple

PIN_LENGTH = 6
_NON_DIGITS = re.compile(r'[^0-9]')
_PIN_PATTERN = re.compile(r'[0-9]{6}')


def clean_pincode(raw: str) -> str:
    """
    Strip every character that is not an ASCII digit from a PIN.

    Digits from other scripts (Devanagari and so on) are dropped too.

    Example:
        >>> clean_pincode("PIN: 560 001")
        '560001'
        >>> clean_pincode(None)
        ''
    """
    return _NON_DIGITS.sub('', raw or '')


def is_valid_pincode(pin: str) -> bool:
    """True if ``pin`` is exactly six ASCII digits."""
    return bool(pin) and _PIN_PATTERN.fullmatch(pin) is not None


class PincodeValidator:
    """
    Validates PINs extracted from labels.

    Example:
        >>> validator = PincodeValidator()
        >>> validator.validate("56000")
        (False, 'PIN must have 6 digits, got 5')
    """

    def validate(self, pin: str) -> Tuple[bool, str]:
        """
        Validate a cleaned PIN with detailed feedback.

        Returns:
            Tuple of (is_valid, message).
        """
        if not pin:
            return False, "PIN is empty"

        if not is_valid_pincode(pin):
            digits = len(clean_pincode(pin))
            return False, f"PIN must have {PIN_LENGTH} digits, got {digits}"

        return True, "Valid PIN"
