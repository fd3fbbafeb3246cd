"""
Custom Exceptions Module.

This module defines all custom exceptions used throughout the postal
manifest system. Each exception that maps onto an operator-facing
condition carries an ``ErrorCode`` so callers can report a single,
stable status instead of transport details.

Exception Hierarchy:
    PostalManifestError (base)
    ├── ConfigurationError              CONFIG_ERROR
    ├── ReferenceDataError
    ├── InputError
    │   └── CorruptedImageError         INVALID_EXTRACTION
    ├── RecognitionError
    │   ├── RecognitionServiceError     (tagged, see FailureTag)
    │   ├── RetryLimitExceededError     CONGESTION
    │   └── InvalidExtractionError      INVALID_EXTRACTION
    ├── SessionError
    │   ├── EmptySessionError           EMPTY_SESSION
    │   └── SessionFinalizedError
    └── OutputError
        ├── ExportFailureError          EXPORT_FAILURE
        ├── CsvExportError
        ├── ExcelExportError
        ├── ArchiveError
        └── SessionStoreError
"""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Operator-facing error taxonomy."""

    CONFIG_ERROR = "CONFIG_ERROR"
    CONGESTION = "CONGESTION"
    INVALID_EXTRACTION = "INVALID_EXTRACTION"
    EMPTY_SESSION = "EMPTY_SESSION"
    EXPORT_FAILURE = "EXPORT_FAILURE"


class FailureTag(str, Enum):
    """
    Closed set of recognition failure kinds.

    The transport decides the tag at its boundary (HTTP status or
    connection failure); the retry wrapper only ever looks at the tag.
    """

    RATE_LIMITED = "RATE_LIMITED"              # HTTP 429
    SERVER_UNAVAILABLE = "SERVER_UNAVAILABLE"  # HTTP 500 / 503 / 504
    TRANSPORT = "TRANSPORT"                    # connection reset, DNS, timeout
    BAD_REQUEST = "BAD_REQUEST"                # HTTP 400
    UNAUTHORIZED = "UNAUTHORIZED"              # HTTP 401 / 403
    UNEXPECTED_STATUS = "UNEXPECTED_STATUS"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"

    @property
    def retryable(self) -> bool:
        return self in RETRYABLE_TAGS


RETRYABLE_TAGS = frozenset({
    FailureTag.RATE_LIMITED,
    FailureTag.SERVER_UNAVAILABLE,
    FailureTag.TRANSPORT,
})


class PostalManifestError(Exception):
    """
    Base exception for all postal manifest errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
        code: Operator-facing error code, if the error maps onto one.
    """

    code: Optional[ErrorCode] = None

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(PostalManifestError):
    """Raised when required configuration (e.g. service credentials) is missing."""

    code = ErrorCode.CONFIG_ERROR


class ReferenceDataError(PostalManifestError):
    """Raised when a PIN reference dataset cannot be loaded."""

    def __init__(self, source: str, reason: str = None):
        message = f"Invalid PIN reference dataset: {source}"
        details = {"source": source, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# INPUT ERRORS
# =============================================================================

class InputError(PostalManifestError):
    """Base exception for input handling errors."""
    pass


class CorruptedImageError(InputError):
    """Raised when captured image bytes cannot be decoded."""

    code = ErrorCode.INVALID_EXTRACTION

    def __init__(self, reason: str = None):
        message = "Captured image is corrupted or unreadable"
        details = {"reason": reason}
        super().__init__(message, details)


# =============================================================================
# RECOGNITION ERRORS
# =============================================================================

class RecognitionError(PostalManifestError):
    """Base exception for recognition service errors."""
    pass


class RecognitionServiceError(RecognitionError):
    """
    Raised by a recognition transport for any failed call.

    Attributes:
        tag: FailureTag decided by the transport.
        status_code: HTTP status, when the failure came from a response.
    """

    def __init__(self, tag: FailureTag, reason: str = None, status_code: int = None):
        message = f"Recognition call failed: {tag.value}"
        details = {"tag": tag.value, "status_code": status_code, "reason": reason}
        super().__init__(message, details)
        self.tag = tag
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.tag.retryable


class RetryLimitExceededError(RecognitionError):
    """Raised when every attempt in the retry budget failed transiently."""

    code = ErrorCode.CONGESTION

    def __init__(self, attempts: int):
        message = "RETRY_LIMIT_EXCEEDED"
        details = {"attempts": attempts}
        super().__init__(message, details)
        self.attempts = attempts


class InvalidExtractionError(RecognitionError):
    """Raised when an extraction result is unusable as a scan item."""

    code = ErrorCode.INVALID_EXTRACTION

    def __init__(self, reason: str = None):
        message = "Extraction result is invalid"
        details = {"reason": reason}
        super().__init__(message, details)


# =============================================================================
# SESSION ERRORS
# =============================================================================

class SessionError(PostalManifestError):
    """Base exception for session state errors."""
    pass


class EmptySessionError(SessionError):
    """Raised when finalize is attempted on a session with no items."""

    code = ErrorCode.EMPTY_SESSION

    def __init__(self):
        super().__init__("No data to finalize. Scan at least one item.")


class SessionFinalizedError(SessionError):
    """Raised when a finalized session is modified."""

    def __init__(self, manifest_id: str = None):
        message = "Session already finalized"
        details = {"manifest_id": manifest_id} if manifest_id else None
        super().__init__(message, details)


# =============================================================================
# OUTPUT ERRORS
# =============================================================================

class OutputError(PostalManifestError):
    """Base exception for output handling errors."""
    pass


class ExportFailureError(OutputError):
    """Raised when finalize could not serialize or archive a manifest."""

    code = ErrorCode.EXPORT_FAILURE

    def __init__(self, manifest_id: str, reason: str = None):
        message = f"Failed to export manifest: {manifest_id}"
        details = {"manifest_id": manifest_id, "reason": reason}
        super().__init__(message, details)


class CsvExportError(OutputError):
    """Raised when CSV export fails."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Failed to export CSV file: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


class ExcelExportError(OutputError):
    """Raised when Excel export fails."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Failed to export Excel file: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


class ArchiveError(OutputError):
    """Raised when manifest archive operations fail."""

    def __init__(self, operation: str, reason: str = None):
        message = f"Archive operation failed: {operation}"
        details = {"operation": operation, "reason": reason}
        super().__init__(message, details)


class SessionStoreError(OutputError):
    """Raised when the working-session snapshot cannot be read or written."""

    def __init__(self, operation: str, reason: str = None):
        message = f"Working session store failed: {operation}"
        details = {"operation": operation, "reason": reason}
        super().__init__(message, details)


__all__ = [
    'ErrorCode',
    'FailureTag',
    'RETRYABLE_TAGS',
    'PostalManifestError',
    'ConfigurationError',
    'ReferenceDataError',
    'InputError',
    'CorruptedImageError',
    'RecognitionError',
    'RecognitionServiceError',
    'RetryLimitExceededError',
    'InvalidExtractionError',
    'SessionError',
    'EmptySessionError',
    'SessionFinalizedError',
    'OutputError',
    'ExportFailureError',
    'CsvExportError',
    'ExcelExportError',
    'ArchiveError',
    'SessionStoreError',
]
