"""
Recognition Module for the Postal Manifest System.

This module provides:
    - HTTP transport to the label recognition service
    - Retry with exponential backoff on transient failures
    - Normalization of responses into ExtractedRecord

Author: ML Engineering Team
"""

from .client import GeminiRecognitionClient, RecognitionTransport, classify_status
from .extraction_result import ExtractedRecord
from .extractor import ExtractionAdapter, create_default_adapter, resolve_api_key
from .retry import is_retryable, with_retry

__all__ = [
    'ExtractedRecord',
    'ExtractionAdapter',
    'GeminiRecognitionClient',
    'RecognitionTransport',
    'classify_status',
    'create_default_adapter',
    'is_retryable',
    'resolve_api_key',
    'with_retry',
]
