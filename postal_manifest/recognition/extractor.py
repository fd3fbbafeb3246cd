"""
Extraction Adapter Module.

Boundary to the external recognition service. Owns:
    - the missing-credential guard (CONFIG_ERROR, no network attempt)
    - image preparation
    - the retried service call
    - PIN cleanup and the validity downgrade
    - reconciliation of valid records

No PIN that is not exactly six digits ever reaches the reconciliation
engine.

Outcomes of ``extract``:
    ExtractedRecord (valid or invalid)   service answered
    ExtractedRecord(error=CONFIG_ERROR)  no credentials
    ExtractedRecord(error=CONGESTION)    retry budget exhausted
    None                                 unreadable image, empty or
                                         malformed answer, fatal service error

Author: ML Engineering Team
"""

import os
from typing import Iterable, Optional, Union

from config import get_config
from postal_manifest.utils.logger import get_logger
from postal_manifest.utils.exceptions import (
    CorruptedImageError,
    ErrorCode,
    RecognitionError,
    RetryLimitExceededError,
)
from postal_manifest.input_handler.image_processor import ImageProcessor
from postal_manifest.reconciliation.engine import PostalReconciler
from postal_manifest.reconciliation.validators import PincodeValidator, clean_pincode
from postal_manifest.reference.dataset import load_configured_dataset
from .client import GeminiRecognitionClient, RecognitionTransport
from .extraction_result import ExtractedRecord
from .retry import configured_retry_settings, with_retry

logger = get_logger(__name__)


class ExtractionAdapter:
    """
    Shapes recognition responses into normalized, reconciled records.

    Attributes:
        transport: Recognition transport (HTTP client or a test fake).
        reconciler: PostalReconciler used for valid records.
        image_processor: Prepares raw capture bytes.
        api_key: Service credential; empty means CONFIG_ERROR.
        retry_settings: Keyword arguments for ``with_retry``.

    Example:
        >>> adapter = create_default_adapter()
        >>> record = await adapter.extract(image_bytes)
        >>> if record and record.is_valid:
        ...     aggregator.append(record)
    """

    def __init__(
        self,
        transport: RecognitionTransport,
        reconciler: Optional[PostalReconciler] = None,
        image_processor: Optional[ImageProcessor] = None,
        api_key: Optional[str] = None,
        retry_settings: Optional[dict] = None,
        sleep=None
    ) -> None:
        self.transport = transport
        self.reconciler = reconciler or PostalReconciler()
        self.image_processor = image_processor or ImageProcessor()
        self.api_key = api_key
        self.retry_settings = dict(retry_settings) if retry_settings else configured_retry_settings()
        if sleep is not None:
            self.retry_settings['sleep'] = sleep

        self.pin_validator = PincodeValidator()
        self._config_error_reported = False

    async def extract(self, image_bytes: bytes) -> Optional[ExtractedRecord]:
        """
        Recognize one captured label.

        Args:
            image_bytes: Raw image bytes from the capture device.

        Returns:
            ExtractedRecord, or None when the capture must be retaken.
        """
        if not self.api_key:
            if not self._config_error_reported:
                logger.error("Recognition API key is missing. Check your environment variables.")
                self._config_error_reported = True
            return ExtractedRecord.failed(ErrorCode.CONFIG_ERROR)

        try:
            image_b64 = self.image_processor.prepare(image_bytes)
        except CorruptedImageError as e:
            logger.warning(f"Discarding capture: {e}")
            return None

        try:
            raw = await with_retry(lambda: self.transport.recognize(image_b64), **self.retry_settings)
        except RetryLimitExceededError as e:
            logger.error(f"Recognition congested: {e} (last error: {e.__cause__})")
            return ExtractedRecord.failed(ErrorCode.CONGESTION)
        except RecognitionError as e:
            logger.error(f"Recognition failure: {e}")
            return None
        except Exception as e:
            logger.exception(f"Unexpected recognition error: {e}")
            return None

        if not raw:
            logger.info("Recognition returned no data")
            return None

        return self.normalize(raw)

    def normalize(self, raw: dict) -> ExtractedRecord:
        """
        Clean the PIN, downgrade validity and attach the reconciliation warning.

        Args:
            raw: Service response with trackingId, recipientName, address,
                pincode and isValid.
        """
        record = ExtractedRecord.from_response(raw)
        record.pincode = clean_pincode(record.pincode)

        pin_ok, reason = self.pin_validator.validate(record.pincode)
        if not pin_ok:
            if record.is_valid:
                logger.info(f"Downgrading record {record.tracking_id!r}: {reason}")
            record.is_valid = False

        if record.is_valid:
            record.warning = self.reconciler.reconcile(record.address, record.pincode)

        logger.debug(f"Normalized {record!r}")
        return record


def resolve_api_key(env_names: Union[str, Iterable[str], None] = None) -> Optional[str]:
    """
    Read the service credential from the first non-empty environment variable.

    Args:
        env_names: Variable name(s); defaults to ``recognition.api_key_env``.
    """
    if env_names is None:
        env_names = get_config("recognition.api_key_env", ["GEMINI_API_KEY", "API_KEY"])
    if isinstance(env_names, str):
        env_names = [env_names]

    for name in env_names:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return None


def create_default_adapter(api_key: Optional[str] = None) -> ExtractionAdapter:
    """Wire the HTTP transport, configured dataset and retry settings."""
    api_key = api_key if api_key is not None else resolve_api_key()

    transport = GeminiRecognitionClient(
        api_key=api_key or "",
        model=get_config("recognition.model", GeminiRecognitionClient.DEFAULT_MODEL),
        endpoint=get_config("recognition.endpoint", GeminiRecognitionClient.DEFAULT_ENDPOINT),
        timeout=float(get_config("recognition.timeout", 60)),
        temperature=float(get_config("recognition.temperature", 0.1)),
    )
    return ExtractionAdapter(
        transport=transport,
        reconciler=PostalReconciler(load_configured_dataset()),
        api_key=api_key,
    )
