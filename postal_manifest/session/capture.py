"""
Capture Controller Module.

Serializes captures for one operator: at most one extraction is in flight,
nothing is scheduled while paused, and a result that arrives after a
pause is dropped instead of appended.

Everything runs on one event loop, so plain flags are enough; there is a
single mutator of the session.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from postal_manifest.utils.logger import get_logger
from postal_manifest.utils.exceptions import ErrorCode
from postal_manifest.recognition.extractor import ExtractionAdapter
from .aggregator import SessionAggregator
from .models import Manifest, ScanItem

logger = get_logger(__name__)

STATUS_VERIFIED = "DATA VERIFIED"
STATUS_ROUTING_ERROR = "ALERT: ROUTING ERROR"
STATUS_CONGESTION = "RE-ESTABLISHING UPLINK..."
STATUS_CONFIG_ERROR = "SERVICE NOT CONFIGURED"
STATUS_INVALID = "INVALID OR BLURRED DATA"
STATUS_BUSY = "BUSY"
STATUS_PAUSED = "PAUSED"
STATUS_ABANDONED = "ABANDONED"


@dataclass(frozen=True)
class CaptureOutcome:
    """Operator-facing result of one capture attempt."""
    status: str
    item: Optional[ScanItem] = None
    error_code: Optional[ErrorCode] = None

    @property
    def accepted(self) -> bool:
        return self.item is not None

    @property
    def warning(self) -> Optional[str]:
        return self.item.warning if self.item else None


class CaptureController:
    """
    Drives captures into the active session.

    Attributes:
        adapter: ExtractionAdapter used for each capture.
        aggregator: Current SessionAggregator.
        paused: True while capture is paused.
        busy: True while an extraction is in flight.

    Example:
        >>> controller = CaptureController(adapter, make_aggregator)
        >>> outcome = await controller.capture(frame_bytes)
        >>> print(outcome.status)
        DATA VERIFIED
    """

    def __init__(
        self,
        adapter: ExtractionAdapter,
        aggregator_factory: Callable[[], SessionAggregator]
    ) -> None:
        self.adapter = adapter
        self._aggregator_factory = aggregator_factory
        self.aggregator = aggregator_factory()
        self.paused = False
        self.busy = False

    def pause(self) -> None:
        self.paused = True
        logger.info("Capture paused")

    def resume(self) -> None:
        self.paused = False
        logger.info("Capture resumed")

    async def capture(self, image_bytes: bytes) -> CaptureOutcome:
        """
        Extract one frame and append it if usable.

        Rejected without touching the service while paused or while a
        previous extraction is still running.
        """
        if self.paused:
            return CaptureOutcome(STATUS_PAUSED)
        if self.busy:
            logger.debug("Capture rejected: extraction already in flight")
            return CaptureOutcome(STATUS_BUSY)

        self.busy = True
        try:
            record = await self.adapter.extract(image_bytes)
        finally:
            self.busy = False

        if self.paused:
            logger.info("Discarding extraction that completed after pause")
            return CaptureOutcome(STATUS_ABANDONED)

        if record is None:
            return CaptureOutcome(STATUS_INVALID, error_code=ErrorCode.INVALID_EXTRACTION)
        if record.error_code is ErrorCode.CONGESTION:
            return CaptureOutcome(STATUS_CONGESTION, error_code=ErrorCode.CONGESTION)
        if record.error_code is ErrorCode.CONFIG_ERROR:
            return CaptureOutcome(STATUS_CONFIG_ERROR, error_code=ErrorCode.CONFIG_ERROR)
        if not record.is_valid:
            return CaptureOutcome(STATUS_INVALID, error_code=ErrorCode.INVALID_EXTRACTION)

        item = self.aggregator.append(record)
        status = STATUS_ROUTING_ERROR if item.warning else STATUS_VERIFIED
        return CaptureOutcome(status, item=item)

    def finalize(self, operator_name: str) -> Manifest:
        """
        Finalize the current session and start a fresh one.

        Errors propagate with the current session untouched.
        """
        manifest = self.aggregator.finalize(operator_name)
        self.aggregator = self._aggregator_factory()
        return manifest
