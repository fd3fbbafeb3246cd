"""Tests for the capture controller."""

import asyncio

import pytest

from conftest import MemorySessionStore, RecordingArchive, RecordingExporter
from postal_manifest.recognition import ExtractedRecord
from postal_manifest.session import CaptureController, SessionAggregator, SessionState
from postal_manifest.session.capture import (
    STATUS_ABANDONED,
    STATUS_BUSY,
    STATUS_CONFIG_ERROR,
    STATUS_CONGESTION,
    STATUS_INVALID,
    STATUS_PAUSED,
    STATUS_ROUTING_ERROR,
    STATUS_VERIFIED,
)
from postal_manifest.utils.exceptions import EmptySessionError, ErrorCode


class StubAdapter:
    """Adapter returning a fixed record, optionally after a gate opens."""

    def __init__(self, record, gate: asyncio.Event = None):
        self.record = record
        self.gate = gate
        self.calls = 0

    async def extract(self, image_bytes):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        return self.record


@pytest.fixture
def aggregator_factory(clock, ids):
    def factory():
        return SessionAggregator(
            MemorySessionStore(), RecordingExporter(), RecordingArchive(), clock=clock, id_factory=ids
        )
    return factory


class TestCaptureStatus:
    def test_verified(self, aggregator_factory, valid_record):
        controller = CaptureController(StubAdapter(valid_record), aggregator_factory)

        outcome = asyncio.run(controller.capture(b"frame"))

        assert outcome.status == STATUS_VERIFIED
        assert outcome.accepted
        assert outcome.warning is None
        assert len(controller.aggregator) == 1

    def test_routing_error(self, aggregator_factory, valid_record):
        valid_record.warning = "MISMATCH: PIN 560001 IS Bangalore, Karnataka"
        controller = CaptureController(StubAdapter(valid_record), aggregator_factory)

        outcome = asyncio.run(controller.capture(b"frame"))

        assert outcome.status == STATUS_ROUTING_ERROR
        assert outcome.warning == "MISMATCH: PIN 560001 IS Bangalore, Karnataka"
        assert outcome.item.status == outcome.warning

    @pytest.mark.parametrize("record,status,code", [
        (None, STATUS_INVALID, ErrorCode.INVALID_EXTRACTION),
        (ExtractedRecord(pincode="5600", is_valid=False), STATUS_INVALID, ErrorCode.INVALID_EXTRACTION),
        (ExtractedRecord.failed(ErrorCode.CONGESTION), STATUS_CONGESTION, ErrorCode.CONGESTION),
        (ExtractedRecord.failed(ErrorCode.CONFIG_ERROR), STATUS_CONFIG_ERROR, ErrorCode.CONFIG_ERROR),
    ])
    def test_rejected_outcomes(self, aggregator_factory, record, status, code):
        controller = CaptureController(StubAdapter(record), aggregator_factory)

        outcome = asyncio.run(controller.capture(b"frame"))

        assert outcome.status == status
        assert outcome.error_code is code
        assert not outcome.accepted
        assert len(controller.aggregator) == 0


class TestSerialization:
    def test_busy_while_extraction_in_flight(self, aggregator_factory, valid_record):
        async def scenario():
            gate = asyncio.Event()
            adapter = StubAdapter(valid_record, gate)
            controller = CaptureController(adapter, aggregator_factory)

            first = asyncio.create_task(controller.capture(b"one"))
            await asyncio.sleep(0)
            second = await controller.capture(b"two")
            gate.set()
            return controller, adapter, await first, second

        controller, adapter, first, second = asyncio.run(scenario())

        assert second.status == STATUS_BUSY
        assert first.status == STATUS_VERIFIED
        assert adapter.calls == 1
        assert len(controller.aggregator) == 1
        assert not controller.busy

    def test_paused_schedules_nothing(self, aggregator_factory, valid_record):
        adapter = StubAdapter(valid_record)
        controller = CaptureController(adapter, aggregator_factory)
        controller.pause()

        outcome = asyncio.run(controller.capture(b"frame"))

        assert outcome.status == STATUS_PAUSED
        assert adapter.calls == 0

    def test_result_after_pause_is_abandoned(self, aggregator_factory, valid_record):
        async def scenario():
            gate = asyncio.Event()
            controller = CaptureController(StubAdapter(valid_record, gate), aggregator_factory)

            pending = asyncio.create_task(controller.capture(b"frame"))
            await asyncio.sleep(0)
            controller.pause()
            gate.set()
            return controller, await pending

        controller, outcome = asyncio.run(scenario())

        assert outcome.status == STATUS_ABANDONED
        assert len(controller.aggregator) == 0

    def test_resume(self, aggregator_factory, valid_record):
        controller = CaptureController(StubAdapter(valid_record), aggregator_factory)
        controller.pause()
        controller.resume()

        assert asyncio.run(controller.capture(b"frame")).status == STATUS_VERIFIED


class TestControllerFinalize:
    def test_starts_fresh_session(self, aggregator_factory, valid_record):
        controller = CaptureController(StubAdapter(valid_record), aggregator_factory)
        asyncio.run(controller.capture(b"frame"))
        previous = controller.aggregator

        manifest = controller.finalize("R. Iyer")

        assert manifest.item_count == 1
        assert previous.state is SessionState.FINALIZED
        assert controller.aggregator is not previous
        assert controller.aggregator.state is SessionState.EMPTY

    def test_empty_finalize_keeps_aggregator(self, aggregator_factory, valid_record):
        controller = CaptureController(StubAdapter(valid_record), aggregator_factory)
        current = controller.aggregator

        with pytest.raises(EmptySessionError):
            controller.finalize("R. Iyer")
        assert controller.aggregator is current
