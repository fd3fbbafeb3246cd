"""Test fixtures and utilities."""

import io
import logging
from datetime import datetime, timedelta, timezone
from typing import List

import pytest
from PIL import Image

from config import ConfigurationManager
from postal_manifest.reference import ReferenceDataset
from postal_manifest.recognition import ExtractedRecord
from postal_manifest.session import ScanItem


FIXTURE_DATASET = {
    'entries': [
        {'pincode': '560001', 'region': 'South', 'state': 'Karnataka', 'district': 'Bangalore'},
        {'pincode': '110001', 'region': 'North', 'state': 'Delhi', 'district': 'New Delhi'},
    ],
    'fallback': {
        '1': ['Delhi', 'Haryana'],
        '4': ['Maharashtra', 'Goa'],
        '6': ['Tamil Nadu', 'Kerala'],
        '9': ['Army Postal Service'],
    },
    'aliases': {'Bangalore': ['Bengaluru']},
}


@pytest.fixture(autouse=True)
def reset_config(monkeypatch):
    """Fresh configuration singleton for every test, without env overrides."""
    import os

    for name in list(os.environ):
        if name.startswith("POSTAL_MANIFEST__"):
            monkeypatch.delenv(name)
    ConfigurationManager.reset()
    yield
    ConfigurationManager.reset()

    app_logger = logging.getLogger("postal_manifest")
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()
    app_logger.propagate = True
    app_logger.setLevel(logging.NOTSET)


@pytest.fixture
def dataset() -> ReferenceDataset:
    """Small fixture reference dataset."""
    return ReferenceDataset.from_mapping(FIXTURE_DATASET, source="fixture")


@pytest.fixture
def valid_record() -> ExtractedRecord:
    return ExtractedRecord(
        tracking_id="EE123456789IN",
        recipient_name="Asha Rao",
        address="12 MG Road, Bengaluru, Karnataka",
        pincode="560001",
        is_valid=True,
    )


@pytest.fixture
def label_response() -> dict:
    """Raw recognition service response for a Bengaluru label."""
    return {
        "trackingId": "EE123456789IN",
        "recipientName": "Asha Rao",
        "address": "12 MG Road, Bengaluru, Karnataka",
        "pincode": "560 001",
        "isValid": True,
    }


@pytest.fixture
def png_bytes() -> bytes:
    """A small, decodable PNG capture."""
    buffer = io.BytesIO()
    Image.new("RGB", (120, 80), color=(240, 240, 240)).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeClock:
    """Deterministic clock advancing one minute per call."""

    def __init__(self, start: datetime = None, step: timedelta = timedelta(minutes=1)):
        self.now = start or datetime(2026, 1, 21, 10, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


class SequentialIds:
    """Id factory yielding U00001, U00002, ..."""

    def __init__(self):
        self.counter = 0

    def __call__(self) -> str:
        self.counter += 1
        return f"U{self.counter:05d}"


class MemorySessionStore:
    """In-memory working-session store."""

    def __init__(self, items: List[ScanItem] = None, fail_on_save: bool = False):
        self.items = list(items or [])
        self.fail_on_save = fail_on_save
        self.saves = 0
        self.cleared = False

    def save(self, items):
        from postal_manifest.utils.exceptions import SessionStoreError

        if self.fail_on_save:
            raise SessionStoreError("save", "disk full")
        self.saves += 1
        self.items = list(items)

    def load(self):
        return list(self.items)

    def clear(self):
        self.cleared = True
        self.items = []


class RecordingExporter:
    """Exporter that remembers what it was given."""

    def __init__(self, error: Exception = None):
        self.error = error
        self.manifests = []
        self.discarded = []

    def export(self, manifest):
        if self.error is not None:
            raise self.error
        self.manifests.append(manifest)
        return {'csv_path': f"/tmp/MANIFEST_{manifest.id}.csv", 'excel_path': None}

    def discard(self, export_result):
        self.discarded.append(export_result)


class RecordingArchive:
    def __init__(self, error: Exception = None, manifests: List = None):
        self.error = error
        self.manifests = list(manifests or [])

    def append(self, manifest):
        if self.error is not None:
            raise self.error
        self.manifests.append(manifest)

    def get(self, manifest_id):
        return next((m for m in self.manifests if m.id == manifest_id), None)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ids() -> SequentialIds:
    return SequentialIds()
