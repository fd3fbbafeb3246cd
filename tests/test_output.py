"""Tests for manifest export, archive and the working-session store."""

import json
from datetime import timedelta

import openpyxl
import pytest

from postal_manifest.output_handler import (
    ManifestArchive,
    ManifestCsvExporter,
    ManifestExcelExporter,
    OutputHandler,
    WorkingSessionStore,
    read_manifest_csv,
)
from postal_manifest.session import Manifest, ScanItem
from postal_manifest.utils.exceptions import (
    ArchiveError,
    CsvExportError,
    ExcelExportError,
    ExportFailureError,
    SessionStoreError,
)
from postal_manifest.utils.helpers import parse_timestamp

HEADER_LINE = "Unit ID/UID,Tracking ID,Recipient Name,Full Address,Timestamp,Routing/Sort Status"


@pytest.fixture
def manifest() -> Manifest:
    return Manifest(
        id="B600000",
        start_timestamp="2026-01-21T10:01:00.000+00:00",
        end_timestamp="2026-01-21T10:05:00.000+00:00",
        operator_name="R. Iyer",
        items=(
            ScanItem(
                id="K3Z9QD",
                tracking_id="EE123456789IN",
                recipient_name='Rao, Asha "Ash"',
                address="Flat 4, 12 MG Road, Chennai, Tamil Nadu (PIN: 560001)",
                timestamp="2026-01-21T10:01:00.000+00:00",
                warning="MISMATCH: PIN 560001 IS Bangalore, Karnataka",
            ),
            ScanItem(
                id="P0L2MX",
                tracking_id="N/A",
                recipient_name="Vikram Singh",
                address="Janpath, New Delhi, Delhi (PIN: 110001)",
                timestamp="2026-01-21T10:03:00.000+00:00",
            ),
        ),
    )


class TestCsvExport:
    def test_round_trip(self, tmp_path, manifest):
        path = ManifestCsvExporter(tmp_path).export(manifest)

        rows = read_manifest_csv(path)

        assert len(rows) == manifest.item_count
        assert rows[0]["Unit ID/UID"] == "K3Z9QD"
        assert rows[0]["Recipient Name"] == 'Rao, Asha "Ash"'
        assert rows[0]["Full Address"] == "Flat 4, 12 MG Road, Chennai, Tamil Nadu (PIN: 560001)"
        assert rows[0]["Routing/Sort Status"] == "MISMATCH: PIN 560001 IS Bangalore, Karnataka"
        assert rows[1]["Tracking ID"] == "N/A"
        assert rows[1]["Routing/Sort Status"] == "VERIFIED"

    def test_file_layout(self, tmp_path, manifest):
        path = ManifestCsvExporter(tmp_path).export(manifest)

        raw = open(path, "rb").read()

        assert path.endswith("MANIFEST_B600000.csv")
        assert raw.startswith(b"\xef\xbb\xbf")
        assert b"\r\n" not in raw
        lines = raw[3:].decode("utf-8").split("\n")
        assert lines[0] == HEADER_LINE
        assert lines[1].startswith('"K3Z9QD","EE123456789IN","Rao, Asha ""Ash""",')
        assert lines[-1] == ""

    def test_empty_manifest_has_header_only(self, tmp_path, manifest):
        empty = Manifest(manifest.id, manifest.start_timestamp, manifest.end_timestamp, "R. Iyer")

        assert ManifestCsvExporter(tmp_path).render(empty) == HEADER_LINE + "\n"

    def test_unwritable_directory(self, tmp_path, manifest):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x")

        with pytest.raises(CsvExportError):
            ManifestCsvExporter(tmp_path).export(manifest, filename="not_a_dir/out.csv")

    def test_foreign_header_rejected(self, tmp_path):
        path = tmp_path / "other.csv"
        path.write_text("a,b\n1,2\n", encoding="utf-8-sig")

        with pytest.raises(CsvExportError):
            read_manifest_csv(path)


class TestExcelExport:
    def test_workbook_contents(self, tmp_path, manifest):
        path = ManifestExcelExporter(tmp_path).export(manifest)

        workbook = openpyxl.load_workbook(path)
        sheet = workbook["Manifest"]

        assert [cell.value for cell in sheet[1]] == HEADER_LINE.split(",")
        assert sheet.cell(row=2, column=1).value == "K3Z9QD"
        assert sheet.cell(row=3, column=6).value == "VERIFIED"
        assert sheet.cell(row=2, column=1).fill.start_color.rgb.endswith("FDE2E1")

        summary = workbook["Summary"]
        values = {summary.cell(row=r, column=1).value: summary.cell(row=r, column=2).value
                  for r in range(1, summary.max_row + 1)}
        assert values["Units"] == 2
        assert values["Routing Warnings"] == 1
        assert values["Operator"] == "R. Iyer"


class TestOutputHandler:
    def test_csv_only_by_default(self, tmp_path, manifest):
        info = OutputHandler(output_dir=tmp_path).export(manifest)

        assert info["csv_path"].endswith("MANIFEST_B600000.csv")
        assert info["excel_path"] is None

    def test_csv_and_excel(self, tmp_path, manifest):
        info = OutputHandler(excel_enabled=True, output_dir=tmp_path).export(manifest)

        assert (tmp_path / "MANIFEST_B600000.csv").exists()
        assert (tmp_path / "MANIFEST_B600000.xlsx").exists()
        assert info["excel_path"].endswith(".xlsx")

    def test_failure_wrapped(self, tmp_path, manifest):
        blocker = tmp_path / "blocked"
        blocker.write_text("x")

        with pytest.raises(ExportFailureError) as exc_info:
            OutputHandler(output_dir=blocker).export(manifest)
        assert exc_info.value.details["manifest_id"] == "B600000"

    def test_excel_failure_removes_csv(self, tmp_path, manifest):
        class BrokenExcel:
            def export(self, manifest):
                raise ExcelExportError("x.xlsx", "disk full")

        handler = OutputHandler(excel_enabled=True, output_dir=tmp_path)
        handler._excel_exporter = BrokenExcel()

        with pytest.raises(ExportFailureError):
            handler.export(manifest)
        assert list(tmp_path.iterdir()) == []

    def test_discard_removes_files(self, tmp_path, manifest):
        handler = OutputHandler(excel_enabled=True, output_dir=tmp_path)
        info = handler.export(manifest)

        handler.discard(info)
        handler.discard(info)

        assert list(tmp_path.iterdir()) == []


class TestArchive:
    @pytest.fixture
    def archive(self, tmp_path):
        return ManifestArchive(tmp_path / "archive.db")

    def test_append_and_get(self, archive, manifest):
        archive.append(manifest)

        restored = archive.get("B600000")

        assert restored == manifest
        assert archive.count() == 1

    def test_get_unknown(self, archive):
        assert archive.get("B000000") is None

    def test_most_recent_first(self, archive, manifest):
        for manifest_id in ("B000001", "B000002", "B000003"):
            archive.append(Manifest(
                manifest_id, manifest.start_timestamp, manifest.end_timestamp,
                manifest.operator_name, manifest.items,
            ))

        assert [m.id for m in archive.list_manifests()] == ["B000003", "B000002", "B000001"]
        assert [m.id for m in archive.list_manifests(limit=2)] == ["B000003", "B000002"]

    def test_duplicate_rejected(self, archive, manifest):
        archive.append(manifest)

        with pytest.raises(ArchiveError):
            archive.append(manifest)
        assert archive.count() == 1

    def test_units_on_and_clear(self, archive, manifest):
        archive.append(manifest)
        day = parse_timestamp(manifest.start_timestamp).date()

        assert archive.units_on(day) == manifest.item_count
        assert archive.units_on(day - timedelta(days=1)) == 0

        assert archive.clear() == 1
        assert archive.count() == 0
        assert archive.units_on(day) == 0
        assert archive.get(manifest.id) is None


class TestWorkingSessionStore:
    @pytest.fixture
    def store(self, tmp_path):
        return WorkingSessionStore(tmp_path / "session" / "working.json")

    def test_save_load_clear(self, store, manifest):
        store.save(manifest.items)

        assert store.load() == list(manifest.items)

        store.clear()
        assert store.load() == []
        assert not store.path.exists()

    def test_save_overwrites(self, store, manifest):
        store.save(manifest.items)
        store.save(manifest.items[:1])

        assert len(store.load()) == 1

    def test_clear_without_snapshot(self, store):
        store.clear()

    def test_malformed_snapshot(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json", encoding="utf-8")

        with pytest.raises(SessionStoreError):
            store.load()

    def test_snapshot_must_be_list(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text(json.dumps({"id": "X"}), encoding="utf-8")

        with pytest.raises(SessionStoreError):
            store.load()
