"""Export orchestration: artifacts, single-export guard, failure handling."""
import io
import json
import os
import threading

import pikepdf
import pytest

from fsr_report.errors import ConfigurationError, EmptySurfaceError, ExportInProgressError, PageEncodeError
from fsr_report.report import ReportExporter
from fsr_report import pdf_utils


class TestExportPdf:
    def test_writes_document_named_after_identifier(self, exporter, record, fake_capture):
        path = exporter.export_pdf(record, 3)

        assert os.path.basename(path) == "FSR-240102-101500.pdf"
        with pikepdf.open(path) as pdf:
            assert len(pdf.pages) == 3
        assert fake_capture.calls[0][1] == 3
        assert "General Hospital" in fake_capture.calls[0][0]

    def test_single_page_surface(self, tmp_path, geometry, record, capture_factory):
        exporter = ReportExporter(str(tmp_path), geometry=geometry, capture=capture_factory((794, 900)))
        pdf_bytes = exporter.render_pdf(record, 2)
        with pikepdf.open(io.BytesIO(pdf_bytes)) as pdf:
            assert len(pdf.pages) == 1

    def test_unsafe_identifier_is_sanitized(self, exporter, record):
        record.fsr_no = "../FSR 1/2"
        path = exporter.export_pdf(record, 2)
        assert os.path.dirname(path) == exporter.output_dir
        assert os.path.basename(path) == "_FSR_1_2.pdf"

    @pytest.mark.parametrize("scale", [1, 6, "3"])
    def test_invalid_scale_factor(self, exporter, record, fake_capture, scale):
        with pytest.raises(ConfigurationError):
            exporter.export_pdf(record, scale)
        assert fake_capture.calls == []

    def test_empty_surface_produces_no_file(self, tmp_path, geometry, record, capture_factory):
        exporter = ReportExporter(str(tmp_path / "out"), geometry=geometry, capture=capture_factory((794, 0)))
        with pytest.raises(EmptySurfaceError):
            exporter.export_pdf(record, 3)
        assert not os.path.exists(tmp_path / "out" / "FSR-240102-101500.pdf")

    def test_encode_failure_produces_no_file(self, exporter, record, monkeypatch):
        def broken(pages, geometry):
            raise PageEncodeError("page 2 could not be encoded")

        monkeypatch.setattr(pdf_utils, "generate_pdf_from_pages", broken)
        with pytest.raises(PageEncodeError):
            exporter.export_pdf(record, 3)
        assert not os.path.exists(os.path.join(exporter.output_dir, "FSR-240102-101500.pdf"))
        assert not exporter.busy


class TestSingleExport:
    def test_second_export_is_rejected_while_one_is_running(self, tmp_path, geometry, record, capture_factory):
        started = threading.Event()
        release = threading.Event()
        inner = capture_factory((794, 900))

        def slow_capture(html_str, scale_factor):
            started.set()
            release.wait(5)
            return inner(html_str, scale_factor)

        exporter = ReportExporter(str(tmp_path), geometry=geometry, capture=slow_capture)
        results = []
        worker = threading.Thread(target=lambda: results.append(exporter.export_pdf(record, 2)))
        worker.start()
        try:
            assert started.wait(5)
            assert exporter.busy
            with pytest.raises(ExportInProgressError):
                exporter.render_pdf(record, 2)
        finally:
            release.set()
            worker.join(5)

        assert len(results) == 1
        assert not exporter.busy
        assert len(inner.calls) == 1

    def test_guard_is_released_after_failure(self, exporter, record, monkeypatch):
        def broken(*args, **kwargs):
            raise PageEncodeError("boom")

        monkeypatch.setattr(pdf_utils, "generate_pdf_from_pages", broken)
        with pytest.raises(PageEncodeError):
            exporter.render_pdf(record, 2)
        monkeypatch.undo()

        assert exporter.render_pdf(record, 2).startswith(b"%PDF")


    def test_claimed_slot_is_kept_until_the_export_finishes(self, exporter, record):
        exporter.claim()
        assert exporter.busy
        with pytest.raises(ExportInProgressError):
            exporter.claim()
        with pytest.raises(ExportInProgressError):
            exporter.export_pdf(record, 2)

        path = exporter.export_pdf(record, 2, claimed=True)
        assert os.path.exists(path)
        assert not exporter.busy

    def test_claimed_slot_is_released_after_failure(self, exporter, record):
        exporter.claim()
        with pytest.raises(ConfigurationError):
            exporter.export_pdf(record, 9, claimed=True)
        assert not exporter.busy


class TestExportJson:
    def test_writes_snapshot(self, exporter, record):
        path = exporter.export_json(record)
        assert os.path.basename(path) == "FSR-240102-101500.json"
        with open(path, encoding="utf-8") as f:
            doc = json.load(f)
        assert doc["customerName"] == "General Hospital"
        assert doc["fsrNo"] == "FSR-240102-101500"

    def test_empty_identifier_falls_back(self, exporter, record):
        record.fsr_no = ""
        assert os.path.basename(exporter.export_json(record)) == "report.json"
