"""
Shared pytest fixtures.

The headless browser is never started in tests: exporters get a fake capture
callable that returns a Pillow image of a chosen size.
"""
import io
from pathlib import Path

import pytest
from PIL import Image

from fsr_report.models import FsrRecord
from fsr_report.pdf_utils import PageGeometry
from fsr_report.report import ReportExporter
from fsr_report.storage import MemoryStorage
from fsr_report.store import FormStore


def make_png(size=(8, 6), color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def make_jpeg(size=(8, 6), color=(30, 30, 200)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="JPEG")
    return buf.getvalue()


class FakeCapture:
    """Stands in for capture_surface; records every call."""

    def __init__(self, size=(794, 3000)):
        self.size = size
        self.calls = []

    def __call__(self, html_str, scale_factor):
        self.calls.append((html_str, scale_factor))
        return Image.new("RGB", self.size, "white")


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage: MemoryStorage) -> FormStore:
    return FormStore(storage)


@pytest.fixture
def record() -> FsrRecord:
    return FsrRecord(fsr_no="FSR-240102-101500", customer_name="General Hospital")


@pytest.fixture
def geometry() -> PageGeometry:
    return PageGeometry(794, 1123)


@pytest.fixture
def fake_capture() -> FakeCapture:
    return FakeCapture()


@pytest.fixture
def exporter(tmp_path: Path, geometry: PageGeometry, fake_capture: FakeCapture) -> ReportExporter:
    return ReportExporter(str(tmp_path / "out"), geometry=geometry, capture=fake_capture)


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def image_files(tmp_path: Path):
    """Three image files of different formats, in selection order."""
    paths = []
    for name, data in [("a.png", make_png()), ("b.jpg", make_jpeg()), ("c.png", make_png(color=(0, 120, 0)))]:
        path = tmp_path / name
        path.write_bytes(data)
        paths.append(str(path))
    return paths


@pytest.fixture
def capture_factory():
    return FakeCapture


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_jpeg()
