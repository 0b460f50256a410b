import logging
import os
import threading
from contextlib import contextmanager
from typing import Callable, Optional

from PIL import Image

from .capture_utils import capture_surface, validate_scale_factor
from .config import PAGE_IMAGE_FORMAT, PDF_QUALITY, REPORT_OUTPUT_DIR
from .errors import ExportInProgressError
from .models import FsrRecord
from .pdf_utils import PageGeometry, build_document
from .preview import render_preview_html
from .storage import atomic_write, safe_filename
from .store import record_to_json

logger = logging.getLogger(__name__)


class ReportExporter:
    """
    Turns a record into PDF / JSON artifacts.

    Only one export runs at a time; a request made while another is in flight
    raises ExportInProgressError instead of waiting.
    """

    def __init__(
        self,
        output_dir: str = REPORT_OUTPUT_DIR,
        geometry: Optional[PageGeometry] = None,
        capture: Callable[[str, int], Image.Image] = capture_surface,
        image_format: str = PAGE_IMAGE_FORMAT,
    ):
        self.output_dir = output_dir
        self.geometry = geometry or PageGeometry.a4()
        self.capture = capture
        self.image_format = image_format
        self._busy = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    def claim(self):
        """Take the export slot now, for an export that will run later with ``claimed=True``."""
        if not self._busy.acquire(blocking=False):
            raise ExportInProgressError("An export is already running")

    @contextmanager
    def exclusive(self, claimed: bool = False):
        if not claimed:
            self.claim()
        try:
            yield
        finally:
            self._busy.release()

    def artifact_name(self, record: FsrRecord, extension: str) -> str:
        return f"{safe_filename(record.fsr_no)}.{extension}"

    def _render(self, record: FsrRecord, scale_factor: int) -> bytes:
        html_str = render_preview_html(record)
        surface = self.capture(html_str, scale_factor)
        try:
            return build_document(surface, self.geometry, self.image_format)
        finally:
            surface.close()

    def render_pdf(self, record: FsrRecord, scale_factor: int = PDF_QUALITY) -> bytes:
        """Capture the record's preview and return the assembled PDF bytes."""
        validate_scale_factor(scale_factor)
        logger.info(f"Rendering {record.fsr_no} as PDF at scale {scale_factor}")
        with self.exclusive():
            try:
                return self._render(record, scale_factor)
            except Exception as e:
                logger.error(f"PDF export of {record.fsr_no} failed: {e}")
                raise

    def export_pdf(self, record: FsrRecord, scale_factor: int = PDF_QUALITY, claimed: bool = False) -> str:
        """
        Write ``<fsrNo>.pdf`` into the output directory. Nothing is written on failure.

        With ``claimed=True`` the caller already holds the export slot from
        ``claim()``; it is released when this call returns or raises.
        """
        path = os.path.join(self.output_dir, self.artifact_name(record, "pdf"))
        with self.exclusive(claimed):
            validate_scale_factor(scale_factor)
            try:
                pdf_bytes = self._render(record, scale_factor)
            except Exception as e:
                logger.error(f"PDF export of {record.fsr_no} failed: {e}")
                raise
            atomic_write(path, pdf_bytes)
        logger.info(f"PDF saved to {path}")
        return path

    def export_json(self, record: FsrRecord) -> str:
        path = os.path.join(self.output_dir, self.artifact_name(record, "json"))
        atomic_write(path, record_to_json(record).encode("utf-8"))
        logger.info(f"JSON snapshot saved to {path}")
        return path
