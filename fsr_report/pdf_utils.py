"""
Paginate a captured preview surface into A4 pages and assemble a PDF.

The surface is fitted to the page width, so one ratio ``pw / W`` maps source
pixels to PDF points for every page. The source is cut into horizontal slices
of ``ph / ratio`` rows each; the slice grid always advances by that nominal
height, so only the last page can come out shorter than a full page.
"""
import io
import logging
import math
from dataclasses import dataclass
from typing import List

import img2pdf
from PIL import Image

from .config import A4_HEIGHT_MM, A4_WIDTH_MM, PAGE_DPI, PAGE_IMAGE_FORMAT
from .errors import ConfigurationError, EmptySurfaceError, PageEncodeError

logger = logging.getLogger(__name__)

LOSSLESS_FORMATS = ("PNG", "TIFF")
MM_PER_INCH = 25.4


@dataclass(frozen=True)
class PageGeometry:
    """Output page size in PDF points."""
    width: float
    height: float

    @classmethod
    def a4(cls, dpi: float = PAGE_DPI) -> "PageGeometry":
        return cls(A4_WIDTH_MM / MM_PER_INCH * dpi, A4_HEIGHT_MM / MM_PER_INCH * dpi)


@dataclass(frozen=True)
class PageSlice:
    index: int
    top: int
    height: int
    output_width: float
    output_height: float

    @property
    def bottom(self) -> int:
        return self.top + self.height


def _check_geometry(geometry: PageGeometry):
    for name, value in (("width", geometry.width), ("height", geometry.height)):
        if not math.isfinite(value) or value <= 0:
            raise ConfigurationError(f"Page {name} must be a positive number, got {value!r}")


def plan_slices(width: int, height: int, geometry: PageGeometry) -> List[PageSlice]:
    """Return the page slices for a ``width`` x ``height`` surface, top to bottom."""
    if width <= 0 or height <= 0:
        raise EmptySurfaceError(f"Cannot paginate an empty surface ({width}x{height})")
    _check_geometry(geometry)

    pw, ph = geometry.width, geometry.height
    ratio = pw / width
    full_height = height * ratio

    if full_height <= ph:
        return [PageSlice(0, 0, height, pw, full_height)]

    slice_height = ph / ratio
    if slice_height < 1:
        raise ConfigurationError(f"Page height {ph} maps to less than one source row at ratio {ratio}")

    slices = []
    y = 0.0
    while y < height:
        top = math.floor(y)
        bottom = min(math.floor(y + slice_height), height)
        rows = bottom - top
        slices.append(PageSlice(len(slices), top, rows, pw, rows * ratio))
        # Multiply rather than accumulate so the grid never drifts
        y = len(slices) * slice_height
    return slices


def paginate_surface(img: Image.Image, geometry: PageGeometry, image_format: str = PAGE_IMAGE_FORMAT) -> List[bytes]:
    """Cut ``img`` into page slices and encode each one. Raises PageEncodeError on any failure."""
    image_format = image_format.upper()
    if image_format not in LOSSLESS_FORMATS:
        raise ConfigurationError(f"Page images must use a lossless format {LOSSLESS_FORMATS}, got {image_format}")

    slices = plan_slices(img.width, img.height, geometry)
    pages = []
    for page_slice in slices:
        crop = img.crop((0, page_slice.top, img.width, page_slice.bottom))
        buf = io.BytesIO()
        try:
            crop.save(buf, format=image_format)
        except (OSError, ValueError, KeyError) as e:
            raise PageEncodeError(f"Could not encode page {page_slice.index + 1} of {len(slices)}: {e}") from e
        pages.append(buf.getvalue())
    logger.info(f"Paginated {img.width}x{img.height} surface into {len(pages)} page(s)")
    return pages


def page_layout(geometry: PageGeometry):
    """img2pdf layout function: page width fixed to ``geometry.width``, height scaled by the same ratio."""
    def layout_fun(imgwidthpx, imgheightpx, ndpi):
        ratio = geometry.width / imgwidthpx
        page_height = imgheightpx * ratio
        return geometry.width, page_height, geometry.width, page_height
    return layout_fun


def generate_pdf_from_pages(pages: List[bytes], geometry: PageGeometry) -> bytes:
    if not pages:
        raise EmptySurfaceError("No pages to assemble")
    _check_geometry(geometry)
    try:
        return img2pdf.convert(pages, layout_fun=page_layout(geometry))
    except Exception as e:
        raise PageEncodeError(f"Could not assemble {len(pages)} page(s) into a PDF: {e}") from e


def build_document(img: Image.Image, geometry: PageGeometry, image_format: str = PAGE_IMAGE_FORMAT) -> bytes:
    return generate_pdf_from_pages(paginate_surface(img, geometry, image_format), geometry)
