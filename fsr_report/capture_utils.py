import io
import logging
import math

from PIL import Image
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from .config import (
    A4_BG_COLOR,
    CAPTURE_TIMEOUT_MS,
    MAX_SCALE_FACTOR,
    MIN_SCALE_FACTOR,
    PREVIEW_ELEMENT_ID,
    PREVIEW_WIDTH_PX,
)
from .errors import CaptureError, ConfigurationError, EmptySurfaceError

logger = logging.getLogger(__name__)

IMAGES_LOADED_JS = "() => Array.from(document.images).every(img => img.complete)"


def validate_scale_factor(scale_factor) -> int:
    if isinstance(scale_factor, bool) or not isinstance(scale_factor, int):
        raise ConfigurationError(f"Scale factor must be an integer, got {scale_factor!r}")
    if not MIN_SCALE_FACTOR <= scale_factor <= MAX_SCALE_FACTOR:
        raise ConfigurationError(
            f"Scale factor must be between {MIN_SCALE_FACTOR} and {MAX_SCALE_FACTOR}, got {scale_factor}"
        )
    return scale_factor


def flatten_to_white(img: Image.Image) -> Image.Image:
    """Drop transparency by compositing onto an opaque white background."""
    if img.mode == "P" and "transparency" in img.info:
        img = img.convert("RGBA")
    if img.mode in ("RGBA", "LA"):
        img = img.convert("RGBA")
        background = Image.new("RGB", img.size, A4_BG_COLOR)
        background.paste(img, mask=img.getchannel("A"))
        return background
    return img.convert("RGB")


def surface_size(layout_width: float, layout_height: float, scale_factor: int):
    return math.floor(layout_width * scale_factor), math.floor(layout_height * scale_factor)


def capture_surface(html_str: str, scale_factor: int, timeout_ms: int = CAPTURE_TIMEOUT_MS) -> Image.Image:
    """
    Render the preview HTML in headless Chromium and screenshot the preview
    element at ``scale_factor`` times its layout size, on a white background.
    """
    validate_scale_factor(scale_factor)
    try:
        with sync_playwright() as p:
            browser = p.chromium.launch()
            try:
                page = browser.new_page(
                    viewport={"width": PREVIEW_WIDTH_PX, "height": 1123},
                    device_scale_factor=scale_factor,
                )
                page.set_content(html_str, wait_until="networkidle", timeout=timeout_ms)
                page.wait_for_function(IMAGES_LOADED_JS, timeout=timeout_ms)

                element = page.locator(f"#{PREVIEW_ELEMENT_ID}")
                box = element.bounding_box(timeout=timeout_ms)
                if not box:
                    raise EmptySurfaceError("Preview element is not laid out")
                width, height = surface_size(box["width"], box["height"], scale_factor)
                if width == 0 or height == 0:
                    raise EmptySurfaceError(f"Preview element has no area ({box['width']}x{box['height']})")

                png = element.screenshot(type="png", timeout=timeout_ms)
            finally:
                browser.close()
    except PlaywrightError as e:
        raise CaptureError(f"Could not render preview: {e}") from e

    img = flatten_to_white(Image.open(io.BytesIO(png)))
    if img.size != (width, height):
        logger.debug(f"Screenshot is {img.size}, normalizing to {(width, height)}")
        img = img.resize((width, height), Image.LANCZOS)
    logger.info(f"Captured preview surface {width}x{height} at scale {scale_factor}")
    return img
