import os

ROOT_PATH = os.getenv("ROOT_PATH", "/fsr")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

FSR_STORAGE_DIR = os.getenv("FSR_STORAGE_DIR", os.path.expanduser("~/.fsr_report"))
STORAGE_KEY = os.getenv("FSR_STORAGE_KEY", "fsr_form_v2")
REPORT_OUTPUT_DIR = os.getenv("REPORT_OUTPUT_DIR", "/tmp/fsr_reports")
REPORT_INPUT_DIR = os.getenv("REPORT_INPUT_DIR", "")

# Export quality (render scale), 2..5
PDF_QUALITY = int(os.getenv("PDF_QUALITY", "3"))
MIN_SCALE_FACTOR = 2
MAX_SCALE_FACTOR = 5
PAGE_IMAGE_FORMAT = "PNG"

# A4 page in PDF points at PAGE_DPI (96 DPI keeps one point per preview pixel)
PAGE_DPI = float(os.getenv("PAGE_DPI", "96"))
A4_WIDTH_MM = 210.0
A4_HEIGHT_MM = 297.0
A4_BG_COLOR = "white"

# Live preview (~210mm @96dpi)
PREVIEW_WIDTH_PX = 794
PREVIEW_PADDING_PX = 24
PREVIEW_ELEMENT_ID = "preview"

CAPTURE_TIMEOUT_MS = int(os.getenv("CAPTURE_TIMEOUT_MS", "30000"))
PHOTO_UPLOAD_WORKERS = int(os.getenv("PHOTO_UPLOAD_WORKERS", "4"))
