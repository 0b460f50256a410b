import base64
import concurrent.futures
import io
import logging
import os
from typing import List, Optional, Sequence, Tuple

from PIL import Image, UnidentifiedImageError

from .config import PHOTO_UPLOAD_WORKERS
from .errors import MediaReadError

logger = logging.getLogger(__name__)


def bytes_to_data_url(data: bytes, filename: Optional[str] = None) -> str:
    """Encode image bytes as a self-describing ``data:`` URL."""
    label = filename or "upload"
    if not data:
        raise MediaReadError(f"{label} is empty")
    try:
        with Image.open(io.BytesIO(data)) as img:
            mime = Image.MIME.get(img.format)
    except (UnidentifiedImageError, OSError) as e:
        raise MediaReadError(f"{label} is not a readable image: {e}") from e
    if not mime:
        raise MediaReadError(f"{label} has no known image MIME type")
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def file_to_data_url(path: str) -> str:
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise MediaReadError(f"Could not read {path}: {e}") from e
    return bytes_to_data_url(data, os.path.basename(path))


def convert_all(items: Sequence, convert, max_workers: int = PHOTO_UPLOAD_WORKERS) -> Tuple[List[str], List[Tuple[object, MediaReadError]]]:
    """
    Run ``convert`` over ``items`` in a thread pool.
    Returns (data URLs in input order, [(item, error), ...] for items that failed).
    """
    def attempt(item):
        try:
            return convert(item), None
        except MediaReadError as e:
            return None, e

    with concurrent.futures.ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        outcomes = list(executor.map(attempt, items))

    converted, failed = [], []
    for item, (data_url, error) in zip(items, outcomes):
        if error is None:
            converted.append(data_url)
        else:
            logger.warning(f"Skipping upload: {error}")
            failed.append((item, error))
    return converted, failed


def files_to_data_urls(paths: Sequence[str], max_workers: int = PHOTO_UPLOAD_WORKERS):
    return convert_all(list(paths), file_to_data_url, max_workers=max_workers)
