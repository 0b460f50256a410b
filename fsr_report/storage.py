import logging
import os
import re
import tempfile

logger = logging.getLogger(__name__)


def safe_filename(name: str, default: str = "report") -> str:
    safe = re.sub(r"[^A-Za-z0-9_\-.]", "_", (name or "").strip()).strip(".")
    return safe or default


def atomic_write(path: str, data: bytes):
    """Write ``data`` to ``path`` through a temp file so readers never see a partial file."""
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


class MemoryStorage:
    """Key/value storage kept in a dict."""

    def __init__(self, initial=None):
        self.data = dict(initial or {})

    def read(self, key: str):
        return self.data.get(key)

    def write(self, key: str, value: str):
        self.data[key] = value


class FileStorage:
    """Key/value storage with one ``<key>.json`` file per key under ``directory``."""

    def __init__(self, directory: str):
        self.directory = directory

    def path_for(self, key: str) -> str:
        return os.path.join(self.directory, f"{safe_filename(key)}.json")

    def read(self, key: str):
        path = self.path_for(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def write(self, key: str, value: str):
        atomic_write(self.path_for(key), value.encode("utf-8"))
        logger.debug(f"Saved {key} to {self.path_for(key)}")
