import base64
import threading
import time

import pytest

from fsr_report.errors import MediaReadError
from fsr_report.media_utils import bytes_to_data_url, convert_all, file_to_data_url, files_to_data_urls
from fsr_report.storage import MemoryStorage
from fsr_report.store import FormStore


class TestDataUrls:
    def test_png(self, png_bytes):
        url = bytes_to_data_url(png_bytes, "logo.png")
        assert url.startswith("data:image/png;base64,")
        assert base64.b64decode(url.split(",", 1)[1]) == png_bytes

    def test_mime_comes_from_content_not_name(self, jpeg_bytes):
        assert bytes_to_data_url(jpeg_bytes, "photo.png").startswith("data:image/jpeg;base64,")

    @pytest.mark.parametrize("data", [b"", b"plain text, not an image"])
    def test_non_image_is_rejected(self, data):
        with pytest.raises(MediaReadError):
            bytes_to_data_url(data, "notes.txt")

    def test_missing_file(self, tmp_path):
        with pytest.raises(MediaReadError):
            file_to_data_url(str(tmp_path / "nope.png"))


class TestBatchConversion:
    def test_three_photos_keep_selection_order(self, image_files):
        data_urls, failed = files_to_data_urls(image_files)
        assert failed == []
        assert [u.split(";")[0] for u in data_urls] == ["data:image/png", "data:image/jpeg", "data:image/png"]
        assert data_urls == [file_to_data_url(p) for p in image_files]

    def test_order_does_not_depend_on_completion_order(self):
        delays = {"slow": 0.2, "medium": 0.1, "fast": 0.0}
        finished = []
        lock = threading.Lock()

        def convert(name):
            time.sleep(delays[name])
            with lock:
                finished.append(name)
            return f"data:image/png;base64,{name}"

        data_urls, _ = convert_all(["slow", "medium", "fast"], convert, max_workers=3)
        assert finished[0] == "fast"
        assert [u.rsplit(",", 1)[1] for u in data_urls] == ["slow", "medium", "fast"]

    def test_failed_item_is_left_out(self, image_files, tmp_path):
        bad = tmp_path / "bad.png"
        bad.write_bytes(b"garbage")
        paths = [image_files[0], str(bad), image_files[2]]

        data_urls, failed = files_to_data_urls(paths)
        assert len(data_urls) == 2
        assert [item for item, _ in failed] == [str(bad)]
        assert isinstance(failed[0][1], MediaReadError)

    def test_upload_appends_three_entries(self, image_files):
        store = FormStore(MemoryStorage())
        data_urls, _ = files_to_data_urls(image_files)
        added = store.add_photos(data_urls)

        assert [p.src for p in store.record.photos] == data_urls
        assert [p.id for p in store.record.photos] == [p.id for p in added]
        assert len({p.id for p in added}) == 3
