"""Tests for stickerworks.core.image_store: the file-backed sticker store.

Tests cover:
- Lazy directory creation.
- File naming as a pure function of id, and overwrite on re-save.
- Newest-first ordering by creation time.
- Pixel round trip through PNG.
- The explicit skip-invalid policy for foreign, corrupt or oversized files.
"""

from __future__ import annotations

import os
import uuid

import pytest
from PIL import Image

from stickerworks.core.image_store import ImageStore, ImageStoreError


def _set_created(path, timestamp: float) -> None:
    os.utime(path, (timestamp, timestamp))


class TestSave:
    """ImageStore.save writes one PNG per id."""

    def test_creates_directory_on_first_use(self, store: ImageStore, stickers_dir, make_image):
        assert not stickers_dir.exists()
        store.save(make_image(), uuid.uuid4())
        assert stickers_dir.is_dir()

    def test_file_named_by_id(self, store: ImageStore, stickers_dir, make_image):
        image_id = uuid.uuid4()
        path = store.save(make_image(), image_id)
        assert path == stickers_dir / f"{image_id}.png"
        assert path.is_file()

    def test_file_is_png(self, store: ImageStore, make_image):
        path = store.save(make_image(), uuid.uuid4())
        assert path.read_bytes().startswith(b"\x89PNG\r\n\x1a\n")

    def test_save_same_id_overwrites(self, store: ImageStore, stickers_dir, make_image):
        image_id = uuid.uuid4()
        store.save(make_image((255, 0, 0, 255)), image_id)
        store.save(make_image((0, 255, 0, 255)), image_id)

        assert len(list(stickers_dir.iterdir())) == 1
        loaded = store.load_all()
        assert [image.id for image in loaded] == [image_id]
        assert loaded[0].bitmap.getpixel((0, 0)) == (0, 255, 0, 255)

    def test_unwritable_location_raises(self, temp_dir, make_image):
        blocker = temp_dir / "blocker"
        blocker.write_text("not a directory")
        store = ImageStore(blocker / "Stickers")
        with pytest.raises(ImageStoreError):
            store.save(make_image(), uuid.uuid4())


class TestLoadAll:
    """ImageStore.load_all reads the directory newest first."""

    def test_empty_directory(self, store: ImageStore, stickers_dir):
        assert store.load_all() == []
        assert stickers_dir.is_dir()

    def test_newest_first(self, store: ImageStore, make_image):
        first_id, second_id = uuid.uuid4(), uuid.uuid4()
        first_path = store.save(make_image((255, 0, 0, 255)), first_id)
        second_path = store.save(make_image((0, 0, 255, 255)), second_id)
        _set_created(first_path, 1_700_000_000)
        _set_created(second_path, 1_700_000_100)

        loaded = store.load_all()

        assert [image.id for image in loaded] == [second_id, first_id]

    def test_pixels_round_trip(self, store: ImageStore, make_image):
        red = make_image((255, 0, 0, 255), size=(4, 3))
        blue = make_image((0, 0, 255, 64), size=(5, 2))
        red_id, blue_id = uuid.uuid4(), uuid.uuid4()
        _set_created(store.save(red, red_id), 1_700_000_000)
        _set_created(store.save(blue, blue_id), 1_700_000_100)

        by_id = {image.id: image.bitmap for image in store.load_all()}

        assert by_id[red_id].tobytes() == red.tobytes()
        assert by_id[red_id].size == (4, 3)
        assert by_id[blue_id].tobytes() == blue.tobytes()
        assert by_id[blue_id].mode == "RGBA"

    def test_identical_timestamps_are_stable(self, store: ImageStore, make_image):
        ids = [uuid.uuid4() for _ in range(3)]
        for image_id in ids:
            _set_created(store.save(make_image(), image_id), 1_700_000_000)

        first = [image.id for image in store.load_all()]
        second = [image.id for image in store.load_all()]

        assert first == second
        assert sorted(first, key=str, reverse=True) == first

    def test_skips_invalid_names(self, store: ImageStore, stickers_dir, make_image):
        image_id = uuid.uuid4()
        store.save(make_image(), image_id)
        make_image().save(stickers_dir / "not-a-uuid.png")
        (stickers_dir / f"{uuid.uuid4()}.txt").write_text("notes")
        (stickers_dir / "subfolder").mkdir()

        assert [image.id for image in store.load_all()] == [image_id]

    def test_skips_undecodable_files(self, store: ImageStore, stickers_dir, make_image):
        image_id = uuid.uuid4()
        store.save(make_image(), image_id)
        (stickers_dir / f"{uuid.uuid4()}.png").write_bytes(b"definitely not a png")

        assert [image.id for image in store.load_all()] == [image_id]

    def test_skips_oversized_files(
        self, store: ImageStore, stickers_dir, make_image, png_bytes, monkeypatch
    ):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 300)
        image_id = uuid.uuid4()
        store.save(make_image(), image_id)
        (stickers_dir / f"{uuid.uuid4()}.png").write_bytes(png_bytes(make_image(size=(64, 64))))

        assert [image.id for image in store.load_all()] == [image_id]

    def test_strict_mode_reports_oversized_files(
        self, store: ImageStore, stickers_dir, make_image, png_bytes, monkeypatch
    ):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 300)
        stickers_dir.mkdir(parents=True)
        (stickers_dir / f"{uuid.uuid4()}.png").write_bytes(png_bytes(make_image(size=(64, 64))))

        with pytest.raises(ImageStoreError, match="decode"):
            store.load_all(skip_invalid=False)

    def test_strict_mode_reports_invalid_names(self, store: ImageStore, stickers_dir, make_image):
        store.save(make_image(), uuid.uuid4())
        (stickers_dir / "readme.md").write_text("hello")

        with pytest.raises(ImageStoreError, match="readme.md"):
            store.load_all(skip_invalid=False)

    def test_strict_mode_reports_undecodable_files(self, store: ImageStore, stickers_dir):
        stickers_dir.mkdir(parents=True)
        (stickers_dir / f"{uuid.uuid4()}.png").write_bytes(b"\x00\x01\x02")

        with pytest.raises(ImageStoreError, match="decode"):
            store.load_all(skip_invalid=False)

    def test_path_for_is_pure(self, store: ImageStore):
        image_id = uuid.UUID("12345678-1234-5678-1234-567812345678")
        assert store.path_for(image_id).name == "12345678-1234-5678-1234-567812345678.png"
        assert store.path_for(image_id) == store.path_for(image_id)
