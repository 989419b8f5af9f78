"""Tests for album and bitmap persistence."""

import cv2
import numpy as np
import pytest

from hvcsense.storage.album_store import load_album, save_album
from hvcsense.storage.bitmap_writer import save_bitmap


class TestAlbumStore:

    def test_save_then_load(self, tmp_path):
        path = save_album(tmp_path / "HVCAlbum.alb", b"\x01\x02\x03")
        assert load_album(path) == b"\x01\x02\x03"

    def test_overwrite_leaves_no_temp_files(self, tmp_path):
        target = tmp_path / "HVCAlbum.alb"
        save_album(target, b"old")
        save_album(target, b"new")

        assert target.read_bytes() == b"new"
        assert [p.name for p in tmp_path.iterdir()] == ["HVCAlbum.alb"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_album(tmp_path / "missing.alb")

    def test_empty_file(self, tmp_path):
        target = tmp_path / "empty.alb"
        target.write_bytes(b"")
        with pytest.raises(ValueError):
            load_album(target)


class TestBitmapWriter:

    def test_writes_readable_bmp(self, tmp_path):
        image = np.full((120, 160), 42, dtype=np.uint8)

        path = save_bitmap(image, tmp_path / "out" / "DetectionImage.bmp")

        loaded = cv2.imread(str(path), cv2.IMREAD_GRAYSCALE)
        assert loaded.shape == (120, 160)
        assert int(loaded[0, 0]) == 42

    def test_empty_image_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            save_bitmap(np.zeros((0, 0), dtype=np.uint8), tmp_path / "x.bmp")
