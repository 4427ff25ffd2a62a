"""
Image Buffer and Image Source Unit Tests
"""

import threading

import cv2
import numpy as np
import pytest

from tests.conftest import bright_square_image
from visionflow.vision import (
    ImageFileSource, ImageFolderSource, ImageSourceFactory, SourceType,
    buffer_to_image, image_to_buffer
)


class TestImageBuffer:
    """Raw BGR buffer conversion"""

    def test_round_trip_preserves_pixels(self):
        image = bright_square_image()
        restored = buffer_to_image(image_to_buffer(image), 100, 80)
        assert restored.shape == (80, 100, 3)
        assert np.array_equal(restored, image)

    def test_size_mismatch_raises(self):
        with pytest.raises(ValueError):
            buffer_to_image(b"\x00" * 10, 2, 2)

    def test_non_positive_size_raises(self):
        with pytest.raises(ValueError):
            buffer_to_image(b"", 0, 5)

    def test_gray_image_is_expanded(self):
        gray = np.full((4, 5), 7, dtype=np.uint8)
        data = image_to_buffer(gray)
        assert len(data) == 4 * 5 * 3
        assert set(data) == {7}

    def test_array_input_must_be_uint8(self):
        with pytest.raises(ValueError):
            buffer_to_image(np.zeros(12, dtype=np.float32), 2, 2)


class TestImageFileSource:

    def test_capture_returns_frame(self, tmp_path):
        path = tmp_path / "part.png"
        cv2.imwrite(str(path), bright_square_image())

        with ImageFileSource(path) as source:
            assert source.is_available()
            frame = source.capture()
            assert (frame.width, frame.height) == (100, 80)
            assert len(frame.data) == 100 * 80 * 3
            assert frame.metadata['source'] == str(path)
            assert source.get_metadata()['width'] == 100

    def test_missing_file_is_unavailable(self, tmp_path):
        source = ImageFileSource(tmp_path / "missing.png")
        assert not source.is_available()
        assert source.capture() is None


class TestImageFolderSource:

    def write_images(self, folder):
        cv2.imwrite(str(folder / "b.png"), bright_square_image())
        cv2.imwrite(str(folder / "a.png"), bright_square_image(x=10))
        (folder / "notes.txt").write_text("not an image")

    def test_iterates_in_name_order_until_exhausted(self, tmp_path):
        self.write_images(tmp_path)
        source = ImageFolderSource(tmp_path)

        assert source.get_metadata()['image_count'] == 2
        assert source.capture().metadata['source'].endswith("a.png")
        assert source.capture().metadata['source'].endswith("b.png")
        assert not source.is_available()
        assert source.capture() is None

    def test_loop_restarts(self, tmp_path):
        self.write_images(tmp_path)
        source = ImageFolderSource(tmp_path, loop=True)
        for _ in range(3):
            frame = source.capture()
        assert frame.metadata['source'].endswith("a.png")
        assert source.is_available()

    def test_loop_over_unreadable_files_ends(self, tmp_path):
        (tmp_path / "a.png").write_bytes(b"not an image")
        (tmp_path / "b.png").write_bytes(b"")
        source = ImageFolderSource(tmp_path, loop=True)
        frames = []

        worker = threading.Thread(target=lambda: frames.append(source.capture()), daemon=True)
        worker.start()
        worker.join(timeout=5)

        assert not worker.is_alive()
        assert frames == [None]
        assert not source.is_available()

    def test_unreadable_file_is_skipped(self, tmp_path):
        self.write_images(tmp_path)
        (tmp_path / "aa.png").write_bytes(b"not an image")
        source = ImageFolderSource(tmp_path)

        names = [source.capture().metadata['source'] for _ in range(2)]

        assert names[0].endswith("a.png") and names[1].endswith("b.png")
        assert source.capture() is None


class TestImageSourceFactory:

    def test_directory_gives_folder_source(self, tmp_path):
        source = ImageSourceFactory.create_source_from_path(tmp_path)
        assert source.get_source_type() == SourceType.IMAGE_FOLDER

    def test_file_config(self, tmp_path):
        path = tmp_path / "part.png"
        cv2.imwrite(str(path), bright_square_image())
        source = ImageSourceFactory.create_source_from_config({'type': 'file', 'filepath': str(path)})
        assert source.get_source_type() == SourceType.IMAGE_FILE

    def test_invalid_config(self):
        assert ImageSourceFactory.create_source_from_config({'type': 'scanner'}) is None

    def test_folder_config_and_description(self, tmp_path):
        source = ImageSourceFactory.create_source_from_config(
            {'type': 'folder', 'folder': str(tmp_path), 'loop': True}
        )
        assert source.get_source_type() == SourceType.IMAGE_FOLDER
        assert source.get_source_info() == f"image_folder: {tmp_path}"
        assert source.get_metadata()['loop'] is True
