"""
Capture Interface
Frame providers consumed by the flow engine. Every source yields a Frame
holding a raw BGR buffer plus its dimensions; acquisition details stay
behind this interface.
"""

import cv2
import numpy as np
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, List, Union
from enum import Enum
import logging

from .image_buffer import image_to_buffer

logger = logging.getLogger(__name__)


SUPPORTED_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.bmp', '.tif', '.tiff')


class SourceType(Enum):
    IMAGE_FILE = "image_file"
    IMAGE_FOLDER = "image_folder"
    VIDEO_CAPTURE = "video_capture"


@dataclass
class Frame:
    """One captured frame as a raw BGR buffer."""
    data: bytes
    width: int
    height: int
    metadata: Dict = field(default_factory=dict)

    @classmethod
    def from_image(cls, image: np.ndarray, **metadata) -> 'Frame':
        height, width = image.shape[:2]
        return cls(data=image_to_buffer(image), width=width, height=height,
                   metadata=metadata)


class ImageSource(ABC):
    """
    Base class for frame providers; usable as a context manager so the
    underlying device or file list is released after a batch.
    """

    source_type: SourceType = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False

    @abstractmethod
    def capture(self) -> Optional[Frame]:
        """Next frame, or None when nothing (more) is available."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        pass

    @abstractmethod
    def release(self):
        pass

    @abstractmethod
    def describe(self) -> str:
        pass

    def get_source_info(self) -> str:
        return f"{self.source_type.value}: {self.describe()}"

    def get_source_type(self) -> SourceType:
        return self.source_type

    def get_metadata(self) -> Dict:
        metadata = {'source_type': self.source_type.value, 'available': self.is_available()}
        metadata.update(self._extra_metadata())
        return metadata

    def _extra_metadata(self) -> Dict:
        return {}


def read_image(filepath: Path) -> Optional[np.ndarray]:
    """cv2.imread in color mode; logs and returns None for unreadable files."""
    image = cv2.imread(str(filepath), cv2.IMREAD_COLOR)
    if image is None:
        logger.error(f"Failed to load image: {filepath}")
    return image


class ImageFileSource(ImageSource):
    """A single image file; every capture returns the same frame."""

    source_type = SourceType.IMAGE_FILE

    def __init__(self, filepath):
        self.filepath = Path(filepath)
        self.image = read_image(self.filepath)
        if self.image is not None:
            h, w = self.image.shape[:2]
            logger.info(f"Image source ready: {self.filepath.name} {w}x{h}")

    def capture(self) -> Optional[Frame]:
        if self.image is None:
            return None
        return Frame.from_image(self.image, source=str(self.filepath))

    def is_available(self) -> bool:
        return self.image is not None

    def release(self):
        self.image = None

    def describe(self) -> str:
        return str(self.filepath)

    def _extra_metadata(self) -> Dict:
        if self.image is None:
            return {'filepath': str(self.filepath)}
        h, w = self.image.shape[:2]
        return {'filepath': str(self.filepath), 'width': w, 'height': h}


class ImageFolderSource(ImageSource):
    """Supported image files of a folder, in name order; optionally looping."""

    source_type = SourceType.IMAGE_FOLDER

    def __init__(self, folder, loop: bool = False):
        self.folder = Path(folder)
        self.loop = loop
        self.files: List[Path] = []
        self.index = 0
        if self.folder.is_dir():
            self.files = sorted(
                p for p in self.folder.iterdir()
                if p.is_file() and p.suffix.lower() in SUPPORTED_EXTENSIONS
            )
            logger.info(f"Image folder opened: {self.folder} ({len(self.files)} images)")
        else:
            logger.error(f"Image folder not found: {self.folder}")

    def capture(self) -> Optional[Frame]:
        # Unreadable files are dropped, so a loop over only broken files ends
        while self.files:
            if self.index >= len(self.files):
                if not self.loop:
                    return None
                self.index = 0

            filepath = self.files[self.index]
            image = read_image(filepath)
            if image is None:
                del self.files[self.index]
                continue
            self.index += 1
            return Frame.from_image(image, source=str(filepath), index=self.index - 1)
        return None

    def is_available(self) -> bool:
        return bool(self.files) and (self.loop or self.index < len(self.files))

    def release(self):
        self.files = []
        self.index = 0

    def describe(self) -> str:
        return str(self.folder)

    def _extra_metadata(self) -> Dict:
        return {
            'folder': str(self.folder),
            'image_count': len(self.files),
            'position': self.index,
            'loop': self.loop,
        }


class VideoCaptureSource(ImageSource):
    """
    Frames from cv2.VideoCapture: a camera index, a video file or a stream URL.
    """

    source_type = SourceType.VIDEO_CAPTURE

    def __init__(self, device: Union[int, str] = 0):
        self.device = device
        self.frames_read = 0
        self.capture_device = cv2.VideoCapture(device)
        if self.capture_device.isOpened():
            logger.info(f"Video capture opened: {device}")
        else:
            logger.error(f"Failed to open video capture: {device}")
            self.capture_device = None

    def capture(self) -> Optional[Frame]:
        if not self.is_available():
            return None
        grabbed, image = self.capture_device.read()
        if not grabbed:
            logger.warning(f"No frame from {self.device} after {self.frames_read} frames")
            return None
        self.frames_read += 1
        return Frame.from_image(image, source=str(self.device), frame_number=self.frames_read)

    def is_available(self) -> bool:
        return self.capture_device is not None and self.capture_device.isOpened()

    def release(self):
        if self.capture_device is not None:
            self.capture_device.release()
            self.capture_device = None

    def describe(self) -> str:
        return str(self.device)

    def _extra_metadata(self) -> Dict:
        metadata = {'device': str(self.device), 'frames_read': self.frames_read}
        if self.is_available():
            metadata['fps'] = self.capture_device.get(cv2.CAP_PROP_FPS)
        return metadata


class ImageSourceFactory:
    """Builds sources from a path or a source configuration document."""

    @staticmethod
    def create_source_from_path(path) -> ImageSource:
        """Directory -> ImageFolderSource, anything else -> ImageFileSource."""
        path = Path(path)
        if path.is_dir():
            return ImageFolderSource(path)
        return ImageFileSource(path)

    @staticmethod
    def create_source_from_config(config: Dict) -> Optional[ImageSource]:
        """
        Config keys:
            type: file | folder | camera | video
            filepath (file), folder + loop (folder),
            index (camera), url (video)
        """
        kind = str(config.get('type', '')).lower()
        if kind in ('file', 'image', 'image_file') and config.get('filepath'):
            return ImageFileSource(config['filepath'])
        if kind in ('folder', 'image_folder') and config.get('folder'):
            return ImageFolderSource(config['folder'], loop=bool(config.get('loop', False)))
        if kind == 'camera':
            return VideoCaptureSource(int(config.get('index', 0)))
        if kind == 'video' and config.get('url'):
            return VideoCaptureSource(str(config['url']))

        logger.error(f"Unsupported source configuration: {config}")
        return None
