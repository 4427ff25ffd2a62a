"""
Raw Image Buffer Conversion
Frames travel through the flow as raw buffers: 3 bytes per pixel in
blue-green-red order, row-major, stride = width * 3, no padding.
"""

import cv2
import numpy as np


BYTES_PER_PIXEL = 3


def expected_size(width: int, height: int) -> int:
    """Number of bytes in a BGR buffer of the given size."""
    return width * height * BYTES_PER_PIXEL


def buffer_to_image(data, width: int, height: int) -> np.ndarray:
    """
    Wrap a raw BGR buffer as an image array.

    Args:
        data: bytes/bytearray/memoryview or uint8 array with width*height*3 elements
        width: Image width in pixels
        height: Image height in pixels

    Returns:
        (height, width, 3) uint8 array

    Raises:
        ValueError: If the buffer size does not match the dimensions
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid image size: {width}x{height}")

    if isinstance(data, np.ndarray):
        flat = data.reshape(-1)
        if flat.dtype != np.uint8:
            raise ValueError(f"Image buffer must be uint8, got {flat.dtype}")
    else:
        flat = np.frombuffer(data, dtype=np.uint8)

    if flat.size != expected_size(width, height):
        raise ValueError(
            f"Buffer size {flat.size} does not match {width}x{height}x{BYTES_PER_PIXEL}"
        )

    return flat.reshape(height, width, BYTES_PER_PIXEL)


def image_to_buffer(image: np.ndarray) -> bytes:
    """Serialize an image array to a raw BGR buffer (gray images are expanded)."""
    if image.ndim == 2:
        image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    return np.ascontiguousarray(image, dtype=np.uint8).tobytes()


def to_gray(image: np.ndarray) -> np.ndarray:
    """Convert to grayscale if needed."""
    if image.ndim == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    return image.copy()
