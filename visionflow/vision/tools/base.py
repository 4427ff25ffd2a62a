"""
Vision Tool Base
Common contract for the algorithmic tools invoked by flow nodes.
"""

import copy
import uuid
import cv2
import numpy as np
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import logging

from ...models.enums import InspectionStatus, VisionToolType, parse_bool
from ...models.results import VisionToolResult
from ...models.roi import ROI
from ...utils.timer import PerformanceTimer
from ..image_buffer import buffer_to_image, image_to_buffer
from ..roi_mask import roi_bounding_rect

logger = logging.getLogger(__name__)


def config_value(config: Dict, key: str, default, cast=None):
    """
    Read a configuration value, falling back to the default when it is
    missing or cannot be converted.
    """
    value = config.get(key, default)
    if value is None:
        return default
    cast = cast or type(default)
    try:
        if cast is bool:
            return parse_bool(value, default)
        return cast(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid value for '{key}': {value!r}, using {default!r}")
        return default


class VisionTool(ABC):
    """
    Base class for vision tools.

    Subclasses implement `_process` on a decoded BGR image; `execute` handles
    buffer decoding, ROI cropping, timing and error capture so that tools
    never raise across their boundary.
    """

    tool_type: VisionToolType = None

    def __init__(self, name: str = "", tool_id: Optional[str] = None):
        self.tool_id = tool_id or str(uuid.uuid4())
        self.name = name or self.__class__.__name__
        self.config: Dict[str, Any] = {}
        self.is_configured = False
        self._token = None

    def configure(self, config: Optional[Dict]):
        """Absorb a configuration payload (missing keys keep their defaults)."""
        self.config = copy.deepcopy(config or {})
        self._on_configure(self.config)
        self.is_configured = True

    def _on_configure(self, config: Dict):
        pass

    def get_configuration(self) -> Dict:
        return copy.deepcopy(self.config)

    def reset(self):
        pass

    @property
    def is_cancelled(self) -> bool:
        return self._token is not None and self._token.is_cancelled

    def cancelled_result(self) -> VisionToolResult:
        logger.info(f"{self.name}: cancelled")
        return VisionToolResult.failure("Cancelled", status=InspectionStatus.NOT_INSPECTED)

    def execute(self, data: bytes, width: int, height: int,
                roi: Optional[ROI] = None,
                mask: Optional[np.ndarray] = None,
                token=None) -> VisionToolResult:
        """
        Run the tool on a raw BGR buffer.

        Args:
            data: BGR image buffer
            width: Image width
            height: Image height
            roi: Optional region; the image is cropped to its bounding rect
            mask: Optional full-size processing mask (255 = processed)
            token: Optional cancellation token polled between processing stages

        Returns:
            VisionToolResult; failures are reported, never raised
        """
        timer = PerformanceTimer(self.name).start()
        self._token = token
        try:
            full_image, image, offset, mask = self._prepare(data, width, height, roi, mask)
            result = self._process(image, full_image, offset, mask)
        except cv2.error as e:
            logger.error(f"{self.name} OpenCV error: {e}")
            result = VisionToolResult.failure(f"{self.name} failed: {e}")
        except Exception as e:
            logger.exception(f"{self.name} failed")
            result = VisionToolResult.failure(f"{self.name} failed: {e}")
        finally:
            self._token = None

        result.execution_time_ms = timer.stop()
        return result

    def _prepare(self, data, width: int, height: int, roi: Optional[ROI],
                 mask: Optional[np.ndarray]):
        """Decode the buffer and crop image and mask to the ROI bounds."""
        full_image = buffer_to_image(data, width, height)
        if mask is not None and mask.shape[:2] != (height, width):
            raise ValueError(f"Mask size {mask.shape[1]}x{mask.shape[0]} does not match image")
        if roi is None:
            return full_image, full_image, (0, 0), mask

        rect = roi_bounding_rect(roi, width, height)
        if rect is None:
            raise ValueError(f"ROI '{roi.name}' is outside the image")
        x, y, w, h = rect
        if mask is not None:
            mask = mask[y:y + h, x:x + w]
        return full_image, full_image[y:y + h, x:x + w], (x, y), mask

    @abstractmethod
    def _process(self, image: np.ndarray, full_image: np.ndarray, offset,
                 mask: Optional[np.ndarray]) -> VisionToolResult:
        """
        Analyze the (optionally cropped) image.

        `offset` maps crop coordinates to full-image coordinates; overlays are
        drawn on a copy of `full_image`.
        """
        pass

    @staticmethod
    def encode_overlay(overlay: np.ndarray) -> bytes:
        return image_to_buffer(overlay)
