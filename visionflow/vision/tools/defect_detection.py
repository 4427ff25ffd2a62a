"""
Defect Detection Tool
Finds bright and dark spots by thresholding, morphology and contour analysis.
"""

import math
import cv2
import numpy as np
from typing import Dict, List, Optional
import logging

from .base import VisionTool, config_value
from ..image_buffer import to_gray
from ...config.settings import VisionToolDefaults
from ...models.enums import DefectType, InspectionStatus, VisionToolType
from ...models.results import Defect, VisionToolResult

logger = logging.getLogger(__name__)


def circularity(area: float, perimeter: float) -> float:
    """4*pi*A / P^2; 1.0 for a perfect disc, 0 for a degenerate contour."""
    if perimeter <= 0:
        return 0.0
    return 4.0 * math.pi * area / (perimeter * perimeter)


class DefectDetectionTool(VisionTool):
    """
    Spot defect detector.

    Config keys:
        binaryThreshold: intensity threshold (0-255)
        minArea / maxArea: accepted contour area band in pixels
        circularityMin / circularityMax: accepted circularity band
        morphologyKernel: ellipse kernel size, <= 0 disables open/close
        detectWhite / detectBlack: enable bright / dark spot passes
    """

    tool_type = VisionToolType.DEFECT_DETECTION

    def __init__(self, name: str = "Defect Detection", tool_id: Optional[str] = None):
        super().__init__(name, tool_id)
        self._on_configure({})

    def _on_configure(self, config: Dict):
        self.binary_threshold = config_value(config, 'binaryThreshold',
                                             VisionToolDefaults.BINARY_THRESHOLD)
        self.min_area = config_value(config, 'minArea', VisionToolDefaults.MIN_AREA)
        self.max_area = config_value(config, 'maxArea', VisionToolDefaults.MAX_AREA)
        self.circularity_min = config_value(config, 'circularityMin',
                                            VisionToolDefaults.CIRCULARITY_MIN)
        self.circularity_max = config_value(config, 'circularityMax',
                                            VisionToolDefaults.CIRCULARITY_MAX)
        self.morphology_kernel = config_value(config, 'morphologyKernel',
                                              VisionToolDefaults.MORPHOLOGY_KERNEL)
        self.detect_white = config_value(config, 'detectWhite', VisionToolDefaults.DETECT_WHITE)
        self.detect_black = config_value(config, 'detectBlack', VisionToolDefaults.DETECT_BLACK)

    def _process(self, image, full_image, offset, mask) -> VisionToolResult:
        gray = to_gray(image)
        kernel = None
        if self.morphology_kernel > 0:
            size = (self.morphology_kernel, self.morphology_kernel)
            kernel = cv2.getStructuringElement(cv2.MORPH_ELLIPSE, size)

        defects: List[Defect] = []
        if self.detect_white:
            binary = self._binarize(gray, cv2.THRESH_BINARY, kernel, mask)
            defects.extend(self._find_defects(binary, DefectType.WHITE_SPOT, offset))
        if self.is_cancelled:
            return self.cancelled_result()
        if self.detect_black:
            binary = self._binarize(gray, cv2.THRESH_BINARY_INV, kernel, mask)
            defects.extend(self._find_defects(binary, DefectType.BLACK_SPOT, offset))

        white = sum(1 for d in defects if d.type == DefectType.WHITE_SPOT)
        result = VisionToolResult(
            success=True,
            status=InspectionStatus.NG if defects else InspectionStatus.OK,
            defects=defects,
            data={
                'defectCount': len(defects),
                'whiteSpotCount': white,
                'blackSpotCount': len(defects) - white,
            },
        )
        result.output_image = self.encode_overlay(self._draw(full_image, defects))

        if defects:
            logger.info(f"{self.name}: {len(defects)} defect(s) found "
                        f"({white} white, {len(defects) - white} black)")
        return result

    def _binarize(self, gray: np.ndarray, mode: int, kernel, mask) -> np.ndarray:
        _, binary = cv2.threshold(gray, self.binary_threshold, 255, mode)
        if mask is not None:
            binary = cv2.bitwise_and(binary, mask)
        if kernel is not None:
            binary = cv2.morphologyEx(binary, cv2.MORPH_OPEN, kernel)
            binary = cv2.morphologyEx(binary, cv2.MORPH_CLOSE, kernel)
        return binary

    def _find_defects(self, binary: np.ndarray, defect_type: DefectType, offset) -> List[Defect]:
        contours, _ = cv2.findContours(binary, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        ox, oy = offset
        defects = []

        for contour in contours:
            area = cv2.contourArea(contour)
            if area < self.min_area or area > self.max_area:
                continue

            circ = circularity(area, cv2.arcLength(contour, True))
            if circ < self.circularity_min or circ > self.circularity_max:
                continue

            x, y, w, h = cv2.boundingRect(contour)
            defects.append(Defect(
                type=defect_type,
                x=float(x + ox),
                y=float(y + oy),
                width=float(w),
                height=float(h),
                area=float(area),
                severity=Defect.severity_for_area(area, self.max_area),
            ))

        return defects

    def _draw(self, full_image: np.ndarray, defects: List[Defect]) -> np.ndarray:
        overlay = full_image.copy()
        for defect in defects:
            color = (VisionToolDefaults.COLOR_WHITE_SPOT if defect.type == DefectType.WHITE_SPOT
                     else VisionToolDefaults.COLOR_BLACK_SPOT)
            top_left = (int(defect.x), int(defect.y))
            bottom_right = (int(defect.x + defect.width), int(defect.y + defect.height))
            cv2.rectangle(overlay, top_left, bottom_right, color, 2)
            cv2.putText(overlay, defect.severity.value, (top_left[0], max(10, top_left[1] - 4)),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.4, color, 1)
        return overlay
