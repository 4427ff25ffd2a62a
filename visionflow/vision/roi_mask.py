"""
ROI Mask Builder
Composes include/exclude regions into a binary processing mask
(255 = processed, 0 = ignored).
"""

import cv2
import numpy as np
from typing import Iterable, Optional, Tuple
import logging

from ..models.enums import ROIShape, ROIUsage
from ..models.roi import ROI

logger = logging.getLogger(__name__)


def build_mask(rois: Optional[Iterable[ROI]], width: int, height: int) -> np.ndarray:
    """
    Build a binary mask from a collection of ROIs.

    With no enabled Include ROI the whole image is processed. Otherwise only
    the union of Include shapes is. Exclude shapes are painted last and
    always win.

    Args:
        rois: ROIs to compose (disabled ones are ignored)
        width: Mask width
        height: Mask height

    Returns:
        (height, width) uint8 mask
    """
    mask = np.full((height, width), 255, dtype=np.uint8)
    if not rois:
        return mask

    enabled = [roi for roi in rois if roi.enabled]
    includes = [roi for roi in enabled if roi.usage == ROIUsage.INCLUDE]
    excludes = [roi for roi in enabled if roi.usage == ROIUsage.EXCLUDE]

    if includes:
        mask[:] = 0
        for roi in includes:
            _draw_roi(mask, roi, 255)

    for roi in excludes:
        _draw_roi(mask, roi, 0)

    return mask


def apply_mask(image: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """Zero every pixel outside the mask."""
    return cv2.bitwise_and(image, image, mask=mask)


def roi_bounding_rect(roi: ROI, width: int, height: int) -> Optional[Tuple[int, int, int, int]]:
    """
    Axis-aligned bounds of an ROI clipped to the image.

    Returns:
        (x, y, w, h) or None if the ROI is malformed or lies outside the image
    """
    corners = _shape_vertices(roi)
    if corners is None:
        return None

    x, y, w, h = cv2.boundingRect(corners)
    x0, y0 = max(0, x), max(0, y)
    x1, y1 = min(width, x + w), min(height, y + h)
    if x1 <= x0 or y1 <= y0:
        return None
    return x0, y0, x1 - x0, y1 - y0


def _shape_vertices(roi: ROI) -> Optional[np.ndarray]:
    """Outline vertices of any shape as an int32 (N, 2) array."""
    pts = roi.points
    if roi.shape == ROIShape.RECTANGLE:
        if len(pts) < 4:
            return None
        return _rotated_rect_points(roi)
    if roi.shape == ROIShape.CIRCLE:
        if len(pts) < 3:
            return None
        cx, cy, r = pts[0], pts[1], pts[2]
        return np.array([[cx - r, cy - r], [cx + r, cy - r],
                         [cx + r, cy + r], [cx - r, cy + r]]).round().astype(np.int32)
    if len(pts) < 4 or len(pts) % 2 != 0:
        return None
    return np.array(roi.vertices()).round().astype(np.int32)


def _rotated_rect_points(roi: ROI) -> np.ndarray:
    cx, cy, w, h = roi.points[:4]
    box = cv2.boxPoints(((float(cx), float(cy)), (float(w), float(h)), float(roi.rotation)))
    return np.round(box).astype(np.int32)


def _draw_roi(mask: np.ndarray, roi: ROI, value: int):
    if roi.shape == ROIShape.RECTANGLE:
        _draw_rectangle(mask, roi, value)
    elif roi.shape == ROIShape.CIRCLE:
        _draw_circle(mask, roi, value)
    elif roi.shape in (ROIShape.POLYGON, ROIShape.TRIANGLE):
        _draw_polygon(mask, roi, value)


def _draw_rectangle(mask: np.ndarray, roi: ROI, value: int):
    if len(roi.points) < 4:
        logger.warning(f"ROI '{roi.name}': rectangle needs 4 points, got {len(roi.points)}")
        return
    cv2.fillConvexPoly(mask, _rotated_rect_points(roi), int(value))


def _draw_circle(mask: np.ndarray, roi: ROI, value: int):
    if len(roi.points) < 3:
        logger.warning(f"ROI '{roi.name}': circle needs 3 points, got {len(roi.points)}")
        return
    center = (int(round(roi.points[0])), int(round(roi.points[1])))
    radius = int(round(roi.points[2]))
    cv2.circle(mask, center, radius, int(value), -1)


def _draw_polygon(mask: np.ndarray, roi: ROI, value: int):
    if len(roi.points) < 4 or len(roi.points) % 2 != 0:
        logger.warning(f"ROI '{roi.name}': polygon needs an even number of coordinates")
        return
    vertices = np.array(roi.vertices()).round().astype(np.int32)
    cv2.fillPoly(mask, [vertices], int(value))
