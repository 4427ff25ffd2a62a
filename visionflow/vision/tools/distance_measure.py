"""
Distance Measure Tool
Point-to-point distance with optional edge snapping, calibrated to
physical units and classified against a tolerance band.
"""

import math
import cv2
import numpy as np
from typing import Dict, Optional, Tuple
import logging

from .base import VisionTool, config_value
from ..image_buffer import to_gray
from ...config.settings import VisionToolDefaults
from ...models.enums import VisionToolType
from ...models.product import MeasurementSpec
from ...models.results import Measurement, VisionToolResult

logger = logging.getLogger(__name__)


def parse_point(value) -> Optional[Tuple[float, float]]:
    """Accept {x, y} or [x, y] with finite coordinates; None when malformed."""
    try:
        if isinstance(value, dict):
            point = float(value['x']), float(value['y'])
        elif isinstance(value, (list, tuple)) and len(value) >= 2:
            point = float(value[0]), float(value[1])
        else:
            return None
    except (KeyError, TypeError, ValueError):
        return None
    if not all(math.isfinite(c) for c in point):
        logger.warning(f"Ignoring non-finite point: {value!r}")
        return None
    return point


def snap_to_edge(edges: np.ndarray, point: Tuple[float, float],
                 radius: int) -> Tuple[float, float]:
    """
    Nearest edge pixel to `point` within a square window of `radius`.

    Returns the original point when the window holds no edge pixel or lies
    outside the edge map.
    """
    height, width = edges.shape[:2]
    px, py = point
    x0 = max(0, int(math.floor(px)) - radius)
    y0 = max(0, int(math.floor(py)) - radius)
    x1 = min(width, int(math.floor(px)) + radius + 1)
    y1 = min(height, int(math.floor(py)) + radius + 1)
    if x1 <= x0 or y1 <= y0:
        return point

    ys, xs = np.nonzero(edges[y0:y1, x0:x1])
    if len(xs) == 0:
        return point

    xs = xs + x0
    ys = ys + y0
    nearest = int(np.argmin((xs - px) ** 2 + (ys - py) ** 2))
    return float(xs[nearest]), float(ys[nearest])


class DistanceMeasureTool(VisionTool):
    """
    Config keys:
        point1 / point2: nominal points {x, y} in image coordinates
        useEdgeDetection: snap points to the nearest Canny edge
        edgeThreshold: Canny low threshold (high = 2x)
        searchRadius: snap window half-size in pixels
        measurementName: name of the produced measurement
    """

    tool_type = VisionToolType.DISTANCE_MEASURE

    def __init__(self, name: str = "Distance", tool_id: Optional[str] = None):
        super().__init__(name, tool_id)
        self.spec: Optional[MeasurementSpec] = None
        self._on_configure({})

    def _on_configure(self, config: Dict):
        self.point1 = parse_point(config.get('point1'))
        self.point2 = parse_point(config.get('point2'))
        self.use_edge_detection = config_value(config, 'useEdgeDetection',
                                               VisionToolDefaults.USE_EDGE_DETECTION)
        self.edge_threshold = config_value(config, 'edgeThreshold',
                                           VisionToolDefaults.EDGE_THRESHOLD)
        self.search_radius = config_value(config, 'searchRadius',
                                          VisionToolDefaults.EDGE_SEARCH_RADIUS)
        self.measurement_name = config.get('measurementName') or self.name

    def set_spec(self, spec: Optional[MeasurementSpec]):
        """Calibration and tolerance band; None measures in pixels without limits."""
        self.spec = spec

    def _process(self, image, full_image, offset, mask) -> VisionToolResult:
        if self.point1 is None or self.point2 is None:
            return VisionToolResult.failure("Measurement points are not configured")
        if self.spec is not None and not self.spec.pixels_per_unit > 0:
            return VisionToolResult.failure(
                f"Invalid calibration for '{self.spec.name}': "
                f"pixelsPerUnit must be positive, got {self.spec.pixels_per_unit}")

        if self.is_cancelled:
            return self.cancelled_result()

        p1, p2 = self.point1, self.point2
        if self.use_edge_detection:
            edges = cv2.Canny(to_gray(image), self.edge_threshold, self.edge_threshold * 2)
            p1 = self._snap(edges, p1, offset)
            p2 = self._snap(edges, p2, offset)

        pixel_distance = math.hypot(p2[0] - p1[0], p2[1] - p1[1])
        measurement = self._make_measurement(pixel_distance)
        measurement.classify()

        result = VisionToolResult(success=True, status=measurement.status,
                                  measurements=[measurement])
        result.data = {
            'distance': measurement.value,
            'distancePx': pixel_distance,
            'point1': {'x': p1[0], 'y': p1[1]},
            'point2': {'x': p2[0], 'y': p2[1]},
        }
        result.output_image = self.encode_overlay(self._draw(full_image, p1, p2, measurement))
        logger.debug(f"{self.name}: {measurement.value:.3f} {measurement.unit} "
                     f"[{measurement.status.value}]")
        return result

    def _snap(self, edges: np.ndarray, point, offset) -> Tuple[float, float]:
        ox, oy = offset
        local = snap_to_edge(edges, (point[0] - ox, point[1] - oy), self.search_radius)
        return local[0] + ox, local[1] + oy

    def _make_measurement(self, pixel_distance: float) -> Measurement:
        if self.spec is None:
            return Measurement(
                name=self.measurement_name,
                value=pixel_distance,
                unit=VisionToolDefaults.DEFAULT_UNIT,
                nominal=0.0,
                tolerance_plus=math.inf,
                tolerance_minus=math.inf,
            )
        return Measurement(
            name=self.spec.name or self.measurement_name,
            value=pixel_distance / self.spec.pixels_per_unit,
            unit=self.spec.unit,
            nominal=self.spec.nominal,
            tolerance_plus=self.spec.tolerance_plus,
            tolerance_minus=self.spec.tolerance_minus,
        )

    def _draw(self, full_image, p1, p2, measurement: Measurement) -> np.ndarray:
        overlay = full_image.copy()
        a = (int(round(p1[0])), int(round(p1[1])))
        b = (int(round(p2[0])), int(round(p2[1])))
        color = (VisionToolDefaults.COLOR_OK if measurement.is_within_tolerance()
                 else VisionToolDefaults.COLOR_NG)
        cv2.line(overlay, a, b, color, 2)
        cv2.circle(overlay, a, 4, VisionToolDefaults.COLOR_POINT, -1)
        cv2.circle(overlay, b, 4, VisionToolDefaults.COLOR_POINT, -1)
        label = f"{measurement.value:.2f} {measurement.unit}"
        mid = ((a[0] + b[0]) // 2, (a[1] + b[1]) // 2 - 8)
        cv2.putText(overlay, label, mid, cv2.FONT_HERSHEY_SIMPLEX, 0.5,
                    VisionToolDefaults.COLOR_LABEL, 1)
        return overlay
