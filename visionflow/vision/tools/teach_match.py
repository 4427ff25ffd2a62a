"""
Teach-Match Tool
Pattern localization by feature matching.

Teach: detect keypoints in a reference region and store their descriptors
together with the region's four corners.
Execute: match new-image features against the template (ratio test),
fit a RANSAC homography and project the template corners to recover
position, rotation, scale and confidence.
"""

import base64
import math
import cv2
import numpy as np
from typing import Dict, List, Optional, Tuple
import logging

from .base import VisionTool, config_value
from ...config.settings import VisionToolDefaults
from ...models.enums import InspectionStatus, VisionToolType
from ...models.results import ProductPosition, VisionToolResult
from ...models.roi import ROI
from ...utils.timer import PerformanceTimer

logger = logging.getLogger(__name__)


FEATURE_TYPES = ('ORB', 'AKAZE', 'SIFT')


class PatternTemplate:
    """Reference keypoints, descriptors and corners of a taught pattern."""

    def __init__(self, points: np.ndarray, descriptors: np.ndarray,
                 corners: np.ndarray, feature_type: str):
        self.points = np.asarray(points, dtype=np.float32).reshape(-1, 2)
        self.descriptors = descriptors
        self.corners = np.asarray(corners, dtype=np.float32).reshape(4, 2)
        self.feature_type = feature_type

    @property
    def keypoint_count(self) -> int:
        return len(self.points)

    def to_dict(self) -> Dict:
        descriptors = np.ascontiguousarray(self.descriptors)
        return {
            'featureType': self.feature_type,
            'points': self.points.tolist(),
            'corners': self.corners.tolist(),
            'descriptors': base64.b64encode(descriptors.tobytes()).decode('ascii'),
            'descriptorShape': list(descriptors.shape),
            'descriptorDtype': str(descriptors.dtype),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'PatternTemplate':
        """Raises ValueError/KeyError on a malformed document."""
        raw = base64.b64decode(data['descriptors'])
        descriptors = np.frombuffer(raw, dtype=np.dtype(data['descriptorDtype']))
        descriptors = descriptors.reshape(data['descriptorShape']).copy()
        points = np.array(data['points'], dtype=np.float32)
        if len(points) != len(descriptors):
            raise ValueError("Template point and descriptor counts differ")
        return cls(points, descriptors, np.array(data['corners'], dtype=np.float32),
                   data.get('featureType', VisionToolDefaults.FEATURE_TYPE))


class TeachMatchTool(VisionTool):
    """
    Feature-based pattern localization.

    Config keys:
        featureType: ORB | AKAZE | SIFT
        nFeatures: ORB feature count
        matchThreshold: ratio test factor (best < factor * second best)
        minMatches: required accepted matches (also the teach minimum)
        ransacThreshold: homography reprojection threshold in pixels
        template: exported template restored on configure
    """

    tool_type = VisionToolType.TEACH_MATCH

    def __init__(self, name: str = "Teach Match", tool_id: Optional[str] = None):
        super().__init__(name, tool_id)
        self.feature_type = VisionToolDefaults.FEATURE_TYPE
        self.n_features = VisionToolDefaults.ORB_FEATURES
        self.match_threshold = VisionToolDefaults.MATCH_THRESHOLD
        self.min_matches = VisionToolDefaults.MIN_MATCHES
        self.ransac_threshold = VisionToolDefaults.RANSAC_REPROJ_THRESHOLD
        self.template: Optional[PatternTemplate] = None

    @property
    def is_taught(self) -> bool:
        return self.template is not None

    def _on_configure(self, config: Dict):
        feature_type = str(config.get('featureType', VisionToolDefaults.FEATURE_TYPE)).upper()
        if feature_type not in FEATURE_TYPES:
            logger.warning(f"Unknown feature type '{feature_type}', using ORB")
            feature_type = 'ORB'
        self.feature_type = feature_type
        self.n_features = config_value(config, 'nFeatures', VisionToolDefaults.ORB_FEATURES)
        self.match_threshold = config_value(config, 'matchThreshold',
                                            VisionToolDefaults.MATCH_THRESHOLD)
        self.min_matches = max(1, config_value(config, 'minMatches',
                                               VisionToolDefaults.MIN_MATCHES))
        self.ransac_threshold = config_value(config, 'ransacThreshold',
                                             VisionToolDefaults.RANSAC_REPROJ_THRESHOLD)

        template_data = config.get('template')
        if template_data:
            self.restore_template(template_data)
        elif self.template is not None:
            config['template'] = self.template.to_dict()

    def restore_template(self, data: Dict) -> bool:
        """Restore an exported template; returns False if it is malformed."""
        try:
            template = PatternTemplate.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"{self.name}: invalid stored template: {e}")
            self.template = None
            return False

        if template.feature_type != self.feature_type:
            logger.warning(f"{self.name}: template taught with {template.feature_type}, "
                           f"switching feature type from {self.feature_type}")
            self.feature_type = template.feature_type
        self.template = template
        return True

    def export_template(self) -> Optional[Dict]:
        return self.template.to_dict() if self.template is not None else None

    def clear_template(self):
        self.template = None

    def _create_detector(self):
        if self.feature_type == 'AKAZE':
            return cv2.AKAZE_create()
        if self.feature_type == 'SIFT':
            return cv2.SIFT_create()
        return cv2.ORB_create(nfeatures=self.n_features)

    def _create_matcher(self):
        norm = cv2.NORM_L2 if self.feature_type == 'SIFT' else cv2.NORM_HAMMING
        return cv2.BFMatcher(norm, crossCheck=False)

    def _detect(self, image: np.ndarray, mask: Optional[np.ndarray] = None):
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY) if image.ndim == 3 else image
        keypoints, descriptors = self._create_detector().detectAndCompute(gray, mask)
        return keypoints, descriptors

    def teach(self, data: bytes, width: int, height: int,
              roi: Optional[ROI] = None) -> VisionToolResult:
        """
        Learn the pattern inside `roi` (or the whole image).

        Fails, without replacing a previous template, when fewer than
        `min_matches` keypoints are found.
        """
        timer = PerformanceTimer(f"{self.name} teach").start()
        try:
            _, image, offset, _ = self._prepare(data, width, height, roi, None)
            result = self._teach(image, offset)
        except cv2.error as e:
            logger.error(f"{self.name} teach OpenCV error: {e}")
            result = VisionToolResult.failure(f"Teach failed: {e}")
        except Exception as e:
            logger.exception(f"{self.name} teach failed")
            result = VisionToolResult.failure(f"Teach failed: {e}")

        result.execution_time_ms = timer.stop()
        return result

    def _teach(self, image: np.ndarray, offset: Tuple[int, int]) -> VisionToolResult:
        keypoints, descriptors = self._detect(image)
        count = len(keypoints) if descriptors is not None else 0
        if count < self.min_matches:
            return VisionToolResult.failure(
                f"Not enough features detected for teaching: {count} < {self.min_matches}")

        ox, oy = offset
        h, w = image.shape[:2]
        points = np.float32([(kp.pt[0] + ox, kp.pt[1] + oy) for kp in keypoints])
        corners = np.float32([[ox, oy], [ox + w, oy], [ox + w, oy + h], [ox, oy + h]])
        self.template = PatternTemplate(points, descriptors, corners, self.feature_type)
        self.config['template'] = self.template.to_dict()

        logger.info(f"{self.name}: taught {count} {self.feature_type} features "
                    f"in {w}x{h} region at ({ox}, {oy})")
        result = VisionToolResult.ok()
        result.data = {'keypointCount': count, 'featureType': self.feature_type}
        return result

    def _process(self, image, full_image, offset, mask) -> VisionToolResult:
        if self.template is None:
            return VisionToolResult.failure("No pattern has been taught")

        keypoints, descriptors = self._detect(image, mask)
        if descriptors is None or len(keypoints) < 2:
            return VisionToolResult.failure("Not enough features in image", InspectionStatus.NG)
        if self.is_cancelled:
            return self.cancelled_result()

        good = self._ratio_matches(descriptors)
        if len(good) < self.min_matches:
            return VisionToolResult.failure(
                f"Not enough good matches: {len(good)} < {self.min_matches}", InspectionStatus.NG)

        if len(good) < 4:
            return VisionToolResult.failure("Homography needs at least 4 matches", InspectionStatus.NG)

        ox, oy = offset
        src = np.float32([self.template.points[m.queryIdx] for m in good]).reshape(-1, 1, 2)
        dst = np.float32([(keypoints[m.trainIdx].pt[0] + ox, keypoints[m.trainIdx].pt[1] + oy)
                          for m in good]).reshape(-1, 1, 2)
        homography, inliers = cv2.findHomography(src, dst, cv2.RANSAC, self.ransac_threshold)
        if homography is None:
            return VisionToolResult.failure("Homography estimation failed", InspectionStatus.NG)

        corners = cv2.perspectiveTransform(self.template.corners.reshape(-1, 1, 2), homography)
        corners = corners.reshape(4, 2)
        position = self._pose(corners, len(good))

        result = VisionToolResult.ok()
        result.position = position
        result.data = {
            'matchCount': len(good),
            'inlierCount': int(inliers.sum()) if inliers is not None else 0,
            'corners': corners.tolist(),
        }
        result.output_image = self.encode_overlay(self._draw(full_image, corners, position))
        logger.debug(f"{self.name}: found pattern at ({position.x:.1f}, {position.y:.1f}) "
                     f"rot={position.rotation:.2f} matches={len(good)}")
        return result

    def _ratio_matches(self, descriptors: np.ndarray) -> List:
        if len(self.template.descriptors) < 1 or len(descriptors) < 2:
            return []
        pairs = self._create_matcher().knnMatch(self.template.descriptors, descriptors, k=2)
        good = []
        for pair in pairs:
            if len(pair) == 2:
                best, second = pair
                if best.distance < self.match_threshold * second.distance:
                    good.append(best)
        return good

    def _pose(self, corners: np.ndarray, match_count: int) -> ProductPosition:
        """Centroid, top-edge angle (degrees) and top-edge length ratio."""
        center = corners.mean(axis=0)
        dx, dy = corners[1] - corners[0]
        ref_dx, ref_dy = self.template.corners[1] - self.template.corners[0]
        ref_length = math.hypot(ref_dx, ref_dy)
        scale = math.hypot(dx, dy) / ref_length if ref_length > 0 else 0.0
        return ProductPosition(
            x=float(center[0]),
            y=float(center[1]),
            rotation=math.degrees(math.atan2(dy, dx)),
            scale=float(scale),
            confidence=min(1.0, match_count / (self.min_matches * 3.0)),
        )

    def _draw(self, full_image: np.ndarray, corners: np.ndarray,
              position: ProductPosition) -> np.ndarray:
        overlay = full_image.copy()
        cv2.polylines(overlay, [np.int32(np.round(corners))], True,
                      VisionToolDefaults.COLOR_OK, 2)
        center = (int(round(position.x)), int(round(position.y)))
        cv2.circle(overlay, center, 4, VisionToolDefaults.COLOR_POINT, -1)
        cv2.putText(overlay, f"{position.rotation:.1f} deg  {position.confidence:.2f}",
                    (center[0] + 8, center[1] - 8), cv2.FONT_HERSHEY_SIMPLEX, 0.5,
                    VisionToolDefaults.COLOR_LABEL, 1)
        return overlay
