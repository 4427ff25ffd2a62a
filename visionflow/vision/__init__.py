"""
Vision module: image buffers, capture sources, ROI masks and vision tools.
"""

from .image_buffer import buffer_to_image, image_to_buffer, to_gray
from .image_source import (
    Frame, ImageSource, ImageFileSource, ImageFolderSource, VideoCaptureSource,
    ImageSourceFactory, SourceType
)
from .roi_mask import build_mask, apply_mask, roi_bounding_rect
from .tools import (
    VisionTool, TeachMatchTool, PatternTemplate, DefectDetectionTool, DistanceMeasureTool
)

__all__ = [
    'buffer_to_image', 'image_to_buffer', 'to_gray',
    'Frame', 'ImageSource', 'ImageFileSource', 'ImageFolderSource', 'VideoCaptureSource',
    'ImageSourceFactory', 'SourceType',
    'build_mask', 'apply_mask', 'roi_bounding_rect',
    'VisionTool', 'TeachMatchTool', 'PatternTemplate', 'DefectDetectionTool',
    'DistanceMeasureTool',
]
