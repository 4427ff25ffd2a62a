"""
Vision tools invoked by flow nodes.
"""

from .base import VisionTool
from .teach_match import TeachMatchTool, PatternTemplate
from .defect_detection import DefectDetectionTool
from .distance_measure import DistanceMeasureTool

__all__ = [
    'VisionTool',
    'TeachMatchTool', 'PatternTemplate',
    'DefectDetectionTool',
    'DistanceMeasureTool',
]
