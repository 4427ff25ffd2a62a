"""
Flow node variants.
"""

from .base import FlowNode
from .input_image import InputImageNode
from .roi_apply import ROIApplyNode
from .teach_match import TeachMatchNode
from .measurement import MeasurementNode
from .defect_detection import DefectDetectionNode
from .threshold_compare import ThresholdCompareNode
from .conditional_branch import ConditionalBranchNode
from .final_decision import FinalDecisionNode

__all__ = [
    'FlowNode',
    'InputImageNode', 'ROIApplyNode', 'TeachMatchNode', 'MeasurementNode',
    'DefectDetectionNode', 'ThresholdCompareNode', 'ConditionalBranchNode',
    'FinalDecisionNode',
]
