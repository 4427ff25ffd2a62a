"""
Data model: enums, ROIs, product configuration, flow definitions and results.
"""

from .enums import (
    InspectionStatus, FlowNodeType, VisionToolType, PortType, PortDirection,
    ROIShape, ROIUsage, DefectType, Severity, parse_enum, parse_bool
)
from .roi import ROI
from .results import (
    Measurement, Defect, ProductPosition, VisionToolResult, FlowNodeResult,
    ValidationResult, InspectionResult
)
from .product import (
    ProductConfig, ProductDefinition, MeasurementSpec, DefectThreshold, ThresholdConfig
)
from .flow_definition import (
    FlowDefinition, FlowNodeDefinition, FlowConnection, FlowDefinitionError
)

__all__ = [
    'InspectionStatus', 'FlowNodeType', 'VisionToolType', 'PortType', 'PortDirection',
    'ROIShape', 'ROIUsage', 'DefectType', 'Severity', 'parse_enum', 'parse_bool',
    'ROI',
    'Measurement', 'Defect', 'ProductPosition', 'VisionToolResult', 'FlowNodeResult',
    'ValidationResult', 'InspectionResult',
    'ProductConfig', 'ProductDefinition', 'MeasurementSpec', 'DefectThreshold', 'ThresholdConfig',
    'FlowDefinition', 'FlowNodeDefinition', 'FlowConnection', 'FlowDefinitionError',
]
