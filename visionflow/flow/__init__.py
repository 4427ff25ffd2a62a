"""
Flow execution: nodes, registry, serialization, storage and the engine.
"""

from .context import CancellationToken, ExecutionContext
from .ports import NodePort
from .nodes import (
    FlowNode, InputImageNode, ROIApplyNode, TeachMatchNode, MeasurementNode,
    DefectDetectionNode, ThresholdCompareNode, ConditionalBranchNode, FinalDecisionNode
)
from .registry import NODE_REGISTRY, create_node, register_node
from .serializer import FlowSerializer
from .storage import FlowStore, ProductStore, load_product_file
from .engine import FlowEngine, EngineEvent

__all__ = [
    'CancellationToken', 'ExecutionContext', 'NodePort',
    'FlowNode', 'InputImageNode', 'ROIApplyNode', 'TeachMatchNode', 'MeasurementNode',
    'DefectDetectionNode', 'ThresholdCompareNode', 'ConditionalBranchNode', 'FinalDecisionNode',
    'NODE_REGISTRY', 'create_node', 'register_node',
    'FlowSerializer', 'FlowStore', 'ProductStore', 'load_product_file',
    'FlowEngine', 'EngineEvent',
]
