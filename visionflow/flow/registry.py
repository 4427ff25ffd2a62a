"""
Node registry: maps type tags to node classes.
"""

from typing import Dict, Optional, Type

from .nodes import (
    FlowNode, InputImageNode, ROIApplyNode, TeachMatchNode, MeasurementNode,
    DefectDetectionNode, ThresholdCompareNode, ConditionalBranchNode, FinalDecisionNode
)
from ..models.enums import FlowNodeType, parse_enum


NODE_REGISTRY: Dict[FlowNodeType, Type[FlowNode]] = {
    FlowNodeType.INPUT_IMAGE: InputImageNode,
    FlowNodeType.TEACH_MATCH: TeachMatchNode,
    FlowNodeType.ROI_APPLY: ROIApplyNode,
    FlowNodeType.MEASUREMENT: MeasurementNode,
    FlowNodeType.THRESHOLD_COMPARE: ThresholdCompareNode,
    FlowNodeType.CONDITIONAL_BRANCH: ConditionalBranchNode,
    FlowNodeType.FINAL_DECISION: FinalDecisionNode,
    FlowNodeType.DEFECT_DETECTION: DefectDetectionNode,
}


def register_node(node_type: FlowNodeType, node_cls: Type[FlowNode]):
    """Register (or replace) the class constructed for a type tag."""
    NODE_REGISTRY[node_type] = node_cls


def create_node(node_type, node_id: Optional[str] = None,
                name: Optional[str] = None) -> FlowNode:
    """
    Construct a node for a type tag.

    Args:
        node_type: FlowNodeType or its document value/name
        node_id: Identity to assign; a new one is generated when omitted
        name: Display name; the variant default when omitted

    Raises:
        ValueError: If the tag is unknown
    """
    node_type = parse_enum(FlowNodeType, node_type)
    node_cls = NODE_REGISTRY.get(node_type)
    if node_cls is None:
        raise ValueError(f"No node registered for type {node_type.value}")
    return node_cls(node_id=node_id, name=name)
