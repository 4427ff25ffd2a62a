"""
Serializable flow definition: node records and named-port connections.

Wire format:
    { flowId, name, version,
      nodes: [ { nodeId, nodeType, name, positionX, positionY,
                 inputs: [id...], outputs: [id...], config: {...} } ],
      connections: [ { id, sourceNodeId, sourcePort, targetNodeId, targetPort } ] }
"""

import copy
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .enums import FlowNodeType, parse_enum
from ..config.settings import EngineConfig


class FlowDefinitionError(ValueError):
    """Raised when a flow document cannot be parsed."""


def _new_id() -> str:
    return str(uuid.uuid4())


def _id_list(value, field_name: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise FlowDefinitionError(f"'{field_name}' must be a list of node ids")
    return [str(item) for item in value]


@dataclass
class FlowNodeDefinition:
    """Record of a single node."""
    node_type: FlowNodeType
    node_id: str = field(default_factory=_new_id)
    name: str = ""
    position_x: float = 0.0
    position_y: float = 0.0
    inputs: List[str] = field(default_factory=list)
    outputs: List[str] = field(default_factory=list)
    config: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            'nodeId': self.node_id,
            'nodeType': self.node_type.value,
            'name': self.name,
            'positionX': self.position_x,
            'positionY': self.position_y,
            'inputs': list(self.inputs),
            'outputs': list(self.outputs),
            'config': copy.deepcopy(self.config),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'FlowNodeDefinition':
        if not isinstance(data, dict):
            raise FlowDefinitionError("Node record must be an object")
        try:
            node_type = parse_enum(FlowNodeType, data.get('nodeType'))
        except ValueError as e:
            raise FlowDefinitionError(str(e)) from e

        config = data.get('config') or {}
        if not isinstance(config, dict):
            raise FlowDefinitionError(f"Node {data.get('nodeId')}: 'config' must be an object")

        try:
            position_x = float(data.get('positionX', 0.0) or 0.0)
            position_y = float(data.get('positionY', 0.0) or 0.0)
        except (TypeError, ValueError) as e:
            raise FlowDefinitionError(f"Node {data.get('nodeId')}: invalid position") from e

        return cls(
            node_type=node_type,
            node_id=str(data.get('nodeId') or _new_id()),
            name=data.get('name', '') or '',
            position_x=position_x,
            position_y=position_y,
            inputs=_id_list(data.get('inputs'), 'inputs'),
            outputs=_id_list(data.get('outputs'), 'outputs'),
            config=copy.deepcopy(config),
        )


@dataclass
class FlowConnection:
    """Connection from a source node port to a target node port."""
    source_node_id: str
    target_node_id: str
    source_port: str = EngineConfig.DEFAULT_SOURCE_PORT
    target_port: str = EngineConfig.DEFAULT_TARGET_PORT
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'sourceNodeId': self.source_node_id,
            'sourcePort': self.source_port,
            'targetNodeId': self.target_node_id,
            'targetPort': self.target_port,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'FlowConnection':
        if not isinstance(data, dict):
            raise FlowDefinitionError("Connection record must be an object")
        return cls(
            id=str(data.get('id') or _new_id()),
            source_node_id=str(data.get('sourceNodeId', '')),
            source_port=data.get('sourcePort', EngineConfig.DEFAULT_SOURCE_PORT),
            target_node_id=str(data.get('targetNodeId', '')),
            target_port=data.get('targetPort', EngineConfig.DEFAULT_TARGET_PORT),
        )


@dataclass
class FlowDefinition:
    """Directed graph of node records and connections."""
    name: str = EngineConfig.DEFAULT_FLOW_NAME
    version: str = EngineConfig.DEFAULT_FLOW_VERSION
    nodes: List[FlowNodeDefinition] = field(default_factory=list)
    connections: List[FlowConnection] = field(default_factory=list)
    flow_id: str = field(default_factory=_new_id)

    def node_ids(self) -> List[str]:
        return [node.node_id for node in self.nodes]

    def get_node(self, node_id: str):
        for node in self.nodes:
            if node.node_id == node_id:
                return node
        return None

    def to_dict(self) -> Dict:
        return {
            'flowId': self.flow_id,
            'name': self.name,
            'version': self.version,
            'nodes': [node.to_dict() for node in self.nodes],
            'connections': [conn.to_dict() for conn in self.connections],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'FlowDefinition':
        if not isinstance(data, dict):
            raise FlowDefinitionError("Flow document must be an object")

        nodes_data = data.get('nodes') or []
        connections_data = data.get('connections') or []
        if not isinstance(nodes_data, list) or not isinstance(connections_data, list):
            raise FlowDefinitionError("'nodes' and 'connections' must be lists")

        return cls(
            flow_id=str(data.get('flowId') or _new_id()),
            name=data.get('name', EngineConfig.DEFAULT_FLOW_NAME),
            version=str(data.get('version', EngineConfig.DEFAULT_FLOW_VERSION)),
            nodes=[FlowNodeDefinition.from_dict(n) for n in nodes_data],
            connections=[FlowConnection.from_dict(c) for c in connections_data],
        )
