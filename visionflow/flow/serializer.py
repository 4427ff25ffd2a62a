"""
Flow Serializer
Converts between flow documents, FlowDefinition records and live nodes.
"""

import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple
import logging

from .nodes.base import FlowNode
from .registry import create_node
from ..config.settings import EngineConfig
from ..models.enums import FlowNodeType, PortDirection, parse_enum
from ..models.flow_definition import (
    FlowConnection, FlowDefinition, FlowDefinitionError, FlowNodeDefinition
)
from ..models.results import ValidationResult

logger = logging.getLogger(__name__)


class FlowSerializer:
    """Flow document (de)serialization and node graph construction."""

    # ==================== Documents ====================

    @staticmethod
    def to_dict(definition: FlowDefinition) -> Dict:
        return definition.to_dict()

    @staticmethod
    def from_dict(data: Dict, report: Optional[ValidationResult] = None) -> FlowDefinition:
        """
        Parse a flow document.

        Node records with an unknown type are dropped and reported as warnings
        on `report`; structurally malformed documents raise FlowDefinitionError.
        """
        if not isinstance(data, dict):
            raise FlowDefinitionError("Flow document must be an object")

        nodes_data = data.get('nodes') or []
        if not isinstance(nodes_data, list):
            raise FlowDefinitionError("'nodes' must be a list")

        known = []
        for record in nodes_data:
            if not isinstance(record, dict):
                raise FlowDefinitionError("Node record must be an object")
            try:
                parse_enum(FlowNodeType, record.get('nodeType'))
            except ValueError:
                message = (f"Node {record.get('nodeId')} has unknown type "
                           f"{record.get('nodeType')!r} and was skipped")
                logger.warning(message)
                if report is not None:
                    report.add_warning(message)
                continue
            known.append(record)

        document = dict(data)
        document['nodes'] = known
        return FlowDefinition.from_dict(document)

    @classmethod
    def dumps(cls, definition: FlowDefinition, indent: int = 2) -> str:
        return json.dumps(cls.to_dict(definition), indent=indent)

    @classmethod
    def loads(cls, text: str, report: Optional[ValidationResult] = None) -> FlowDefinition:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise FlowDefinitionError(f"Invalid flow JSON: {e}") from e
        return cls.from_dict(data, report)

    @classmethod
    def save(cls, definition: FlowDefinition, path) -> bool:
        """Write a flow document; returns False on failure."""
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                f.write(cls.dumps(definition))
            logger.info(f"Flow '{definition.name}' saved to {path}")
            return True
        except OSError as e:
            logger.error(f"Failed to save flow: {e}")
            return False

    @classmethod
    def load(cls, path, report: Optional[ValidationResult] = None) -> Optional[FlowDefinition]:
        """Read a flow document; returns None when missing or malformed."""
        path = Path(path)
        if not path.exists():
            logger.warning(f"Flow file not found: {path}")
            return None

        try:
            with open(path, 'r', encoding='utf-8') as f:
                definition = cls.loads(f.read(), report)
            logger.info(f"Flow '{definition.name}' loaded from {path}")
            return definition
        except (OSError, FlowDefinitionError) as e:
            logger.error(f"Failed to load flow: {e}")
            return None

    # ==================== Live graph ====================

    @staticmethod
    def create_nodes(definition: FlowDefinition) -> Tuple[List[FlowNode], ValidationResult]:
        """
        Build live nodes from a definition.

        Identity, name, position, adjacency and configuration come from the
        node records; connection records are then folded into the adjacency
        lists without duplicating ids already present. Connections whose
        endpoints do not resolve are reported as warnings and skipped.
        """
        report = ValidationResult.valid()
        nodes: List[FlowNode] = []
        by_id: Dict[str, FlowNode] = {}

        for record in definition.nodes:
            if record.node_id in by_id:
                report.add_warning(f"Duplicate node id {record.node_id} skipped")
                continue
            try:
                node = create_node(record.node_type, node_id=record.node_id,
                                   name=record.name or None)
            except ValueError as e:
                report.add_warning(f"Node {record.node_id}: {e}")
                continue

            node.position_x = record.position_x
            node.position_y = record.position_y
            for input_id in record.inputs:
                node.add_input(input_id)
            for output_id in record.outputs:
                node.add_output(output_id)
            node.configure(record.config)

            nodes.append(node)
            by_id[node.id] = node

        for connection in definition.connections:
            source = by_id.get(connection.source_node_id)
            target = by_id.get(connection.target_node_id)
            if source is None or target is None:
                message = (f"Connection {connection.id} references unknown node(s) "
                           f"{connection.source_node_id} -> {connection.target_node_id}")
                logger.warning(message)
                report.add_warning(message)
                continue

            source.add_output(target.id)
            target.add_input(source.id)
            _mark_connected(source, connection.source_port, PortDirection.OUTPUT)
            _mark_connected(target, connection.target_port, PortDirection.INPUT)

        return nodes, report

    @staticmethod
    def convert_to_definition(nodes: Iterable[FlowNode],
                              name: str = EngineConfig.DEFAULT_FLOW_NAME,
                              version: str = EngineConfig.DEFAULT_FLOW_VERSION,
                              flow_id: Optional[str] = None,
                              connections: Optional[Iterable[FlowConnection]] = None
                              ) -> FlowDefinition:
        """
        Rebuild a definition from live nodes.

        Known connection records are kept for edges still present in the
        adjacency lists; remaining edges get a record on the default ports.
        """
        nodes = list(nodes)
        node_ids = {node.id for node in nodes}
        records: List[FlowNodeDefinition] = [node.to_definition() for node in nodes]

        kept: List[FlowConnection] = []
        covered = set()
        by_id = {node.id: node for node in nodes}
        for connection in connections or []:
            edge = (connection.source_node_id, connection.target_node_id)
            source = by_id.get(edge[0])
            if source is not None and edge[1] in source.outputs and edge not in covered:
                kept.append(connection)
                covered.add(edge)

        for node in nodes:
            for target_id in node.outputs:
                edge = (node.id, target_id)
                if target_id in node_ids and edge not in covered:
                    kept.append(FlowConnection(
                        source_node_id=node.id,
                        target_node_id=target_id,
                        source_port=_first_port(node, PortDirection.OUTPUT,
                                                EngineConfig.DEFAULT_SOURCE_PORT),
                        target_port=_first_port(by_id[target_id], PortDirection.INPUT,
                                                EngineConfig.DEFAULT_TARGET_PORT),
                    ))
                    covered.add(edge)

        definition = FlowDefinition(name=name, version=version, nodes=records, connections=kept)
        if flow_id:
            definition.flow_id = flow_id
        return definition


def _mark_connected(node: FlowNode, port_name: str, direction: PortDirection):
    port = node.get_port(port_name, direction)
    if port is not None:
        port.connected = True


def _first_port(node: FlowNode, direction: PortDirection, default: str) -> str:
    ports = node.output_ports if direction == PortDirection.OUTPUT else node.input_ports
    return ports[0].name if ports else default
