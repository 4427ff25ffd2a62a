"""
Flow Serializer and Storage Unit Tests
"""

import pytest

from tests.conftest import textured_image
from visionflow.flow import (
    FinalDecisionNode, FlowSerializer, FlowStore, InputImageNode, ProductStore,
    TeachMatchNode, load_product_file
)
from visionflow.models import (
    FlowConnection, FlowDefinitionError, FlowNodeType, ROIUsage, ValidationResult
)
from visionflow.vision import image_to_buffer


def simple_definition(builder):
    builder.add("input", FlowNodeType.INPUT_IMAGE)
    builder.add("cmp", FlowNodeType.THRESHOLD_COMPARE, {'dataKey': 'width', 'min': 10})
    builder.add("final", FlowNodeType.FINAL_DECISION, {'logic': 'OR'})
    builder.connect("input", "cmp").connect("cmp", "final")
    return builder.build()


class TestDocuments:

    def test_text_round_trip(self, flow_builder):
        definition = simple_definition(flow_builder)
        restored = FlowSerializer.loads(FlowSerializer.dumps(definition))

        assert restored.flow_id == definition.flow_id
        assert restored.node_ids() == ["input", "cmp", "final"]
        assert restored.get_node("final").config == {'logic': 'OR'}
        assert [(c.source_node_id, c.target_node_id) for c in restored.connections] == [
            ("input", "cmp"), ("cmp", "final")]

    def test_invalid_json(self):
        with pytest.raises(FlowDefinitionError):
            FlowSerializer.loads("{not json")

    def test_unknown_node_type_is_reported(self):
        report = ValidationResult.valid()
        definition = FlowSerializer.from_dict({'nodes': [
            {'nodeId': 'a', 'nodeType': 'InputImage'},
            {'nodeId': 'b', 'nodeType': 'Histogram'},
        ]}, report)

        assert definition.node_ids() == ["a"]
        assert len(report.warnings) == 1
        assert "Histogram" in report.warnings[0]

    def test_ordinal_node_type(self):
        definition = FlowSerializer.from_dict({'nodes': [{'nodeId': 'x', 'nodeType': 6}]})
        assert definition.nodes[0].node_type == FlowNodeType.FINAL_DECISION

    def test_save_and_load(self, flow_builder, tmp_path):
        path = tmp_path / "flows" / "simple.json"
        assert FlowSerializer.save(simple_definition(flow_builder), path)

        loaded = FlowSerializer.load(path)
        assert loaded.name == "Test Flow"
        assert len(loaded.nodes) == 3

    def test_load_missing_or_corrupt_file(self, tmp_path):
        assert FlowSerializer.load(tmp_path / "missing.json") is None
        corrupt = tmp_path / "corrupt.json"
        corrupt.write_text("[1, 2")
        assert FlowSerializer.load(corrupt) is None


class TestLiveGraph:
    """create_nodes and convert_to_definition"""

    def test_connections_are_folded_without_duplicates(self, flow_builder):
        definition = simple_definition(flow_builder)
        definition.get_node("cmp").inputs = ["input"]

        nodes, report = FlowSerializer.create_nodes(definition)
        by_id = {node.id: node for node in nodes}

        assert report.warnings == []
        assert by_id["cmp"].inputs == ["input"]
        assert by_id["input"].outputs == ["cmp"]
        assert by_id["cmp"].input_ports[0].connected

    def test_record_fields_are_applied(self, flow_builder):
        definition = simple_definition(flow_builder)
        record = definition.get_node("cmp")
        record.name = "Width check"
        record.position_x, record.position_y = 120.0, 45.5

        nodes, _ = FlowSerializer.create_nodes(definition)
        cmp = nodes[1]

        assert (cmp.name, cmp.position_x, cmp.position_y) == ("Width check", 120.0, 45.5)
        assert cmp.minimum == 10.0

    def test_unresolved_connection_and_duplicate_id(self, flow_builder):
        definition = simple_definition(flow_builder)
        flow_builder.add("cmp", FlowNodeType.INPUT_IMAGE)
        definition.connections.append(FlowConnection(source_node_id="ghost",
                                                     target_node_id="final"))

        nodes, report = FlowSerializer.create_nodes(definition)

        assert len(nodes) == 3
        assert len(report.warnings) == 2

    def test_missing_connection_records_are_synthesized(self):
        source = InputImageNode(node_id="a")
        target = FinalDecisionNode(node_id="b")
        source.add_output("b")
        target.add_input("a")

        definition = FlowSerializer.convert_to_definition([source, target], name="Built")

        assert definition.name == "Built"
        assert len(definition.connections) == 1
        connection = definition.connections[0]
        assert (connection.source_port, connection.target_port) == ("output", "input")

    def test_reload_keeps_adjacency(self, flow_builder, engine):
        engine.load(simple_definition(flow_builder))
        text = FlowSerializer.dumps(engine.get_definition())

        nodes, report = FlowSerializer.create_nodes(FlowSerializer.loads(text))
        by_id = {node.id: node for node in nodes}

        assert report.warnings == []
        assert by_id["cmp"].inputs == ["input"]
        assert by_id["cmp"].outputs == ["final"]
        assert by_id["final"].get_configuration() == {'logic': 'OR'}

    def test_taught_template_survives_round_trip(self):
        node = TeachMatchNode(node_id="match")
        assert node.teach(image_to_buffer(textured_image()), 320, 240).success

        definition = FlowSerializer.convert_to_definition([node])
        restored = FlowSerializer.loads(FlowSerializer.dumps(definition))
        nodes, _ = FlowSerializer.create_nodes(restored)

        assert nodes[0].is_taught
        assert nodes[0].validate().is_valid


class TestFlowStore:

    def test_save_list_load_delete(self, flow_builder, tmp_path):
        store = FlowStore(tmp_path)
        definition = simple_definition(flow_builder)

        assert store.save_flow(definition, "line-a")
        assert store.list_flows() == ["line-a.json"]
        assert store.load_flow("line-a").node_ids() == ["input", "cmp", "final"]
        assert store.delete_flow("line-a")
        assert not store.delete_flow("line-a")
        assert store.load_flow("line-a") is None


class TestProductStore:

    def test_round_trip(self, product_config, tmp_path):
        store = ProductStore(tmp_path)
        assert store.save_product(product_config)
        assert store.list_products() == ["P-001.json"]

        loaded = store.load_product("P-001")
        assert loaded.product.product_name == "Test Part"
        assert loaded.find_roi("roi-hole").usage == ROIUsage.EXCLUDE
        assert loaded.find_measurement_spec("gap").pixels_per_unit == 10.0
        assert loaded.find_defect_threshold("spots").detect_black is False

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('{"rois": [{"shape": "Hexagon"}]}')
        assert load_product_file(path) is None
        assert load_product_file(tmp_path / "missing.json") is None
