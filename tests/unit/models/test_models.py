"""
Model Unit Tests

Measurements, defects, enum parsing, ROIs, product and flow documents.
"""

import math

import pytest

from visionflow.models import (
    Defect, DefectType, FlowDefinition, FlowDefinitionError, FlowNodeType,
    InspectionResult, InspectionStatus, Measurement, ProductConfig, ROI, ROIShape,
    ROIUsage, Severity, ValidationResult, parse_bool, parse_enum
)


class TestMeasurementTolerance:
    """Measurement.is_within_tolerance"""

    def make(self, value):
        return Measurement(name="gap", value=value, nominal=5.0,
                           tolerance_plus=0.2, tolerance_minus=0.1)

    def test_inside_band(self):
        assert self.make(5.05).is_within_tolerance() is True

    def test_upper_boundary_inclusive(self):
        assert self.make(5.2).is_within_tolerance() is True

    def test_lower_boundary_inclusive(self):
        assert self.make(4.9).is_within_tolerance() is True

    def test_above_band(self):
        assert self.make(5.21).is_within_tolerance() is False

    def test_below_band(self):
        assert self.make(4.89).is_within_tolerance() is False

    def test_classify_sets_status(self):
        measurement = self.make(6.0)
        assert measurement.classify() == InspectionStatus.NG
        assert measurement.status == InspectionStatus.NG

    def test_unbounded_tolerance_serializes_as_null(self):
        measurement = Measurement(name="d", value=3.0, unit="px",
                                  tolerance_plus=math.inf, tolerance_minus=math.inf)
        data = measurement.to_dict()
        assert data['tolerancePlus'] is None
        restored = Measurement.from_dict(data)
        assert math.isinf(restored.tolerance_plus)
        assert restored.is_within_tolerance() is True


class TestDefectSeverity:
    """Severity tiers relative to maxArea"""

    def test_high(self):
        assert Defect.severity_for_area(600, 1000) == Severity.HIGH

    def test_medium(self):
        assert Defect.severity_for_area(300, 1000) == Severity.MEDIUM

    def test_low(self):
        assert Defect.severity_for_area(250, 1000) == Severity.LOW

    def test_half_is_not_high(self):
        assert Defect.severity_for_area(500, 1000) == Severity.MEDIUM

    def test_document_fields(self):
        defect = Defect(type=DefectType.BLACK_SPOT, x=1, y=2, width=3, height=4, area=9)
        data = defect.to_dict()
        assert data['type'] == "BlackSpot"
        assert data['severity'] == "Low"


class TestParseEnum:
    """parse_enum accepts values, names and ordinals"""

    def test_value(self):
        assert parse_enum(FlowNodeType, "FinalDecision") == FlowNodeType.FINAL_DECISION

    def test_member_name(self):
        assert parse_enum(FlowNodeType, "ROI_APPLY") == FlowNodeType.ROI_APPLY

    def test_case_insensitive_value(self):
        assert parse_enum(InspectionStatus, "ok") == InspectionStatus.OK

    def test_ordinal(self):
        assert parse_enum(FlowNodeType, 0) == FlowNodeType.INPUT_IMAGE
        assert parse_enum(ROIShape, 2) == ROIShape.TRIANGLE

    def test_default_for_missing(self):
        assert parse_enum(ROIUsage, None, ROIUsage.INCLUDE) == ROIUsage.INCLUDE

    def test_invalid_raises(self):
        with pytest.raises(ValueError):
            parse_enum(FlowNodeType, "Blur")

    def test_out_of_range_ordinal_raises(self):
        with pytest.raises(ValueError):
            parse_enum(FlowNodeType, 42)


class TestROI:
    """ROI construction and documents"""

    def test_polygon_with_three_vertices_is_triangle(self):
        roi = ROI.polygon([(0, 0), (10, 0), (0, 10)])
        assert roi.shape == ROIShape.TRIANGLE
        assert roi.points == [0.0, 0.0, 10.0, 0.0, 0.0, 10.0]
        assert roi.vertices() == [(0.0, 0.0), (10.0, 0.0), (0.0, 10.0)]

    def test_from_dict_accepts_type_key_and_ordinal(self):
        roi = ROI.from_dict({'id': 'c', 'type': 1, 'usage': 'Exclude', 'points': [5, 5, 2]})
        assert roi.shape == ROIShape.CIRCLE
        assert roi.usage == ROIUsage.EXCLUDE

    def test_document_keeps_identity(self):
        roi = ROI.rectangle(10, 20, 30, 40, rotation=15.0, name="r")
        restored = ROI.from_dict(roi.to_dict())
        assert restored.id == roi.id
        assert restored.points == [10, 20, 30, 40]
        assert restored.rotation == 15.0


class TestProductConfig:
    """Lookups and document parsing"""

    def test_find_roi_by_id_and_name(self, product_config):
        assert product_config.find_roi("roi-main").name == "Main"
        assert product_config.find_roi("Hole").id == "roi-hole"
        assert product_config.find_roi("missing") is None

    def test_find_specs(self, product_config):
        assert product_config.find_measurement_spec("Gap").pixels_per_unit == 10.0
        assert product_config.find_defect_threshold("spots").max_area == 1000

    def test_wrapped_roi_list(self):
        config = ProductConfig.from_dict({'rois': {'rois': [{'points': [1, 2, 3, 4]}]}})
        assert len(config.rois) == 1

    def test_non_positive_calibration_defaults_to_one(self):
        config = ProductConfig.from_dict({'thresholds': {'measurementSpecs': [
            {'id': 's', 'pixelsPerUnit': 0}]}})
        assert config.thresholds.measurement_specs[0].pixels_per_unit == 1.0

    def test_string_flags_in_defect_threshold(self):
        config = ProductConfig.from_dict({'thresholds': {'defectThresholds': [
            {'id': 't', 'detectWhite': 'false', 'detectBlack': 'True'}]}})
        threshold = config.find_defect_threshold('t')
        assert threshold.detect_white is False
        assert threshold.detect_black is True


class TestFlowDefinition:
    """Flow document parsing"""

    def test_non_object_document_rejected(self):
        with pytest.raises(FlowDefinitionError):
            FlowDefinition.from_dict([])

    def test_non_list_inputs_rejected(self):
        with pytest.raises(FlowDefinitionError):
            FlowDefinition.from_dict({'nodes': [
                {'nodeId': 'a', 'nodeType': 'InputImage', 'inputs': 'b'}]})

    def test_config_is_copied(self):
        config = {'logic': 'OR'}
        definition = FlowDefinition.from_dict({'nodes': [
            {'nodeId': 'f', 'nodeType': 'FinalDecision', 'config': config}]})
        config['logic'] = 'AND'
        assert definition.nodes[0].config == {'logic': 'OR'}


class TestResults:
    """ValidationResult and InspectionResult helpers"""

    def test_merge_with_prefix(self):
        result = ValidationResult.valid()
        result.merge(ValidationResult.invalid("broken"), prefix="node: ")
        assert result.is_valid is False
        assert result.errors == ["node: broken"]

    def test_inspection_document(self):
        result = InspectionResult(status=InspectionStatus.NG, product_id="P")
        data = result.to_dict()
        assert data['status'] == "NG"
        assert data['productPosition'] is None
        assert data['cancelled'] is False
        assert "Status: NG" in result.get_summary()


class TestParseBool:

    def test_strings(self):
        assert parse_bool("true") is True
        assert parse_bool(" Yes ") is True
        assert parse_bool("false") is False
        assert parse_bool("0") is False

    def test_non_strings(self):
        assert parse_bool(True) is True
        assert parse_bool(0) is False

    def test_missing_uses_default(self):
        assert parse_bool(None, True) is True
