"""
Distance Measure Tool Unit Tests
"""

import math

import pytest

from tests.conftest import blank_image
from visionflow.models import InspectionStatus, MeasurementSpec
from visionflow.vision import DistanceMeasureTool, image_to_buffer
from visionflow.vision.tools.distance_measure import parse_point


def make_tool(**config):
    tool = DistanceMeasureTool()
    tool.configure(config)
    return tool


def run(tool, image):
    height, width = image.shape[:2]
    return tool.execute(image_to_buffer(image), width, height)


def step_image():
    """Black left half, white from column 30 on."""
    image = blank_image()
    image[:, 30:] = 255
    return image


class TestParsePoint:

    def test_dict_and_list(self):
        assert parse_point({'x': 1, 'y': 2}) == (1.0, 2.0)
        assert parse_point([3, 4]) == (3.0, 4.0)

    def test_malformed(self):
        assert parse_point({'x': 1}) is None
        assert parse_point("1,2") is None
        assert parse_point(None) is None

    def test_non_finite_coordinates(self):
        assert parse_point({'x': 'inf', 'y': 1}) is None
        assert parse_point([float('nan'), 2]) is None


class TestPixelDistance:
    """Without a spec the measurement is in pixels and unbounded"""

    def test_plain_distance(self):
        tool = make_tool(point1={'x': 20, 'y': 40}, point2={'x': 70, 'y': 40},
                         useEdgeDetection=False)
        result = run(tool, blank_image())

        assert result.success
        assert result.status == InspectionStatus.OK
        measurement = result.measurements[0]
        assert measurement.value == pytest.approx(50.0)
        assert measurement.unit == "px"
        assert math.isinf(measurement.tolerance_plus)
        assert result.data['distancePx'] == pytest.approx(50.0)

    def test_measurement_name(self):
        tool = make_tool(point1=[0, 0], point2=[3, 4], useEdgeDetection=False,
                         measurementName="diag")
        result = run(tool, blank_image())
        assert result.measurements[0].name == "diag"
        assert result.data['distance'] == pytest.approx(5.0)


class TestCalibratedDistance:

    def spec(self, nominal):
        return MeasurementSpec(id="gap", name="Gap", nominal=nominal, tolerance_plus=0.1,
                               tolerance_minus=0.1, unit="mm", pixels_per_unit=10.0)

    def test_within_tolerance(self):
        tool = make_tool(point1=[20, 40], point2=[70, 40], useEdgeDetection=False)
        tool.set_spec(self.spec(5.0))

        result = run(tool, blank_image())

        measurement = result.measurements[0]
        assert measurement.value == pytest.approx(5.0)
        assert measurement.unit == "mm"
        assert measurement.name == "Gap"
        assert result.status == InspectionStatus.OK

    def test_out_of_tolerance_is_ng(self):
        tool = make_tool(point1=[20, 40], point2=[70, 40], useEdgeDetection=False)
        tool.set_spec(self.spec(4.0))

        result = run(tool, blank_image())

        assert result.success
        assert result.status == InspectionStatus.NG
        assert result.measurements[0].status == InspectionStatus.NG


class TestEdgeSnapping:

    def test_point_snaps_to_nearby_edge(self):
        tool = make_tool(point1={'x': 25, 'y': 40}, point2={'x': 70, 'y': 40},
                         useEdgeDetection=True, searchRadius=10)
        result = run(tool, step_image())

        point1 = result.data['point1']
        assert 29 <= point1['x'] <= 30
        assert point1['y'] == pytest.approx(40, abs=1)

    def test_point_without_nearby_edge_is_kept(self):
        tool = make_tool(point1={'x': 25, 'y': 40}, point2={'x': 70, 'y': 40},
                         useEdgeDetection=True, searchRadius=10)
        result = run(tool, step_image())
        assert result.data['point2'] == {'x': 70.0, 'y': 40.0}


class TestFailures:
    """Bad configuration and unexpected faults come back as failed results"""

    def test_unconfigured_points(self):
        result = run(make_tool(), blank_image())
        assert not result.success
        assert result.status == InspectionStatus.ERROR
        assert result.error_message == "Measurement points are not configured"

    def test_non_positive_calibration(self):
        tool = make_tool(point1={'x': 20, 'y': 40}, point2={'x': 70, 'y': 40},
                         useEdgeDetection=False)
        tool.set_spec(MeasurementSpec(id="gap", name="Gap", pixels_per_unit=0.0))

        result = run(tool, blank_image())

        assert not result.success
        assert result.status == InspectionStatus.ERROR
        assert "pixelsPerUnit must be positive" in result.error_message

    def test_infinite_point_is_not_configured(self):
        tool = make_tool(point1={'x': 'inf', 'y': 40}, point2={'x': 70, 'y': 40})
        result = run(tool, blank_image())
        assert not result.success
        assert result.error_message == "Measurement points are not configured"

    def test_unexpected_exception_is_captured(self, monkeypatch):
        tool = make_tool(point1={'x': 20, 'y': 40}, point2={'x': 70, 'y': 40},
                         useEdgeDetection=False)

        def overflow(pixel_distance):
            raise OverflowError("value too large")

        monkeypatch.setattr(tool, "_make_measurement", overflow)
        result = run(tool, blank_image())

        assert not result.success
        assert result.status == InspectionStatus.ERROR
        assert "value too large" in result.error_message
        assert result.execution_time_ms >= 0
