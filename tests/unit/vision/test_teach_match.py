"""
Teach-Match Tool Unit Tests

Teaches on a synthetic textured scene and relocates it after a known shift.
"""

import cv2
import numpy as np
import pytest

from tests.conftest import blank_image, textured_image
from visionflow.models import InspectionStatus
from visionflow.vision import TeachMatchTool, image_to_buffer


WIDTH, HEIGHT = 320, 240


def shifted(image, dx, dy):
    matrix = np.float32([[1, 0, dx], [0, 1, dy]])
    return cv2.warpAffine(image, matrix, (image.shape[1], image.shape[0]),
                          borderValue=(30, 30, 30))


@pytest.fixture
def taught_tool():
    tool = TeachMatchTool()
    tool.configure({})
    result = tool.teach(image_to_buffer(textured_image()), WIDTH, HEIGHT)
    assert result.success, result.error_message
    return tool


class TestTeach:

    def test_untaught_tool_reports_error(self):
        tool = TeachMatchTool()
        result = tool.execute(image_to_buffer(textured_image()), WIDTH, HEIGHT)
        assert not result.success
        assert result.status == InspectionStatus.ERROR
        assert result.error_message == "No pattern has been taught"

    def test_featureless_image_cannot_be_taught(self):
        tool = TeachMatchTool()
        result = tool.teach(image_to_buffer(blank_image(WIDTH, HEIGHT)), WIDTH, HEIGHT)
        assert not result.success
        assert result.error_message.startswith("Not enough features detected for teaching")
        assert not tool.is_taught

    def test_teach_stores_template_in_config(self, taught_tool):
        assert taught_tool.is_taught
        assert 'template' in taught_tool.get_configuration()
        assert taught_tool.template.keypoint_count >= taught_tool.min_matches


class TestMatch:

    def test_same_image_gives_identity_pose(self, taught_tool):
        result = taught_tool.execute(image_to_buffer(textured_image()), WIDTH, HEIGHT)

        assert result.success, result.error_message
        assert result.status == InspectionStatus.OK
        position = result.position
        assert position.x == pytest.approx(160, abs=1.0)
        assert position.y == pytest.approx(120, abs=1.0)
        assert position.rotation == pytest.approx(0, abs=1.0)
        assert position.scale == pytest.approx(1.0, abs=0.02)
        assert 0 < position.confidence <= 1.0

    def test_shifted_image(self, taught_tool):
        image = shifted(textured_image(), 15, 10)
        result = taught_tool.execute(image_to_buffer(image), WIDTH, HEIGHT)

        assert result.success, result.error_message
        assert result.position.x == pytest.approx(175, abs=3.0)
        assert result.position.y == pytest.approx(130, abs=3.0)
        assert result.data['matchCount'] >= taught_tool.min_matches

    def test_featureless_image_is_ng(self, taught_tool):
        result = taught_tool.execute(image_to_buffer(blank_image(WIDTH, HEIGHT)), WIDTH, HEIGHT)
        assert not result.success
        assert result.status == InspectionStatus.NG


class TestTemplatePersistence:

    def test_exported_template_restores_on_configure(self, taught_tool):
        restored = TeachMatchTool()
        restored.configure({'template': taught_tool.export_template()})

        assert restored.is_taught
        result = restored.execute(image_to_buffer(textured_image()), WIDTH, HEIGHT)
        assert result.success
        assert result.position.x == pytest.approx(160, abs=1.0)

    def test_reconfigure_keeps_template(self, taught_tool):
        taught_tool.configure({'minMatches': 8})
        assert taught_tool.is_taught
        assert 'template' in taught_tool.get_configuration()

    def test_malformed_template_is_rejected(self):
        tool = TeachMatchTool()
        assert tool.restore_template({'descriptors': 'AAAA'}) is False
        assert not tool.is_taught

    def test_clear_template(self, taught_tool):
        taught_tool.clear_template()
        assert taught_tool.export_template() is None


class TestFeatureType:

    def test_case_insensitive(self):
        tool = TeachMatchTool()
        tool.configure({'featureType': 'akaze'})
        assert tool.feature_type == 'AKAZE'

    def test_unknown_falls_back_to_orb(self):
        tool = TeachMatchTool()
        tool.configure({'featureType': 'BRISK'})
        assert tool.feature_type == 'ORB'
