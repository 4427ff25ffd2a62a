"""
Pytest Configuration

Shared fixtures: synthetic images, product configurations and a small
flow builder.
"""

import sys
from pathlib import Path

import cv2
import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from visionflow.flow import FlowEngine
from visionflow.models import (
    DefectThreshold, FlowConnection, FlowDefinition, FlowNodeDefinition, FlowNodeType,
    MeasurementSpec, ProductConfig, ProductDefinition, ROI, ROIShape, ROIUsage, ThresholdConfig
)
from visionflow.vision import image_to_buffer


IMAGE_WIDTH = 100
IMAGE_HEIGHT = 80


def blank_image(width=IMAGE_WIDTH, height=IMAGE_HEIGHT, value=0) -> np.ndarray:
    return np.full((height, width, 3), value, dtype=np.uint8)


def bright_square_image(x=40, y=30, size=20, background=0) -> np.ndarray:
    """Black image with one white size x size square whose top-left is (x, y)."""
    image = blank_image(value=background)
    cv2.rectangle(image, (x, y), (x + size - 1, y + size - 1), (255, 255, 255), -1)
    return image


def textured_image(width=320, height=240, seed=42) -> np.ndarray:
    """Random rectangles and circles; rich in distinctive corners."""
    rng = np.random.default_rng(seed)
    image = np.full((height, width, 3), 30, dtype=np.uint8)
    for _ in range(60):
        color = tuple(int(c) for c in rng.integers(40, 256, size=3))
        x1, y1 = int(rng.integers(0, width - 20)), int(rng.integers(0, height - 20))
        if rng.random() < 0.6:
            x2 = x1 + int(rng.integers(8, 50))
            y2 = y1 + int(rng.integers(8, 50))
            cv2.rectangle(image, (x1, y1), (x2, y2), color, -1)
        else:
            cv2.circle(image, (x1, y1), int(rng.integers(4, 20)), color, -1)
    return image


class FlowBuilder:
    """Builds consistent flow definitions: node records plus connections."""

    def __init__(self, name="Test Flow"):
        self.definition = FlowDefinition(name=name)

    def add(self, node_id, node_type: FlowNodeType, config=None, name=""):
        self.definition.nodes.append(FlowNodeDefinition(
            node_type=node_type, node_id=node_id, name=name or node_id,
            config=dict(config or {})))
        return self

    def connect(self, source_id, target_id):
        self.definition.connections.append(
            FlowConnection(source_node_id=source_id, target_node_id=target_id))
        return self

    def build(self) -> FlowDefinition:
        return self.definition


@pytest.fixture
def flow_builder():
    return FlowBuilder()


@pytest.fixture
def engine():
    flow_engine = FlowEngine(max_workers=1)
    yield flow_engine
    flow_engine.shutdown()


@pytest.fixture
def square_buffer():
    """(buffer, width, height) of the bright square image."""
    return image_to_buffer(bright_square_image()), IMAGE_WIDTH, IMAGE_HEIGHT


@pytest.fixture
def product_config():
    return ProductConfig(
        product=ProductDefinition(product_id="P-001", product_name="Test Part"),
        rois=[
            ROI(id="roi-main", name="Main", points=[50, 40, 60, 50]),
            ROI(id="roi-hole", name="Hole", shape=ROIShape.CIRCLE,
                usage=ROIUsage.EXCLUDE, points=[50, 40, 5]),
        ],
        thresholds=ThresholdConfig(
            defect_thresholds=[DefectThreshold(
                id="spots", name="Spots", binary_threshold=128, min_area=10,
                max_area=1000, morphology_kernel=0, detect_white=True, detect_black=False)],
            measurement_specs=[MeasurementSpec(
                id="gap", name="Gap", nominal=5.0, tolerance_plus=0.1,
                tolerance_minus=0.1, unit="mm", pixels_per_unit=10.0)],
        ),
    )
