"""
Measurement node: point-to-point distance against a measurement spec.
"""

from typing import Optional
import logging

from .base import FlowNode
from ...models.enums import FlowNodeType, PortType
from ...models.product import MeasurementSpec
from ...models.results import FlowNodeResult, ValidationResult
from ...vision.tools.distance_measure import DistanceMeasureTool

logger = logging.getLogger(__name__)


class MeasurementNode(FlowNode):
    """
    Config keys:
        point1 / point2: {x, y}
        useEdgeDetection, edgeThreshold, searchRadius
        spec: inline measurement spec document
        specId: id or name of a spec in the product thresholds
        roiId: optional ROI limiting the edge search
    """

    node_type = FlowNodeType.MEASUREMENT
    DEFAULT_NAME = "Measurement"
    INPUT_PORTS = (("input", PortType.IMAGE),)
    OUTPUT_PORTS = (("output", PortType.IMAGE), ("measurement", PortType.DATA))
    run_in_worker = True

    def __init__(self, node_id: Optional[str] = None, name: Optional[str] = None):
        self.tool = DistanceMeasureTool(name=name or self.DEFAULT_NAME)
        super().__init__(node_id, name)

    def _on_configure(self, config):
        self.tool.configure(config)
        if not config.get('measurementName'):
            self.tool.measurement_name = self.name
        self.spec_id = config.get('specId') or None
        self.roi_id = config.get('roiId') or None

        self.inline_spec: Optional[MeasurementSpec] = None
        spec_data = config.get('spec')
        if isinstance(spec_data, dict):
            try:
                self.inline_spec = MeasurementSpec.from_dict(spec_data)
            except (TypeError, ValueError) as e:
                logger.warning(f"Node '{self.name}': invalid inline spec ignored: {e}")

    def validate(self) -> ValidationResult:
        if self.tool.point1 is None or self.tool.point2 is None:
            return ValidationResult.invalid("Measurement points are not configured")
        return ValidationResult.valid()

    def _resolve_spec(self, context):
        if self.inline_spec is not None:
            return self.inline_spec, None
        if not self.spec_id:
            return None, None
        product = context.product_config
        spec = product.find_measurement_spec(self.spec_id) if product is not None else None
        if spec is None:
            return None, f"Measurement spec '{self.spec_id}' not found"
        return spec, None

    def _execute(self, context, token) -> FlowNodeResult:
        if context.current_image is None:
            return FlowNodeResult.failure(self.id, "No input image available")

        spec, error = self._resolve_spec(context)
        if error:
            return FlowNodeResult.failure(self.id, error)
        self.tool.set_spec(spec)

        roi = self.find_roi(context, self.roi_id)
        tool_result = self.tool.execute(context.current_image, context.image_width,
                                        context.image_height, roi=roi, token=token)
        context.add_measurements(tool_result.measurements)
        return self.tool_result(tool_result)
