"""
Teach-Match node: localizes the taught pattern and publishes the
product position on the context.
"""

from typing import Optional
import logging

from .base import FlowNode
from ...models.enums import FlowNodeType, PortType
from ...models.results import FlowNodeResult, ValidationResult, VisionToolResult
from ...models.roi import ROI
from ...vision.tools.teach_match import TeachMatchTool

logger = logging.getLogger(__name__)


class TeachMatchNode(FlowNode):
    node_type = FlowNodeType.TEACH_MATCH
    DEFAULT_NAME = "Teach Match"
    INPUT_PORTS = (("input", PortType.IMAGE),)
    OUTPUT_PORTS = (("output", PortType.IMAGE), ("position", PortType.COORDINATES))
    run_in_worker = True

    def __init__(self, node_id: Optional[str] = None, name: Optional[str] = None):
        self.tool = TeachMatchTool(name=name or self.DEFAULT_NAME)
        super().__init__(node_id, name)

    def _on_configure(self, config):
        self.roi_id = config.get('roiId') or None
        self.tool.configure(config)
        template = self.tool.export_template()
        if template is not None:
            config['template'] = template
        else:
            config.pop('template', None)

    @property
    def is_taught(self) -> bool:
        return self.tool.is_taught

    def teach(self, data: bytes, width: int, height: int,
              roi: Optional[ROI] = None) -> VisionToolResult:
        """Teach the pattern and store the template in the node configuration."""
        result = self.tool.teach(data, width, height, roi)
        if result.success:
            self.config['template'] = self.tool.export_template()
            logger.info(f"Node '{self.name}' taught")
        else:
            logger.warning(f"Node '{self.name}' teach failed: {result.error_message}")
        return result

    def validate(self) -> ValidationResult:
        if not self.tool.is_taught:
            return ValidationResult.invalid("Pattern not taught")
        return ValidationResult.valid()

    def _execute(self, context, token) -> FlowNodeResult:
        if context.current_image is None:
            return FlowNodeResult.failure(self.id, "No input image available")

        roi = self.find_roi(context, self.roi_id)
        if self.roi_id and roi is None:
            return FlowNodeResult.failure(self.id, f"Search ROI '{self.roi_id}' not found")

        tool_result = self.tool.execute(context.current_image, context.image_width,
                                        context.image_height, roi=roi, token=token)
        if tool_result.position is None:
            return self.tool_result(tool_result)

        context.product_position = tool_result.position
        return self.tool_result(tool_result, position=tool_result.position.to_dict())
