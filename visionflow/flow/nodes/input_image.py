"""
Input-Source node: publishes the captured frame into the flow.
"""

from .base import FlowNode
from ...models.enums import FlowNodeType, PortType
from ...models.results import FlowNodeResult


class InputImageNode(FlowNode):
    node_type = FlowNodeType.INPUT_IMAGE
    DEFAULT_NAME = "Input Image"
    OUTPUT_PORTS = (("output", PortType.IMAGE),)

    def _execute(self, context, token) -> FlowNodeResult:
        if context.current_image is None:
            return FlowNodeResult.failure(self.id, "No input image available")

        return FlowNodeResult.ok(
            self.id,
            output_image=context.current_image,
            data={'width': context.image_width, 'height': context.image_height},
        )
