"""
Defect-Detection node: spot detection inside the ROI mask published by an
upstream ROI-Apply node.
"""

from typing import Optional

import numpy as np

from .base import FlowNode
from ...config.settings import EngineConfig
from ...models.enums import FlowNodeType, PortType
from ...models.results import FlowNodeResult
from ...vision.tools.defect_detection import DefectDetectionTool


class DefectDetectionNode(FlowNode):
    """
    Config keys are those of the defect detection tool; `thresholdId` pulls a
    named threshold set from the product configuration, with explicit node
    keys taking precedence. `roiId` crops to an ROI.
    """

    node_type = FlowNodeType.DEFECT_DETECTION
    DEFAULT_NAME = "Defect Detection"
    INPUT_PORTS = (("input", PortType.IMAGE),)
    OUTPUT_PORTS = (("output", PortType.IMAGE), ("defects", PortType.DATA))
    run_in_worker = True

    def __init__(self, node_id: Optional[str] = None, name: Optional[str] = None):
        self.tool = DefectDetectionTool(name=name or self.DEFAULT_NAME)
        super().__init__(node_id, name)

    def _on_configure(self, config):
        self.threshold_id = config.get('thresholdId') or None
        self.roi_id = config.get('roiId') or None
        self.tool.configure(config)

    def _execute(self, context, token) -> FlowNodeResult:
        if context.current_image is None:
            return FlowNodeResult.failure(self.id, "No input image available")

        if self.threshold_id:
            product = context.product_config
            threshold = (product.find_defect_threshold(self.threshold_id)
                         if product is not None else None)
            if threshold is None:
                return FlowNodeResult.failure(
                    self.id, f"Defect threshold '{self.threshold_id}' not found")
            settings = threshold.to_dict()
            settings.update(self.config)
            self.tool.configure(settings)

        mask = context.variables.get(EngineConfig.ROI_MASK_VARIABLE)
        if not isinstance(mask, np.ndarray):
            mask = None

        roi = self.find_roi(context, self.roi_id)
        tool_result = self.tool.execute(context.current_image, context.image_width,
                                        context.image_height, roi=roi, mask=mask,
                                        token=token)
        context.add_defects(tool_result.defects)
        return self.tool_result(tool_result)
