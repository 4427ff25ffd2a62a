"""
ROI-Apply node: builds the processing mask from the product ROIs and
publishes it for downstream tools. The image itself passes through.
"""

import numpy as np
import logging

from .base import FlowNode
from ...config.settings import EngineConfig
from ...models.enums import FlowNodeType, PortType, ROIUsage
from ...models.results import FlowNodeResult
from ...vision.roi_mask import build_mask

logger = logging.getLogger(__name__)


class ROIApplyNode(FlowNode):
    """
    Config keys:
        roiId: id or name of the Include ROI to apply; when empty every
               product ROI takes part. Enabled Exclude ROIs always apply.
    """

    node_type = FlowNodeType.ROI_APPLY
    DEFAULT_NAME = "ROI Apply"
    INPUT_PORTS = (("input", PortType.IMAGE),)
    OUTPUT_PORTS = (("output", PortType.IMAGE), ("mask", PortType.DATA))

    def _on_configure(self, config):
        self.roi_id = config.get('roiId') or None

    def _execute(self, context, token) -> FlowNodeResult:
        if self.input_image is None:
            return FlowNodeResult.failure(self.id, "No input image available")

        product = context.product_config
        rois = []
        if product is not None:
            if self.roi_id:
                roi = product.find_roi(self.roi_id)
                if roi is None:
                    return FlowNodeResult.failure(
                        self.id, f"ROI '{self.roi_id}' not found in product configuration")
                rois = [roi] + [r for r in product.rois
                                if r.usage == ROIUsage.EXCLUDE and r is not roi]
            else:
                rois = list(product.rois)
        elif self.roi_id:
            return FlowNodeResult.failure(
                self.id, f"No product configuration to resolve ROI '{self.roi_id}'")

        mask = build_mask(rois, context.image_width, context.image_height)
        context.variables[EngineConfig.ROI_MASK_VARIABLE] = mask
        coverage = float(np.count_nonzero(mask)) / mask.size if mask.size else 0.0
        logger.debug(f"{self.name}: mask from {len(rois)} ROI(s), coverage {coverage:.1%}")

        return FlowNodeResult.ok(
            self.id,
            output_image=self.input_image,
            data={'roiId': self.roi_id, 'roiCount': len(rois), 'maskCoverage': coverage},
        )
