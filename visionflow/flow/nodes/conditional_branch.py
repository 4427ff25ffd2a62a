"""
Conditional-Branch node: routes execution to one successor depending on
upstream statuses.
"""

import logging

from .base import FlowNode
from ...models.enums import FlowNodeType, InspectionStatus, PortType
from ...models.results import FlowNodeResult, ValidationResult

logger = logging.getLogger(__name__)

MODES = ('allOk', 'anyOk')


class ConditionalBranchNode(FlowNode):
    """
    Config keys:
        mode: allOk (default) | anyOk
        trueNodeId / falseNodeId: successor taken for each outcome

    When the chosen successor is not one of this node's outputs, every
    outgoing edge stays live.
    """

    node_type = FlowNodeType.CONDITIONAL_BRANCH
    DEFAULT_NAME = "Conditional Branch"
    INPUT_PORTS = (("input", PortType.DATA),)
    OUTPUT_PORTS = (("true", PortType.BOOLEAN), ("false", PortType.BOOLEAN))

    def _on_configure(self, config):
        mode = config.get('mode', 'allOk')
        if mode not in MODES:
            logger.warning(f"Node '{self.name}': unknown mode {mode!r}, using allOk")
            mode = 'allOk'
        self.mode = mode
        self.true_node_id = config.get('trueNodeId') or None
        self.false_node_id = config.get('falseNodeId') or None

    def validate(self) -> ValidationResult:
        result = ValidationResult.valid()
        for key, target in (('trueNodeId', self.true_node_id), ('falseNodeId', self.false_node_id)):
            if target and target not in self.outputs:
                result.add_warning(f"{key} {target} is not connected to this node")
        return result

    def _execute(self, context, token) -> FlowNodeResult:
        statuses = [r.status for r in self.input_results(context)
                    if r.status != InspectionStatus.SKIPPED]
        oks = [status == InspectionStatus.OK for status in statuses]
        condition = all(oks) if self.mode == 'allOk' else any(oks)
        condition = condition and bool(oks)

        target = self.true_node_id if condition else self.false_node_id
        next_node_id = None
        if target in self.outputs:
            next_node_id = target
        elif target:
            logger.warning(f"Node '{self.name}': branch target {target} is not a successor, "
                           f"continuing on all outputs")

        return FlowNodeResult.ok(
            self.id,
            output_image=self.input_image,
            next_node_id=next_node_id,
            data={'condition': condition, 'mode': self.mode},
        )
