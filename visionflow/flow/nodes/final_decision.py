"""
Final-Decision node: aggregates upstream statuses into the run verdict.
"""

import logging

from .base import FlowNode
from ...models.enums import FlowNodeType, InspectionStatus, PortType
from ...models.results import FlowNodeResult

logger = logging.getLogger(__name__)


class FinalDecisionNode(FlowNode):
    """
    logic=AND: OK when every input is OK. logic=OR: OK when any input is OK.
    An Error input forces Error; Skipped inputs are ignored; no inputs yields
    NotInspected.
    """

    node_type = FlowNodeType.FINAL_DECISION
    DEFAULT_NAME = "Final Decision"
    INPUT_PORTS = (("input", PortType.DATA),)
    OUTPUT_PORTS = (("result", PortType.BOOLEAN),)

    def _on_configure(self, config):
        logic = str(config.get('logic', 'AND')).upper()
        if logic not in ('AND', 'OR'):
            logger.warning(f"Node '{self.name}': unknown logic {logic!r}, using AND")
            logic = 'AND'
        self.logic = logic

    def _execute(self, context, token) -> FlowNodeResult:
        results = [r for r in self.input_results(context)
                   if r.status != InspectionStatus.SKIPPED]
        ok_count = sum(1 for r in results if r.status == InspectionStatus.OK)
        data = {'logic': self.logic, 'inputCount': len(results), 'okCount': ok_count}

        if not results:
            return FlowNodeResult.ok(self.id, status=InspectionStatus.NOT_INSPECTED, data=data)

        errors = [r.node_id for r in results if r.status == InspectionStatus.ERROR]
        if errors:
            return FlowNodeResult.failure(
                self.id, f"Upstream error in node(s): {', '.join(errors)}", data=data)

        if self.logic == 'AND':
            passed = ok_count == len(results)
        else:
            passed = ok_count > 0

        return FlowNodeResult.ok(
            self.id,
            status=InspectionStatus.OK if passed else InspectionStatus.NG,
            output_image=self.input_image,
            data=data,
        )
