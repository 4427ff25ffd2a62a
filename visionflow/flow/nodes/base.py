"""
Flow Node Base
Common contract of every node variant: identity, fixed port set,
configuration payload, execution, validation and per-run reset.
"""

import copy
import uuid
import cv2
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

from ..context import CancellationToken, ExecutionContext
from ..ports import NodePort
from ...models.enums import FlowNodeType, InspectionStatus, PortDirection, PortType
from ...models.flow_definition import FlowNodeDefinition
from ...models.results import FlowNodeResult, ValidationResult, VisionToolResult
from ...utils.timer import PerformanceTimer

logger = logging.getLogger(__name__)


class FlowNode(ABC):
    """
    Base class for flow nodes.

    Subclasses declare `node_type`, `DEFAULT_NAME` and their port specs, and
    implement `_execute`. `execute` wraps it with cancellation checks,
    timing, error capture and bookkeeping of the last result.
    """

    node_type: FlowNodeType = None
    DEFAULT_NAME = "Node"
    INPUT_PORTS: Sequence[Tuple[str, PortType]] = ()
    OUTPUT_PORTS: Sequence[Tuple[str, PortType]] = ()

    # Heavy tool invocations run on an engine worker thread
    run_in_worker = False

    def __init__(self, node_id: Optional[str] = None, name: Optional[str] = None):
        self.id = node_id or str(uuid.uuid4())
        self.name = name or self.DEFAULT_NAME
        self.position_x = 0.0
        self.position_y = 0.0
        self.inputs: List[str] = []
        self.outputs: List[str] = []
        self.config: Dict[str, Any] = {}

        self.input_ports = [NodePort(port_name, port_type, PortDirection.INPUT, self.id)
                            for port_name, port_type in self.INPUT_PORTS]
        self.output_ports = [NodePort(port_name, port_type, PortDirection.OUTPUT, self.id)
                             for port_name, port_type in self.OUTPUT_PORTS]

        self.input_image: Optional[bytes] = None
        self.output_image: Optional[bytes] = None
        self.result: Optional[FlowNodeResult] = None
        self.executed = False

        self.configure({})

    def __repr__(self):
        return f"{self.__class__.__name__}(id={self.id!r}, name={self.name!r})"

    # ==================== Configuration ====================

    def configure(self, config: Optional[Dict]):
        """Absorb a configuration payload; malformed values fall back to defaults."""
        self.config = copy.deepcopy(config or {})
        self._on_configure(self.config)

    def _on_configure(self, config: Dict):
        pass

    def get_configuration(self) -> Dict:
        return copy.deepcopy(self.config)

    # ==================== Graph wiring ====================

    def add_input(self, node_id: str):
        if node_id not in self.inputs:
            self.inputs.append(node_id)

    def add_output(self, node_id: str):
        if node_id not in self.outputs:
            self.outputs.append(node_id)

    def get_port(self, name: str, direction: PortDirection) -> Optional[NodePort]:
        ports = self.input_ports if direction == PortDirection.INPUT else self.output_ports
        for port in ports:
            if port.name == name:
                return port
        return None

    def to_definition(self) -> FlowNodeDefinition:
        return FlowNodeDefinition(
            node_type=self.node_type,
            node_id=self.id,
            name=self.name,
            position_x=self.position_x,
            position_y=self.position_y,
            inputs=list(self.inputs),
            outputs=list(self.outputs),
            config=self.get_configuration(),
        )

    # ==================== Lifecycle ====================

    def reset(self):
        """Clear per-run state."""
        self.input_image = None
        self.output_image = None
        self.result = None
        self.executed = False

    def validate(self) -> ValidationResult:
        return ValidationResult.valid()

    def execute(self, context: ExecutionContext, token: CancellationToken) -> FlowNodeResult:
        """
        Run the node against the shared context.

        Precondition failures and vision library faults come back as a failed
        result; they are not raised.
        """
        if token.is_cancelled:
            return FlowNodeResult.failure(self.id, "Cancelled",
                                          status=InspectionStatus.NOT_INSPECTED)

        timer = PerformanceTimer(self.name).start()
        self.input_image = self.resolve_input_image(context)
        try:
            result = self._execute(context, token)
        except cv2.error as e:
            logger.error(f"Node '{self.name}' OpenCV error: {e}")
            result = FlowNodeResult.failure(self.id, f"{self.name} failed: {e}")
        except Exception as e:
            logger.exception(f"Node '{self.name}' failed")
            result = FlowNodeResult.failure(self.id, f"{self.name} failed: {e}")

        result.execution_time_ms = timer.stop()
        self.output_image = result.output_image
        self.result = result
        self.executed = True
        return result

    @abstractmethod
    def _execute(self, context: ExecutionContext, token: CancellationToken) -> FlowNodeResult:
        pass

    # ==================== Helpers ====================

    def resolve_input_image(self, context: ExecutionContext) -> Optional[bytes]:
        """Output image of the latest upstream node that produced one, else the capture."""
        for node_id in reversed(self.inputs):
            upstream = context.get_result(node_id)
            if upstream is not None and upstream.output_image is not None:
                return upstream.output_image
        return context.current_image

    def input_results(self, context: ExecutionContext) -> List[FlowNodeResult]:
        """Recorded results of the declared inputs, in declaration order."""
        results = []
        for node_id in self.inputs:
            result = context.get_result(node_id)
            if result is not None:
                results.append(result)
        return results

    def tool_result(self, tool_result: VisionToolResult, **data) -> FlowNodeResult:
        """Convert a vision tool result into this node's result."""
        merged = dict(tool_result.data)
        merged.update(data)
        return FlowNodeResult(
            node_id=self.id,
            success=tool_result.success,
            status=tool_result.status,
            output_image=tool_result.output_image,
            data=merged,
            error_message=tool_result.error_message,
        )

    def find_roi(self, context: ExecutionContext, roi_id: Optional[str]):
        if not roi_id or context.product_config is None:
            return None
        return context.product_config.find_roi(roi_id)
