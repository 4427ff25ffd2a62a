"""
Flow Engine
Loads a flow definition into live nodes and runs the graph against a
captured image, producing an InspectionResult.

Scheduling uses a dependency-counted ready queue: a node becomes ready once
every declared input node has recorded a result. Ready nodes run one at a
time in FIFO order; heavy node bodies are handed to a worker thread while
the scheduler waits for them and watches the cancellation token.
"""

from collections import deque
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from enum import Enum
from typing import Callable, Dict, List, Optional, Union
import logging

from .context import CancellationToken, ExecutionContext
from .nodes.base import FlowNode
from .serializer import FlowSerializer
from ..config.settings import EngineConfig
from ..models.enums import FlowNodeType, InspectionStatus
from ..models.flow_definition import FlowConnection, FlowDefinition, FlowDefinitionError
from ..models.product import ProductConfig
from ..models.results import FlowNodeResult, InspectionResult, ValidationResult
from ..utils.timer import PerformanceTimer
from ..vision.image_buffer import expected_size
from ..vision.image_source import ImageSource

logger = logging.getLogger(__name__)


class EngineEvent(Enum):
    NODE_EXECUTED = "node_executed"
    FLOW_COMPLETED = "flow_completed"
    ERROR = "error"


class FlowEngine:
    """Owns the live node graph and executes it."""

    def __init__(self, max_workers: Optional[int] = None):
        self._nodes: Dict[str, FlowNode] = {}
        self._connections: List[FlowConnection] = []
        self.name = EngineConfig.DEFAULT_FLOW_NAME
        self.version = EngineConfig.DEFAULT_FLOW_VERSION
        self.flow_id: Optional[str] = None

        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or EngineConfig.NODE_WORKER_THREADS,
            thread_name_prefix="flow-node",
        )
        self._callbacks: Dict[EngineEvent, List[Callable]] = {}

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
        return False

    def shutdown(self):
        self._executor.shutdown(wait=True)

    # ==================== Callbacks ====================

    def register_callback(self, event: EngineEvent, callback: Callable):
        self._callbacks.setdefault(event, []).append(callback)

    def on_node_executed(self, callback: Callable):
        """callback(node, result) after every recorded node result."""
        self.register_callback(EngineEvent.NODE_EXECUTED, callback)

    def on_flow_completed(self, callback: Callable):
        """callback(inspection_result) at the end of every run."""
        self.register_callback(EngineEvent.FLOW_COMPLETED, callback)

    def on_error(self, callback: Callable):
        """callback(message) when a run fails at engine level."""
        self.register_callback(EngineEvent.ERROR, callback)

    def _emit(self, event: EngineEvent, *args):
        for callback in self._callbacks.get(event, []):
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"Callback error for {event.name}: {e}")

    # ==================== Graph ====================

    def load(self, definition: Union[FlowDefinition, Dict]) -> ValidationResult:
        """
        Replace the live graph with the nodes of `definition`.

        Returns load warnings (unknown node types, unresolved connections) or
        an error when the document is malformed; the previous graph is kept
        in that case.
        """
        report = ValidationResult.valid()
        try:
            if not isinstance(definition, FlowDefinition):
                definition = FlowSerializer.from_dict(definition, report)
            nodes, node_report = FlowSerializer.create_nodes(definition)
        except FlowDefinitionError as e:
            logger.error(f"Failed to load flow: {e}")
            return ValidationResult.invalid(str(e))

        report.merge(node_report)
        self._nodes = {node.id: node for node in nodes}
        self._connections = list(definition.connections)
        self.name = definition.name
        self.version = definition.version
        self.flow_id = definition.flow_id

        logger.info(f"Flow '{self.name}' loaded: {len(self._nodes)} nodes, "
                    f"{len(self._connections)} connections, {len(report.warnings)} warnings")
        return report

    def load_file(self, path) -> ValidationResult:
        report = ValidationResult.valid()
        definition = FlowSerializer.load(path, report)
        if definition is None:
            return ValidationResult.invalid(f"Could not load flow from {path}")
        loaded = self.load(definition)
        loaded.merge(report)
        return loaded

    def get_nodes(self) -> List[FlowNode]:
        return list(self._nodes.values())

    def get_node(self, node_id: str) -> Optional[FlowNode]:
        return self._nodes.get(node_id)

    def get_definition(self) -> FlowDefinition:
        return FlowSerializer.convert_to_definition(
            self._nodes.values(), name=self.name, version=self.version,
            flow_id=self.flow_id, connections=self._connections)

    def _predecessors(self) -> Dict[str, List[str]]:
        """Declared inputs that resolve to loaded nodes, de-duplicated."""
        preds = {}
        for node in self._nodes.values():
            resolved = []
            for input_id in node.inputs:
                if input_id in self._nodes and input_id not in resolved:
                    resolved.append(input_id)
            preds[node.id] = resolved
        return preds

    def _successors(self, preds: Dict[str, List[str]]) -> Dict[str, List[str]]:
        """Reverse of `preds`, ordered by each node's output list, then load order."""
        succs = {node_id: [] for node_id in self._nodes}
        for node_id, inputs in preds.items():
            for input_id in inputs:
                succs[input_id].append(node_id)

        load_order = {node_id: i for i, node_id in enumerate(self._nodes)}
        for node_id, targets in succs.items():
            outputs = self._nodes[node_id].outputs
            targets.sort(key=lambda t: (outputs.index(t) if t in outputs else len(outputs),
                                        load_order[t]))
        return succs

    def _entry_nodes(self, preds: Dict[str, List[str]]) -> List[str]:
        return [node_id for node_id, inputs in preds.items() if not inputs]

    def _find_cycle_nodes(self, preds: Dict[str, List[str]]) -> List[str]:
        """Nodes that can never become ready because they sit on or behind a cycle."""
        succs = self._successors(preds)
        remaining = {node_id: len(inputs) for node_id, inputs in preds.items()}
        queue = deque(self._entry_nodes(preds))
        while queue:
            node_id = queue.popleft()
            for target in succs[node_id]:
                remaining[target] -= 1
                if remaining[target] == 0:
                    queue.append(target)
        return [node_id for node_id, count in remaining.items() if count > 0]

    def _final_decision_nodes(self) -> List[FlowNode]:
        return [node for node in self._nodes.values()
                if node.node_type == FlowNodeType.FINAL_DECISION]

    def validate(self) -> ValidationResult:
        """Structural and per-node validation of the live graph."""
        result = ValidationResult.valid()
        if not self._nodes:
            result.add_error("Flow has no nodes")
            return result

        preds = self._predecessors()
        if not self._entry_nodes(preds):
            result.add_error("Flow has no entry nodes")

        cycle = self._find_cycle_nodes(preds)
        if cycle:
            result.add_error(f"Cycle detected among nodes: {self._describe(cycle)}")

        for node in self._nodes.values():
            missing = [i for i in node.inputs if i not in self._nodes]
            if missing:
                result.add_warning(f"{node.name} ({node.id}): unknown input node(s) "
                                   f"{', '.join(missing)}")
            result.merge(node.validate(), prefix=f"{node.name} ({node.id}): ")

        finals = self._final_decision_nodes()
        if not finals:
            result.add_warning("Flow has no Final Decision node")
        elif len(finals) > 1:
            result.add_warning(f"Flow has {len(finals)} Final Decision nodes; "
                               f"'{finals[0].name}' decides the result")
        return result

    def _describe(self, node_ids: List[str]) -> str:
        return ", ".join(f"{self._nodes[i].name} ({i})" for i in node_ids)

    # ==================== Execution ====================

    def execute(self, image: Optional[bytes], width: int, height: int,
                product_config: Optional[ProductConfig] = None,
                token: Optional[CancellationToken] = None) -> InspectionResult:
        """
        Run the graph on a BGR image buffer.

        Never raises: structural problems and unexpected faults come back as
        an Error result, cancellation as a result with `cancelled=True`.
        """
        token = token or CancellationToken()
        timer = PerformanceTimer(f"Flow '{self.name}'").start()
        product_id = ""

        try:
            if product_config is not None:
                product_id = product_config.product.product_id
            result = self._run(image, width, height, product_config, token)
        except Exception as e:
            logger.exception(f"Flow '{self.name}' execution failed")
            result = self._error_result(f"Execution failed: {e}")

        result.product_id = product_id
        result.duration_ms = timer.stop()
        result.metadata.setdefault('flowName', self.name)
        if self.flow_id:
            result.metadata.setdefault('flowId', self.flow_id)

        if result.status == InspectionStatus.ERROR:
            self._emit(EngineEvent.ERROR, result.error_message)
        if timer.over_budget(EngineConfig.TARGET_PROCESSING_TIME_MS):
            logger.warning(f"Flow '{self.name}' took {result.duration_ms:.1f} ms "
                           f"(target {EngineConfig.TARGET_PROCESSING_TIME_MS} ms)")
        logger.info(f"Flow '{self.name}' finished: {result.status.value} "
                    f"in {result.duration_ms:.1f} ms")

        self._emit(EngineEvent.FLOW_COMPLETED, result)
        return result

    def execute_source(self, source: ImageSource,
                       product_config: Optional[ProductConfig] = None,
                       token: Optional[CancellationToken] = None) -> InspectionResult:
        """Capture one frame from `source` and run the graph on it."""
        frame = source.capture()
        if frame is None:
            result = self._error_result(f"No frame available from {source.get_source_info()}")
            self._emit(EngineEvent.ERROR, result.error_message)
            return result

        result = self.execute(frame.data, frame.width, frame.height, product_config, token)
        result.metadata.update({str(k): str(v) for k, v in frame.metadata.items()})
        return result

    def _run(self, image, width, height, product_config, token) -> InspectionResult:
        for node in self._nodes.values():
            node.reset()

        if not self._nodes:
            return self._error_result("Flow has no nodes")

        if image is not None and len(image) != expected_size(width, height):
            return self._error_result(
                f"Invalid image buffer: {len(image)} bytes for {width}x{height} BGR")

        preds = self._predecessors()
        entries = self._entry_nodes(preds)
        if not entries:
            return self._error_result("Flow has no entry nodes")

        cycle = self._find_cycle_nodes(preds)
        if cycle:
            return self._error_result(f"Cycle detected among nodes: {self._describe(cycle)}")

        succs = self._successors(preds)
        remaining = {node_id: len(inputs) for node_id, inputs in preds.items()}
        live_inputs = {node_id: 0 for node_id in self._nodes}
        context = ExecutionContext(image, width, height, product_config)
        queue = deque(entries)

        while queue:
            if token.is_cancelled:
                return self._cancelled_result(context)

            node = self._nodes[queue.popleft()]
            if preds[node.id] and live_inputs[node.id] == 0:
                result = FlowNodeResult.skipped(node.id)
                node.result = result
                logger.debug(f"Node '{node.name}' skipped")
            else:
                try:
                    result = self._run_node(node, context, token)
                except Exception as e:
                    logger.exception(f"Node '{node.name}' raised out of execute")
                    result = FlowNodeResult.failure(node.id, f"{node.name} failed: {e}")
                logger.debug(f"Node '{node.name}' {result.status.value} "
                             f"in {result.execution_time_ms:.2f} ms")

            context.record_result(result)
            self._emit(EngineEvent.NODE_EXECUTED, node, result)

            targets = succs[node.id]
            chosen = result.next_node_id if result.next_node_id in targets else None
            for target in targets:
                if result.status != InspectionStatus.SKIPPED and chosen in (None, target):
                    live_inputs[target] += 1
                remaining[target] -= 1
                if remaining[target] == 0:
                    queue.append(target)

        if token.is_cancelled:
            return self._cancelled_result(context)
        return self._build_result(context)

    def _run_node(self, node: FlowNode, context: ExecutionContext,
                  token: CancellationToken) -> FlowNodeResult:
        if not node.run_in_worker:
            return node.execute(context, token)

        future = self._executor.submit(node.execute, context, token)
        warned = False
        while True:
            try:
                return future.result(timeout=EngineConfig.CANCELLATION_POLL_S)
            except FutureTimeout:
                if token.is_cancelled and not warned:
                    # The running body still owns the context; let it finish
                    logger.warning(f"Cancellation requested, waiting for node '{node.name}'")
                    warned = True

    def _build_result(self, context: ExecutionContext) -> InspectionResult:
        status = InspectionStatus.NOT_INSPECTED
        error_message = None
        finals = self._final_decision_nodes()
        if finals:
            decision = context.get_result(finals[0].id)
            if decision is not None and decision.status != InspectionStatus.SKIPPED:
                status = decision.status
                error_message = decision.error_message

        return InspectionResult(
            status=status,
            measurements=context.measurements,
            defects=context.defects,
            product_position=context.product_position,
            node_results=context.node_results,
            metadata={'nodeCount': str(len(self._nodes))},
            error_message=error_message,
        )

    def _cancelled_result(self, context: ExecutionContext) -> InspectionResult:
        logger.warning(f"Flow '{self.name}' cancelled after "
                       f"{len(context.node_results)} of {len(self._nodes)} nodes")
        result = self._build_result(context)
        result.status = InspectionStatus.NOT_INSPECTED
        result.cancelled = True
        result.error_message = "Execution cancelled"
        return result

    def _error_result(self, message: str) -> InspectionResult:
        logger.error(f"Flow '{self.name}': {message}")
        return InspectionResult(status=InspectionStatus.ERROR, error_message=message)
