"""
Execution Context
Per-run blackboard shared by every node, plus the cancellation token
threaded through a run.
"""

import threading
from datetime import datetime
from typing import Any, Dict, List, Optional

import numpy as np

from ..models.product import ProductConfig
from ..models.results import Defect, FlowNodeResult, Measurement, ProductPosition
from ..vision.image_buffer import buffer_to_image


class CancellationToken:
    """Cooperative cancellation flag checked by the scheduler and node bodies."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to `timeout` seconds; returns True as soon as cancelled."""
        return self._event.wait(timeout)


class ExecutionContext:
    """
    Mutable state of one flow run.

    Node results are write-once per node id; measurements and defects are
    append-only.
    """

    def __init__(self, image: Optional[bytes], width: int, height: int,
                 product_config: Optional[ProductConfig] = None):
        self.current_image = image
        self.image_width = width
        self.image_height = height
        self.product_config = product_config
        self.start_time = datetime.now()

        self.variables: Dict[str, Any] = {}
        self._node_results: Dict[str, FlowNodeResult] = {}
        self._measurements: List[Measurement] = []
        self._defects: List[Defect] = []
        self.product_position: Optional[ProductPosition] = None

    @property
    def node_results(self) -> Dict[str, FlowNodeResult]:
        return dict(self._node_results)

    @property
    def measurements(self) -> List[Measurement]:
        return list(self._measurements)

    @property
    def defects(self) -> List[Defect]:
        return list(self._defects)

    def record_result(self, result: FlowNodeResult):
        """Store a node result; raises ValueError if the node already has one."""
        if result.node_id in self._node_results:
            raise ValueError(f"Node {result.node_id} already has a result in this run")
        self._node_results[result.node_id] = result

    def get_result(self, node_id: str) -> Optional[FlowNodeResult]:
        return self._node_results.get(node_id)

    def has_result(self, node_id: str) -> bool:
        return node_id in self._node_results

    def add_measurements(self, measurements: List[Measurement]):
        self._measurements.extend(measurements)

    def add_defects(self, defects: List[Defect]):
        self._defects.extend(defects)

    def find_measurement(self, name: str) -> Optional[Measurement]:
        """Latest measurement with the given name."""
        for measurement in reversed(self._measurements):
            if measurement.name == name:
                return measurement
        return None

    def get_image_array(self) -> Optional[np.ndarray]:
        if self.current_image is None:
            return None
        return buffer_to_image(self.current_image, self.image_width, self.image_height)
