"""
Execution Timer
Millisecond wall-clock timing of tool invocations, node bodies and flow runs.
"""

import time
import logging

logger = logging.getLogger(__name__)


class PerformanceTimer:
    """
    Usage:
        timer = PerformanceTimer("Defect Detection").start()
        ...
        result.execution_time_ms = timer.stop()
    """

    def __init__(self, name="Operation"):
        self.name = name
        self.start_time = None
        self.elapsed_ms = 0.0

    def start(self) -> 'PerformanceTimer':
        self.start_time = time.perf_counter()
        self.elapsed_ms = 0.0
        return self

    def stop(self) -> float:
        """Milliseconds since start(); 0.0 (with a warning) if never started."""
        if self.start_time is None:
            logger.warning(f"Timer '{self.name}' stopped before starting")
            return 0.0

        self.elapsed_ms = (time.perf_counter() - self.start_time) * 1000
        return self.elapsed_ms

    def over_budget(self, budget_ms: float) -> bool:
        """True if the last measured time exceeds `budget_ms`."""
        return self.elapsed_ms > budget_ms
