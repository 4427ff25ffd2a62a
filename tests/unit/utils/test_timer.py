"""
Execution Timer Unit Tests
"""

import logging

from visionflow.utils import PerformanceTimer


class TestPerformanceTimer:

    def test_start_stop(self):
        timer = PerformanceTimer("op").start()
        elapsed = timer.stop()
        assert elapsed >= 0.0
        assert timer.elapsed_ms == elapsed

    def test_stop_without_start(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert PerformanceTimer("idle").stop() == 0.0
        assert "stopped before starting" in caplog.text

    def test_over_budget(self):
        timer = PerformanceTimer("run")
        timer.elapsed_ms = 250.0
        assert timer.over_budget(200)
        assert not timer.over_budget(250)

    def test_restart_clears_previous_measurement(self):
        timer = PerformanceTimer("run")
        timer.elapsed_ms = 500.0
        timer.start()
        assert not timer.over_budget(200)
