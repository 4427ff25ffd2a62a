"""
Utility modules for the flow engine.
"""

from .logger import setup_logging
from .timer import PerformanceTimer

__all__ = ['setup_logging', 'PerformanceTimer']
