"""
Configuration management module.
"""

from .paths import DataPaths, get_flow_dir, get_product_dir
from .settings import EngineConfig, VisionToolDefaults

__all__ = [
    'DataPaths', 'get_flow_dir', 'get_product_dir',
    'EngineConfig', 'VisionToolDefaults'
]
