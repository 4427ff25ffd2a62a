"""
Flow and Product Storage
Saves, loads and lists flow and product documents under the data directory.
"""

import json
from pathlib import Path
from typing import List, Optional
import logging

from .serializer import FlowSerializer
from ..config.paths import get_flow_dir, get_product_dir
from ..models.flow_definition import FlowDefinition
from ..models.product import ProductConfig
from ..models.results import ValidationResult

logger = logging.getLogger(__name__)


def _json_name(name: str) -> str:
    return name if name.endswith('.json') else f"{name}.json"


class FlowStore:
    """Manages flow documents in a directory."""

    def __init__(self, directory=None):
        self.directory = Path(directory) if directory else get_flow_dir()

    def path_for(self, name: str) -> Path:
        return self.directory / _json_name(name)

    def save_flow(self, definition: FlowDefinition, name: Optional[str] = None) -> bool:
        return FlowSerializer.save(definition, self.path_for(name or definition.name))

    def load_flow(self, name: str,
                  report: Optional[ValidationResult] = None) -> Optional[FlowDefinition]:
        return FlowSerializer.load(self.path_for(name), report)

    def list_flows(self) -> List[str]:
        if not self.directory.exists():
            return []
        return sorted(p.name for p in self.directory.glob('*.json'))

    def delete_flow(self, name: str) -> bool:
        path = self.path_for(name)
        if not path.exists():
            return False
        path.unlink()
        logger.info(f"Flow deleted: {path}")
        return True


class ProductStore:
    """Manages product configuration documents in a directory."""

    def __init__(self, directory=None):
        self.directory = Path(directory) if directory else get_product_dir()

    def path_for(self, name: str) -> Path:
        return self.directory / _json_name(name)

    def save_product(self, product: ProductConfig, name: Optional[str] = None) -> bool:
        """Save product configuration to a JSON file."""
        path = self.path_for(name or product.product.product_id or "product")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(product.to_dict(), f, indent=2)
            logger.info(f"Product configuration saved to {path}")
            return True
        except OSError as e:
            logger.error(f"Failed to save product configuration: {e}")
            return False

    def load_product(self, name: str) -> Optional[ProductConfig]:
        return load_product_file(self.path_for(name))

    def list_products(self) -> List[str]:
        if not self.directory.exists():
            return []
        return sorted(p.name for p in self.directory.glob('*.json'))


def load_product_file(path) -> Optional[ProductConfig]:
    """Load a product configuration; returns None when missing or malformed."""
    path = Path(path)
    if not path.exists():
        logger.warning(f"Product file not found: {path}")
        return None

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        product = ProductConfig.from_dict(data)
        logger.info(f"Product configuration loaded from {path}")
        return product
    except (OSError, json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as e:
        logger.error(f"Failed to load product configuration: {e}")
        return None
