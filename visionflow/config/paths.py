"""
Data Locations
Where flow documents, product configurations and run logs live on disk.
"""

from pathlib import Path


class DataPaths:
    """Default storage locations, relative to the project checkout."""

    PROJECT_ROOT = Path(__file__).resolve().parents[2]

    DATA_DIR = PROJECT_ROOT / "data"
    FLOWS_DIR = DATA_DIR / "flows"
    PRODUCTS_DIR = DATA_DIR / "products"
    LOGS_DIR = PROJECT_ROOT / "logs"

    @staticmethod
    def ensure(directory: Path) -> Path:
        """Create `directory` if needed and return it."""
        directory.mkdir(parents=True, exist_ok=True)
        return directory


def get_flow_dir() -> Path:
    """Saved flow definitions; created on first use."""
    return DataPaths.ensure(DataPaths.FLOWS_DIR)


def get_product_dir() -> Path:
    return DataPaths.ensure(DataPaths.PRODUCTS_DIR)
