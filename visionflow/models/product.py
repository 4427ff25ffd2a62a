"""
Product configuration: ROIs and threshold/measurement specifications
handed to a flow run.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from .enums import parse_bool
from .roi import ROI
from ..config.settings import VisionToolDefaults


@dataclass
class ProductDefinition:
    """Basic product information."""
    product_id: str = ""
    product_name: str = ""
    version: str = "1.0"
    description: str = ""
    author: str = ""
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    modified_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict:
        return {
            'productId': self.product_id,
            'productName': self.product_name,
            'version': self.version,
            'description': self.description,
            'author': self.author,
            'createdAt': self.created_at,
            'modifiedAt': self.modified_at,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'ProductDefinition':
        now = datetime.now().isoformat()
        return cls(
            product_id=data.get('productId', ''),
            product_name=data.get('productName', ''),
            version=str(data.get('version', '1.0')),
            description=data.get('description', ''),
            author=data.get('author', ''),
            created_at=data.get('createdAt', now),
            modified_at=data.get('modifiedAt', now),
        )


@dataclass
class MeasurementSpec:
    """Nominal value, tolerance band and calibration of one measurement."""
    id: str = ""
    name: str = ""
    type: str = "distance"
    nominal: float = 0.0
    tolerance_plus: float = 0.0
    tolerance_minus: float = 0.0
    unit: str = "mm"
    pixels_per_unit: float = 1.0

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'nominal': self.nominal,
            'tolerancePlus': self.tolerance_plus,
            'toleranceMinus': self.tolerance_minus,
            'unit': self.unit,
            'pixelsPerUnit': self.pixels_per_unit,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'MeasurementSpec':
        pixels_per_unit = float(data.get('pixelsPerUnit', 1.0) or 1.0)
        return cls(
            id=data.get('id', ''),
            name=data.get('name', ''),
            type=data.get('type', 'distance'),
            nominal=float(data.get('nominal', 0.0)),
            tolerance_plus=float(data.get('tolerancePlus', 0.0)),
            tolerance_minus=float(data.get('toleranceMinus', 0.0)),
            unit=data.get('unit', 'mm'),
            pixels_per_unit=pixels_per_unit if pixels_per_unit > 0 else 1.0,
        )


@dataclass
class DefectThreshold:
    """Named defect detection settings shared across flows."""
    id: str = ""
    name: str = ""
    binary_threshold: int = VisionToolDefaults.BINARY_THRESHOLD
    min_area: float = VisionToolDefaults.MIN_AREA
    max_area: float = VisionToolDefaults.MAX_AREA
    morphology_kernel: int = VisionToolDefaults.MORPHOLOGY_KERNEL
    detect_white: bool = VisionToolDefaults.DETECT_WHITE
    detect_black: bool = VisionToolDefaults.DETECT_BLACK

    def to_dict(self) -> Dict:
        """Keys match the defect detection tool configuration."""
        return {
            'id': self.id,
            'name': self.name,
            'binaryThreshold': self.binary_threshold,
            'minArea': self.min_area,
            'maxArea': self.max_area,
            'morphologyKernel': self.morphology_kernel,
            'detectWhite': self.detect_white,
            'detectBlack': self.detect_black,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'DefectThreshold':
        return cls(
            id=data.get('id', ''),
            name=data.get('name', ''),
            binary_threshold=int(data.get('binaryThreshold', VisionToolDefaults.BINARY_THRESHOLD)),
            min_area=float(data.get('minArea', VisionToolDefaults.MIN_AREA)),
            max_area=float(data.get('maxArea', VisionToolDefaults.MAX_AREA)),
            morphology_kernel=int(data.get('morphologyKernel', VisionToolDefaults.MORPHOLOGY_KERNEL)),
            detect_white=parse_bool(data.get('detectWhite'), VisionToolDefaults.DETECT_WHITE),
            detect_black=parse_bool(data.get('detectBlack'), VisionToolDefaults.DETECT_BLACK),
        )


@dataclass
class ThresholdConfig:
    defect_thresholds: List[DefectThreshold] = field(default_factory=list)
    measurement_specs: List[MeasurementSpec] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'defectThresholds': [t.to_dict() for t in self.defect_thresholds],
            'measurementSpecs': [s.to_dict() for s in self.measurement_specs],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'ThresholdConfig':
        return cls(
            defect_thresholds=[DefectThreshold.from_dict(t) for t in data.get('defectThresholds', [])],
            measurement_specs=[MeasurementSpec.from_dict(s) for s in data.get('measurementSpecs', [])],
        )


@dataclass
class ProductConfig:
    """Complete product configuration used by a flow run."""
    product: ProductDefinition = field(default_factory=ProductDefinition)
    rois: List[ROI] = field(default_factory=list)
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)

    def find_roi(self, roi_id: str) -> Optional[ROI]:
        """Look up an ROI by id, falling back to its name."""
        for roi in self.rois:
            if roi.id == roi_id:
                return roi
        for roi in self.rois:
            if roi.name == roi_id:
                return roi
        return None

    def find_measurement_spec(self, spec_id: str) -> Optional[MeasurementSpec]:
        for spec in self.thresholds.measurement_specs:
            if spec.id == spec_id or spec.name == spec_id:
                return spec
        return None

    def find_defect_threshold(self, threshold_id: str) -> Optional[DefectThreshold]:
        for threshold in self.thresholds.defect_thresholds:
            if threshold.id == threshold_id or threshold.name == threshold_id:
                return threshold
        return None

    def to_dict(self) -> Dict:
        return {
            'product': self.product.to_dict(),
            'rois': [roi.to_dict() for roi in self.rois],
            'thresholds': self.thresholds.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'ProductConfig':
        rois_data = data.get('rois', [])
        # Older documents wrap the list as {"rois": [...]}
        if isinstance(rois_data, dict):
            rois_data = rois_data.get('rois', [])
        return cls(
            product=ProductDefinition.from_dict(data.get('product', {})),
            rois=[ROI.from_dict(r) for r in rois_data],
            thresholds=ThresholdConfig.from_dict(data.get('thresholds', {})),
        )
