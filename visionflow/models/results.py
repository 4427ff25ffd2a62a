"""
Result documents produced by vision tools, flow nodes and the flow engine.
Field names of the dictionaries match the result document format consumed
by the communication and persistence layers.
"""

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .enums import InspectionStatus, DefectType, Severity, parse_enum


def _new_id() -> str:
    return str(uuid.uuid4())


def _finite_or_none(value: float) -> Optional[float]:
    return None if math.isinf(value) else value


def _float_or_inf(value) -> float:
    return math.inf if value is None else float(value)


@dataclass
class Measurement:
    """A single measured value with its tolerance band."""
    name: str
    value: float
    unit: str = "mm"
    nominal: float = 0.0
    tolerance_plus: float = 0.0
    tolerance_minus: float = 0.0
    status: InspectionStatus = InspectionStatus.NOT_INSPECTED
    id: str = field(default_factory=_new_id)

    def is_within_tolerance(self) -> bool:
        """Inclusive check against nominal - minus .. nominal + plus."""
        lower = self.nominal - self.tolerance_minus
        upper = self.nominal + self.tolerance_plus
        return lower <= self.value <= upper

    def classify(self) -> InspectionStatus:
        """Set and return OK/NG according to the tolerance band."""
        self.status = InspectionStatus.OK if self.is_within_tolerance() else InspectionStatus.NG
        return self.status

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'value': self.value,
            'unit': self.unit,
            'nominal': self.nominal,
            'tolerancePlus': _finite_or_none(self.tolerance_plus),
            'toleranceMinus': _finite_or_none(self.tolerance_minus),
            'status': self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Measurement':
        return cls(
            id=data.get('id') or _new_id(),
            name=data.get('name', ''),
            value=float(data.get('value', 0.0)),
            unit=data.get('unit', 'mm'),
            nominal=float(data.get('nominal', 0.0)),
            tolerance_plus=_float_or_inf(data.get('tolerancePlus', 0.0)),
            tolerance_minus=_float_or_inf(data.get('toleranceMinus', 0.0)),
            status=parse_enum(InspectionStatus, data.get('status'), InspectionStatus.NOT_INSPECTED),
        )


@dataclass
class Defect:
    """A detected spot defect with its bounding box."""
    type: DefectType
    x: float
    y: float
    width: float
    height: float
    area: float
    severity: Severity = Severity.LOW
    id: str = field(default_factory=_new_id)

    @staticmethod
    def severity_for_area(area: float, max_area: float) -> Severity:
        """Coarse size tier relative to the configured maximum area."""
        if area > max_area / 2:
            return Severity.HIGH
        if area > max_area / 4:
            return Severity.MEDIUM
        return Severity.LOW

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'type': self.type.value,
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height,
            'area': self.area,
            'severity': self.severity.value,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Defect':
        return cls(
            id=data.get('id') or _new_id(),
            type=parse_enum(DefectType, data.get('type')),
            x=float(data.get('x', 0.0)),
            y=float(data.get('y', 0.0)),
            width=float(data.get('width', 0.0)),
            height=float(data.get('height', 0.0)),
            area=float(data.get('area', 0.0)),
            severity=parse_enum(Severity, data.get('severity'), Severity.LOW),
        )


@dataclass
class ProductPosition:
    """Pose of a taught pattern found in a new image."""
    x: float = 0.0
    y: float = 0.0
    rotation: float = 0.0
    scale: float = 1.0
    confidence: float = 0.0

    def to_dict(self) -> Dict:
        return {
            'x': self.x,
            'y': self.y,
            'rotation': self.rotation,
            'scale': self.scale,
            'confidence': self.confidence,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'ProductPosition':
        return cls(
            x=float(data.get('x', 0.0)),
            y=float(data.get('y', 0.0)),
            rotation=float(data.get('rotation', 0.0)),
            scale=float(data.get('scale', 1.0)),
            confidence=float(data.get('confidence', 0.0)),
        )


@dataclass
class VisionToolResult:
    """Result from a vision tool execution."""
    success: bool
    status: InspectionStatus = InspectionStatus.NOT_INSPECTED
    measurements: List[Measurement] = field(default_factory=list)
    defects: List[Defect] = field(default_factory=list)
    position: Optional[ProductPosition] = None
    execution_time_ms: float = 0.0
    output_image: Optional[bytes] = None
    error_message: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls) -> 'VisionToolResult':
        return cls(success=True, status=InspectionStatus.OK)

    @classmethod
    def failure(cls, error: str,
                status: InspectionStatus = InspectionStatus.ERROR) -> 'VisionToolResult':
        return cls(success=False, status=status, error_message=error)


@dataclass
class FlowNodeResult:
    """Result from a single node execution within one run."""
    node_id: str
    success: bool
    status: InspectionStatus = InspectionStatus.NOT_INSPECTED
    output_image: Optional[bytes] = None
    execution_time_ms: float = 0.0
    data: Dict[str, Any] = field(default_factory=dict)
    next_node_id: Optional[str] = None
    error_message: Optional[str] = None

    @classmethod
    def ok(cls, node_id: str, status: InspectionStatus = InspectionStatus.OK,
           **kwargs) -> 'FlowNodeResult':
        return cls(node_id=node_id, success=True, status=status, **kwargs)

    @classmethod
    def failure(cls, node_id: str, error: str,
                status: InspectionStatus = InspectionStatus.ERROR,
                **kwargs) -> 'FlowNodeResult':
        return cls(node_id=node_id, success=False, status=status,
                   error_message=error, **kwargs)

    @classmethod
    def skipped(cls, node_id: str) -> 'FlowNodeResult':
        return cls(node_id=node_id, success=True, status=InspectionStatus.SKIPPED)

    def to_dict(self) -> Dict:
        """Summary without the image buffer."""
        return {
            'nodeId': self.node_id,
            'success': self.success,
            'status': self.status.value,
            'executionTimeMs': self.execution_time_ms,
            'data': {key: value for key, value in self.data.items() if _is_plain(value)},
            'nextNodeId': self.next_node_id,
            'errorMessage': self.error_message,
        }


def _is_plain(value) -> bool:
    """True for values that serialize to JSON as-is."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return True
    if isinstance(value, (list, tuple)):
        return all(_is_plain(item) for item in value)
    if isinstance(value, dict):
        return all(isinstance(key, str) and _is_plain(item) for key, item in value.items())
    return False


@dataclass
class ValidationResult:
    """Validation outcome with errors and warnings."""
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def valid(cls) -> 'ValidationResult':
        return cls()

    @classmethod
    def invalid(cls, *errors: str) -> 'ValidationResult':
        return cls(is_valid=False, errors=list(errors))

    def add_error(self, error: str):
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str):
        self.warnings.append(warning)

    def merge(self, other: 'ValidationResult', prefix: str = ""):
        """Fold another result into this one, optionally prefixing messages."""
        for error in other.errors:
            self.add_error(f"{prefix}{error}")
        for warning in other.warnings:
            self.add_warning(f"{prefix}{warning}")


@dataclass
class InspectionResult:
    """Complete result of one flow run."""
    status: InspectionStatus = InspectionStatus.NOT_INSPECTED
    product_id: str = ""
    timestamp: datetime = field(default_factory=datetime.now)
    duration_ms: float = 0.0
    measurements: List[Measurement] = field(default_factory=list)
    defects: List[Defect] = field(default_factory=list)
    product_position: Optional[ProductPosition] = None
    node_results: Dict[str, FlowNodeResult] = field(default_factory=dict)
    metadata: Dict[str, str] = field(default_factory=dict)
    error_message: Optional[str] = None
    cancelled: bool = False
    result_id: str = field(default_factory=_new_id)

    @property
    def is_ok(self) -> bool:
        return self.status == InspectionStatus.OK

    def get_summary(self) -> str:
        """Get human-readable result summary."""
        lines = [
            f"Status: {self.status.value}",
            f"Processing Time: {self.duration_ms:.2f} ms",
            f"Measurements: {len(self.measurements)}",
            f"Defects: {len(self.defects)}",
        ]
        if self.product_position is not None:
            pos = self.product_position
            lines.append(
                f"Position: ({pos.x:.1f}, {pos.y:.1f}) rot={pos.rotation:.2f} "
                f"scale={pos.scale:.3f} conf={pos.confidence:.2f}"
            )
        for measurement in self.measurements:
            lines.append(
                f"  {measurement.name}: {measurement.value:.3f} {measurement.unit} "
                f"[{measurement.status.value}]"
            )
        if self.cancelled:
            lines.append("Run cancelled before completion")
        if self.error_message:
            lines.append(f"Error: {self.error_message}")
        return "\n".join(lines)

    def to_dict(self) -> Dict:
        return {
            'resultId': self.result_id,
            'productId': self.product_id,
            'status': self.status.value,
            'timestamp': self.timestamp.isoformat(),
            'durationMs': self.duration_ms,
            'measurements': [m.to_dict() for m in self.measurements],
            'defects': [d.to_dict() for d in self.defects],
            'productPosition': self.product_position.to_dict() if self.product_position else None,
            'nodeResults': {node_id: r.to_dict() for node_id, r in self.node_results.items()},
            'metadata': dict(self.metadata),
            'errorMessage': self.error_message,
            'cancelled': self.cancelled,
        }
