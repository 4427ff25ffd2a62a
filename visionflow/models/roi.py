"""
Region of Interest model.

Point encoding depends on the shape:
    Rectangle: [centerX, centerY, width, height] (+ rotation in degrees)
    Circle:    [centerX, centerY, radius]
    Triangle / Polygon: flattened vertex pairs [x1, y1, x2, y2, ...]
"""

import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from .enums import ROIShape, ROIUsage, parse_enum


@dataclass
class ROI:
    """Named, shaped sub-area used to include or exclude pixels."""
    name: str = ""
    shape: ROIShape = ROIShape.RECTANGLE
    usage: ROIUsage = ROIUsage.INCLUDE
    points: List[float] = field(default_factory=list)
    rotation: float = 0.0
    enabled: bool = True
    color: str = "#00FF00"
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def rectangle(cls, center_x, center_y, width, height, rotation=0.0,
                  usage=ROIUsage.INCLUDE, name="") -> 'ROI':
        return cls(name=name, shape=ROIShape.RECTANGLE, usage=usage,
                   points=[center_x, center_y, width, height], rotation=rotation)

    @classmethod
    def circle(cls, center_x, center_y, radius,
               usage=ROIUsage.INCLUDE, name="") -> 'ROI':
        return cls(name=name, shape=ROIShape.CIRCLE, usage=usage,
                   points=[center_x, center_y, radius])

    @classmethod
    def polygon(cls, vertices: List[Tuple[float, float]],
                usage=ROIUsage.INCLUDE, name="") -> 'ROI':
        shape = ROIShape.TRIANGLE if len(vertices) == 3 else ROIShape.POLYGON
        flat = [float(coord) for vertex in vertices for coord in vertex]
        return cls(name=name, shape=shape, usage=usage, points=flat)

    def vertices(self) -> List[Tuple[float, float]]:
        """Vertex pairs for Triangle/Polygon shapes."""
        pts = self.points
        return [(pts[i], pts[i + 1]) for i in range(0, len(pts) - 1, 2)]

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'shape': self.shape.value,
            'usage': self.usage.value,
            'points': list(self.points),
            'rotation': self.rotation,
            'enabled': self.enabled,
            'color': self.color,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'ROI':
        # Older documents name the shape field "type"
        shape_value = data.get('shape', data.get('type'))
        return cls(
            id=data.get('id') or str(uuid.uuid4()),
            name=data.get('name', ''),
            shape=parse_enum(ROIShape, shape_value, ROIShape.RECTANGLE),
            usage=parse_enum(ROIUsage, data.get('usage'), ROIUsage.INCLUDE),
            points=[float(p) for p in data.get('points', [])],
            rotation=float(data.get('rotation', 0.0)),
            enabled=bool(data.get('enabled', True)),
            color=data.get('color', '#00FF00'),
        )
