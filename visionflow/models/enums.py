"""
Enumerations shared by the flow engine, nodes and vision tools.
Values are the names used in flow and result documents.
"""

from enum import Enum


class InspectionStatus(Enum):
    """Result status of an inspection, node or tool."""
    NOT_INSPECTED = "NotInspected"
    OK = "OK"
    NG = "NG"
    ERROR = "Error"
    SKIPPED = "Skipped"


class FlowNodeType(Enum):
    """Type tag of a flow node."""
    INPUT_IMAGE = "InputImage"
    TEACH_MATCH = "TeachMatch"
    ROI_APPLY = "ROIApply"
    MEASUREMENT = "Measurement"
    THRESHOLD_COMPARE = "ThresholdCompare"
    CONDITIONAL_BRANCH = "ConditionalBranch"
    FINAL_DECISION = "FinalDecision"
    DEFECT_DETECTION = "DefectDetection"


class VisionToolType(Enum):
    """Type of vision tool."""
    TEACH_MATCH = "TeachMatch"
    DISTANCE_MEASURE = "DistanceMeasure"
    DEFECT_DETECTION = "DefectDetection"


class PortType(Enum):
    """Kind of data carried by a node port."""
    IMAGE = "Image"
    COORDINATES = "Coordinates"
    DATA = "Data"
    BOOLEAN = "Boolean"


class PortDirection(Enum):
    INPUT = "Input"
    OUTPUT = "Output"


class ROIShape(Enum):
    """Shape of a region of interest."""
    RECTANGLE = "Rectangle"
    CIRCLE = "Circle"
    TRIANGLE = "Triangle"
    POLYGON = "Polygon"


class ROIUsage(Enum):
    """Whether an ROI adds pixels to processing or masks them out."""
    INCLUDE = "Include"
    EXCLUDE = "Exclude"


class DefectType(Enum):
    WHITE_SPOT = "WhiteSpot"
    BLACK_SPOT = "BlackSpot"


class Severity(Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


# Integer encodings used by older flow files, in declaration order
_ORDINALS = {
    InspectionStatus: list(InspectionStatus),
    FlowNodeType: list(FlowNodeType),
    ROIShape: [ROIShape.RECTANGLE, ROIShape.CIRCLE, ROIShape.TRIANGLE, ROIShape.POLYGON],
    ROIUsage: list(ROIUsage),
}


def parse_enum(enum_cls, value, default=None):
    """
    Parse an enum member from its value, its member name or an integer ordinal.

    Args:
        enum_cls: Enum class to parse into
        value: Raw value from a document
        default: Returned when value is None

    Returns:
        Enum member

    Raises:
        ValueError: If the value does not name a member
    """
    if value is None:
        if default is None:
            raise ValueError(f"Missing {enum_cls.__name__} value")
        return default

    if isinstance(value, enum_cls):
        return value

    if isinstance(value, bool):
        raise ValueError(f"Invalid {enum_cls.__name__}: {value!r}")

    if isinstance(value, int):
        ordinals = _ORDINALS.get(enum_cls, list(enum_cls))
        if 0 <= value < len(ordinals):
            return ordinals[value]
        raise ValueError(f"Invalid {enum_cls.__name__} ordinal: {value}")

    text = str(value).strip()
    for member in enum_cls:
        if text == member.value or text.upper() == member.name:
            return member
    lowered = text.lower()
    for member in enum_cls:
        if lowered == member.value.lower():
            return member

    raise ValueError(f"Invalid {enum_cls.__name__}: {value!r}")


def parse_bool(value, default: bool = False) -> bool:
    """Document flag: real bools, numbers, or 'true'/'1'/'yes' strings."""
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes')
    return bool(value)
