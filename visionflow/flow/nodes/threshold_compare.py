"""
Threshold-Compare node: checks a numeric value against an inclusive range.
"""

from typing import Optional
import logging

from .base import FlowNode
from ...models.enums import FlowNodeType, InspectionStatus, PortType
from ...models.results import FlowNodeResult, ValidationResult

logger = logging.getLogger(__name__)


def _optional_float(value) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric bound {value!r}")
        return None


class ThresholdCompareNode(FlowNode):
    """
    The value is read, in order of preference, from the latest measurement
    named `measurementName`, the context variable `variable`, or the
    `dataKey` entry of the nearest upstream result. OK iff min <= value <= max;
    a missing bound is open.
    """

    node_type = FlowNodeType.THRESHOLD_COMPARE
    DEFAULT_NAME = "Threshold Compare"
    INPUT_PORTS = (("input", PortType.DATA),)
    OUTPUT_PORTS = (("result", PortType.BOOLEAN), ("value", PortType.DATA))

    def _on_configure(self, config):
        self.measurement_name = config.get('measurementName') or None
        self.variable = config.get('variable') or None
        self.data_key = config.get('dataKey') or None
        self.minimum = _optional_float(config.get('min'))
        self.maximum = _optional_float(config.get('max'))
        self.output_variable = config.get('outputVariable') or None

    def validate(self) -> ValidationResult:
        result = ValidationResult.valid()
        if not (self.measurement_name or self.variable or self.data_key):
            result.add_error("No value source configured (measurementName, variable or dataKey)")
        if self.minimum is not None and self.maximum is not None and self.minimum > self.maximum:
            result.add_error(f"min {self.minimum} is greater than max {self.maximum}")
        return result

    def _read_value(self, context) -> Optional[float]:
        raw = None
        if self.measurement_name:
            measurement = context.find_measurement(self.measurement_name)
            if measurement is not None:
                raw = measurement.value
        if raw is None and self.variable:
            raw = context.variables.get(self.variable)
        if raw is None and self.data_key:
            for upstream in reversed(self.input_results(context)):
                if self.data_key in upstream.data:
                    raw = upstream.data[self.data_key]
                    break

        if raw is None or isinstance(raw, (dict, list)):
            return None
        try:
            return float(raw)
        except (TypeError, ValueError):
            return None

    def _execute(self, context, token) -> FlowNodeResult:
        value = self._read_value(context)
        if value is None:
            return FlowNodeResult.failure(self.id, "No numeric value available for comparison")

        passed = ((self.minimum is None or value >= self.minimum) and
                  (self.maximum is None or value <= self.maximum))
        if self.output_variable:
            context.variables[self.output_variable] = value

        return FlowNodeResult.ok(
            self.id,
            status=InspectionStatus.OK if passed else InspectionStatus.NG,
            output_image=self.input_image,
            data={'value': value, 'min': self.minimum, 'max': self.maximum, 'passed': passed},
        )
