"""Generator model."""

from __future__ import annotations

import math

from ..exceptions import ValidationError
from .battery import clamp


class HomeGenerator:
    """Generator with a power output in ``[0, max_output]`` watts."""

    def __init__(self, max_output: float, power_output: float) -> None:
        """Initialize the generator, clamping the initial output."""
        self.max_output = max_output
        self.power_output = clamp(power_output, 0.0, max_output)

    @property
    def status_description(self) -> str:
        """Human readable status."""
        return "Running" if self.power_output > 0 else "Idle"

    def validate(self, value: float) -> float:
        """Check a requested output, raising ValidationError when out of range."""
        try:
            value = float(value)
        except (TypeError, ValueError) as ex:
            raise ValidationError(f"Generator output {value!r} is not a number") from ex
        if not math.isfinite(value) or not 0.0 <= value <= self.max_output:
            raise ValidationError(
                f"Generator output {value} W outside 0 - {self.max_output} W"
            )
        return value

    def set_power_output(self, value: float) -> bool:
        """Set the output (clamped); return True if it changed."""
        value = clamp(value, 0.0, self.max_output)
        if value == self.power_output:
            return False
        self.power_output = value
        return True
