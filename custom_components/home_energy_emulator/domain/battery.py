"""Battery model - a linear watt-hour integrator.

No Home Assistant dependencies: the battery only knows its charge, its
capacity and the net power flowing in or out of it.
"""

from __future__ import annotations

from enum import Enum

from ..const import LOW_BATTERY_LEVEL


def clamp(value: float, low: float, high: float) -> float:
    """Saturate value between low and high."""
    return min(max(value, low), high)


class ChargingState(str, Enum):
    """Battery charging state."""

    FULLY_CHARGED = "fully_charged"
    CHARGING = "charging"
    DISCHARGING = "discharging"
    EMPTY = "empty"
    NOT_CHARGING = "not_charging"

    @property
    def description(self) -> str:
        """Human readable state."""
        return _DESCRIPTIONS[self]

    @classmethod
    def for_power(cls, power: float, charge_level: float) -> ChargingState:
        """Classify a battery from its charging power and charge level.

        Positive power charges the battery, negative power drains it.
        """
        if power == 0:
            return cls.FULLY_CHARGED if charge_level >= 1.0 else cls.NOT_CHARGING
        if power < 0:
            return cls.DISCHARGING if charge_level > 0.0 else cls.EMPTY
        return cls.CHARGING if charge_level < 1.0 else cls.FULLY_CHARGED


_DESCRIPTIONS = {
    ChargingState.FULLY_CHARGED: "Fully Charged",
    ChargingState.CHARGING: "Charging",
    ChargingState.DISCHARGING: "Discharging",
    ChargingState.EMPTY: "Empty",
    ChargingState.NOT_CHARGING: "Not Charging",
}


class HomeBattery:
    """Home backup battery.

    ``charge`` is in watt-hours and always within ``[0, max_capacity]``.
    ``charging_power`` is ``generator output - consumption`` in watts:
    positive while charging, negative while discharging, and zero once the
    battery is depleted.
    """

    def __init__(
        self,
        max_capacity: float,
        charge: float,
        charging_power: float = 0.0,
    ) -> None:
        """Initialize the battery.

        Args:
            max_capacity: Capacity in Wh
            charge: Initial charge in Wh (clamped to capacity)
            charging_power: Initial net power in W
        """
        self.max_capacity = max_capacity
        self.charge = clamp(charge, 0.0, max_capacity)
        self.charging_power = charging_power

    @property
    def charge_level(self) -> float:
        """Battery charge level, normalized to the 0...1 range."""
        return self.charge / self.max_capacity

    @property
    def charging_state(self) -> ChargingState:
        """Current charging state."""
        return ChargingState.for_power(self.charging_power, self.charge_level)

    @property
    def status_description(self) -> str:
        """Human readable status."""
        return self.charging_state.description

    @property
    def low_battery(self) -> bool:
        """True when less than a fifth of the capacity is left."""
        return self.charge_level < LOW_BATTERY_LEVEL

    def update(self, charge: float, power: float) -> None:
        """Set a new charge and net power.

        A depleted battery cannot deliver power, so its charging power is
        forced to zero.
        """
        self.charge = clamp(charge, 0.0, self.max_capacity)
        self.charging_power = power if self.charge > 0.0 else 0.0

    @staticmethod
    def integrate(charge: float, power: float, elapsed: float) -> float:
        """Charge after ``elapsed`` seconds at net ``power`` (unclamped)."""
        return charge + power * elapsed / 3600.0
