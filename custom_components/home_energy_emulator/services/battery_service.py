"""Battery charge accumulation."""

from __future__ import annotations

from dataclasses import dataclass

from ..core.store import EnergyStore
from ..domain.battery import HomeBattery
from ..emulator_logging import get_logger
from ..models import BatteryCharge, SampleKind
from .window import within_tolerance_window


@dataclass
class BatteryUpdate:
    """Outcome of one battery step."""

    stored: bool
    elapsed: float = 0.0


class BatteryChargeService:
    """Integrates net power into the battery charge and records it.

    The charge is always advanced from the latest stored sample, so a
    restarted engine resumes from what was persisted. If a sample already
    falls inside the tolerance window, another writer has done this step
    and nothing happens.
    """

    def __init__(
        self,
        store: EnergyStore,
        interval: float,
        tolerance: float,
        factory_charge: float,
    ) -> None:
        """Initialize the service.

        Args:
            store: Sample store
            interval: Heartbeat interval in seconds
            tolerance: Width of the dedup tolerance in seconds
            factory_charge: Charge used when no sample exists, in Wh
        """
        self._store = store
        self.interval = interval
        self.tolerance = tolerance
        self.factory_charge = factory_charge
        self._logger = get_logger()

    def update(
        self,
        battery: HomeBattery,
        now: float,
        generator_output: float,
        consumption: float,
    ) -> BatteryUpdate:
        """Advance ``battery`` to ``now`` and store the new charge."""
        last = self._store.query_latest(SampleKind.BATTERY, before=now + self.tolerance)

        if last is None:
            battery.update(self.factory_charge, 0.0)
            self._store.append(BatteryCharge(timestamp=now, charge=battery.charge))
            self._logger.debug("BATTERY_INITIALIZED", charge_wh=battery.charge)
            return BatteryUpdate(stored=True)

        if within_tolerance_window(last.timestamp, now, self.interval, self.tolerance):
            self._logger.debug(
                "BATTERY_RECENT_DATA", timestamp=last.timestamp, charge_wh=last.charge
            )
            return BatteryUpdate(stored=False)

        elapsed = now - last.timestamp
        power = generator_output - consumption
        battery.update(HomeBattery.integrate(last.charge, power, elapsed), power)
        self._store.append(BatteryCharge(timestamp=now, charge=battery.charge))

        self._logger.debug(
            "BATTERY_STORED",
            charge_wh=round(battery.charge, 4),
            elapsed_s=round(elapsed, 3),
        )
        return BatteryUpdate(stored=True, elapsed=elapsed)
