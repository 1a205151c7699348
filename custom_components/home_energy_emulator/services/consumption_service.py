"""Accessory consumption aggregation."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from ..core.store import EnergyStore
from ..emulator_logging import get_logger
from ..models import AGGREGATE, Accessory, AccessoryConsumption, SampleKind
from .window import within_tolerance_window


@dataclass
class ConsumptionUpdate:
    """Outcome of one aggregation pass."""

    consumption: float
    stored: bool


class ConsumptionAggregator:
    """Recomputes whole-home consumption and records it.

    A new aggregate sample, together with one sample per accessory, is
    written only when the latest aggregate sample is outside the tolerance
    window and holds a different value.
    """

    def __init__(self, store: EnergyStore, interval: float, tolerance: float) -> None:
        """Initialize the aggregator.

        Args:
            store: Sample store
            interval: Heartbeat interval in seconds
            tolerance: Width of the dedup tolerance in seconds
        """
        self._store = store
        self.interval = interval
        self.tolerance = tolerance
        self._logger = get_logger()

    @staticmethod
    def total(accessories: Iterable[Accessory]) -> float:
        """Aggregate power of all accessories currently switched on."""
        return sum(accessory.power for accessory in accessories)

    def update(self, now: float) -> ConsumptionUpdate:
        """Aggregate consumption at ``now`` and store it if needed."""
        accessories = self._store.accessories()
        consumption = self.total(accessories)

        last = self._store.query_latest(
            SampleKind.CONSUMPTION, before=now + self.tolerance, accessory_id=AGGREGATE
        )
        if last is not None and (
            within_tolerance_window(last.timestamp, now, self.interval, self.tolerance)
            or last.power == consumption
        ):
            return ConsumptionUpdate(consumption, stored=False)

        self._store.append(AccessoryConsumption(timestamp=now, power=consumption))
        for accessory in accessories:
            self._store.append(
                AccessoryConsumption(
                    timestamp=now, power=accessory.power, accessory_id=accessory.id
                )
            )

        self._logger.debug("CONSUMPTION_STORED", power=consumption)
        return ConsumptionUpdate(consumption, stored=True)
