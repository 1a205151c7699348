"""Tests for battery charge accumulation."""
import pytest

from custom_components.home_energy_emulator.domain.battery import (
    ChargingState,
    HomeBattery,
)
from custom_components.home_energy_emulator.models import BatteryCharge, SampleKind
from custom_components.home_energy_emulator.services import BatteryChargeService


@pytest.fixture
def service(store):
    """Service with a 1 s interval and a 50 Wh factory charge."""
    return BatteryChargeService(store, 1.0, 0.1, 50.0)


@pytest.fixture
def battery():
    """100 Wh battery."""
    return HomeBattery(100.0, 0.0)


def test_factory_charge_when_empty(store, service, battery):
    """Without samples the battery starts at the factory charge."""
    update = service.update(battery, 100.0, generator_output=1000.0, consumption=0.0)

    assert update.stored
    assert battery.charge == 50.0
    assert battery.charging_power == 0.0
    assert store.query_latest(SampleKind.BATTERY) == BatteryCharge(100.0, 50.0)


def test_integrates_from_last_sample(store, service, battery):
    """Net power over the elapsed time since the stored sample."""
    service.update(battery, 100.0, 1000.0, 0.0)

    update = service.update(battery, 136.0, generator_output=1000.0, consumption=0.0)

    assert update.stored
    assert update.elapsed == pytest.approx(36.0)
    assert battery.charge == pytest.approx(60.0)
    assert battery.charging_power == 1000.0
    assert battery.charging_state is ChargingState.CHARGING


def test_recent_sample_skips_step(store, service, battery):
    """Another writer already covered this tick."""
    service.update(battery, 100.0, 1000.0, 0.0)
    service.update(battery, 136.0, 1000.0, 0.0)

    update = service.update(battery, 136.5, 1000.0, 0.0)

    assert not update.stored
    assert len(store.query_range(SampleKind.BATTERY, 0.0, 1000.0)) == 2


def test_discharge_stops_at_empty(store, service, battery):
    """Charge never goes below zero."""
    service.update(battery, 100.0, 0.0, 0.0)

    service.update(battery, 200.0, generator_output=0.0, consumption=36000.0)

    assert battery.charge == 0.0
    assert battery.charging_power == 0.0


def test_charge_stops_at_capacity(store, service, battery):
    """Charge never exceeds the capacity."""
    service.update(battery, 100.0, 0.0, 0.0)

    service.update(battery, 200.0, generator_output=3600.0, consumption=0.0)

    assert battery.charge == 100.0
    assert battery.charging_state is ChargingState.FULLY_CHARGED
