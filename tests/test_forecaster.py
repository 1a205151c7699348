"""Tests for time-to-empty, health and the forecast trajectory."""
import math
import random
from types import MappingProxyType

import pytest

from custom_components.home_energy_emulator.domain.battery import (
    ChargingState,
    clamp,
)
from custom_components.home_energy_emulator.domain.forecaster import (
    AccessoryLoad,
    EnergyForecaster,
    ForecastInput,
    HealthLevel,
)
from custom_components.home_energy_emulator.models import ScheduledPowerEvent

NOW = 1000.0


def make_input(
    consumption=0.0,
    generator=0.0,
    charge=10.0,
    capacity=100.0,
    accessories=None,
    events=(),
):
    """ForecastInput with consumption derived by the caller."""
    return ForecastInput(
        now=NOW,
        consumption=consumption,
        generator_output=generator,
        charge=charge,
        max_capacity=capacity,
        charging_power=generator - consumption,
        accessories=MappingProxyType(accessories or {}),
        events=tuple(events),
    )


def event(accessory_id, on, offset, sequence=0):
    """Event ``offset`` seconds after NOW."""
    return ScheduledPowerEvent(
        accessory_id=accessory_id, on=on, timestamp=NOW + offset, sequence=sequence
    )


def step_simulation(data, dt=0.01, limit=1500.0):
    """Brute-force time-to-empty with a clamped Euler integrator."""
    states = {key: load.on for key, load in data.accessories.items()}
    power = data.consumption - data.generator_output
    charge = data.charge
    events = list(data.events)
    index = 0
    step = 0

    while step * dt <= limit:
        t = data.now + step * dt
        while index < len(events) and events[index].timestamp <= t + 1e-9:
            pending = events[index]
            index += 1
            load = data.accessories.get(pending.accessory_id)
            if load is None or states[pending.accessory_id] == pending.on:
                continue
            states[pending.accessory_id] = pending.on
            power += load.power_when_on if pending.on else -load.power_when_on

        if power > 0 and charge <= 0:
            return step * dt
        if index == len(events) and power <= 0:
            return math.inf

        charge = clamp(charge - power * dt / 3600.0, 0.0, data.max_capacity)
        step += 1

    return math.inf


def test_constant_discharge_scenario():
    """10 Wh at a net 50 W drain lasts 720 s."""
    data = make_input(consumption=50.0, generator=0.0, charge=10.0)

    assert EnergyForecaster.time_to_empty(data) == pytest.approx(720.0)


def test_already_empty():
    """Zero charge with a net drain is empty now."""
    data = make_input(consumption=50.0, charge=0.0)

    assert EnergyForecaster.time_to_empty(data) == 0.0


def test_never_empties_with_surplus():
    """A generator covering consumption keeps the battery alive."""
    data = make_input(consumption=500.0, generator=500.0)

    assert EnergyForecaster.time_to_empty(data) == math.inf
    assert EnergyForecaster.health(data).level is HealthLevel.HEALTHY


def test_pending_switch_off_saves_the_battery():
    """The drain stops before the charge runs out."""
    heater = AccessoryLoad(on=True, power_when_on=100.0)
    data = make_input(
        consumption=100.0,
        accessories={"heater": heater},
        events=[event("heater", False, 100.0)],
    )

    assert EnergyForecaster.time_to_empty(data) == math.inf


def test_empties_before_pending_switch_off():
    """Emptying inside a segment is solved exactly."""
    heater = AccessoryLoad(on=True, power_when_on=100.0)
    data = make_input(
        consumption=100.0,
        accessories={"heater": heater},
        events=[event("heater", False, 500.0)],
    )

    assert EnergyForecaster.time_to_empty(data) == pytest.approx(360.0)


def test_pending_switch_on_shortens_the_runtime():
    """Elapsed time to the event is included in the result."""
    lamp = AccessoryLoad(on=False, power_when_on=360.0)
    data = make_input(
        consumption=0.0,
        charge=1.0,
        accessories={"lamp": lamp},
        events=[event("lamp", True, 60.0)],
    )

    # 1 Wh at 360 W lasts 10 s once the lamp is on
    assert EnergyForecaster.time_to_empty(data) == pytest.approx(70.0)


def test_no_op_events_are_ignored():
    """Switching an accessory into its current state changes nothing."""
    lamp = AccessoryLoad(on=True, power_when_on=50.0)
    base = make_input(consumption=50.0, accessories={"lamp": lamp})
    with_noop = make_input(
        consumption=50.0,
        accessories={"lamp": lamp},
        events=[event("lamp", True, 10.0), event("ghost", False, 20.0, 1)],
    )

    assert EnergyForecaster.time_to_empty(with_noop) == EnergyForecaster.time_to_empty(
        base
    )


def test_surplus_is_capped_by_free_capacity():
    """A long surplus cannot store more than the battery holds."""
    heater = AccessoryLoad(on=False, power_when_on=3600.0)
    data = make_input(
        generator=1000.0,
        charge=90.0,
        capacity=100.0,
        accessories={"heater": heater},
        events=[event("heater", True, 3600.0)],
    )

    # Full at 100 Wh after an hour, then a net 2600 W drain
    assert EnergyForecaster.time_to_empty(data) == pytest.approx(
        3600.0 + 100.0 / 2600.0 * 3600.0
    )


@pytest.mark.parametrize("seed", range(8))
def test_matches_step_simulation(seed):
    """The analytic walk agrees with a fine-grained simulation."""
    rng = random.Random(seed)
    accessories = {
        f"a{index}": AccessoryLoad(
            on=rng.random() < 0.5, power_when_on=rng.uniform(50.0, 2000.0)
        )
        for index in range(3)
    }
    consumption = sum(a.power_when_on for a in accessories.values() if a.on)
    offsets = sorted(rng.randint(1, 300) for _ in range(5))
    events = [
        event(rng.choice(list(accessories)), rng.random() < 0.5, offset, sequence)
        for sequence, offset in enumerate(offsets)
    ]
    data = make_input(
        consumption=consumption,
        generator=rng.uniform(0.0, 1500.0),
        charge=rng.uniform(0.5, 5.0),
        capacity=6.0,
        accessories=accessories,
        events=events,
    )

    analytic = EnergyForecaster.time_to_empty(data)
    simulated = step_simulation(data)

    if analytic > 1500.0:
        assert simulated == math.inf
    else:
        assert analytic == pytest.approx(simulated, abs=0.05)


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (0.0, HealthLevel.CRITICAL),
        (3600.0, HealthLevel.CRITICAL),
        (3600.5, HealthLevel.WARNING),
        (43200.0, HealthLevel.WARNING),
        (43200.5, HealthLevel.HEALTHY),
        (math.inf, HealthLevel.HEALTHY),
    ],
)
def test_health_thresholds(seconds, expected):
    """One hour is critical, twelve hours is a warning."""
    assert EnergyForecaster.classify_health(seconds) is expected


def test_trajectory_constant_discharge():
    """The curve drains to empty and reaches the horizon."""
    data = make_input(consumption=50.0, charge=10.0)

    trajectory = EnergyForecaster.predict(data, increment=3.0, horizon=900.0)

    timestamps = [m.time_ts for m in trajectory]
    assert timestamps == sorted(set(timestamps))
    assert trajectory[0].time_ts == NOW
    assert trajectory[0].charge_level == pytest.approx(0.1)
    assert NOW + 897.0 <= trajectory[-1].time_ts < NOW + 900.0
    assert trajectory[-1].charge_level == 0.0
    assert trajectory[-1].charging_state is ChargingState.EMPTY
    assert trajectory[-1].time_to_empty == 0.0
    assert all(0.0 <= m.charge_level <= 1.0 for m in trajectory)


def test_trajectory_threshold_limits_samples():
    """Samples only where the level moved by more than the threshold."""
    data = make_input(consumption=50.0, charge=10.0)

    trajectory = EnergyForecaster.predict(data, increment=3.0, horizon=900.0)

    levels = [m.charge_level for m in trajectory[:-1]]
    assert all(
        abs(later - earlier) > 0.005 for earlier, later in zip(levels, levels[1:])
    )
    assert len(trajectory) < 900 / 3


def test_trajectory_has_event_boundaries():
    """Every effective event yields a sample at its timestamp."""
    heater = AccessoryLoad(on=True, power_when_on=1000.0)
    lamp = AccessoryLoad(on=True, power_when_on=100.0)
    data = make_input(
        consumption=1100.0,
        charge=50.0,
        accessories={"heater": heater, "lamp": lamp},
        events=[
            event("heater", False, 100.0, 0),
            event("lamp", False, 100.0, 1),
        ],
    )

    trajectory = EnergyForecaster.predict(data)

    at_event = [m for m in trajectory if m.time_ts == NOW + 100.0]
    assert len(at_event) == 1
    assert at_event[0].consumption == 0.0
    assert at_event[0].charging_state is ChargingState.NOT_CHARGING
    timestamps = [m.time_ts for m in trajectory]
    assert timestamps == sorted(set(timestamps))


def test_trajectory_is_deterministic():
    """Same input, same output."""
    lamp = AccessoryLoad(on=False, power_when_on=500.0)
    data = make_input(
        consumption=0.0,
        generator=200.0,
        charge=30.0,
        accessories={"lamp": lamp},
        events=[event("lamp", True, 42.0)],
    )

    assert EnergyForecaster.predict(data) == EnergyForecaster.predict(data)


def test_metrics_to_dict():
    """Infinite time-to-empty is exported as None."""
    data = make_input(consumption=0.0, generator=100.0, charge=100.0)

    exported = EnergyForecaster.predict(data)[0].to_dict()

    assert exported["time_to_empty"] is None
    assert exported["charging_state"] == ChargingState.FULLY_CHARGED.value
    assert exported["time"].endswith("+00:00")
