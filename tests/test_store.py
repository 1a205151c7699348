"""Tests for the in-memory store."""
import pytest

from custom_components.home_energy_emulator.core.store import MemoryEnergyStore
from custom_components.home_energy_emulator.exceptions import (
    InconsistentStateError,
    PersistenceError,
)
from custom_components.home_energy_emulator.models import (
    AGGREGATE,
    Accessory,
    AccessoryConsumption,
    BatteryCharge,
    GeneratorOutput,
    SampleKind,
    ScheduledPowerEvent,
)


class CountingStore(MemoryEnergyStore):
    """Counts committed changes."""

    def __init__(self):
        super().__init__()
        self.commits = 0

    def _changed(self):
        self.commits += 1


@pytest.fixture
def lamp(store):
    """One accessory in the store."""
    return store.add_accessories([Accessory(name="Lamp", power_when_on=60.0)])[0]


def test_query_latest_is_strictly_before(store):
    """The sample at the boundary is excluded."""
    for ts in (10.0, 20.0, 30.0):
        store.append(BatteryCharge(timestamp=ts, charge=ts))

    assert store.query_latest(SampleKind.BATTERY).timestamp == 30.0
    assert store.query_latest(SampleKind.BATTERY, before=30.0).timestamp == 20.0
    assert store.query_latest(SampleKind.BATTERY, before=10.0) is None
    assert store.query_latest(SampleKind.GENERATOR) is None


def test_query_latest_selects_consumption_series(store, lamp):
    """Aggregate and per-accessory samples are separate series."""
    store.append(AccessoryConsumption(timestamp=1.0, power=60.0))
    store.append(AccessoryConsumption(timestamp=1.0, power=60.0, accessory_id=lamp.id))
    store.append(AccessoryConsumption(timestamp=2.0, power=0.0, accessory_id=lamp.id))

    assert store.query_latest(SampleKind.CONSUMPTION).timestamp == 1.0
    latest_lamp = store.query_latest(SampleKind.CONSUMPTION, accessory_id=lamp.id)
    assert latest_lamp.timestamp == 2.0
    assert latest_lamp.power == 0.0


def test_append_keeps_order(store):
    """Late samples are inserted in timestamp order."""
    store.append(GeneratorOutput(timestamp=5.0, power=1.0))
    store.append(GeneratorOutput(timestamp=1.0, power=2.0))
    store.append(GeneratorOutput(timestamp=3.0, power=3.0))

    samples = store.query_range(SampleKind.GENERATOR, 0.0, 10.0)
    assert [s.timestamp for s in samples] == [1.0, 3.0, 5.0]


def test_query_range_is_half_open(store):
    """Start is included, end is not."""
    for ts in (1.0, 2.0, 3.0):
        store.append(BatteryCharge(timestamp=ts, charge=1.0))

    assert [s.timestamp for s in store.query_range(SampleKind.BATTERY, 1.0, 3.0)] == [
        1.0,
        2.0,
    ]


def test_events_ordered_by_timestamp_then_insertion(store, lamp):
    """Equal timestamps keep the order they were added in."""
    late = store.add_event(ScheduledPowerEvent(lamp.id, True, 20.0))
    first = store.add_event(ScheduledPowerEvent(lamp.id, True, 10.0))
    second = store.add_event(ScheduledPowerEvent(lamp.id, False, 10.0))

    assert [e.id for e in store.pending_events()] == [first.id, second.id, late.id]
    assert [e.id for e in store.query_due(10.0)] == [first.id, second.id]
    assert first.sequence < second.sequence


def test_add_event_for_unknown_accessory(store):
    """Events must reference an existing accessory."""
    with pytest.raises(InconsistentStateError) as err:
        store.add_event(ScheduledPowerEvent("missing", True, 1.0))
    assert err.value.accessory_id == "missing"


def test_delete_unknown_event(store, lamp):
    """Deleting twice is a persistence error."""
    event = store.add_event(ScheduledPowerEvent(lamp.id, True, 1.0))
    store.delete(event)

    with pytest.raises(PersistenceError):
        store.delete(event)


def test_accessories_are_copies(store, lamp):
    """Changes only land through update_accessory."""
    copy = store.get_accessory(lamp.id)
    copy.on = True
    assert not store.get_accessory(lamp.id).on

    store.update_accessory(copy)
    assert store.get_accessory(lamp.id).on


def test_update_unknown_accessory(store):
    """Unknown accessories cannot be updated."""
    with pytest.raises(InconsistentStateError):
        store.update_accessory(Accessory(name="Ghost", power_when_on=1.0))


def test_duplicate_accessory(store, lamp):
    """Accessory ids are unique."""
    with pytest.raises(PersistenceError):
        store.add_accessories([lamp])


def test_transaction_rolls_back(store, lamp):
    """A failing block leaves no trace."""
    event = store.add_event(ScheduledPowerEvent(lamp.id, True, 1.0))

    with pytest.raises(RuntimeError), store.transaction():
        accessory = store.get_accessory(lamp.id)
        accessory.on = True
        store.update_accessory(accessory)
        store.delete(event)
        store.append(BatteryCharge(timestamp=1.0, charge=5.0))
        raise RuntimeError("boom")

    assert not store.get_accessory(lamp.id).on
    assert [e.id for e in store.pending_events()] == [event.id]
    assert store.query_latest(SampleKind.BATTERY) is None


def test_transaction_commits_once():
    """Writes inside a transaction are announced once, at commit."""
    store = CountingStore()
    with store.transaction():
        store.append(BatteryCharge(timestamp=1.0, charge=1.0))
        store.append(BatteryCharge(timestamp=2.0, charge=2.0))
        assert store.commits == 0

    assert store.commits == 1
    store.append(BatteryCharge(timestamp=3.0, charge=3.0))
    assert store.commits == 2


def test_prune_keeps_newest_of_each_series(store, lamp):
    """Old samples go, except the last one of every series."""
    store.append(BatteryCharge(timestamp=1.0, charge=1.0))
    store.append(BatteryCharge(timestamp=2.0, charge=2.0))
    store.append(BatteryCharge(timestamp=200.0, charge=3.0))
    store.append(AccessoryConsumption(timestamp=1.0, power=60.0))
    store.append(AccessoryConsumption(timestamp=1.0, power=60.0, accessory_id=lamp.id))
    store.append(AccessoryConsumption(timestamp=2.0, power=0.0))

    dropped = store.prune(before=100.0)

    assert dropped == 3
    assert [s.timestamp for s in store.query_range(SampleKind.BATTERY, 0, 1000)] == [200.0]
    assert store.query_latest(SampleKind.CONSUMPTION, accessory_id=AGGREGATE).timestamp == 2.0
    assert store.query_latest(SampleKind.CONSUMPTION, accessory_id=lamp.id) is not None


def test_serialization_restores_content(store, lamp):
    """Exported data loads back into an equivalent store."""
    store.add_event(ScheduledPowerEvent(lamp.id, True, 10.0))
    store.append(AccessoryConsumption(timestamp=1.0, power=0.0, accessory_id=lamp.id))
    store.append(BatteryCharge(timestamp=1.0, charge=42.0))

    restored = MemoryEnergyStore.from_dict(store.to_dict())

    assert restored.to_dict() == store.to_dict()
    restored_event = restored.add_event(ScheduledPowerEvent(lamp.id, False, 10.0))
    assert restored_event.sequence == 1


def test_corrupt_data():
    """Unreadable data is a persistence error."""
    with pytest.raises(PersistenceError):
        MemoryEnergyStore.from_dict({"accessories": [{"name": "no id"}]})


def test_transaction_undoes_every_kind_of_write(store, lamp):
    """Pruning, out-of-order inserts, new events and accessories all roll back."""
    for ts in (1.0, 2.0, 300.0):
        store.append(BatteryCharge(timestamp=ts, charge=ts))
    before = store.to_dict()

    with pytest.raises(RuntimeError), store.transaction():
        store.prune(before=100.0)
        store.append(BatteryCharge(timestamp=150.0, charge=9.0))
        heater = store.add_accessories([Accessory(name="Heater", power_when_on=2000.0)])[0]
        store.add_event(ScheduledPowerEvent(heater.id, True, 5.0))
        store.add_event(ScheduledPowerEvent(lamp.id, True, 5.0))
        raise RuntimeError("boom")

    assert store.to_dict() == before
    event = store.add_event(ScheduledPowerEvent(lamp.id, True, 5.0))
    assert event.sequence == 0


def test_nested_transaction_rolls_back_alone(store, lamp):
    """A failing inner block keeps the writes made before it."""
    with store.transaction():
        store.append(BatteryCharge(timestamp=1.0, charge=1.0))
        with pytest.raises(RuntimeError), store.transaction():
            store.append(BatteryCharge(timestamp=2.0, charge=2.0))
            raise RuntimeError("boom")

    samples = store.query_range(SampleKind.BATTERY, 0, 10)
    assert [s.timestamp for s in samples] == [1.0]


def test_bulk_insert_with_duplicate_adds_nothing(store, lamp):
    """A batch containing a known id is rejected as a whole."""
    heater = Accessory(name="Heater", power_when_on=2000.0)

    with pytest.raises(PersistenceError):
        store.add_accessories([heater, lamp])

    assert [a.id for a in store.accessories()] == [lamp.id]


def test_capture_is_unaffected_by_later_writes(store, lamp):
    """The exporter sees the content at capture time."""
    store.append(BatteryCharge(timestamp=1.0, charge=1.0))
    export = store.capture()

    store.append(BatteryCharge(timestamp=2.0, charge=2.0))
    accessory = store.get_accessory(lamp.id)
    accessory.on = True
    store.update_accessory(accessory)

    data = export()
    assert [s["timestamp"] for s in data["samples"]["battery"]] == [1.0]
    assert data["accessories"][0]["on"] is False
