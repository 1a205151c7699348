"""Heartbeat pipeline stages."""

from .battery_service import BatteryChargeService, BatteryUpdate
from .consumption_service import ConsumptionAggregator, ConsumptionUpdate
from .event_processor import ProcessedEvents, ScheduledEventProcessor

__all__ = [
    "BatteryChargeService",
    "BatteryUpdate",
    "ConsumptionAggregator",
    "ConsumptionUpdate",
    "ProcessedEvents",
    "ScheduledEventProcessor",
]
