"""Dedup tolerance window shared by the persisting stages."""

from __future__ import annotations


def within_tolerance_window(
    timestamp: float, now: float, interval: float, tolerance: float
) -> bool:
    """True if a sample at ``timestamp`` already represents the current tick.

    The window spans one heartbeat interval ending at ``now``, shifted by
    ``tolerance``: ``[now - interval + tolerance, now + tolerance)``.
    """
    return now - interval + tolerance <= timestamp < now + tolerance
