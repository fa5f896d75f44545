"""Capabilities injected into the temporal core."""

from .clock import Clock, SystemClock, ManualClock

__all__ = ["Clock", "SystemClock", "ManualClock"]
