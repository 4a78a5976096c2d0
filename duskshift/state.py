"""
Centralized scheduler status for observation.

This module provides thread-safe tracking of the latest scheduler cycle,
so the status API (running in its own thread) can read what the control
loop last computed and applied.
"""

from dataclasses import dataclass, field
from typing import Optional, Any
from datetime import datetime
import threading


@dataclass
class SchedulerStatus:
    """
    Latest observable outputs of the transition scheduler.

    Thread-safe via internal lock. All updates should use the update() method.
    """

    # Operating mode ("continuous" or "one-shot")
    mode: Optional[str] = None

    # Scheduler phase ("ramping" or "steady")
    phase: Optional[str] = None

    # Solar elevation in degrees
    elevation: Optional[float] = None

    # Time of day ("night", "transition", "daytime")
    period: Optional[str] = None

    # Fraction of the way from night to day (0.0-1.0)
    day_fraction: Optional[float] = None

    # Elevation-derived temperature before the startup ramp (K)
    target_temperature: Optional[int] = None

    # Temperature sent to the display (K)
    temperature: Optional[int] = None

    # Number of completed apply cycles
    cycles: int = 0

    # Last failure message, if the scheduler stopped on an error
    last_error: Optional[str] = None

    # Last update timestamp
    last_updated: datetime = field(default_factory=datetime.now)

    # Thread-safe access lock
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def update(self, **kwargs) -> None:
        """
        Thread-safe state update.

        Args:
            **kwargs: State attributes to update

        Example:
            scheduler_status.update(phase="steady", temperature=4600)
        """
        with self._lock:
            for key, value in kwargs.items():
                if hasattr(self, key) and not key.startswith('_'):
                    setattr(self, key, value)
            self.last_updated = datetime.now()

    def record_cycle(self, cycle) -> None:
        """Store the outputs of one scheduler cycle and count it."""
        with self._lock:
            self.phase = cycle.phase.value
            self.elevation = cycle.elevation
            self.period = cycle.period.value
            self.day_fraction = cycle.day_fraction
            self.target_temperature = cycle.target_temperature
            self.temperature = cycle.temperature
            self.cycles += 1
            self.last_updated = datetime.now()

    def get_snapshot(self) -> dict[str, Any]:
        """
        Get thread-safe snapshot of current state.

        Returns:
            dict: Current state as dictionary (for the status API/logging)
        """
        with self._lock:
            return {
                "mode": self.mode,
                "phase": self.phase,
                "elevation": self.elevation,
                "period": self.period,
                "day_fraction": self.day_fraction,
                "target_temperature": self.target_temperature,
                "temperature": self.temperature,
                "cycles": self.cycles,
                "last_error": self.last_error,
                "last_updated": self.last_updated.isoformat(),
            }


# Global status instance
scheduler_status = SchedulerStatus()
