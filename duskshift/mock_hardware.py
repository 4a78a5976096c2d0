"""
Mock display implementation for running without an X server.

Enable mock mode by setting MOCK_MODE=true in .env or passing --mock.

Features:
- Records the most recent applied color temperatures
- Builds the same gamma ramps as the real backends
- Compatible interface with real display backends
"""

import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from duskshift.display import DisplayBackend
from duskshift.lighting_math import build_gamma_ramps
from duskshift.logger import logger
from duskshift.settings import GammaAdjustment

# Number of recorded adjustments kept (oldest dropped first)
HISTORY_SIZE = 200


@dataclass
class MockAdjustment:
    """One recorded set_temperature call"""
    screen: int
    temperature: int
    gamma: tuple[float, float, float]
    timestamp: datetime


class MockDisplayBackend(DisplayBackend):
    """
    Mock display backend.

    Drop-in replacement for RandrBackend/VidModeBackend when MOCK_MODE=true
    """

    name = "mock"

    def __init__(self, method: str = "randr", ramp_size: int = 256):
        """
        Initialize mock display.

        Args:
            method: Backend name being simulated (only used for logging)
            ramp_size: Gamma ramp size reported by the simulated screen
        """
        self.method = method
        self.ramp_size = ramp_size
        self.history: deque[MockAdjustment] = deque(maxlen=HISTORY_SIZE)
        self.ramps: Optional[tuple[list[int], list[int], list[int]]] = None
        self.closed = False
        self.lock = threading.Lock()
        logger.info(f"[MOCK] Display ready (simulating {method}, ramp size {ramp_size})")

    def set_temperature(self, screen: int, temperature: int, gamma: GammaAdjustment) -> None:
        """Record the adjustment and compute its gamma ramps"""
        with self.lock:
            self.ramps = build_gamma_ramps(self.ramp_size, temperature, gamma.as_tuple())
            self.history.append(MockAdjustment(
                screen=screen,
                temperature=temperature,
                gamma=gamma.as_tuple(),
                timestamp=datetime.now(),
            ))
        logger.debug(f"[MOCK] Set temperature: screen={screen}, {temperature}K, gamma={gamma.as_tuple()}")

    @property
    def last_temperature(self) -> Optional[int]:
        with self.lock:
            return self.history[-1].temperature if self.history else None

    def close(self) -> None:
        self.closed = True
        logger.info("[MOCK] Display closed")
