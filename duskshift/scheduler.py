"""
Transition scheduler driving the display color temperature.

Features:
- Single-shot mode (apply once) and continuous mode (re-apply until stopped)
- Short startup ramp fading from neutral white to the computed target
- Explicit RAMPING -> STEADY state machine
- Wall clock for solar position, monotonic clock for ramp timing
- Backend failures stop the loop immediately
"""

import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from duskshift.display import BackendError, DisplayBackend
from duskshift.lighting_math import NEUTRAL_TEMP, clamp, lerp
from duskshift.logger import logger
from duskshift.settings import Mode, Settings
from duskshift.solar import solar_elevation
from duskshift.state import SchedulerStatus
from duskshift.temperature import Period, classify_period, day_fraction, map_temperature

# Length of the startup fade from neutral white (seconds)
RAMP_DURATION = 10.0

# Poll intervals (seconds)
RAMP_INTERVAL = 0.1
STEADY_INTERVAL = 5.0


class ClockError(RuntimeError):
    """Raised when the current time cannot be read."""


class Phase(str, Enum):
    """Continuous-mode scheduler phase."""
    RAMPING = "ramping"  # Fading in from NEUTRAL_TEMP
    STEADY = "steady"  # Applying the elevation-derived temperature


def next_phase(phase: Phase, elapsed: float, ramp_duration: float = RAMP_DURATION) -> Phase:
    """RAMPING ends for good once the ramp duration has elapsed."""
    if phase is Phase.RAMPING and elapsed < ramp_duration:
        return Phase.RAMPING
    return Phase.STEADY


def ramp_alpha(elapsed: float, ramp_duration: float = RAMP_DURATION) -> float:
    """Weight of NEUTRAL_TEMP in the startup blend, 1.0 at start falling to 0.0."""
    return clamp((ramp_duration - elapsed) / ramp_duration, 0.0, 1.0)


def blend_ramp(target: int, alpha: float) -> int:
    """alpha * NEUTRAL_TEMP + (1 - alpha) * target"""
    return round(lerp(target, NEUTRAL_TEMP, alpha))


def poll_interval(phase: Phase) -> float:
    return RAMP_INTERVAL if phase is Phase.RAMPING else STEADY_INTERVAL


@dataclass
class TransitionState:
    """Mutable scheduler state, owned by one TransitionScheduler run."""
    start_time: float  # monotonic seconds
    phase: Phase

    @property
    def ramp_active(self) -> bool:
        return self.phase is Phase.RAMPING


@dataclass(frozen=True)
class Cycle:
    """Observable outputs of one scheduler iteration."""
    timestamp: datetime
    elevation: float
    period: Period
    day_fraction: float
    target_temperature: int
    temperature: int
    phase: Phase


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TransitionScheduler:
    """
    Periodically apply the sun-driven color temperature to a display.

    Runs synchronously in the calling thread. stop() may be called from
    another thread or a signal handler.
    """

    def __init__(
        self,
        settings: Settings,
        backend: DisplayBackend,
        status: Optional[SchedulerStatus] = None,
        wall_clock: Callable[[], datetime] = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], object]] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            settings: Validated configuration
            backend: Display backend receiving the temperatures
            status: Status object updated after every cycle
            wall_clock: Source of the current (aware) time for the solar position
            monotonic: Source of elapsed time for the startup ramp
            sleep: Wait function between cycles (defaults to an interruptible wait)
        """
        self.settings = settings
        self.backend = backend
        self.status = status if status is not None else SchedulerStatus()
        self.wall_clock = wall_clock
        self.monotonic = monotonic

        self._stop_event = threading.Event()
        self._sleep = sleep if sleep is not None else self._stop_event.wait

        self.state: Optional[TransitionState] = None
        self.status.update(mode=settings.mode.value)

    # -------------------------------------------------------------

    def stop(self) -> None:
        """Request the continuous loop to finish after the current cycle."""
        logger.info("Scheduler stop requested")
        self._stop_event.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def run(self) -> None:
        """
        Run in the configured mode.

        Raises:
            BackendError: If the display could not be adjusted
            ClockError: If the current time could not be read
        """
        if self.settings.mode is Mode.ONE_SHOT:
            self.run_once()
        else:
            self.run_continuous()

    def run_once(self) -> Cycle:
        """Compute and apply the temperature for the current instant once."""
        now = self._read_clock(self.wall_clock)
        return self._apply_cycle(now, Phase.STEADY, ramp=None)

    def run_continuous(self) -> None:
        """Loop until stop() is called or an error occurs."""
        start = self._read_clock(self.monotonic)
        initial = Phase.RAMPING if self.settings.initial_transition else Phase.STEADY
        self.state = TransitionState(start_time=start, phase=initial)
        logger.info(f"Scheduler started in {initial.value} phase")

        while not self._stop_event.is_set():
            self.step()
            self._sleep(poll_interval(self.state.phase))

        logger.info(f"Scheduler stopped after {self.status.cycles} cycles")

    def step(self) -> Cycle:
        """
        One continuous-mode iteration: advance the state machine and apply.

        run_continuous() creates the TransitionState this relies on; call it
        (or set self.state) first.

        Raises:
            RuntimeError: If no TransitionState exists yet
        """
        if self.state is None:
            raise RuntimeError("step() requires a started scheduler (see run_continuous)")

        now = self._read_clock(self.wall_clock)
        elapsed = self._read_clock(self.monotonic) - self.state.start_time

        phase = next_phase(self.state.phase, elapsed)
        if phase is not self.state.phase:
            logger.info(f"Initial transition complete after {elapsed:.1f}s")
        self.state.phase = phase

        ramp = ramp_alpha(elapsed) if phase is Phase.RAMPING else None
        return self._apply_cycle(now, phase, ramp)

    # -------------------------------------------------------------

    def _apply_cycle(self, now: datetime, phase: Phase, ramp: Optional[float]) -> Cycle:
        location = self.settings.location
        temperatures = self.settings.temperatures

        elevation = solar_elevation(now, location.latitude, location.longitude)
        target = map_temperature(elevation, temperatures.day, temperatures.night)
        temperature = blend_ramp(target, ramp) if ramp is not None else target

        cycle = Cycle(
            timestamp=now,
            elevation=elevation,
            period=classify_period(elevation),
            day_fraction=day_fraction(elevation),
            target_temperature=target,
            temperature=temperature,
            phase=phase,
        )
        self._log_cycle(cycle)

        try:
            self.backend.set_temperature(self.settings.screen, temperature, self.settings.gamma)
        except BackendError as e:
            logger.error(f"Temperature adjustment failed ({self.backend.name}): {e}")
            self.status.update(last_error=str(e))
            raise

        self.status.record_cycle(cycle)
        return cycle

    def _read_clock(self, clock: Callable):
        try:
            return clock()
        except (OSError, OverflowError, ValueError) as e:
            logger.error(f"Unable to read clock: {e}")
            self.status.update(last_error=str(e))
            raise ClockError(f"Unable to read clock: {e}") from e

    @staticmethod
    def _log_cycle(cycle: Cycle) -> None:
        if cycle.period is Period.TRANSITION:
            logger.debug(f"Period: Transition ({cycle.day_fraction * 100:.2f}% day)")
        else:
            logger.debug(f"Period: {cycle.period.value.capitalize()}")
        logger.debug(f"Solar elevation: {cycle.elevation:.6f}°")
        logger.debug(f"Color temperature: {cycle.temperature}K (target {cycle.target_temperature}K, {cycle.phase.value})")
