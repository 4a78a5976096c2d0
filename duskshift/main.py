"""
Command line entry point: set color temperature of display according to time of day.

IMPORTANT:
- Needs a running X server with RandR 1.3 or VidMode, unless --mock is given
- Command line flags override environment variables (see duskshift.config)
"""

import argparse
import signal
from typing import Optional

from duskshift.config import (
    LATITUDE, LONGITUDE, DAY_TEMP, NIGHT_TEMP, GAMMA, METHOD, SCREEN,
    ONE_SHOT, INITIAL_TRANSITION, MOCK_MODE, RESTORE_ON_EXIT, STATUS_API_ENABLED,
)
from duskshift.display import BackendError, DisplayBackend, create_backend
from duskshift.lighting_math import NEUTRAL_TEMP
from duskshift.logger import logger, set_verbose
from duskshift.scheduler import ClockError, TransitionScheduler
from duskshift.settings import (
    ConfigurationError, GammaAdjustment, Settings, build_settings, parse_gamma,
)
from duskshift.state import scheduler_status


class RuntimeArgs(argparse.Namespace):
    """Container for command-line runtime options."""

    location: Optional[tuple[float, float]]
    temperatures: Optional[tuple[int, int]]
    gamma: Optional[GammaAdjustment]
    method: str
    one_shot: bool
    initial_transition: bool
    screen: Optional[int]
    verbose: bool
    mock: bool
    status_api: bool


def _split_pair(value: str, what: str) -> tuple[str, str]:
    parts = value.split(":")
    if len(parts) != 2 or not all(part.strip() for part in parts):
        raise argparse.ArgumentTypeError(f"expected {what.upper()}, got '{value}'")
    return parts[0].strip(), parts[1].strip()


def parse_location(value: str) -> tuple[float, float]:
    """Parse "LAT:LON"."""
    lat, lon = _split_pair(value, "lat:lon")
    try:
        return float(lat), float(lon)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid location '{value}'")


def parse_temperatures(value: str) -> tuple[int, int]:
    """Parse "DAY:NIGHT"."""
    day, night = _split_pair(value, "day:night")
    try:
        return int(day), int(night)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid temperatures '{value}'")


def parse_gamma_argument(value: str) -> GammaAdjustment:
    """Parse "R:G:B" or a single gamma value."""
    try:
        return parse_gamma(value)
    except ConfigurationError as e:
        raise argparse.ArgumentTypeError(str(e))


def parse_arguments(argv: Optional[list[str]] = None) -> RuntimeArgs:
    """Parse command line arguments, using environment values as defaults."""
    parser = argparse.ArgumentParser(
        prog="duskshift",
        description="Set color temperature of display according to time of day.",
    )
    parser.add_argument("-l", "--location", type=parse_location, metavar="LAT:LON",
                        help="your current location")
    parser.add_argument("-t", "--temperatures", type=parse_temperatures, metavar="DAY:NIGHT",
                        help="color temperature to set at daytime/night")
    parser.add_argument("-g", "--gamma", type=parse_gamma_argument, metavar="R:G:B",
                        help="additional gamma correction to apply")
    parser.add_argument("-m", "--method", type=str.lower, choices=["randr", "vidmode"], default=METHOD,
                        help="method to use to set color temperature")
    parser.add_argument("-o", "--one-shot", action="store_true", default=ONE_SHOT,
                        help="one shot mode (do not continuously adjust color temperature)")
    parser.add_argument("-r", "--no-transition", dest="initial_transition", action="store_false",
                        default=INITIAL_TRANSITION, help="disable initial temperature transition")
    parser.add_argument("-s", "--screen", type=int,
                        help="X screen to apply adjustments to")
    parser.add_argument("-v", "--verbose", action="store_true", help="verbose output")
    parser.add_argument("--mock", action="store_true", default=MOCK_MODE,
                        help="use a simulated display instead of the X server")
    parser.add_argument("--status-api", action="store_true", default=STATUS_API_ENABLED,
                        help="serve the scheduler status over HTTP")

    return parser.parse_args(argv, namespace=RuntimeArgs())


def resolve_settings(args: RuntimeArgs) -> Settings:
    """
    Merge CLI arguments with environment defaults into validated Settings.

    Raises:
        ConfigurationError: If the merged values are missing or out of range
    """
    latitude, longitude = args.location if args.location else (LATITUDE, LONGITUDE)
    day_temp, night_temp = args.temperatures if args.temperatures else (DAY_TEMP, NIGHT_TEMP)
    gamma = args.gamma if args.gamma is not None else parse_gamma(GAMMA)
    screen = args.screen if args.screen is not None else SCREEN

    return build_settings(
        latitude=latitude,
        longitude=longitude,
        day_temp=day_temp,
        night_temp=night_temp,
        gamma=gamma,
        method=args.method,
        screen=screen,
        one_shot=args.one_shot,
        initial_transition=args.initial_transition,
    )


def install_signal_handlers(scheduler: TransitionScheduler) -> dict:
    """
    Stop the scheduler on SIGTERM/SIGINT.

    Returns:
        Previous handlers, for restore_signal_handlers()
    """
    def shutdown_handler(signum, frame):
        logger.info(f"Received signal {signum}, initiating graceful shutdown")
        scheduler.stop()

    previous = {}
    for signum in (signal.SIGTERM, signal.SIGINT):
        previous[signum] = signal.signal(signum, shutdown_handler)
    return previous


def restore_signal_handlers(previous: dict) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def restore_display(backend: DisplayBackend, screen: int) -> None:
    """Reset the display to neutral white with identity gamma."""
    logger.info(f"Restoring display to {NEUTRAL_TEMP}K")
    backend.set_temperature(screen, NEUTRAL_TEMP, GammaAdjustment())


def log_settings(settings: Settings) -> None:
    location = settings.location
    logger.info(f"Location: {location.latitude:f}°, {location.longitude:f}°")
    logger.info(
        f"Temperatures: {settings.temperatures.day}K day, {settings.temperatures.night}K night"
    )
    logger.info("Gamma: {:.3f}, {:.3f}, {:.3f}".format(*settings.gamma.as_tuple()))
    logger.info(
        f"Mode: {settings.mode.value}, method: {settings.method}, screen: {settings.screen}, "
        f"initial transition: {settings.initial_transition}"
    )


def run(argv: Optional[list[str]] = None) -> int:
    """
    Run duskshift.

    Returns:
        Process exit status (0 on success, 1 on configuration or display failure)
    """
    args = parse_arguments(argv)
    if args.verbose:
        set_verbose()

    try:
        settings = resolve_settings(args)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    log_settings(settings)

    try:
        backend = create_backend(settings.method, mock=args.mock)
    except BackendError as e:
        logger.error(f"Unable to initialize {settings.method} backend: {e}")
        return 1

    with backend:
        status_server = None
        if args.status_api:
            from duskshift.api import start_status_api, stop_status_api
            status_server = start_status_api()

        try:
            status = run_scheduler(settings, backend)
        finally:
            if status_server is not None:
                stop_status_api(status_server)

    if status == 0:
        logger.info("Shutdown complete")
    return status


def run_scheduler(settings: Settings, backend: DisplayBackend) -> int:
    """
    Run the scheduler on an open backend until it finishes or is stopped.

    Returns:
        Process exit status
    """
    scheduler = TransitionScheduler(settings, backend, status=scheduler_status)
    previous_handlers = install_signal_handlers(scheduler)
    try:
        scheduler.run()
    except (BackendError, ClockError) as e:
        logger.error(f"Color temperature adjustment failed: {e}")
        return 1
    finally:
        restore_signal_handlers(previous_handlers)

    if scheduler.stop_requested and RESTORE_ON_EXIT:
        try:
            restore_display(backend, settings.screen)
        except BackendError as e:
            logger.error(f"Unable to restore display: {e}")
            return 1
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point."""
    raise SystemExit(run(argv))


if __name__ == "__main__":
    main()
