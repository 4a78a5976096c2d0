"""
Display backend abstraction layer.

Features:
- One interface, set_temperature(screen, temperature, gamma)
- RandR 1.3 backend (per-CRTC gamma ramps)
- VidMode backend (per-screen gamma ramps)
- Plain ctypes bindings to libX11, libXrandr and libXxf86vm

Backends never fall back to one another: a failure is reported as
BackendError and the caller decides what to do.
"""

import ctypes
import ctypes.util
from abc import ABC, abstractmethod
from ctypes import POINTER, Structure, byref, c_int, c_ulong, c_ushort, c_void_p

from duskshift.lighting_math import build_gamma_ramps
from duskshift.logger import logger
from duskshift.settings import GammaAdjustment


class BackendError(RuntimeError):
    """Raised when the display color temperature cannot be set."""


class DisplayBackend(ABC):
    """Interface shared by all display backends."""

    name: str = "backend"

    @abstractmethod
    def set_temperature(self, screen: int, temperature: int, gamma: GammaAdjustment) -> None:
        """
        Apply a color temperature to a screen.

        Args:
            screen: Screen number, -1 for the default screen
            temperature: Color temperature in Kelvin
            gamma: Additional gamma correction

        Raises:
            BackendError: If the adjustment failed
        """

    def close(self) -> None:
        """Release display resources."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def _load_library(name: str) -> ctypes.CDLL:
    path = ctypes.util.find_library(name)
    if not path:
        raise BackendError(f"{name} library not found")
    try:
        return ctypes.cdll.LoadLibrary(path)
    except OSError as e:
        raise BackendError(f"Unable to load {name} library: {e}") from e


def _ramp_arrays(size: int, temperature: int, gamma: GammaAdjustment):
    """Build ctypes arrays for the three gamma ramps."""
    return [
        (c_ushort * size)(*ramp)
        for ramp in build_gamma_ramps(size, temperature, gamma.as_tuple())
    ]


class _XDisplayBackend(DisplayBackend):
    """Common X11 connection handling."""

    def __init__(self, x11=None):
        self.x11 = x11 if x11 is not None else _load_library("X11")

        self.x11.XOpenDisplay.argtypes = [ctypes.c_char_p]
        self.x11.XOpenDisplay.restype = c_void_p
        self.x11.XCloseDisplay.argtypes = [c_void_p]
        self.x11.XDefaultScreen.argtypes = [c_void_p]
        self.x11.XDefaultScreen.restype = c_int
        self.x11.XScreenCount.argtypes = [c_void_p]
        self.x11.XScreenCount.restype = c_int

        self.display = self.x11.XOpenDisplay(None)
        if not self.display:
            raise BackendError("Unable to open X display")

    def _screen_number(self, screen: int) -> int:
        """Resolve -1 to the default screen and reject screens the display lacks."""
        if screen < 0:
            return self.x11.XDefaultScreen(self.display)
        if screen >= self.x11.XScreenCount(self.display):
            raise BackendError(f"Screen {screen} does not exist")
        return screen

    def close(self) -> None:
        if self.display:
            self.x11.XCloseDisplay(self.display)
            self.display = None
            logger.debug(f"Closed X display ({self.name})")


# ------------------------------------------------------------------
# RandR
# ------------------------------------------------------------------

class _XRRScreenResources(Structure):
    _fields_ = [
        ("timestamp", c_ulong),
        ("configTimestamp", c_ulong),
        ("ncrtc", c_int),
        ("crtcs", POINTER(c_ulong)),
        ("noutput", c_int),
        ("outputs", POINTER(c_ulong)),
        ("nmode", c_int),
        ("modes", c_void_p),
    ]


class _XRRCrtcGamma(Structure):
    _fields_ = [
        ("size", c_int),
        ("red", POINTER(c_ushort)),
        ("green", POINTER(c_ushort)),
        ("blue", POINTER(c_ushort)),
    ]


RANDR_VERSION = (1, 3)


class RandrBackend(_XDisplayBackend):
    """Set color temperature through the RandR extension (1.3 or newer)."""

    name = "randr"

    def __init__(self, x11=None, xrandr=None):
        super().__init__(x11)
        try:
            self.xrandr = xrandr if xrandr is not None else _load_library("Xrandr")
            self._bind()
            self._check_extension()
        except BackendError:
            self.close()
            raise
        logger.info("RandR backend initialized")

    def _bind(self):
        self.x11.XRootWindow.argtypes = [c_void_p, c_int]
        self.x11.XRootWindow.restype = c_ulong
        self.x11.XFlush.argtypes = [c_void_p]

        self.xrandr.XRRQueryVersion.argtypes = [c_void_p, POINTER(c_int), POINTER(c_int)]
        self.xrandr.XRRQueryVersion.restype = c_int
        self.xrandr.XRRGetScreenResourcesCurrent.argtypes = [c_void_p, c_ulong]
        self.xrandr.XRRGetScreenResourcesCurrent.restype = POINTER(_XRRScreenResources)
        self.xrandr.XRRFreeScreenResources.argtypes = [POINTER(_XRRScreenResources)]
        self.xrandr.XRRGetCrtcGammaSize.argtypes = [c_void_p, c_ulong]
        self.xrandr.XRRGetCrtcGammaSize.restype = c_int
        self.xrandr.XRRSetCrtcGamma.argtypes = [c_void_p, c_ulong, POINTER(_XRRCrtcGamma)]

    def _check_extension(self):
        major, minor = c_int(), c_int()
        if not self.xrandr.XRRQueryVersion(self.display, byref(major), byref(minor)):
            raise BackendError("RANDR extension is not available")
        if (major.value, minor.value) < RANDR_VERSION:
            raise BackendError(
                f"RANDR {RANDR_VERSION[0]}.{RANDR_VERSION[1]} extension is not available "
                f"(server has {major.value}.{minor.value})"
            )
        logger.debug(f"RANDR version {major.value}.{minor.value}")

    def set_temperature(self, screen: int, temperature: int, gamma: GammaAdjustment) -> None:
        root = self.x11.XRootWindow(self.display, self._screen_number(screen))
        resources = self.xrandr.XRRGetScreenResourcesCurrent(self.display, root)
        if not resources:
            raise BackendError("Unable to get RANDR screen resources")

        try:
            res = resources.contents
            for i in range(res.ncrtc):
                crtc = res.crtcs[i]
                size = self.xrandr.XRRGetCrtcGammaSize(self.display, crtc)
                if size <= 1:
                    raise BackendError(f"Gamma ramp size too small for CRTC {crtc}: {size}")

                red, green, blue = _ramp_arrays(size, temperature, gamma)
                crtc_gamma = _XRRCrtcGamma(
                    size,
                    ctypes.cast(red, POINTER(c_ushort)),
                    ctypes.cast(green, POINTER(c_ushort)),
                    ctypes.cast(blue, POINTER(c_ushort)),
                )
                self.xrandr.XRRSetCrtcGamma(self.display, crtc, byref(crtc_gamma))
        finally:
            self.xrandr.XRRFreeScreenResources(resources)

        self.x11.XFlush(self.display)


# ------------------------------------------------------------------
# VidMode
# ------------------------------------------------------------------

class VidModeBackend(_XDisplayBackend):
    """Set color temperature through the XF86VidMode extension."""

    name = "vidmode"

    def __init__(self, x11=None, xf86vm=None):
        super().__init__(x11)
        try:
            self.xf86vm = xf86vm if xf86vm is not None else _load_library("Xxf86vm")
            self._bind()
            self._check_extension()
        except BackendError:
            self.close()
            raise
        logger.info("VidMode backend initialized")

    def _bind(self):
        self.xf86vm.XF86VidModeQueryVersion.argtypes = [c_void_p, POINTER(c_int), POINTER(c_int)]
        self.xf86vm.XF86VidModeQueryVersion.restype = c_int
        self.xf86vm.XF86VidModeGetGammaRampSize.argtypes = [c_void_p, c_int, POINTER(c_int)]
        self.xf86vm.XF86VidModeGetGammaRampSize.restype = c_int
        self.xf86vm.XF86VidModeSetGammaRamp.argtypes = [
            c_void_p, c_int, c_int,
            POINTER(c_ushort), POINTER(c_ushort), POINTER(c_ushort),
        ]
        self.xf86vm.XF86VidModeSetGammaRamp.restype = c_int

    def _check_extension(self):
        major, minor = c_int(), c_int()
        if not self.xf86vm.XF86VidModeQueryVersion(self.display, byref(major), byref(minor)):
            raise BackendError("VidMode extension is not available")
        logger.debug(f"VidMode version {major.value}.{minor.value}")

    def set_temperature(self, screen: int, temperature: int, gamma: GammaAdjustment) -> None:
        screen_num = self._screen_number(screen)

        size = c_int()
        if not self.xf86vm.XF86VidModeGetGammaRampSize(self.display, screen_num, byref(size)):
            raise BackendError("Unable to get VidMode gamma ramp size")
        if size.value <= 1:
            raise BackendError(f"Gamma ramp size too small: {size.value}")

        red, green, blue = _ramp_arrays(size.value, temperature, gamma)
        if not self.xf86vm.XF86VidModeSetGammaRamp(self.display, screen_num, size.value, red, green, blue):
            raise BackendError("Unable to set VidMode gamma ramp")


BACKENDS = {
    "randr": RandrBackend,
    "vidmode": VidModeBackend,
}


def create_backend(method: str, mock: bool = False) -> DisplayBackend:
    """
    Construct the display backend for a method name.

    Args:
        method: "randr" or "vidmode"
        mock: Use the mock display instead of a real X server

    Raises:
        BackendError: If the backend cannot be initialized
    """
    if mock:
        from duskshift.mock_hardware import MockDisplayBackend
        logger.info("🎭 MOCK MODE ENABLED - Using simulated display")
        return MockDisplayBackend(method=method)

    try:
        backend_cls = BACKENDS[method]
    except KeyError:
        raise BackendError(f"Unknown method '{method}'")

    logger.info(f"Initializing {method} backend")
    return backend_cls()
