"""Tests for display backends (X libraries are mocked)."""

import ctypes
from ctypes import POINTER, c_ulong, pointer
from unittest.mock import MagicMock, patch

import pytest

from duskshift.display import (
    BACKENDS, BackendError, RandrBackend, VidModeBackend, _XRRScreenResources,
    _load_library, create_backend,
)
from duskshift.lighting_math import build_gamma_ramps
from duskshift.mock_hardware import MockDisplayBackend
from duskshift.settings import GammaAdjustment

DISPLAY = 0x1234


def version_reply(major, minor, ok=1):
    """side_effect for Query*Version(display, byref(major), byref(minor))."""
    def query(display, major_ref, minor_ref):
        major_ref._obj.value = major
        minor_ref._obj.value = minor
        return ok
    return query


@pytest.fixture
def x11():
    lib = MagicMock()
    lib.XOpenDisplay.return_value = DISPLAY
    lib.XDefaultScreen.return_value = 0
    lib.XScreenCount.return_value = 2
    lib.XRootWindow.return_value = 42
    return lib


@pytest.fixture
def xf86vm():
    lib = MagicMock()
    lib.XF86VidModeQueryVersion.side_effect = version_reply(2, 2)

    def ramp_size(display, screen, size_ref):
        size_ref._obj.value = 256
        return 1

    lib.XF86VidModeGetGammaRampSize.side_effect = ramp_size
    lib.XF86VidModeSetGammaRamp.return_value = 1
    return lib


@pytest.fixture
def xrandr():
    lib = MagicMock()
    lib.XRRQueryVersion.side_effect = version_reply(1, 5)
    lib.XRRGetCrtcGammaSize.return_value = 256

    crtcs = (c_ulong * 2)(63, 64)
    resources = _XRRScreenResources()
    resources.ncrtc = 2
    resources.crtcs = ctypes.cast(crtcs, POINTER(c_ulong))
    lib.resources = pointer(resources)
    lib.crtcs = crtcs  # keep the array alive
    lib.XRRGetScreenResourcesCurrent.return_value = lib.resources

    lib.applied = []

    def set_gamma(display, crtc, gamma_ref):
        gamma = gamma_ref._obj
        lib.applied.append((
            crtc,
            [gamma.red[i] for i in range(gamma.size)],
            [gamma.green[i] for i in range(gamma.size)],
            [gamma.blue[i] for i in range(gamma.size)],
        ))

    lib.XRRSetCrtcGamma.side_effect = set_gamma
    return lib


class TestVidModeBackend:
    """Tests for VidModeBackend."""

    def test_initialization(self, x11, xf86vm):
        backend = VidModeBackend(x11=x11, xf86vm=xf86vm)
        assert backend.name == "vidmode"
        assert backend.display == DISPLAY
        xf86vm.XF86VidModeQueryVersion.assert_called_once()

    def test_no_display(self, x11, xf86vm):
        x11.XOpenDisplay.return_value = None
        with pytest.raises(BackendError, match="Unable to open X display"):
            VidModeBackend(x11=x11, xf86vm=xf86vm)

    def test_extension_missing(self, x11, xf86vm):
        xf86vm.XF86VidModeQueryVersion.side_effect = version_reply(0, 0, ok=0)
        with pytest.raises(BackendError, match="VidMode extension is not available"):
            VidModeBackend(x11=x11, xf86vm=xf86vm)
        x11.XCloseDisplay.assert_called_once_with(DISPLAY)

    def test_set_temperature(self, x11, xf86vm):
        backend = VidModeBackend(x11=x11, xf86vm=xf86vm)
        gamma = GammaAdjustment(red=1.0, green=0.9, blue=0.8)

        backend.set_temperature(-1, 3700, gamma)

        args = xf86vm.XF86VidModeSetGammaRamp.call_args.args
        assert args[:3] == (DISPLAY, 0, 256)
        expected = build_gamma_ramps(256, 3700, (1.0, 0.9, 0.8))
        assert tuple(list(ramp) for ramp in args[3:]) == expected

    def test_explicit_screen(self, x11, xf86vm):
        backend = VidModeBackend(x11=x11, xf86vm=xf86vm)
        backend.set_temperature(1, 5000, GammaAdjustment())
        assert xf86vm.XF86VidModeSetGammaRamp.call_args.args[1] == 1
        x11.XDefaultScreen.assert_not_called()

    @pytest.mark.parametrize("screen", [2, 7])
    def test_missing_screen(self, x11, xf86vm, screen):
        """Screens beyond XScreenCount never reach the extension."""
        backend = VidModeBackend(x11=x11, xf86vm=xf86vm)
        with pytest.raises(BackendError, match=f"Screen {screen} does not exist"):
            backend.set_temperature(screen, 5000, GammaAdjustment())
        xf86vm.XF86VidModeGetGammaRampSize.assert_not_called()
        xf86vm.XF86VidModeSetGammaRamp.assert_not_called()

    def test_ramp_size_too_small(self, x11, xf86vm):
        def ramp_size(display, screen, size_ref):
            size_ref._obj.value = 1
            return 1

        xf86vm.XF86VidModeGetGammaRampSize.side_effect = ramp_size
        backend = VidModeBackend(x11=x11, xf86vm=xf86vm)
        with pytest.raises(BackendError, match="too small"):
            backend.set_temperature(-1, 5000, GammaAdjustment())
        xf86vm.XF86VidModeSetGammaRamp.assert_not_called()

    def test_set_ramp_fails(self, x11, xf86vm):
        xf86vm.XF86VidModeSetGammaRamp.return_value = 0
        backend = VidModeBackend(x11=x11, xf86vm=xf86vm)
        with pytest.raises(BackendError, match="Unable to set VidMode gamma ramp"):
            backend.set_temperature(-1, 5000, GammaAdjustment())

    def test_close(self, x11, xf86vm):
        with VidModeBackend(x11=x11, xf86vm=xf86vm):
            pass
        x11.XCloseDisplay.assert_called_once_with(DISPLAY)


class TestRandrBackend:
    """Tests for RandrBackend."""

    def test_initialization(self, x11, xrandr):
        backend = RandrBackend(x11=x11, xrandr=xrandr)
        assert backend.name == "randr"

    @pytest.mark.parametrize("major,minor", [(1, 2), (1, 0), (0, 9)])
    def test_old_version_rejected(self, x11, xrandr, major, minor):
        xrandr.XRRQueryVersion.side_effect = version_reply(major, minor)
        with pytest.raises(BackendError, match="RANDR 1.3"):
            RandrBackend(x11=x11, xrandr=xrandr)
        x11.XCloseDisplay.assert_called_once()

    def test_extension_missing(self, x11, xrandr):
        xrandr.XRRQueryVersion.side_effect = version_reply(0, 0, ok=0)
        with pytest.raises(BackendError, match="RANDR extension is not available"):
            RandrBackend(x11=x11, xrandr=xrandr)

    def test_set_temperature_all_crtcs(self, x11, xrandr):
        backend = RandrBackend(x11=x11, xrandr=xrandr)

        backend.set_temperature(-1, 4600, GammaAdjustment())

        x11.XRootWindow.assert_called_once_with(DISPLAY, 0)
        xrandr.XRRGetScreenResourcesCurrent.assert_called_once_with(DISPLAY, 42)
        expected = build_gamma_ramps(256, 4600, (1.0, 1.0, 1.0))
        assert [crtc for crtc, *_ in xrandr.applied] == [63, 64]
        for _, red, green, blue in xrandr.applied:
            assert (red, green, blue) == expected
        xrandr.XRRFreeScreenResources.assert_called_once_with(xrandr.resources)
        x11.XFlush.assert_called_once_with(DISPLAY)

    def test_explicit_screen(self, x11, xrandr):
        backend = RandrBackend(x11=x11, xrandr=xrandr)
        backend.set_temperature(1, 4600, GammaAdjustment())
        x11.XRootWindow.assert_called_once_with(DISPLAY, 1)

    def test_missing_screen(self, x11, xrandr):
        backend = RandrBackend(x11=x11, xrandr=xrandr)
        with pytest.raises(BackendError, match="Screen 7 does not exist"):
            backend.set_temperature(7, 4600, GammaAdjustment())
        x11.XRootWindow.assert_not_called()
        xrandr.XRRSetCrtcGamma.assert_not_called()

    def test_no_resources(self, x11, xrandr):
        xrandr.XRRGetScreenResourcesCurrent.return_value = POINTER(_XRRScreenResources)()
        backend = RandrBackend(x11=x11, xrandr=xrandr)
        with pytest.raises(BackendError, match="screen resources"):
            backend.set_temperature(-1, 4600, GammaAdjustment())

    def test_gamma_size_too_small_frees_resources(self, x11, xrandr):
        xrandr.XRRGetCrtcGammaSize.return_value = 0
        backend = RandrBackend(x11=x11, xrandr=xrandr)
        with pytest.raises(BackendError, match="too small"):
            backend.set_temperature(-1, 4600, GammaAdjustment())
        xrandr.XRRSetCrtcGamma.assert_not_called()
        xrandr.XRRFreeScreenResources.assert_called_once()


class TestCreateBackend:
    """Tests for create_backend()."""

    def test_mock(self):
        backend = create_backend("vidmode", mock=True)
        assert isinstance(backend, MockDisplayBackend)
        assert backend.method == "vidmode"

    def test_unknown_method(self):
        with pytest.raises(BackendError, match="Unknown method 'wayland'"):
            create_backend("wayland")

    def test_selects_backend_class(self):
        fake_cls = MagicMock()
        with patch.dict(BACKENDS, {"vidmode": fake_cls}):
            backend = create_backend("vidmode")
        assert backend is fake_cls.return_value

    def test_no_fallback(self):
        """A failing backend is reported, never replaced by the other one."""
        failing = MagicMock(side_effect=BackendError("RANDR extension is not available"))
        other = MagicMock()
        with patch.dict(BACKENDS, {"randr": failing, "vidmode": other}):
            with pytest.raises(BackendError):
                create_backend("randr")
        other.assert_not_called()

    def test_library_not_found(self):
        with patch("duskshift.display.ctypes.util.find_library", return_value=None):
            with pytest.raises(BackendError, match="Xxf86vm library not found"):
                _load_library("Xxf86vm")
