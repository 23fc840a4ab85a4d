"""
Shared test fixtures for volumebar.

These fixtures isolate tests from external dependencies:
- System volume (FakeBackend)
- Windowing system (FakeSurface)
- Configuration files (config factory writing into tmp_path)
"""

import threading
import time

import pytest

from volumebar.config import ConfigManager, VolumeSettings
from volumebar.errors import BackendError
from volumebar.overlay import OverlayCommand
from volumebar.surface import OverlaySurface


class FakeBackend:
    """In-memory volume backend"""

    def __init__(self, level=50, query_error=None, apply_error=None):
        self.level = level
        self.query_error = query_error
        self.apply_error = apply_error
        self.applied = []

    def query_level(self):
        if self.query_error:
            raise BackendError(self.query_error)
        return self.level

    def apply_level(self, level):
        if self.apply_error:
            raise BackendError(self.apply_error)
        self.applied.append(level)
        self.level = level


class FakeSurface(OverlaySurface):
    """Records every call made by the volume bar loop"""

    def __init__(self):
        self.calls = []
        self.images = []
        self.visible = False
        self.position = None
        self.bounds = None
        self.destroyed = False
        self._closed = False

    def show(self):
        self.calls.append("show")
        self.visible = True

    def hide(self):
        self.calls.append("hide")
        self.visible = False

    def set_position(self, x, y):
        self.calls.append("set_position")
        self.position = (x, y)

    def set_bounds(self, width, height):
        self.calls.append("set_bounds")
        self.bounds = (width, height)

    def clear(self):
        self.calls.append("clear")

    def draw_image(self, image):
        self.calls.append("draw_image")
        self.images.append(image)

    def poll(self):
        pass

    def closed(self):
        return self._closed

    def destroy(self):
        self.destroyed = True

    def hide_from_taskbar(self):
        self.calls.append("hide_from_taskbar")

    def make_non_focusable(self):
        self.calls.append("make_non_focusable")

    def set_mouse_pass_through(self):
        self.calls.append("set_mouse_pass_through")

    def set_always_on_top(self):
        self.calls.append("set_always_on_top")


class RecordingOverlay:
    """Stands in for VolumeOverlay; records pushed commands"""

    def __init__(self):
        self.commands = []

    def push_command(self, command, payload=None, timeout=None):
        self.commands.append((command, payload))
        return True

    def update(self, volume):
        return self.push_command(OverlayCommand.UPDATE_VOLUME, volume)


@pytest.fixture
def make_config(tmp_path):
    """
    Factory for ConfigManager instances backed by tmp_path.

    Usage:
        config = make_config(volume={"buffer_size": 2})
    """

    def _create(**sections):
        return ConfigManager(str(tmp_path / "volumebar_config.json"), config=sections)

    return _create


@pytest.fixture
def settings():
    """Small volume bar geometry used by renderer and overlay tests"""
    return VolumeSettings(
        normal_volume_max=100,
        over_max_volume_max=200,
        buffer_size=2,
        screen_width=1000,
        bar_top=30,
        bar_left_offset=10,
        percent_pixel_width=2,
        bar_height=20,
        bar_timeout_ms=100,
        text_size=12,
        font_path="/nonexistent/font.ttf",
    )


def wait_for(predicate, timeout=2.0, interval=0.01):
    """Poll predicate until it is true or timeout elapses"""
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def fake_backend():
    return FakeBackend(level=50)


@pytest.fixture
def recording_overlay():
    return RecordingOverlay()


@pytest.fixture
def barrier_backend():
    """Backend that tracks how many apply_level calls overlap"""

    class _ConcurrencyBackend(FakeBackend):
        def __init__(self):
            super().__init__(level=10)
            self.active = 0
            self.max_active = 0
            self.lock = threading.Lock()

        def apply_level(self, level):
            with self.lock:
                self.active += 1
                self.max_active = max(self.max_active, self.active)
            time.sleep(0.01)
            with self.lock:
                self.active -= 1
            super().apply_level(level)

    return _ConcurrencyBackend()
