"""Tests for the volume bar window loop, its phases and timers."""

import dataclasses
import logging
import threading

import pytest

from conftest import FakeSurface, wait_for
from volumebar.overlay import OverlayCommand, ResettableTimer, VolumeOverlay, WindowPhase
from volumebar.surface import PlatformHints


@pytest.fixture
def surface():
    return FakeSurface()


@pytest.fixture
def overlay(surface):
    """Overlay driven synchronously from the test thread"""
    overlay = VolumeOverlay(lambda: surface, settle_delay=0.01, poll_interval=0.001)
    overlay.surface = surface
    yield overlay
    overlay.settle_timer.cancel()
    overlay.hide_timer.cancel()


def next_command(overlay):
    """Wait for a timer to enqueue its command and process it"""
    command, payload = overlay.commands.get(timeout=1)
    overlay.process_command(command, payload)
    return command


class TestWindowPhases:
    def test_init_sizes_window_and_runs_hints(self, overlay, surface, settings):
        overlay.process_command(OverlayCommand.INIT_WINDOW_AFTER_SETTINGS, settings)

        assert surface.bounds == (400, 20)
        assert surface.calls == [
            "hide_from_taskbar",
            "make_non_focusable",
            "set_mouse_pass_through",
            "set_always_on_top",
            "set_bounds",
        ]
        assert overlay.font is not None
        assert overlay.phase is WindowPhase.HIDDEN

    def test_first_update_positions_window_without_drawing(self, overlay, surface, settings):
        overlay.process_command(OverlayCommand.INIT_WINDOW_AFTER_SETTINGS, settings)
        surface.calls.clear()

        overlay.process_command(OverlayCommand.UPDATE_VOLUME, 50)

        assert surface.calls == ["clear", "hide_from_taskbar", "show", "set_position"]
        assert surface.position == (310, 30)
        assert surface.images == []
        assert overlay.phase is WindowPhase.INITIALIZING

    def test_settle_then_draw_then_hide(self, overlay, surface, settings):
        overlay.process_command(OverlayCommand.INIT_WINDOW_AFTER_SETTINGS, settings)
        overlay.process_command(OverlayCommand.UPDATE_VOLUME, 50)
        surface.calls.clear()

        assert next_command(overlay) is OverlayCommand.SETTLE_ELAPSED
        assert overlay.phase is WindowPhase.VISIBLE
        assert surface.calls == ["set_always_on_top", "make_non_focusable", "draw_image"]
        assert surface.images[-1].size == (400, 20)

        assert next_command(overlay) is OverlayCommand.HIDE_TIMEOUT
        assert overlay.phase is WindowPhase.HIDDEN
        assert surface.visible is False

    def test_updates_while_initializing_only_record_volume(self, overlay, surface, settings):
        overlay.process_command(OverlayCommand.INIT_WINDOW_AFTER_SETTINGS, settings)
        overlay.process_command(OverlayCommand.UPDATE_VOLUME, 50)
        surface.calls.clear()

        overlay.process_command(OverlayCommand.UPDATE_VOLUME, 60)
        overlay.process_command(OverlayCommand.UPDATE_VOLUME, 70)

        assert surface.calls == []
        assert overlay.volume == 70

        next_command(overlay)
        assert len(surface.images) == 1

    def test_update_while_visible_redraws(self, overlay, surface, settings):
        overlay.process_command(OverlayCommand.INIT_WINDOW_AFTER_SETTINGS, settings)
        overlay.process_command(OverlayCommand.UPDATE_VOLUME, 50)
        next_command(overlay)

        overlay.process_command(OverlayCommand.UPDATE_VOLUME, 150)

        assert len(surface.images) == 2
        assert overlay.phase is WindowPhase.VISIBLE

    def test_update_resets_idle_timer(self, overlay, surface, settings):
        overlay.process_command(OverlayCommand.INIT_WINDOW_AFTER_SETTINGS, settings)
        overlay.process_command(OverlayCommand.UPDATE_VOLUME, 50)
        next_command(overlay)

        overlay.process_command(OverlayCommand.UPDATE_VOLUME, 55)
        overlay.process_command(OverlayCommand.UPDATE_VOLUME, 60)

        assert next_command(overlay) is OverlayCommand.HIDE_TIMEOUT
        assert overlay.phase is WindowPhase.HIDDEN
        # Only one pending hide timer at a time
        assert overlay.commands.empty()

    def test_idle_timeout_queued_behind_update_is_dropped(self, overlay, surface, settings):
        overlay.process_command(OverlayCommand.INIT_WINDOW_AFTER_SETTINGS, settings)
        overlay.process_command(OverlayCommand.UPDATE_VOLUME, 50)
        next_command(overlay)
        assert overlay.phase is WindowPhase.VISIBLE

        # The idle timer fires while the update is still waiting in the queue
        overlay.push_command(OverlayCommand.UPDATE_VOLUME, 60)
        assert wait_for(lambda: overlay.commands.qsize() == 2)

        assert next_command(overlay) is OverlayCommand.UPDATE_VOLUME
        assert next_command(overlay) is OverlayCommand.HIDE_TIMEOUT

        assert overlay.phase is WindowPhase.VISIBLE
        assert surface.visible is True
        assert len(surface.images) == 2

        # The re-armed timer still hides the bar
        assert next_command(overlay) is OverlayCommand.HIDE_TIMEOUT
        assert overlay.phase is WindowPhase.HIDDEN

    def test_settle_from_earlier_arm_is_dropped(self, overlay, surface, settings):
        overlay.process_command(OverlayCommand.INIT_WINDOW_AFTER_SETTINGS, settings)
        overlay.process_command(OverlayCommand.UPDATE_VOLUME, 50)
        stale = overlay.settle_timer.generation
        overlay.settle_timer.reset(10)

        overlay.process_command(OverlayCommand.SETTLE_ELAPSED, stale)

        assert overlay.phase is WindowPhase.INITIALIZING
        assert surface.images == []

    def test_stale_timer_commands_are_ignored(self, overlay, surface, settings):
        overlay.process_command(OverlayCommand.INIT_WINDOW_AFTER_SETTINGS, settings)

        overlay.process_command(OverlayCommand.SETTLE_ELAPSED)
        overlay.process_command(OverlayCommand.HIDE_TIMEOUT)

        assert overlay.phase is WindowPhase.HIDDEN
        assert "hide" not in surface.calls

    def test_update_before_settings_is_ignored(self, overlay, surface, caplog):
        with caplog.at_level(logging.WARNING):
            assert overlay.process_command(OverlayCommand.UPDATE_VOLUME, 50) is True

        assert surface.calls == []
        assert "before settings" in caplog.text

    def test_close_stops_processing(self, overlay):
        assert overlay.process_command(OverlayCommand.CLOSE_WINDOW) is False

    def test_unknown_command_is_logged(self, overlay, caplog):
        with caplog.at_level(logging.ERROR):
            assert overlay.process_command("bogus") is True
        assert "Invalid volume bar command" in caplog.text

    def test_disabled_hints_are_skipped(self, overlay, surface, settings):
        settings_without_hints = dataclasses.replace(settings, run_extra_window_hints=False)

        overlay.process_command(OverlayCommand.INIT_WINDOW_AFTER_SETTINGS, settings_without_hints)
        overlay.process_command(OverlayCommand.UPDATE_VOLUME, 50)

        assert surface.calls == ["set_bounds", "clear", "show", "set_position"]


class TestWindowThread:
    def test_start_update_close(self, surface, settings):
        overlay = VolumeOverlay(lambda: surface, settle_delay=0.01, poll_interval=0.001)
        overlay.start()

        overlay.push_command(OverlayCommand.INIT_WINDOW_AFTER_SETTINGS, settings)
        overlay.update(80)

        assert wait_for(lambda: len(surface.images) == 1)
        assert wait_for(lambda: overlay.phase is WindowPhase.HIDDEN)

        overlay.close()

        assert not overlay.thread.is_alive()
        assert surface.destroyed is True
        assert overlay.is_running() is False

    def test_surface_closed_ends_loop(self, surface):
        overlay = VolumeOverlay(lambda: surface, poll_interval=0.001)
        overlay.start()
        assert wait_for(overlay.is_running)

        surface._closed = True

        assert wait_for(lambda: not overlay.thread.is_alive())
        assert overlay.push_command(OverlayCommand.UPDATE_VOLUME, 10) is False

    def test_surface_factory_failure(self, caplog):
        def broken_factory():
            raise RuntimeError("no display")

        overlay = VolumeOverlay(broken_factory)
        with caplog.at_level(logging.ERROR):
            overlay.start()
            overlay.thread.join(timeout=2)

        assert "Failed to create volume bar window: no display" in caplog.text
        assert overlay.stopped is True
        assert overlay.update(50) is False

    def test_full_queue_drops_command(self, surface):
        overlay = VolumeOverlay(lambda: surface, queue_size=1)

        assert overlay.push_command(OverlayCommand.UPDATE_VOLUME, 1) is True
        assert overlay.push_command(OverlayCommand.UPDATE_VOLUME, 2, timeout=0.01) is False


class TestResettableTimer:
    def test_reset_fires_once_with_latest_generation(self):
        fired = []
        timer = ResettableTimer(fired.append)

        timer.reset(0.05)
        timer.reset(0.05)
        timer.reset(0.05)

        assert wait_for(lambda: len(fired) == 1)
        assert not wait_for(lambda: len(fired) > 1, timeout=0.2)
        assert timer.is_current(fired[0])

    def test_cancel(self):
        fired = []
        timer = ResettableTimer(fired.append)

        timer.reset(0.05)
        timer.cancel()

        assert not wait_for(lambda: fired, timeout=0.2)

    def test_fired_generation_goes_stale_after_reset(self):
        fired = []
        timer = ResettableTimer(fired.append)

        timer.reset(0.01)
        assert wait_for(lambda: fired)
        timer.reset(10)

        assert not timer.is_current(fired[0])
        timer.cancel()


class TestHintsShared:
    def test_overlay_uses_given_hints(self, surface, settings):
        hints = PlatformHints()
        overlay = VolumeOverlay(lambda: surface, hints=hints)
        overlay.surface = surface

        overlay.process_command(OverlayCommand.INIT_WINDOW_AFTER_SETTINGS, settings)

        assert hints.surface is surface
        assert hints.enabled is True
