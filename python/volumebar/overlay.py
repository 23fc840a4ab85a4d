"""
On-screen volume bar: a command-driven window loop that shows, redraws and auto-hides the bar.
"""

import time
import queue
import threading
import logging
from enum import Enum
from .constants import COMMAND_QUEUE_SIZE, POLL_INTERVAL, SETTLE_DELAY
from .renderer import load_font, render_volume_bar
from .surface import PlatformHints

logger = logging.getLogger(__name__)


class OverlayCommand(Enum):
    """Commands processed by the volume bar loop"""
    INIT_WINDOW_AFTER_SETTINGS = "init_window_after_settings"
    UPDATE_VOLUME = "update_volume"
    CLOSE_WINDOW = "close_window"
    # Enqueued by timers only
    SETTLE_ELAPSED = "settle_elapsed"
    HIDE_TIMEOUT = "hide_timeout"


class WindowPhase(Enum):
    HIDDEN = "hidden"
    INITIALIZING = "initializing"
    VISIBLE = "visible"


class ResettableTimer:
    """
    A one-shot timer where reset() cancels any pending firing before re-arming

    Each arm gets a generation number that is passed to the callback. A
    firing that already happened cannot be cancelled, so the consumer checks
    is_current() and drops firings from an earlier arm.
    """

    def __init__(self, callback):
        self.callback = callback
        self.generation = 0
        self._timer = None
        self._lock = threading.Lock()

    def reset(self, delay):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self.generation += 1
            self._timer = threading.Timer(delay, self.callback, args=(self.generation,))
            self._timer.daemon = True
            self._timer.start()

    def cancel(self):
        with self._lock:
            self.generation += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def is_current(self, generation):
        """True if generation belongs to the latest arm"""
        with self._lock:
            return generation == self.generation


class VolumeOverlay:
    """
    Owner of the volume bar window

    All window work happens on one dedicated thread that creates the surface
    and then runs run_window_loop(). Other threads talk to it only through
    push_command(); the settle and idle-hide timers do the same.

    Phases:
        HIDDEN --update--> INITIALIZING --settle delay--> VISIBLE --idle timeout--> HIDDEN
    """

    def __init__(self, surface_factory, hints=None, settle_delay=SETTLE_DELAY,
                 poll_interval=POLL_INTERVAL, queue_size=COMMAND_QUEUE_SIZE):
        """
        Initialize the volume bar

        Args:
            surface_factory (callable): Creates the OverlaySurface, called on the window thread
            hints (PlatformHints): Window hint applier
            settle_delay (float): Seconds between positioning the window and the first draw
            poll_interval (float): Seconds to sleep between idle surface refreshes
            queue_size (int): Capacity of the command queue
        """
        self.surface_factory = surface_factory
        self.hints = hints or PlatformHints()
        self.settle_delay = settle_delay
        self.poll_interval = poll_interval
        self.commands = queue.Queue(maxsize=queue_size)

        self.surface = None
        self.settings = None
        self.font = None
        self.volume = 0
        self.phase = WindowPhase.HIDDEN
        self.running = False
        self.stopped = False
        self.thread = None

        self.settle_timer = ResettableTimer(
            lambda generation: self.push_command(OverlayCommand.SETTLE_ELAPSED, generation))
        self.hide_timer = ResettableTimer(
            lambda generation: self.push_command(OverlayCommand.HIDE_TIMEOUT, generation))

    def start(self):
        """Start the window thread"""
        self.thread = threading.Thread(target=self._run, name="VolumeBarWindow", daemon=True)
        self.thread.start()
        logger.info("Volume bar thread started")

    def _run(self):
        try:
            self.surface = self.surface_factory()
        except Exception as e:
            logger.error(f"Failed to create volume bar window: {e}")
            self.stopped = True
            self._drain()
            return

        try:
            self.run_window_loop()
        except Exception as e:
            logger.error(f"Error in volume bar loop: {e}")
        finally:
            self.running = False
            self.stopped = True
            self.settle_timer.cancel()
            self.hide_timer.cancel()
            self._drain()
            self.surface.destroy()
            logger.info("Volume bar loop stopped")

    def _drain(self):
        """Discard queued commands so no producer stays blocked"""
        while True:
            try:
                self.commands.get_nowait()
            except queue.Empty:
                return

    def run_window_loop(self):
        """Process commands one at a time until CLOSE_WINDOW or the surface closes"""
        self.running = True
        while not self.surface.closed():
            # Either get a command or refresh the window and try again
            try:
                command, payload = self.commands.get_nowait()
            except queue.Empty:
                self.surface.poll()
                time.sleep(self.poll_interval)
                continue

            if not self.process_command(command, payload):
                return
            self.surface.poll()

    def process_command(self, command, payload=None):
        """
        Handle one command

        Returns:
            bool: False when the loop should terminate
        """
        if command is OverlayCommand.INIT_WINDOW_AFTER_SETTINGS:
            self._init_window_after_settings(payload)
        elif command is OverlayCommand.UPDATE_VOLUME:
            if payload is not None:
                self.volume = payload
            self._update_window()
        elif command is OverlayCommand.SETTLE_ELAPSED:
            if self._timer_is_stale(self.settle_timer, payload):
                logger.debug("Dropping settle firing from an earlier arm")
            elif self.phase is WindowPhase.INITIALIZING:
                self.phase = WindowPhase.VISIBLE
                self._update_window()
        elif command is OverlayCommand.HIDE_TIMEOUT:
            if self._timer_is_stale(self.hide_timer, payload):
                logger.debug("Dropping idle timeout from an earlier arm")
            elif self.phase is WindowPhase.VISIBLE:
                self.surface.hide()
                self.phase = WindowPhase.HIDDEN
                logger.debug("Volume bar hidden after idle timeout")
        elif command is OverlayCommand.CLOSE_WINDOW:
            return False
        else:
            logger.error(f"Invalid volume bar command: {command!r}")
        return True

    @staticmethod
    def _timer_is_stale(timer, generation):
        """A timer command without a generation is checked against the phase only"""
        return generation is not None and not timer.is_current(generation)

    def _update_window(self):
        if self.settings is None:
            logger.warning("Volume bar update received before settings, ignoring")
            return

        if self.phase is WindowPhase.HIDDEN:
            # Position the window, invisible until it settles
            self.surface.clear()
            self.hints.hide_from_taskbar()
            self.surface.show()
            self.surface.set_position(self.settings.bar_left, self.settings.bar_top)
            self.phase = WindowPhase.INITIALIZING
            self.settle_timer.reset(self.settle_delay)
        elif self.phase is WindowPhase.VISIBLE:
            self.hints.set_always_on_top()
            self.hints.make_non_focusable()
            self.draw_window()
            self.hide_timer.reset(self.settings.bar_timeout_ms / 1000.0)
        # INITIALIZING: still settling, nothing to do

    def draw_window(self):
        """Render the current volume onto the surface"""
        image = render_volume_bar(self.volume, self.settings, self.font)
        self.surface.draw_image(image)

    def _init_window_after_settings(self, settings):
        """Finish window setup once the settings are known"""
        self.settings = settings
        self.hints.attach(self.surface, settings.run_extra_window_hints)
        self.surface.set_bounds(settings.bar_width, settings.bar_height)
        self.font = load_font(settings)
        logger.info(f"Volume bar sized to {settings.bar_width}x{settings.bar_height}")

    def push_command(self, command, payload=None, timeout=None):
        """
        Queue a command for the window thread

        Blocks while the queue is full unless timeout is given.

        Returns:
            bool: True if the command was queued
        """
        if self.stopped:
            logger.debug(f"Volume bar unavailable, dropping {command}")
            return False
        try:
            self.commands.put((command, payload), timeout=timeout)
            return True
        except queue.Full:
            logger.warning(f"Volume bar command queue full, dropping {command}")
            return False

    def update(self, volume):
        """Show the bar with a new volume"""
        return self.push_command(OverlayCommand.UPDATE_VOLUME, volume)

    def close(self, timeout=2.0):
        """Terminate the window loop and wait for the thread"""
        self.push_command(OverlayCommand.CLOSE_WINDOW, timeout=timeout)
        if self.thread and self.thread.is_alive() and self.thread is not threading.current_thread():
            self.thread.join(timeout=timeout)

    def is_running(self):
        return self.running
