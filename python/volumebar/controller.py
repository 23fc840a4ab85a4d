"""
Volume controller: turns absolute or relative requests into a new system volume.
"""

import re
import threading
import logging
from .backend import create_backend, parse_volume_string
from .config import load_volume_settings
from .errors import BackendError, MalformedRequestError, VolumeBarError
from .overlay import OverlayCommand

logger = logging.getLogger(__name__)

NEW_VOLUME_PATTERN = re.compile(r"([+-]?)([0-9]{1,3})")

MISSING_VOLUME_MESSAGE = "Missing NewVolume"
INVALID_FORMAT_MESSAGE = (
    "Invalid NewVolume format. Pass a 1-3 digit integer, optionally preceded by a '+' or '-' sign. "
    "A '+' or '-' indicates a relative volume change from the current level, "
    "while no sign sets an absolute volume."
)


class VolumeController:
    """
    Owns the current volume and the normal-max buffer

    normal_buffer tracks buffered relative volume changes. It is set to
    direction * (buffer_size + 1) when normal_volume_max is crossed, then
    moves one step toward 0 per change in the same direction; the volume is
    held at normal_volume_max until it reaches 0.

    Every read or write of the volume state happens while holding the gate,
    so at most one request is computed at a time.
    """

    def __init__(self, config_manager, backend=None, overlay=None):
        """
        Initialize the volume controller

        Settings are not resolved until the first request.

        Args:
            config_manager: Configuration manager instance
            backend (VolumeBackend): System volume backend; built from the settings when None
            overlay (VolumeOverlay): Volume bar to notify, optional
        """
        self.config_manager = config_manager
        self.backend = backend
        self.overlay = overlay
        self.settings = None

        self.current_volume = 0
        self.normal_buffer = 0
        self.initialized = False
        self.gate = threading.Lock()

    def handle_volume_request(self, new_volume):
        """
        Apply a request and always return a text result

        Args:
            new_volume (str): "55" (absolute), "+5" or "-5" (relative); None when missing

        Returns:
            str: Result or error description
        """
        try:
            _, message = self.apply(new_volume)
            return message
        except VolumeBarError as e:
            logger.warning(str(e))
            return str(e)

    def apply(self, new_volume):
        """
        Apply a request

        Returns:
            tuple: (volume, message)

        Raises:
            MalformedRequestError: The request is malformed or out of range; nothing changed
            BackendError: The volume was computed but could not be applied
        """
        with self.gate:
            if not self.initialized:
                self._init_run_time()

            if new_volume is None:
                raise MalformedRequestError(MISSING_VOLUME_MESSAGE)
            match = NEW_VOLUME_PATTERN.fullmatch(new_volume)
            if not match:
                raise MalformedRequestError(INVALID_FORMAT_MESSAGE)

            sign, digits = match.groups()
            if sign:
                # Relative change
                direction = 1 if sign == "+" else -1
                self.current_volume = self.calc_new_volume(direction, int(digits))
            else:
                # Absolute change
                try:
                    volume = parse_volume_string(digits, self.settings.over_max_volume_max)
                except ValueError as e:
                    raise MalformedRequestError(f"Invalid absolute NewVolume: {e}") from e
                self.current_volume = volume
                self.normal_buffer = 0

            # The computed state is kept even if the backend fails, so callers can retry
            try:
                self.backend.apply_level(self.current_volume)
            except BackendError as e:
                raise BackendError(
                    f"Error setting new volume (NewVolume={self.current_volume}, "
                    f"normalBuffer={self.normal_buffer}): {e}"
                ) from e

            if self.overlay is not None:
                self.overlay.update(self.current_volume)

            message = f"NewVolume={self.current_volume}, normalBuffer={self.normal_buffer}"
            logger.info(message)
            return self.current_volume, message

    def calc_new_volume(self, direction, step_size):
        """
        Calculate the new volume from a relative change

        Must be called while holding the gate. Updates normal_buffer.

        Args:
            direction (int): 1 or -1
            step_size (int): Magnitude of the change

        Returns:
            int: The new volume
        """
        settings = self.settings
        normal_max = settings.normal_volume_max
        current_volume = self.current_volume
        delta = direction * step_size

        # 0 delta does nothing
        if delta == 0:
            return current_volume

        # Hard edges are reached immediately and leave the buffer alone
        if current_volume + delta < 0:
            return 0
        if current_volume + delta > settings.over_max_volume_max:
            return settings.over_max_volume_max

        # Clear the stored buffer and work on a copy
        remaining_buffer = self.normal_buffer
        self.normal_buffer = 0

        # Reaching normal_max from either direction (re)arms the buffer
        new_volume = current_volume + delta
        if (current_volume < normal_max <= new_volume) or (current_volume > normal_max >= new_volume):
            remaining_buffer = (settings.buffer_size + 1) * direction

        # No buffer, or going the other way than when the buffer was armed
        if remaining_buffer == 0 or (remaining_buffer > 0) != (direction > 0):
            return new_volume

        # Decrement the buffer toward 0; the slide continues once it gets there
        self.normal_buffer = remaining_buffer - direction
        if self.normal_buffer == 0:
            return new_volume
        return normal_max

    def _init_run_time(self):
        """
        Resolve settings, read the system volume and position the volume bar

        initialized is only set once this completes, so a failed setup is retried
        by the next call.
        """
        self.settings = load_volume_settings(self.config_manager)
        if self.backend is None:
            self.backend = create_backend(self.settings)

        try:
            volume = self.backend.query_level()
            self.current_volume = max(0, min(volume, self.settings.over_max_volume_max))
        except BackendError as e:
            logger.error(f"Error pulling current volume, setting to {self.settings.default_volume}: {e}")
            self.current_volume = self.settings.default_volume
        logger.info(f"Setting default volume at: {self.current_volume}")
        self.initialized = True

        if self.overlay is not None:
            self.overlay.push_command(OverlayCommand.INIT_WINDOW_AFTER_SETTINGS, self.settings)

    def get_current_volume(self):
        """Current volume, reading the system level first if no request has run yet"""
        with self.gate:
            if not self.initialized:
                self._init_run_time()
            return self.current_volume

    def get_status(self):
        """Volume state summary for status messages"""
        return {
            "volume": self.current_volume,
            "normal_buffer": self.normal_buffer,
            "initialized": self.initialized
        }
