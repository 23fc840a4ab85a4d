"""
System volume backends: shell commands (pactl by default) and Windows pycaw.
"""

import re
import subprocess
import logging
from .constants import PYCAW_AVAILABLE, VOLUME_PLACEHOLDER
from .errors import BackendError

if PYCAW_AVAILABLE:
    from ctypes import cast, POINTER
    from comtypes import CLSCTX_ALL
    from pycaw.pycaw import AudioUtilities, IAudioEndpointVolume

logger = logging.getLogger(__name__)

VOLUME_STRING_PATTERN = re.compile(r"[0-9]{1,3}")


def parse_volume_string(volume_str, over_max_volume_max):
    """
    Verify that an absolute volume string is valid

    Args:
        volume_str (str): A 1-3 digit non-negative integer
        over_max_volume_max (int): The largest accepted level

    Returns:
        int: The parsed level

    Raises:
        ValueError: If the string is malformed or larger than over_max_volume_max
    """
    if not VOLUME_STRING_PATTERN.fullmatch(volume_str):
        raise ValueError(f"Volume string is not a 1-3 digit integer: {volume_str}")
    volume = int(volume_str)
    if volume > over_max_volume_max:
        raise ValueError(f"Volume [{volume}] cannot be larger than {over_max_volume_max}")
    return volume


class VolumeBackend:
    """Interface to the operating system volume"""

    def query_level(self):
        """Return the current system volume; raises BackendError"""
        raise NotImplementedError

    def apply_level(self, level):
        """Set the system volume; raises BackendError"""
        raise NotImplementedError


class ShellVolumeBackend(VolumeBackend):
    """Gets and sets the volume by running configurable bash commands"""

    def __init__(self, get_command, set_command, over_max_volume_max, timeout=10.0):
        """
        Initialize the shell backend

        Args:
            get_command (str): Command printing the current volume
            set_command (str): Command setting the volume; "$1" is replaced by the level
            over_max_volume_max (int): Largest level the query may return
            timeout (float): Seconds before a command is abandoned
        """
        self.get_command = get_command
        self.set_command = set_command
        self.over_max_volume_max = over_max_volume_max
        self.timeout = timeout

    def _run(self, command):
        """Run a command through bash and return its combined output"""
        try:
            result = subprocess.run(
                ["bash", "-c", command],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise BackendError(f"Failed to execute [{command}]: {e}") from e

        output = result.stdout.rstrip("\n")
        if result.returncode != 0:
            raise BackendError(f"Failed to execute [{command}] (exit status {result.returncode}): {output}")
        return output

    def query_level(self):
        output = self._run(self.get_command).strip()
        try:
            return parse_volume_string(output, self.over_max_volume_max)
        except ValueError as e:
            raise BackendError(str(e)) from e

    def apply_level(self, level):
        command = self.set_command.replace(VOLUME_PLACEHOLDER, str(level))
        output = self._run(command)
        logger.debug(f"SetVolume executed: {output}")


class PycawVolumeBackend(VolumeBackend):
    """Windows master volume through the Core Audio endpoint"""

    def __init__(self):
        if not PYCAW_AVAILABLE:
            raise BackendError("pycaw is not available on this system")
        self.volume = None
        self._initialize_audio()

    def _initialize_audio(self):
        """Initialize audio interface"""
        try:
            # Get default audio device
            devices = AudioUtilities.GetSpeakers()
            interface = devices.Activate(
                IAudioEndpointVolume._iid_,
                CLSCTX_ALL,
                None
            )
            self.volume = cast(interface, POINTER(IAudioEndpointVolume))
            logger.info("Windows audio endpoint initialized")
        except Exception as e:
            raise BackendError(f"Failed to initialize audio interface: {e}") from e

    def query_level(self):
        try:
            return int(round(self.volume.GetMasterVolumeLevelScalar() * 100))
        except Exception as e:
            raise BackendError(f"Error getting volume: {e}") from e

    def apply_level(self, level):
        if level > 100:
            logger.warning(f"Volume {level}% exceeds the endpoint range, applying 100%")
            level = 100
        try:
            # Convert percentage to scalar (0.0 - 1.0)
            self.volume.SetMasterVolumeLevelScalar(level / 100.0, None)
        except Exception as e:
            raise BackendError(f"Error setting volume: {e}") from e


def create_backend(settings):
    """
    Create the backend named by settings.backend

    Args:
        settings (VolumeSettings): Resolved volume settings

    Returns:
        VolumeBackend: pycaw backend when requested and usable, shell backend otherwise
    """
    if settings.backend == "pycaw":
        try:
            return PycawVolumeBackend()
        except BackendError as e:
            logger.error(f"Falling back to shell volume backend: {e}")

    return ShellVolumeBackend(
        settings.get_volume_command,
        settings.set_volume_command,
        settings.over_max_volume_max,
    )
