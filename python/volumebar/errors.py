"""
Exceptions raised by the volume controller and its backends.
"""


class VolumeBarError(Exception):
    """Base class for volume bar errors"""


class MalformedRequestError(VolumeBarError):
    """A volume request did not match the grammar or was out of range"""


class BackendError(VolumeBarError):
    """The system volume could not be queried or applied"""
