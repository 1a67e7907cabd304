"""
Exceptions

Errors raised when a recording session cannot be started.
"""


class CaptureError(Exception):
    """Base class for audio capture failures."""


class DeviceUnavailable(CaptureError):
    """The audio input device could not be initialized."""


class PermissionDenied(CaptureError):
    """Microphone access was refused by the platform."""
