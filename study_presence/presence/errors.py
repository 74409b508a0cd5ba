"""Exceptions raised by presence collaborators.

None of these escape the component boundary: the capture manager turns
capture errors into ``camera_error`` strings, playback errors are logged.
"""

CAMERA_API_UNAVAILABLE = "Camera API not available in this environment."
CAMERA_ACCESS_FAILED = "Unable to access camera. Check permissions and try again."


class PresenceError(Exception):
    """Base class for study presence errors."""


class CaptureError(PresenceError):
    """Video capture device could not be acquired."""


class CaptureUnavailableError(CaptureError):
    """No device matched the requested constraints."""


class CapturePermissionError(CaptureError):
    """The operating system refused access to the device."""


class PlaybackError(PresenceError):
    """A render surface could not start playback."""
