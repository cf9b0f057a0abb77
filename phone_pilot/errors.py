"""Exception types raised at the collaborator seams."""


class PhonePilotError(Exception):
    """Base class for phone_pilot errors."""


class CaptureUnavailableError(PhonePilotError):
    """The screen capture resource could not be acquired."""


class ModelRequestError(PhonePilotError):
    """The model gateway failed to produce a usable reply."""


class DeviceUnavailableError(PhonePilotError):
    """The device control surface is not connected."""
