"""Exception hierarchy shared across the photobooth package."""


class PhotoboothError(RuntimeError):
    """Base class for all photobooth errors."""


class ConfigurationError(PhotoboothError):
    """Raised when layout constants are invalid (a programming defect)."""


class PersistenceError(PhotoboothError):
    """Raised when configuration could not be written to storage."""


class DecodeError(PhotoboothError):
    """Raised when an optional image (e.g. a background) cannot be decoded."""


class CompositionError(PhotoboothError):
    """Raised when a required photo cannot be composed into the collage."""


class CapacityError(PhotoboothError):
    """Raised when the background gallery is already full."""


class CameraError(PhotoboothError):
    """Base class for camera source failures."""


class StartError(CameraError):
    """Raised when the camera device or permission is unavailable."""


class CaptureError(CameraError):
    """Raised when a single frame could not be captured."""


__all__ = [
    "PhotoboothError",
    "ConfigurationError",
    "PersistenceError",
    "DecodeError",
    "CompositionError",
    "CapacityError",
    "CameraError",
    "StartError",
    "CaptureError",
]
