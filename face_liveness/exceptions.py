class LivenessError(Exception):
    """Base exception for the liveness gate."""


class CameraError(LivenessError):
    """Raised when the frame source cannot be opened or read."""


class DetectorUnavailableError(LivenessError):
    """Raised when the landmark/descriptor models cannot be loaded or used."""


class LandmarkError(LivenessError, ValueError):
    """Raised when landmark input does not follow the 68-point layout."""


class DimensionMismatchError(LivenessError, ValueError):
    """Raised when two face descriptors of different lengths are compared."""


class CredentialNotFoundError(LivenessError, KeyError):
    """Raised when no descriptor is stored for the claimed identity."""
