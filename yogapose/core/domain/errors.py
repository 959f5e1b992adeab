"""
Collector Errors

Recoverable failures raised by the collection services. None of them end the
session; the API layer turns them into user-visible messages.
"""


class CollectorError(Exception):
    """Base class for all collector errors."""


class DetectorUnavailable(CollectorError):
    """The pose model is not loaded yet."""

    def __init__(self, message: str = "Pose model is not loaded yet"):
        super().__init__(message)


class SourceAcquisitionFailed(CollectorError):
    """A camera could not be opened or an uploaded file could not be decoded."""


class NoActiveSource(CollectorError):
    """An action needed an active source of a specific kind."""


class UnknownPoseLabel(CollectorError):
    """A label outside the closed PoseLabel set was used."""

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"Unknown pose label: {label!r}")


class InvalidCapture(CollectorError):
    """Capture attempted with a feature vector of the wrong length."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            "Keypoints not ready or pose detection failed. "
            f"Expected {expected} features, got {actual}."
        )


class EmptyExport(CollectorError):
    """Export attempted before any sample was captured."""

    def __init__(self, message: str = "No data collected yet!"):
        super().__init__(message)
