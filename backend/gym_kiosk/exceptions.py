"""Domain errors raised by the face-matching and kiosk services."""


class InvalidEmbeddingError(ValueError):
    """Raised when a face vector cannot be stored or compared."""


class EmbeddingDimensionError(InvalidEmbeddingError):
    """Raised when two face vectors that must be compared differ in length."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Embedding length mismatch: expected {expected}, got {actual}"
        )


class NonFiniteEmbeddingError(InvalidEmbeddingError):
    """Raised when a face vector holds NaN or infinite values."""

    def __init__(self):
        super().__init__("Embedding contains NaN or infinite values")


class ModelsNotReadyError(RuntimeError):
    """Raised when the face detector is used before its models finished loading."""


class CameraError(RuntimeError):
    """Raised when the kiosk camera cannot be opened or read."""
