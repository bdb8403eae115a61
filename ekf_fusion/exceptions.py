"""
Exceptions raised by the sensor fusion estimator.
"""


class FusionError(Exception):
    """Base class for all estimator errors."""


class MeasurementShapeError(FusionError, ValueError):
    """Raw measurement vector does not match the declared sensor type."""


class NumericalDegeneracyError(FusionError, ArithmeticError):
    """An update would divide by (near) zero or produce a non-finite state."""


class BackwardTimeError(FusionError, ValueError):
    """Measurement timestamp is earlier than the previously processed one."""

    def __init__(self, timestamp: int, previous_timestamp: int):
        self.timestamp = timestamp
        self.previous_timestamp = previous_timestamp
        super().__init__(
            f"Timestamp {timestamp} is not after previous timestamp {previous_timestamp}"
        )
