from __future__ import annotations


class QismelError(Exception):
    """Base class for errors raised by the qismel core."""


class ConfigError(QismelError):
    """Invalid configuration: empty action set, bad shape parameters, bad settings."""


class ShapeMismatch(QismelError):
    """Binary tensor operation on incompatible shapes."""

    def __init__(self, message: str, left=None, right=None) -> None:
        super().__init__(message)
        self.left = tuple(left) if left is not None else None
        self.right = tuple(right) if right is not None else None


class TensorIndexError(QismelError, IndexError):
    """Coordinate access with the wrong arity or an out-of-range component."""


class DegenerateRangeError(QismelError):
    """Normalization requested on a tensor whose max equals its min."""


class FrozenTensorError(QismelError):
    """Write attempted on a read-only tensor buffer."""


class SignalError(QismelError):
    """A signal provider raised or returned a non-numeric value."""

    def __init__(self, signal: str, message: str) -> None:
        super().__init__(f"{signal}: {message}")
        self.signal = signal
