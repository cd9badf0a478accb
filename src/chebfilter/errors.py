"""Exception types raised by the filter and its diagnostics."""

from __future__ import annotations


class PreconditionError(ValueError):
    """Raised when filter inputs violate a documented precondition.

    Raised before the operator or either vector block is modified.
    """


class NonFiniteValueError(FloatingPointError):
    """Raised by the non-finite diagnostic when a buffer holds NaN or Inf."""

    def __init__(self, buffers: tuple[str, ...], checkpoint: str) -> None:
        self.buffers = buffers
        self.checkpoint = checkpoint
        names = ", ".join(buffers)
        super().__init__(f"Non-finite values in {names} {checkpoint}")


__all__ = [
    "NonFiniteValueError",
    "PreconditionError",
]
