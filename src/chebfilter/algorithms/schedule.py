"""Degree-schedule bookkeeping for the Chebyshev filter.

The filter keeps two pieces of state apart from the recurrence scalars:

- DegreeCursor: a merge-style scan over the ascending per-vector degrees.
  After the multiply for degree ``i`` it reports how many leading vectors
  just reached their target degree, so the active column range can shrink.
- BufferRole: which of the two vector blocks is read and which is written
  in the current step. The role swaps after every multiply.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum

from chebfilter.errors import PreconditionError


class BufferRole(Enum):
    """Source/destination assignment of the V and W ping-pong buffers."""

    SOURCE_IS_V = "V->W"
    SOURCE_IS_W = "W->V"

    @classmethod
    def for_degree(cls, degree: int) -> BufferRole:
        """Role of the multiply that produces the given degree.

        Odd degrees are written into W, even degrees into V.
        """
        return cls.SOURCE_IS_V if degree % 2 == 1 else cls.SOURCE_IS_W

    def swapped(self) -> BufferRole:
        """Role of the following step."""
        if self is BufferRole.SOURCE_IS_V:
            return BufferRole.SOURCE_IS_W
        return BufferRole.SOURCE_IS_V

    @property
    def source(self) -> str:
        """Name of the buffer read in this step."""
        return "V" if self is BufferRole.SOURCE_IS_V else "W"

    @property
    def destination(self) -> str:
        """Name of the buffer written in this step."""
        return "W" if self is BufferRole.SOURCE_IS_V else "V"


class DegreeCursor:
    """Cursor into an ascending schedule of per-vector degrees.

    Example:
        >>> cursor = DegreeCursor([1, 1, 3])
        >>> cursor.deflating(1)
        2
        >>> cursor.deflating(2)
        0
        >>> cursor.deflating(3), cursor.exhausted
        (1, True)
    """

    __slots__ = ("_degrees", "_position")

    def __init__(self, degrees: Sequence[int]) -> None:
        validate_schedule(degrees)
        self._degrees = tuple(int(d) for d in degrees)
        self._position = 0

    @property
    def position(self) -> int:
        """Number of vectors already deflated."""
        return self._position

    @property
    def remaining(self) -> int:
        """Number of vectors still waiting for their target degree."""
        return len(self._degrees) - self._position

    @property
    def exhausted(self) -> bool:
        return self._position == len(self._degrees)

    @property
    def max_degree(self) -> int:
        """Largest scheduled degree (0 for an empty schedule)."""
        return self._degrees[-1] if self._degrees else 0

    def deflating(self, degree: int) -> int:
        """Count and skip the vectors whose target degree is ``degree``."""
        first = self._position
        while (
            self._position < len(self._degrees)
            and self._degrees[self._position] == degree
        ):
            self._position += 1
        return self._position - first

    def __len__(self) -> int:
        return len(self._degrees)

    def __repr__(self) -> str:
        return f"DegreeCursor(position={self._position}, degrees={list(self._degrees)})"


def validate_schedule(degrees: Sequence[int]) -> None:
    """Raise PreconditionError unless the schedule is positive and ascending."""
    for k, degree in enumerate(degrees):
        if degree < 1:
            raise PreconditionError(
                f"Degree schedule must be positive: degrees[{k}] = {degree}"
            )
        if k > 0 and degree < degrees[k - 1]:
            raise PreconditionError(
                "Degree schedule must be sorted ascending: "
                f"degrees[{k - 1}] = {degrees[k - 1]} > degrees[{k}] = {degree}"
            )


__all__ = [
    "BufferRole",
    "DegreeCursor",
    "validate_schedule",
]
