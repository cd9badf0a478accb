"""Distributed linear-algebra collaborator used by the Chebyshev filter.

The filter never touches matrix storage directly. Every operation it needs
(Hermitian multiply, diagonal get/set/shift, entrywise norm, column views)
goes through a DistributedLinearAlgebra backend, so a process-grid
implementation can be swapped in without changing the recurrence.

Each backend call is collective: on a multi-process grid every process must
issue the same calls in the same order with matching shapes.

NumpyLinearAlgebra is the in-process backend (a process grid of one). Column
views are numpy slices, so they alias the parent storage without copying.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np

from chebfilter.errors import PreconditionError

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)


class Triangle(Enum):
    """Triangle of a Hermitian matrix referenced by the multiply."""

    LOWER = "lower"
    UPPER = "upper"


class DistributedLinearAlgebra(ABC):
    """Abstract base class for linear-algebra backends.

    All backend implementations must provide the collective operations
    below. Matrices are passed as opaque handles; for the numpy backend
    they are plain ndarrays.
    """

    @property
    @abstractmethod
    def rank(self) -> int:
        """Rank of the calling process within the grid."""

    @property
    @abstractmethod
    def size(self) -> int:
        """Number of processes in the grid."""

    @abstractmethod
    def hemm(
        self,
        alpha: complex | float,
        A: NDArray,
        B: NDArray,
        beta: complex | float,
        C: NDArray,
        uplo: Triangle = Triangle.LOWER,
    ) -> None:
        """In-place Hermitian multiply ``C <- alpha * A @ B + beta * C``.

        Only the ``uplo`` triangle of A is referenced. When beta is zero the
        previous contents of C are not read.
        """

    @abstractmethod
    def get_diagonal(self, A: NDArray) -> NDArray:
        """Return a copy of the diagonal of A."""

    @abstractmethod
    def set_diagonal(self, A: NDArray, values: NDArray) -> None:
        """Overwrite the diagonal of A with ``values``."""

    @abstractmethod
    def shift_diagonal(self, A: NDArray, shift: float) -> None:
        """In-place ``A <- A + shift * I``."""

    @abstractmethod
    def entrywise_norm(self, M: NDArray, p: float = 1) -> float:
        """Entrywise p-norm of M (NaN propagates, Inf gives Inf)."""

    @abstractmethod
    def view(self, M: NDArray, start: int, width: int) -> NDArray:
        """Non-owning view of columns ``[start, start + width)`` of M."""

    @abstractmethod
    def copy(self, src: NDArray, dst: NDArray) -> None:
        """Copy ``src`` into ``dst`` (same shape)."""

    @abstractmethod
    def abort(self, code: int = 1) -> None:
        """Terminate the whole job. Does not return."""

    def assert_valid_submatrix(
        self, M: NDArray, i: int, j: int, height: int, width: int, *, name: str = "M"
    ) -> None:
        """Raise PreconditionError unless ``M[i:i+height, j:j+width]`` is in range."""
        rows, cols = M.shape
        if i < 0 or j < 0 or height < 0 or width < 0:
            raise PreconditionError(
                f"Submatrix of {name} has negative offset or extent: "
                f"(i={i}, j={j}, height={height}, width={width})"
            )
        if i + height > rows or j + width > cols:
            raise PreconditionError(
                f"Submatrix ({i}:{i + height}, {j}:{j + width}) is out of range "
                f"for {name} of shape {rows}x{cols}"
            )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(rank={self.rank}, size={self.size})"


class NumpyLinearAlgebra(DistributedLinearAlgebra):
    """Single-process backend built on numpy.

    Example:
        >>> backend = NumpyLinearAlgebra()
        >>> A = np.diag([1.0, 2.0])
        >>> C = np.zeros((2, 1))
        >>> backend.hemm(1.0, A, np.ones((2, 1)), 0.0, C)
        >>> C.ravel().tolist()
        [1.0, 2.0]
    """

    @property
    def rank(self) -> int:
        return 0

    @property
    def size(self) -> int:
        return 1

    def hemm(
        self,
        alpha: complex | float,
        A: NDArray,
        B: NDArray,
        beta: complex | float,
        C: NDArray,
        uplo: Triangle = Triangle.LOWER,
    ) -> None:
        """Hermitian multiply through a full matrix rebuilt from one triangle.

        numpy has no triangle-aware multiply, so every call allocates an N x N
        temporary. Nothing is cached, so in-place changes to A (such as a
        diagonal shift) are seen by the next call.
        """
        if B.shape != C.shape or A.shape[1] != B.shape[0]:
            raise PreconditionError(
                f"hemm shape mismatch: A {A.shape}, B {B.shape}, C {C.shape}"
            )

        product = _hermitian_from_triangle(A, uplo) @ B

        if beta == 0:
            C[...] = alpha * product
        else:
            C *= beta
            C += alpha * product

    def get_diagonal(self, A: NDArray) -> NDArray:
        return np.diagonal(A).copy()

    def set_diagonal(self, A: NDArray, values: NDArray) -> None:
        A[np.diag_indices_from(A)] = values

    def shift_diagonal(self, A: NDArray, shift: float) -> None:
        A[np.diag_indices_from(A)] += shift

    def entrywise_norm(self, M: NDArray, p: float = 1) -> float:
        if M.size == 0:
            return 0.0
        magnitudes = np.abs(M)
        if p == 1:
            return float(magnitudes.sum())
        return float(np.sum(magnitudes**p) ** (1.0 / p))

    def view(self, M: NDArray, start: int, width: int) -> NDArray:
        return M[:, start : start + width]

    def copy(self, src: NDArray, dst: NDArray) -> None:
        dst[...] = src

    def abort(self, code: int = 1) -> None:
        logger.critical("Aborting job with exit code %d", code)
        raise SystemExit(code)


def _hermitian_from_triangle(A: NDArray, uplo: Triangle) -> NDArray:
    """Full Hermitian matrix using only the ``uplo`` triangle of A."""
    if uplo is Triangle.LOWER:
        strict = np.tril(A, -1)
        return np.tril(A) + strict.conj().T
    strict = np.triu(A, 1)
    return np.triu(A) + strict.conj().T


def create_backend(name: str = "numpy") -> DistributedLinearAlgebra:
    """Factory function for linear-algebra backends.

    Args:
        name: Backend name. Only 'numpy' is available in-process.

    Returns:
        Configured backend instance.
    """
    backends: dict[str, type[DistributedLinearAlgebra]] = {
        "numpy": NumpyLinearAlgebra,
    }

    if name not in backends:
        valid = list(backends.keys())
        raise ValueError(f"Unknown backend: {name}. Valid: {valid}")

    return backends[name]()


__all__ = [
    "DistributedLinearAlgebra",
    "NumpyLinearAlgebra",
    "Triangle",
    "create_backend",
]
