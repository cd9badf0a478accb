"""Problem generation utilities for filter experiments.

This module provides functions for creating Hermitian (or real symmetric)
operators with a prescribed spectrum and matching blocks of starting
vectors, so filter results can be checked against the exact eigenbasis.

Key Features:
- Reproducible generation with seed control
- Real symmetric and complex Hermitian operators in single/double precision
- Filter problems with a wanted cluster below the unwanted interval
- Matrix fingerprinting for experiment verification

References:
- Golub & Van Loan: "Matrix Computations" (4th ed.), Section 8.1
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from chebfilter.data.scalar_types import ScalarFormat, get_dtype, get_spec

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


DEFAULT_SEED: int = 42
"""Default random seed for reproducible experiments."""


@dataclass(frozen=True, slots=True)
class MatrixFingerprint:
    """Fingerprint for operator identification and verification.

    Used to verify that different runs use identical operators.
    """

    eigenvalue_signature: tuple[float, ...]
    """Lowest eigenvalues (sorted ascending)."""

    matrix_size: int
    """Matrix dimension n."""

    frobenius_norm: float
    """||A||_F for additional verification."""

    hermitian_defect: float
    """||A - A^H||_F, zero up to rounding for a valid operator."""

    seed: int
    """Random seed used for generation."""

    scalar_format: str
    """Scalar format name ('fp64', 'complex128', ...)."""

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "eigenvalue_signature": list(self.eigenvalue_signature),
            "matrix_size": self.matrix_size,
            "frobenius_norm": self.frobenius_norm,
            "hermitian_defect": self.hermitian_defect,
            "random_seed": self.seed,
            "scalar_format": self.scalar_format,
        }


def _random_unitary(
    n: int, rng: np.random.Generator, *, complex_valued: bool
) -> NDArray:
    """Random orthogonal (or unitary) matrix via QR decomposition."""
    Z = rng.standard_normal((n, n))
    if complex_valued:
        Z = Z + 1j * rng.standard_normal((n, n))
    Q, _ = np.linalg.qr(Z)
    return Q


def create_hermitian_matrix(
    eigenvalues: ArrayLike,
    *,
    fmt: ScalarFormat | str = ScalarFormat.FP64,
    seed: int | None = None,
) -> tuple[NDArray, NDArray]:
    """Create a Hermitian matrix with the given eigenvalues.

    Mathematical Construction:
        A = Q @ diag(t) @ Q^H  where Q is random orthogonal (real formats)
        or random unitary (complex formats)

    The product is formed in double precision and symmetrized before the
    cast to the target format.

    Args:
        eigenvalues: Desired spectrum t (length n).
        fmt: Scalar format of the returned matrix.
        seed: Random seed for reproducibility.

    Returns:
        (A, Q): n×n operator and its eigenvectors (double precision).

    Example:
        >>> A, Q = create_hermitian_matrix([1.0, 2.0, 3.0], seed=42)
        >>> np.allclose(np.linalg.eigvalsh(A), [1.0, 2.0, 3.0])
        True
    """
    spec = get_spec(fmt)
    rng = np.random.default_rng(seed)

    t = np.asarray(eigenvalues, dtype=np.float64)
    Q = _random_unitary(t.size, rng, complex_valued=spec.is_complex)

    A = (Q * t) @ Q.conj().T
    A = (A + A.conj().T) / 2

    return A.astype(get_dtype(spec.format)), Q


def create_vector_block(
    n: int,
    m: int,
    *,
    fmt: ScalarFormat | str = ScalarFormat.FP64,
    seed: int | None = None,
) -> NDArray:
    """Create an n×m block of random starting vectors with unit columns.

    The block is Fortran-ordered so column views are contiguous.
    """
    spec = get_spec(fmt)
    rng = np.random.default_rng(seed)

    block = rng.standard_normal((n, m))
    if spec.is_complex:
        block = block + 1j * rng.standard_normal((n, m))

    norms = np.linalg.norm(block, axis=0)
    norms[norms == 0] = 1.0
    block = block / norms

    return np.asfortranarray(block.astype(get_dtype(spec.format)))


def compute_fingerprint(
    matrix: NDArray,
    *,
    num_eigenvalues: int = 5,
    seed: int = DEFAULT_SEED,
    fmt: ScalarFormat | str = ScalarFormat.FP64,
) -> MatrixFingerprint:
    """Compute fingerprint for operator identification.

    Args:
        matrix: Input matrix.
        num_eigenvalues: Number of lowest eigenvalues to include.
        seed: Random seed used for generation.
        fmt: Scalar format of the matrix.

    Returns:
        MatrixFingerprint for verification.
    """
    reference = matrix.astype(np.complex128 if np.iscomplexobj(matrix) else np.float64)
    eigenvalues = np.linalg.eigvalsh(reference)

    return MatrixFingerprint(
        eigenvalue_signature=tuple(eigenvalues[:num_eigenvalues].tolist()),
        matrix_size=int(matrix.shape[0]),
        frobenius_norm=float(np.linalg.norm(reference, "fro")),
        hermitian_defect=float(np.linalg.norm(reference - reference.conj().T, "fro")),
        seed=seed,
        scalar_format=get_spec(fmt).format.value,
    )


@dataclass(frozen=True, slots=True)
class FilterProblem:
    """Operator, starting vectors and filter interval with metadata."""

    matrix: NDArray
    """The n×n Hermitian operator."""

    vectors: NDArray
    """n×width block of unit starting vectors."""

    eigenvalues: NDArray[np.float64]
    """Exact spectrum, ascending."""

    eigenvectors: NDArray
    """Exact eigenvectors (columns, double precision)."""

    lower: float
    """Lower bound of the unwanted interval (first unwanted eigenvalue)."""

    upper: float
    """Upper bound of the unwanted interval (largest eigenvalue)."""

    lambda_: float
    """Smallest eigenvalue, where the filter is normalized to 1."""

    fingerprint: MatrixFingerprint
    """Operator fingerprint for verification."""


def create_filter_problem(
    n: int,
    width: int,
    *,
    wanted: int | None = None,
    spectrum: tuple[float, float] = (0.0, 10.0),
    fmt: ScalarFormat | str = ScalarFormat.FP64,
    seed: int = DEFAULT_SEED,
) -> FilterProblem:
    """Create a filter problem with a wanted cluster at the low end.

    Eigenvalues are linearly spaced over ``spectrum``. The lowest ``wanted``
    eigenvalues are wanted; the unwanted interval runs from the next
    eigenvalue to the largest, and lambda_ is the smallest eigenvalue.

    Args:
        n: Matrix dimension.
        width: Number of starting vectors.
        wanted: Size of the wanted cluster (default: width).
        spectrum: (smallest, largest) eigenvalue.
        fmt: Scalar format of the operator and vectors.
        seed: Random seed (default: 42 for reproducibility).

    Returns:
        FilterProblem with operator, vectors, exact eigenpairs and interval.

    Example:
        >>> problem = create_filter_problem(100, 4, seed=42)
        >>> problem.lambda_ < problem.lower < problem.upper
        True
    """
    if wanted is None:
        wanted = width
    if not 1 <= wanted < n:
        msg = f"wanted must satisfy 1 <= wanted < n, got wanted={wanted}, n={n}"
        raise ValueError(msg)

    eigenvalues = np.linspace(spectrum[0], spectrum[1], n)
    matrix, eigenvectors = create_hermitian_matrix(eigenvalues, fmt=fmt, seed=seed)

    # Vectors come from a stream derived from the seed, independent of Q
    vectors = create_vector_block(n, width, fmt=fmt, seed=seed + 1)

    fingerprint = compute_fingerprint(matrix, seed=seed, fmt=fmt)

    return FilterProblem(
        matrix=matrix,
        vectors=vectors,
        eigenvalues=eigenvalues,
        eigenvectors=eigenvectors,
        lower=float(eigenvalues[wanted]),
        upper=float(eigenvalues[-1]),
        lambda_=float(eigenvalues[0]),
        fingerprint=fingerprint,
    )


__all__ = [
    "DEFAULT_SEED",
    "FilterProblem",
    "MatrixFingerprint",
    "compute_fingerprint",
    "create_filter_problem",
    "create_hermitian_matrix",
    "create_vector_block",
]
