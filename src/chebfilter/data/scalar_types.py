"""
Scalar Format Definitions - Single Source of Truth

This module defines the scalar types the Chebyshev filter operates on: real
symmetric operators in single/double precision and complex Hermitian
operators in single/double precision, together with their machine epsilon
and the tolerance used when comparing filtered blocks against a reference.

References:
    - IEEE 754-2019 Standard for Floating-Point Arithmetic
    - Higham: "Accuracy and Stability of Numerical Algorithms" (2nd ed.)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, cast

import numpy as np
from numpy.typing import DTypeLike


class ScalarFormat(Enum):
    """Supported scalar formats for operators and vector blocks."""

    FP64 = "fp64"
    FP32 = "fp32"
    COMPLEX128 = "complex128"  # Hermitian, double precision
    COMPLEX64 = "complex64"  # Hermitian, single precision


@dataclass(frozen=True, slots=True)
class ScalarSpec:
    """Specification for a scalar format."""

    format: ScalarFormat
    bits: int
    is_complex: bool
    machine_epsilon: float
    filter_rtol: float  # Relative tolerance against a reference filter

    @property
    def bytes(self) -> int:
        """Number of bytes per element."""
        return self.bits // 8

    @property
    def real_bits(self) -> int:
        """Bits of the underlying real component."""
        return self.bits // 2 if self.is_complex else self.bits


# =============================================================================
# SCALAR SPECIFICATIONS
# =============================================================================
# Machine epsilon: 2^(-mantissa_bits) of the real component.
# filter_rtol is loose enough for a degree ~20 recurrence on a
# well-conditioned affine map (|lambda - c| / e >= 1.5).

_SCALAR_SPECS: dict[ScalarFormat, ScalarSpec] = {
    ScalarFormat.FP64: ScalarSpec(
        format=ScalarFormat.FP64,
        bits=64,
        is_complex=False,
        machine_epsilon=2.22e-16,  # 2^(-52)
        filter_rtol=1e-10,
    ),
    ScalarFormat.FP32: ScalarSpec(
        format=ScalarFormat.FP32,
        bits=32,
        is_complex=False,
        machine_epsilon=1.19e-7,  # 2^(-23)
        filter_rtol=1e-4,
    ),
    ScalarFormat.COMPLEX128: ScalarSpec(
        format=ScalarFormat.COMPLEX128,
        bits=128,
        is_complex=True,
        machine_epsilon=2.22e-16,
        filter_rtol=1e-10,
    ),
    ScalarFormat.COMPLEX64: ScalarSpec(
        format=ScalarFormat.COMPLEX64,
        bits=64,
        is_complex=True,
        machine_epsilon=1.19e-7,
        filter_rtol=1e-4,
    ),
}


_DTYPES: dict[ScalarFormat, Any] = {
    ScalarFormat.FP64: np.float64,
    ScalarFormat.FP32: np.float32,
    ScalarFormat.COMPLEX128: np.complex128,
    ScalarFormat.COMPLEX64: np.complex64,
}


# =============================================================================
# PUBLIC API
# =============================================================================


def get_spec(fmt: ScalarFormat | str) -> ScalarSpec:
    """
    Get the full specification for a scalar format.

    Args:
        fmt: Scalar format (enum or string like 'fp64', 'FP32', 'complex128')

    Returns:
        ScalarSpec with all format properties

    Raises:
        ValueError: If format is unknown

    Example:
        >>> get_spec("complex64").real_bits
        32
    """
    if isinstance(fmt, str):
        fmt = _parse_format(fmt)
    return _SCALAR_SPECS[fmt]


def get_dtype(fmt: ScalarFormat | str) -> DTypeLike:
    """
    Get the numpy dtype for a scalar format.

    Example:
        >>> get_dtype("fp32")
        <class 'numpy.float32'>
    """
    if isinstance(fmt, str):
        fmt = _parse_format(fmt)
    return cast("DTypeLike", _DTYPES[fmt])


def get_eps(fmt: ScalarFormat | str) -> float:
    """Get machine epsilon of the real component of a scalar format."""
    return get_spec(fmt).machine_epsilon


def get_tolerance(fmt: ScalarFormat | str) -> float:
    """
    Get the relative tolerance used to compare a filtered block with a
    reference evaluation of the same polynomial.

    Example:
        >>> get_tolerance("fp64")
        1e-10
    """
    return get_spec(fmt).filter_rtol


def format_for_dtype(dtype: DTypeLike) -> ScalarFormat:
    """
    Map a numpy dtype back to its scalar format.

    Raises:
        ValueError: If the dtype is not a supported filter scalar type
    """
    resolved = np.dtype(dtype)
    for fmt, candidate in _DTYPES.items():
        if np.dtype(candidate) == resolved:
            return fmt

    valid = [f.value for f in ScalarFormat]
    raise ValueError(f"Unsupported dtype: {resolved}. Valid formats: {valid}")


def list_available_formats() -> list[ScalarFormat]:
    """List all scalar formats, real formats first."""
    return [
        ScalarFormat.FP64,
        ScalarFormat.FP32,
        ScalarFormat.COMPLEX128,
        ScalarFormat.COMPLEX64,
    ]


# =============================================================================
# INTERNAL HELPERS
# =============================================================================


def _parse_format(name: str) -> ScalarFormat:
    """Parse a string into a ScalarFormat enum."""
    normalized = name.lower().replace("-", "").replace("_", "").replace(" ", "")

    for fmt in ScalarFormat:
        if fmt.value == normalized:
            return fmt

    valid = [f.value for f in ScalarFormat]
    raise ValueError(f"Unknown scalar format: '{name}'. Valid: {valid}")
