"""Closed-form response of the scaled Chebyshev filter on eigenvalues.

For a Hermitian A = Q diag(t) Q^H, filtering to degree k multiplies the
component along each eigenvector by

    p_k(t) = C_k((t - c) / e) / C_k((lambda_ - c) / e)

with c, e the center and half-width of the unwanted interval. On that
interval |p_k| <= 1 / |C_k((lambda_ - c) / e)|, while p_k(lambda_) = 1.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from numpy.polynomial import chebyshev

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


def _affine(lower: float, upper: float) -> tuple[float, float]:
    return (upper + lower) / 2, (upper - lower) / 2


def filter_response(
    eigenvalues: ArrayLike,
    degree: int,
    lambda_: float,
    lower: float,
    upper: float,
) -> NDArray[np.float64]:
    """Scaled Chebyshev polynomial p_degree evaluated at ``eigenvalues``.

    Args:
        eigenvalues: Points t at which to evaluate.
        degree: Polynomial degree (0 gives ones).
        lambda_: Normalization point, p(lambda_) = 1.
        lower: Lower bound of the unwanted interval.
        upper: Upper bound of the unwanted interval.

    Returns:
        Array of p_degree(t), same shape as ``eigenvalues``.
    """
    t = np.asarray(eigenvalues, dtype=np.float64)
    c, e = _affine(lower, upper)
    coefficients = np.zeros(degree + 1)
    coefficients[-1] = 1.0

    numerator = chebyshev.chebval((t - c) / e, coefficients)
    denominator = chebyshev.chebval((lambda_ - c) / e, coefficients)
    return numerator / denominator


def recurrence_response(
    eigenvalues: ArrayLike,
    degree: int,
    lambda_: float,
    lower: float,
    upper: float,
) -> NDArray[np.float64]:
    """Same polynomial as filter_response, via the filter's scaled recurrence.

    Uses the sigma sequence of the filter, so it stays bounded for large
    degree where the unscaled C_k overflows.
    """
    t = np.asarray(eigenvalues, dtype=np.float64)
    c, e = _affine(lower, upper)

    previous = np.ones_like(t)
    if degree == 0:
        return previous

    sigma_scale = e / (lambda_ - c)
    sigma = sigma_scale
    current = (sigma_scale / e) * (t - c)

    for _ in range(2, degree + 1):
        sigma_new = 1.0 / (2.0 / sigma_scale - sigma)
        alpha = 2.0 * sigma_new / e
        beta = -sigma * sigma_new
        previous, current = current, alpha * (t - c) * current + beta * previous
        sigma = sigma_new

    return current


def unwanted_bound(degree: int, lambda_: float, lower: float, upper: float) -> float:
    """Largest |p_degree(t)| over the unwanted interval [lower, upper].

    Equals 1 / |C_degree((lambda_ - c) / e)| since |C_k| <= 1 on [-1, 1].
    """
    c, e = _affine(lower, upper)
    x0 = (lambda_ - c) / e
    if abs(x0) <= 1.0:
        # lambda_ inside the unwanted interval: nothing is damped
        value = abs(float(np.cos(degree * np.arccos(x0))))
        return float("inf") if value == 0.0 else 1.0 / value
    return 1.0 / float(np.cosh(degree * np.arccosh(abs(x0))))


__all__ = [
    "filter_response",
    "recurrence_response",
    "unwanted_bound",
]
