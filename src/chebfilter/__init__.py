"""chebfilter: Chebyshev polynomial filtering for subspace-iteration eigensolvers."""

__version__ = "0.1.0"

from chebfilter.algorithms.diagnostics import FilterConfig, NonFinitePolicy
from chebfilter.algorithms.filter import (
    ChebyshevFilter,
    FilterResult,
    chebyshev_filter,
)
from chebfilter.algorithms.linalg import Triangle
from chebfilter.errors import NonFiniteValueError, PreconditionError

__all__ = [
    "__version__",
    "ChebyshevFilter",
    "FilterConfig",
    "FilterResult",
    "NonFinitePolicy",
    "NonFiniteValueError",
    "PreconditionError",
    "Triangle",
    "chebyshev_filter",
]
