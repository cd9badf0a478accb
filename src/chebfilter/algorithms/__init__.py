"""Numerical algorithms module.

This module contains implementations of:
- Chebyshev polynomial filter with per-vector adaptive degree
- Degree-schedule cursor and ping-pong buffer roles
- Linear-algebra backends (collective Hermitian multiply, diagonal ops)
- Non-finite value diagnostics and filter configuration
- Closed-form filter response on eigenvalues
- Problem generation utilities with controlled spectra
"""

from chebfilter.algorithms.diagnostics import (
    Checkpoint,
    FilterConfig,
    NonFinitePolicy,
    check_nonfinite,
    find_nonfinite,
)
from chebfilter.algorithms.filter import (
    ChebyshevFilter,
    FilterResult,
    FilterStep,
    chebyshev_filter,
)
from chebfilter.algorithms.linalg import (
    DistributedLinearAlgebra,
    NumpyLinearAlgebra,
    Triangle,
    create_backend,
)
from chebfilter.algorithms.matrices import (
    DEFAULT_SEED,
    FilterProblem,
    MatrixFingerprint,
    compute_fingerprint,
    create_filter_problem,
    create_hermitian_matrix,
    create_vector_block,
)
from chebfilter.algorithms.schedule import (
    BufferRole,
    DegreeCursor,
    validate_schedule,
)
from chebfilter.algorithms.spectral import (
    filter_response,
    recurrence_response,
    unwanted_bound,
)

__all__ = [
    # Filter
    "ChebyshevFilter",
    "FilterResult",
    "FilterStep",
    "chebyshev_filter",
    # Schedule bookkeeping
    "BufferRole",
    "DegreeCursor",
    "validate_schedule",
    # Backends
    "DistributedLinearAlgebra",
    "NumpyLinearAlgebra",
    "Triangle",
    "create_backend",
    # Diagnostics
    "Checkpoint",
    "FilterConfig",
    "NonFinitePolicy",
    "check_nonfinite",
    "find_nonfinite",
    # Spectral response
    "filter_response",
    "recurrence_response",
    "unwanted_bound",
    # Problem generation
    "DEFAULT_SEED",
    "FilterProblem",
    "MatrixFingerprint",
    "compute_fingerprint",
    "create_filter_problem",
    "create_hermitian_matrix",
    "create_vector_block",
]
