"""Filter configuration and the non-finite value instrumentation hook.

The non-finite scan is a last-resort integrity check for catastrophic
numerical corruption. It is off by default. When enabled it computes the
entrywise 1-norm of the operator and both vector blocks before and after the
first multiply; a NaN or Inf norm means the buffer is corrupted.

Policies:
- OFF: no scan.
- RAISE: raise NonFiniteValueError so a host application can recover.
- ABORT: terminate the whole job through the backend.

Environment overrides (read by FilterConfig.from_env):
- CHEBFILTER_NONFINITE: off | raise | abort
- CHEBFILTER_UPLO: lower | upper
"""

from __future__ import annotations

import logging
import math
import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from chebfilter.algorithms.linalg import Triangle
from chebfilter.errors import NonFiniteValueError

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from chebfilter.algorithms.linalg import DistributedLinearAlgebra

logger = logging.getLogger(__name__)

NONFINITE_ENV_VAR = "CHEBFILTER_NONFINITE"
UPLO_ENV_VAR = "CHEBFILTER_UPLO"


class NonFinitePolicy(Enum):
    """Reaction to non-finite values found by the diagnostic scan."""

    OFF = "off"
    RAISE = "raise"
    ABORT = "abort"


class Checkpoint(Enum):
    """Points in the filter where the diagnostic scan runs."""

    BEFORE_FIRST_MULTIPLY = "before the first multiply"
    AFTER_FIRST_MULTIPLY = "after the first multiply"


@dataclass(frozen=True, slots=True)
class FilterConfig:
    """Configuration for a filter invocation.

    With a policy other than OFF the scan covers all of A, V and W before the
    first multiply, so W must be initialized (e.g. np.zeros, not np.empty).
    Uninitialized memory may hold NaN and is reported as corruption.
    """

    nonfinite_policy: NonFinitePolicy = NonFinitePolicy.OFF
    """Diagnostic scan policy (default off)."""

    uplo: Triangle = Triangle.LOWER
    """Triangle of the operator referenced by the multiply."""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> FilterConfig:
        """Build a configuration from environment variables.

        Unset variables keep their defaults.

        Raises:
            ValueError: If a variable holds an unknown value.
        """
        env = os.environ if environ is None else environ

        policy = NonFinitePolicy.OFF
        raw_policy = env.get(NONFINITE_ENV_VAR)
        if raw_policy:
            policy = _parse_enum(NonFinitePolicy, raw_policy, NONFINITE_ENV_VAR)

        uplo = Triangle.LOWER
        raw_uplo = env.get(UPLO_ENV_VAR)
        if raw_uplo:
            uplo = _parse_enum(Triangle, raw_uplo, UPLO_ENV_VAR)

        return cls(nonfinite_policy=policy, uplo=uplo)


def find_nonfinite(
    backend: DistributedLinearAlgebra,
    buffers: Mapping[str, NDArray],
) -> tuple[str, ...]:
    """Names of the buffers whose entrywise 1-norm is not finite."""
    return tuple(
        name
        for name, matrix in buffers.items()
        if not math.isfinite(backend.entrywise_norm(matrix, 1))
    )


def check_nonfinite(
    backend: DistributedLinearAlgebra,
    buffers: Mapping[str, NDArray],
    checkpoint: Checkpoint,
    policy: NonFinitePolicy,
    context: Mapping[str, Any] | None = None,
) -> None:
    """Run the diagnostic scan and apply ``policy`` to any corruption found.

    Args:
        backend: Backend used to compute the norms (collective).
        buffers: Named matrices to scan, e.g. {"V": V, "W": W, "A": A}.
        checkpoint: Where in the filter the scan runs.
        policy: Reaction to corrupted buffers.
        context: Extra values reported alongside the failure.

    Raises:
        NonFiniteValueError: Under the RAISE policy.
        SystemExit: Under the ABORT policy with the numpy backend.
    """
    if policy is NonFinitePolicy.OFF:
        return

    corrupted = find_nonfinite(backend, buffers)
    if not corrupted:
        return

    if backend.rank == 0:
        for name in corrupted:
            logger.error("%s contains non-finite values %s", name, checkpoint.value)
        if context:
            details = "\t".join(f"{key}: {value}" for key, value in context.items())
            logger.error("%s", details)

    if policy is NonFinitePolicy.RAISE:
        raise NonFiniteValueError(corrupted, checkpoint.value)

    backend.abort(1)


def _parse_enum(enum_cls: type[Enum], raw: str, variable: str) -> Any:
    normalized = raw.strip().lower()
    for member in enum_cls:
        if member.value == normalized:
            return member

    valid = [m.value for m in enum_cls]
    raise ValueError(f"Invalid {variable}='{raw}'. Valid: {valid}")


__all__ = [
    "Checkpoint",
    "FilterConfig",
    "NonFinitePolicy",
    "check_nonfinite",
    "find_nonfinite",
]
