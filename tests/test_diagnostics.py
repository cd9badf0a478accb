"""Tests for filter configuration and the non-finite diagnostic."""

import logging

import numpy as np
import pytest

from chebfilter.algorithms.diagnostics import (
    Checkpoint,
    FilterConfig,
    NonFinitePolicy,
    check_nonfinite,
    find_nonfinite,
)
from chebfilter.algorithms.filter import chebyshev_filter
from chebfilter.algorithms.linalg import NumpyLinearAlgebra, Triangle
from chebfilter.algorithms.matrices import create_filter_problem
from chebfilter.errors import NonFiniteValueError


class CorruptingBackend(NumpyLinearAlgebra):
    """Backend whose first multiply writes a NaN into its output."""

    def __init__(self) -> None:
        self.calls = 0

    def hemm(self, alpha, A, B, beta, C, uplo=Triangle.LOWER) -> None:
        super().hemm(alpha, A, B, beta, C, uplo)
        if self.calls == 0 and C.size:
            C[0, 0] = np.nan
        self.calls += 1


class TestFilterConfig:
    """Tests for FilterConfig."""

    def test_defaults(self) -> None:
        """Diagnostics are off and the lower triangle is used by default."""
        config = FilterConfig()
        assert config.nonfinite_policy is NonFinitePolicy.OFF
        assert config.uplo is Triangle.LOWER

    def test_immutable(self) -> None:
        """FilterConfig should be immutable."""
        config = FilterConfig()
        with pytest.raises(AttributeError):
            config.uplo = Triangle.UPPER  # type: ignore[misc]

    def test_from_env(self) -> None:
        """Environment variables override the defaults."""
        config = FilterConfig.from_env(
            {"CHEBFILTER_NONFINITE": "Abort", "CHEBFILTER_UPLO": "upper"}
        )
        assert config.nonfinite_policy is NonFinitePolicy.ABORT
        assert config.uplo is Triangle.UPPER

    def test_from_env_unset(self) -> None:
        """Missing variables keep the defaults."""
        assert FilterConfig.from_env({}) == FilterConfig()

    def test_from_process_environment(self, monkeypatch) -> None:
        """Without a mapping the process environment is read."""
        monkeypatch.setenv("CHEBFILTER_NONFINITE", "raise")
        monkeypatch.delenv("CHEBFILTER_UPLO", raising=False)
        assert FilterConfig.from_env().nonfinite_policy is NonFinitePolicy.RAISE

    def test_from_env_invalid(self) -> None:
        """Unknown values raise ValueError naming the variable."""
        with pytest.raises(ValueError, match="CHEBFILTER_NONFINITE"):
            FilterConfig.from_env({"CHEBFILTER_NONFINITE": "sometimes"})


class TestCheckNonfinite:
    """Tests for the diagnostic scan itself."""

    @pytest.fixture
    def backend(self) -> NumpyLinearAlgebra:
        return NumpyLinearAlgebra()

    def test_find_nonfinite(self, backend) -> None:
        """Buffers with NaN or Inf are reported by name, in order."""
        buffers = {
            "V": np.array([[np.nan]]),
            "W": np.ones((1, 1)),
            "A": np.array([[np.inf]]),
        }
        assert find_nonfinite(backend, buffers) == ("V", "A")

    def test_off_skips_scan(self, backend) -> None:
        """OFF never raises, even on corrupted buffers."""
        check_nonfinite(
            backend,
            {"V": np.array([[np.nan]])},
            Checkpoint.BEFORE_FIRST_MULTIPLY,
            NonFinitePolicy.OFF,
        )

    def test_clean_buffers_pass(self, backend) -> None:
        """Finite buffers pass under every policy."""
        for policy in NonFinitePolicy:
            check_nonfinite(
                backend,
                {"V": np.ones((2, 2))},
                Checkpoint.BEFORE_FIRST_MULTIPLY,
                policy,
            )

    def test_raise_policy(self, backend, caplog) -> None:
        """RAISE logs the buffer and checkpoint, then raises."""
        with caplog.at_level(logging.ERROR, logger="chebfilter.algorithms.diagnostics"):
            with pytest.raises(NonFiniteValueError) as exc_info:
                check_nonfinite(
                    backend,
                    {"W": np.array([[np.nan]])},
                    Checkpoint.AFTER_FIRST_MULTIPLY,
                    NonFinitePolicy.RAISE,
                    {"alpha": 0.5, "start": 0, "width": 1},
                )

        assert exc_info.value.buffers == ("W",)
        assert exc_info.value.checkpoint == "after the first multiply"
        assert "W contains non-finite values after the first multiply" in caplog.text
        assert "alpha: 0.5" in caplog.text

    def test_abort_policy(self, backend) -> None:
        """ABORT terminates through the backend."""
        with pytest.raises(SystemExit):
            check_nonfinite(
                backend,
                {"A": np.array([[np.inf]])},
                Checkpoint.BEFORE_FIRST_MULTIPLY,
                NonFinitePolicy.ABORT,
            )


class TestFilterDiagnostics:
    """Tests for the diagnostic hook inside the filter."""

    @pytest.fixture
    def problem(self):
        """Create a small filter problem."""
        return create_filter_problem(30, 3, seed=4)

    def run(self, problem, V, policy, backend=None):
        W = np.zeros_like(V)
        return chebyshev_filter(
            problem.matrix,
            V,
            W,
            0,
            3,
            4,
            None,
            None,
            problem.lambda_,
            problem.lower,
            problem.upper,
            config=FilterConfig(nonfinite_policy=policy),
            backend=backend,
        )

    def test_raise_before_first_multiply(self, problem) -> None:
        """Corrupted input is caught before the first multiply."""
        V = problem.vectors.copy(order="F")
        V[3, 1] = np.nan
        A_before = problem.matrix.copy()

        with pytest.raises(NonFiniteValueError) as exc_info:
            self.run(problem, V, NonFinitePolicy.RAISE)

        assert exc_info.value.buffers == ("V",)
        assert exc_info.value.checkpoint == Checkpoint.BEFORE_FIRST_MULTIPLY.value
        assert np.array_equal(problem.matrix, A_before)

    def test_raise_after_first_multiply(self, problem, caplog) -> None:
        """Corruption produced by the multiply is caught right after it."""
        V = problem.vectors.copy(order="F")
        A_before = problem.matrix.copy()

        with caplog.at_level(logging.ERROR):
            with pytest.raises(NonFiniteValueError) as exc_info:
                self.run(problem, V, NonFinitePolicy.RAISE, CorruptingBackend())

        assert exc_info.value.buffers == ("W",)
        assert exc_info.value.checkpoint == Checkpoint.AFTER_FIRST_MULTIPLY.value
        assert "start: 0" in caplog.text
        assert np.array_equal(problem.matrix, A_before)

    def test_abort(self, problem) -> None:
        """ABORT terminates the job."""
        V = problem.vectors.copy(order="F")
        V[0, 0] = np.inf

        with pytest.raises(SystemExit):
            self.run(problem, V, NonFinitePolicy.ABORT)

    def test_off_lets_corruption_through(self, problem) -> None:
        """With diagnostics off the filter runs and NaN propagates."""
        V = problem.vectors.copy(order="F")
        V[0, 0] = np.nan

        cost = self.run(problem, V, NonFinitePolicy.OFF)

        assert cost == 12

    def test_uninitialized_output_is_reported(self, problem) -> None:
        """The scan covers all of W, so NaN left in the output is reported."""
        V = problem.vectors.copy(order="F")
        W = np.full_like(V, np.nan)

        with pytest.raises(NonFiniteValueError) as exc_info:
            chebyshev_filter(
                problem.matrix,
                V,
                W,
                0,
                3,
                4,
                None,
                None,
                problem.lambda_,
                problem.lower,
                problem.upper,
                config=FilterConfig(nonfinite_policy=NonFinitePolicy.RAISE),
            )

        assert exc_info.value.buffers == ("W",)
        assert exc_info.value.checkpoint == Checkpoint.BEFORE_FIRST_MULTIPLY.value

    def test_initialized_output_passes(self, problem) -> None:
        """A zeroed output block passes the scan under RAISE."""
        V = problem.vectors.copy(order="F")
        assert self.run(problem, V, NonFinitePolicy.RAISE) == 12
