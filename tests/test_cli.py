"""Tests for the command-line interface."""

import pytest
from typer.testing import CliRunner

from chebfilter import __version__
from chebfilter.cli import app

runner = CliRunner()


class TestCli:
    """Tests for chebfilter commands."""

    def test_version(self) -> None:
        """--version prints the version."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_info(self) -> None:
        """info lists every scalar format."""
        result = runner.invoke(app, ["info"])
        assert result.exit_code == 0
        for name in ("FP64", "FP32", "COMPLEX128", "COMPLEX64"):
            assert name in result.output

    def test_run_default(self) -> None:
        """run filters a problem, restores the operator and matches the exact response."""
        result = runner.invoke(app, ["run", "--size", "60", "--width", "4"])
        assert result.exit_code == 0, result.output
        assert "Cost (column-applications of A): 40" in result.output
        assert "Operator restored: yes" in result.output

    def test_run_with_schedule(self) -> None:
        """A schedule changes the cost to the sum of degrees."""
        result = runner.invoke(
            app, ["run", "-n", "60", "-w", "3", "-d", "2", "--schedule", "1,2,5"]
        )
        assert result.exit_code == 0, result.output
        assert "Cost (column-applications of A): 8" in result.output
        assert "Max degree: 5" in result.output

    @pytest.mark.parametrize("fmt", ["fp32", "complex128", "complex64"])
    def test_run_formats(self, fmt: str) -> None:
        """run works for every scalar format."""
        result = runner.invoke(app, ["run", "-n", "50", "-w", "3", "-f", fmt])
        assert result.exit_code == 0, result.output

    def test_run_upper_triangle(self) -> None:
        """--uplo upper is accepted."""
        result = runner.invoke(app, ["run", "-n", "40", "-w", "2", "--uplo", "upper"])
        assert result.exit_code == 0, result.output

    def test_unsorted_schedule_fails(self) -> None:
        """Precondition violations exit with code 2 and a message."""
        result = runner.invoke(app, ["run", "-n", "40", "-w", "3", "-s", "3,1,2"])
        assert result.exit_code == 2
        assert "sorted ascending" in result.output

    def test_invalid_schedule_syntax(self) -> None:
        """Non-integer schedules are rejected."""
        result = runner.invoke(app, ["run", "-n", "40", "-w", "2", "-s", "1,x"])
        assert result.exit_code != 0

    def test_invalid_policy(self) -> None:
        """Unknown diagnostic policies are rejected."""
        result = runner.invoke(app, ["run", "-n", "40", "--nonfinite", "maybe"])
        assert result.exit_code != 0

    def test_degenerate_lambda(self) -> None:
        """lambda on the interval midpoint is rejected."""
        result = runner.invoke(
            app, ["run", "-n", "40", "--lower", "1", "--upper", "3", "--lambda", "2"]
        )
        assert result.exit_code == 2
        assert "midpoint" in result.output


class TestCliEnvironment:
    """Tests for configuration read from the environment."""

    def test_defaults(self) -> None:
        """Without environment or options the lower triangle and off are used."""
        result = runner.invoke(
            app,
            ["run", "-n", "40", "-w", "2"],
            env={"CHEBFILTER_UPLO": None, "CHEBFILTER_NONFINITE": None},
        )
        assert result.exit_code == 0, result.output
        assert "Triangle: lower" in result.output
        assert "Non-finite policy: off" in result.output

    def test_environment_selects_triangle(self) -> None:
        """CHEBFILTER_UPLO is honoured when --uplo is not given."""
        result = runner.invoke(
            app, ["run", "-n", "40", "-w", "2"], env={"CHEBFILTER_UPLO": "upper"}
        )
        assert result.exit_code == 0, result.output
        assert "Triangle: upper" in result.output

    def test_environment_selects_policy(self) -> None:
        """CHEBFILTER_NONFINITE is honoured when --nonfinite is not given."""
        result = runner.invoke(
            app, ["run", "-n", "40", "-w", "2"], env={"CHEBFILTER_NONFINITE": "raise"}
        )
        assert result.exit_code == 0, result.output
        assert "Non-finite policy: raise" in result.output

    def test_option_overrides_environment(self) -> None:
        """Explicit options take precedence over the environment."""
        result = runner.invoke(
            app,
            ["run", "-n", "40", "-w", "2", "--uplo", "lower", "--nonfinite", "off"],
            env={"CHEBFILTER_UPLO": "upper", "CHEBFILTER_NONFINITE": "raise"},
        )
        assert result.exit_code == 0, result.output
        assert "Triangle: lower" in result.output
        assert "Non-finite policy: off" in result.output

    def test_invalid_environment_value(self) -> None:
        """An unknown environment value exits with code 2 and names the variable."""
        result = runner.invoke(
            app, ["run", "-n", "40", "-w", "2"], env={"CHEBFILTER_UPLO": "diagonal"}
        )
        assert result.exit_code == 2
        assert "CHEBFILTER_UPLO" in result.output
