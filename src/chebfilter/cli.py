"""
Command-line interface for chebfilter.

Usage:
    chebfilter info           Show supported scalar formats
    chebfilter run            Filter a random Hermitian problem and report
"""

import logging
from dataclasses import replace
from typing import Annotated

import numpy as np
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from chebfilter import __version__
from chebfilter.algorithms.diagnostics import FilterConfig, NonFinitePolicy
from chebfilter.algorithms.filter import ChebyshevFilter
from chebfilter.algorithms.linalg import Triangle
from chebfilter.algorithms.matrices import DEFAULT_SEED, create_filter_problem
from chebfilter.algorithms.spectral import recurrence_response, unwanted_bound
from chebfilter.data import ScalarFormat, get_spec, get_tolerance
from chebfilter.errors import NonFiniteValueError, PreconditionError

app = typer.Typer(
    name="chebfilter",
    help="Chebyshev polynomial filtering for subspace-iteration eigensolvers",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"chebfilter version {__version__}")
        raise typer.Exit()


@app.callback()  # type: ignore[misc]
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """chebfilter - Chebyshev filter experiments."""
    pass


@app.command()  # type: ignore[misc]
def info() -> None:
    """Display information about supported scalar formats."""
    table = Table(title="Supported Scalar Formats")

    table.add_column("Format", style="cyan", no_wrap=True)
    table.add_column("Bits", justify="right")
    table.add_column("Complex", justify="center")
    table.add_column("Machine ε", justify="right")
    table.add_column("Filter rtol", justify="right")

    for fmt in ScalarFormat:
        spec = get_spec(fmt)
        table.add_row(
            fmt.value.upper(),
            str(spec.bits),
            "✓" if spec.is_complex else "✗",
            f"{spec.machine_epsilon:.2e}",
            f"{spec.filter_rtol:.0e}",
        )

    console.print(table)


def _parse_schedule(raw: str | None) -> list[int] | None:
    if raw is None or not raw.strip():
        return None
    try:
        return [int(item) for item in raw.split(",") if item.strip()]
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid schedule '{raw}': {exc}") from exc


@app.command()  # type: ignore[misc]
def run(
    matrix_size: Annotated[
        int,
        typer.Option("--size", "-n", help="Matrix dimension"),
    ] = 200,
    width: Annotated[
        int,
        typer.Option("--width", "-w", help="Number of vectors to filter"),
    ] = 8,
    degree: Annotated[
        int,
        typer.Option("--degree", "-d", help="Maximum filter degree"),
    ] = 10,
    schedule: Annotated[
        str | None,
        typer.Option(
            "--schedule", "-s", help="Comma-separated ascending per-vector degrees"
        ),
    ] = None,
    fmt: Annotated[
        str,
        typer.Option("--format", "-f", help="Scalar format"),
    ] = "fp64",
    lower: Annotated[
        float | None,
        typer.Option("--lower", help="Lower bound of the unwanted interval"),
    ] = None,
    upper: Annotated[
        float | None,
        typer.Option("--upper", help="Upper bound of the unwanted interval"),
    ] = None,
    lambda_: Annotated[
        float | None,
        typer.Option("--lambda", help="Normalization point of the filter"),
    ] = None,
    uplo: Annotated[
        str | None,
        typer.Option(
            "--uplo",
            help="Triangle to reference: lower, upper (env CHEBFILTER_UPLO)",
        ),
    ] = None,
    nonfinite: Annotated[
        str | None,
        typer.Option(
            "--nonfinite",
            help="Non-finite policy: off, raise, abort (env CHEBFILTER_NONFINITE)",
        ),
    ] = None,
    seed: Annotated[
        int,
        typer.Option("--seed", help="Random seed"),
    ] = DEFAULT_SEED,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log every recurrence step"),
    ] = False,
) -> None:
    """Filter a random Hermitian problem and compare with the exact response."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )

    degrees = _parse_schedule(schedule)

    try:
        problem = create_filter_problem(matrix_size, width, fmt=fmt, seed=seed)
    except ValueError as exc:
        console.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(code=2) from exc

    lower = problem.lower if lower is None else lower
    upper = problem.upper if upper is None else upper
    lambda_ = problem.lambda_ if lambda_ is None else lambda_

    A = problem.matrix
    A_before = A.copy()
    V = problem.vectors.copy(order="F")
    W = np.zeros_like(V)

    try:
        config = FilterConfig.from_env()
    except ValueError as exc:
        console.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(code=2) from exc

    # Explicit options take precedence over the environment
    try:
        if nonfinite is not None:
            policy = NonFinitePolicy(nonfinite.lower())
            config = replace(config, nonfinite_policy=policy)
        if uplo is not None:
            config = replace(config, uplo=Triangle(uplo.lower()))
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    try:
        engine = ChebyshevFilter(
            A,
            V,
            W,
            0,
            width,
            degree,
            degrees,
            None,
            lambda_,
            lower,
            upper,
            config=config,
        )
        result = engine.run()
    except (PreconditionError, NonFiniteValueError) as exc:
        console.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(code=2) from exc

    table = Table(title="Recurrence Steps")
    table.add_column("Degree", justify="right")
    table.add_column("Start", justify="right")
    table.add_column("Width", justify="right")
    table.add_column("Deflated", justify="right")
    table.add_column("Buffers", justify="center")
    table.add_column("α", justify="right")
    table.add_column("β", justify="right")

    for step in result.steps:
        table.add_row(
            str(step.degree),
            str(step.start),
            str(step.width),
            str(step.deflated),
            step.role.value,
            f"{step.alpha:.4e}",
            f"{step.beta:.4e}",
        )

    console.print(table)

    # Exact result: Q diag(p_k(t)) Q^H v for each column's own degree
    per_vector = degrees if degrees is not None else [degree] * width
    Q = problem.eigenvectors
    coefficients = Q.conj().T @ problem.vectors.astype(Q.dtype)
    expected = np.empty_like(coefficients)
    for k, target in enumerate(per_vector):
        response = recurrence_response(problem.eigenvalues, target, lambda_, lower, upper)
        expected[:, k] = response * coefficients[:, k]
    expected = Q @ expected

    scale = max(float(np.linalg.norm(expected)), 1.0)
    deviation = float(np.linalg.norm(W[:, :width] - expected)) / scale
    tolerance = get_tolerance(fmt)
    restored = bool(np.array_equal(A, A_before))

    console.print(f"  Matrix size: {matrix_size}×{matrix_size} ({fmt.upper()})")
    console.print(f"  Interval: [{lower:.4g}, {upper:.4g}], λ = {lambda_:.4g}")
    console.print(f"  Triangle: {config.uplo.value}")
    console.print(f"  Non-finite policy: {config.nonfinite_policy.value}")
    console.print(f"  Max degree: {result.degmax}")
    console.print(f"  Cost (column-applications of A): {result.cost}")
    damping = unwanted_bound(result.degmax, lambda_, lower, upper)
    console.print(f"  Damping on unwanted interval: {damping:.3e}")
    console.print(f"  Time: {result.total_time * 1e3:.2f} ms")
    status = "[green]ok[/]" if deviation < tolerance else "[red]FAILED[/]"
    console.print(f"  Relative deviation from exact response: {deviation:.2e} {status}")
    console.print(
        f"  Operator restored: {'[green]yes[/]' if restored else '[red]no[/]'}"
    )

    if not restored or deviation >= tolerance:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
