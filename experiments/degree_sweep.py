"""Generate cost/quality traces for degree schedules.

This script filters one reproducible problem with:
- Uniform degrees (no schedule) over a range of maximum degrees
- Adaptive schedules where the degree grows with the vector index

and records, for each run, the cost metric and how much of every filtered
vector lies in the wanted eigenspace. Output JSON files are suitable for
plotting cost against subspace quality.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import numpy as np

from chebfilter.algorithms.filter import ChebyshevFilter
from chebfilter.algorithms.matrices import FilterProblem, create_filter_problem
from chebfilter.algorithms.spectral import unwanted_bound


def wanted_fraction(problem: FilterProblem, block: np.ndarray, wanted: int) -> list[float]:
    """Fraction of each column's norm lying in the wanted eigenspace."""
    Q_wanted = problem.eigenvectors[:, :wanted]
    projected = np.linalg.norm(Q_wanted.conj().T @ block, axis=0)
    total = np.linalg.norm(block, axis=0)
    return (projected / total).tolist()


def run_filter(problem: FilterProblem, deg: int, degrees: list[int] | None) -> dict:
    """Filter a fresh copy of the problem's vectors and summarize."""
    width = problem.vectors.shape[1]
    V = problem.vectors.copy(order="F")
    W = np.zeros_like(V)

    result = ChebyshevFilter(
        problem.matrix,
        V,
        W,
        0,
        width,
        deg,
        degrees,
        None,
        problem.lambda_,
        problem.lower,
        problem.upper,
    ).run()

    return {
        "deg": deg,
        "degrees": degrees,
        "cost": result.cost,
        "degmax": result.degmax,
        "widths": list(result.widths),
        "unwanted_bound": unwanted_bound(
            result.degmax, problem.lambda_, problem.lower, problem.upper
        ),
        "wanted_fraction": wanted_fraction(problem, W[:, :width], width),
        "time": result.total_time,
    }


def generate_degree_sweep(
    matrix_size: int = 400,
    width: int = 16,
    seed: int = 42,
    output_dir: Path | None = None,
) -> None:
    """Generate traces for uniform and adaptive schedules.

    Args:
        matrix_size: Matrix dimension.
        width: Number of vectors (and size of the wanted cluster).
        seed: Random seed for reproducibility.
        output_dir: Output directory (defaults to experiments/traces/).
    """
    if output_dir is None:
        output_dir = Path(__file__).parent / "traces"

    output_dir.mkdir(parents=True, exist_ok=True)

    print(f"Generating degree sweep (n={matrix_size}, width={width})...")

    problem = create_filter_problem(matrix_size, width, seed=seed)

    runs = []
    for deg in (2, 4, 8, 12, 16, 20):
        print(f"  Uniform degree {deg}...", end=" ", flush=True)
        runs.append(run_filter(problem, deg, None))
        print(f"cost={runs[-1]['cost']}")

    for top in (8, 16, 24):
        degrees = np.linspace(2, top, width).round().astype(int).tolist()
        print(f"  Adaptive schedule up to {top}...", end=" ", flush=True)
        runs.append(run_filter(problem, 0, degrees))
        print(f"cost={runs[-1]['cost']}")

    output = {
        "metadata": {
            "generated": datetime.now(UTC).isoformat(),
            "matrix": problem.fingerprint.to_dict(),
            "lower": problem.lower,
            "upper": problem.upper,
            "lambda": problem.lambda_,
        },
        "runs": runs,
    }

    output_file = output_dir / "degree_sweep.json"
    with open(output_file, "w") as f:
        json.dump(output, f, indent=2)

    print(f"Saved to {output_file}")


if __name__ == "__main__":
    generate_degree_sweep()
