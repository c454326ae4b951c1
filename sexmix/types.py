"""Core data types for sexmix.

Dataclasses for per-sample read counts, the XIST locus, Beta mixture
parameters, EM fit results, and output rows.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np

# Feature dimensions, in column order of the feature matrix.
FEATURE_NAMES = ("ychrom_ratio", "xist_ratio")
N_COMPONENTS = 2
N_DIMS = 2


@dataclass(frozen=True)
class SampleCount:
    """Read counts for a single alignment file.

    Attributes:
        ychrom_count: Mapped alignments on the Y chromosome.
        xist_count: Mapped alignments overlapping the XIST locus.
        total_count: All mapped alignments.
    """

    ychrom_count: int
    xist_count: int
    total_count: int


@dataclass(frozen=True)
class Locus:
    """A genomic interval, 1-based and inclusive (GFF convention)."""

    seqname: str
    start: int
    end: int

    def __str__(self) -> str:
        return f"{self.seqname}:{self.start}-{self.end}"


@dataclass
class MixtureParams:
    """Log-shape parameters of a 2-component, 2-dimensional Beta mixture.

    ``log_shapes[j, d, 0]`` is log(alpha) and ``log_shapes[j, d, 1]`` is
    log(beta) for component j and feature dimension d.
    """

    log_shapes: np.ndarray  # (N_COMPONENTS, N_DIMS, 2)

    def __post_init__(self) -> None:
        self.log_shapes = np.asarray(self.log_shapes, dtype=np.float64)
        expected = (N_COMPONENTS, N_DIMS, 2)
        if self.log_shapes.shape != expected:
            raise ValueError(
                f"log_shapes must have shape {expected}, got {self.log_shapes.shape}"
            )

    @classmethod
    def from_flat(cls, flat: np.ndarray) -> MixtureParams:
        return cls(np.asarray(flat, dtype=np.float64).reshape(N_COMPONENTS, N_DIMS, 2))

    @property
    def flat(self) -> np.ndarray:
        """Parameters as the 8-vector handed to the optimizer."""
        return self.log_shapes.ravel().copy()

    @property
    def alpha(self) -> np.ndarray:
        return np.exp(self.log_shapes[..., 0])

    @property
    def beta(self) -> np.ndarray:
        return np.exp(self.log_shapes[..., 1])

    def means(self) -> np.ndarray:
        """Beta means alpha / (alpha + beta), shape (N_COMPONENTS, N_DIMS)."""
        a = self.alpha
        return a / (a + self.beta)

    def max_abs_diff(self, other: MixtureParams) -> float:
        return float(np.max(np.abs(self.log_shapes - other.log_shapes)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "alpha": self.alpha.tolist(),
            "beta": self.beta.tolist(),
            "means": self.means().tolist(),
        }


@dataclass
class FitResult:
    """Outcome of EM training.

    Attributes:
        params: Final mixture parameters.
        responsibilities: (n, 2) posterior component probabilities.
        converged: False when the iteration cap was hit first.
        n_iterations: Number of E/M cycles run.
        objective_trace: M-step objective value after every cycle.
    """

    params: MixtureParams
    responsibilities: np.ndarray
    converged: bool = False
    n_iterations: int = 0
    objective_trace: list[float] = field(default_factory=list)

    @property
    def status(self) -> str:
        return "converged" if self.converged else "did_not_converge"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "n_iterations": self.n_iterations,
            "objective_trace": self.objective_trace,
            "params": self.params.to_dict(),
        }


@dataclass
class SampleResult:
    """One output row of the classifier."""

    filename: str
    counts: SampleCount
    female_prob: float
    male_prob: float

    def as_row(self, precision: int = 6) -> list[str]:
        return [
            self.filename,
            str(self.counts.ychrom_count),
            str(self.counts.xist_count),
            str(self.counts.total_count),
            f"{self.female_prob:.{precision}f}",
            f"{self.male_prob:.{precision}f}",
        ]


def save_json(data: dict[str, Any], path: Path) -> None:
    """Write a JSON-compatible dict to disk."""
    path.write_text(json.dumps(data, indent=2))
