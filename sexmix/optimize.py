"""Gradient-based minimizer used as the EM maximization step.

A thin adapter over ``scipy.optimize.minimize``. The EM loop only sees
``minimize(fun, x0, config)`` and treats the method as opaque.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

import numpy as np
from scipy import optimize

logger = logging.getLogger(__name__)

ObjectiveFn = Callable[[np.ndarray], tuple[float, np.ndarray]]


@dataclass
class OptimizerConfig:
    """Configuration for the inner minimizer.

    Attributes:
        method: scipy method name; must accept an analytic gradient.
        max_iterations: Iteration cap per call (None = scipy default).
        gtol: Gradient-norm stopping tolerance.
    """

    method: str = "CG"
    max_iterations: int | None = None
    gtol: float = 1e-5


@dataclass
class OptimizeOutcome:
    """Result of one minimizer call."""

    x: np.ndarray
    value: float
    n_iterations: int
    success: bool
    message: str


def minimize(
    fun: ObjectiveFn,
    x0: np.ndarray,
    config: OptimizerConfig | None = None,
) -> OptimizeOutcome:
    """Minimize ``fun`` starting from ``x0``.

    Args:
        fun: Returns (value, gradient) at a point.
        x0: Starting point.
        config: Optimizer settings.

    Returns:
        OptimizeOutcome with the best point found. Unsuccessful runs (for
        example a line search that cannot make progress) still return the
        last iterate; the caller decides what convergence means.
    """
    cfg = config or OptimizerConfig()
    options: dict[str, float | int] = {"gtol": cfg.gtol}
    if cfg.max_iterations is not None:
        options["maxiter"] = cfg.max_iterations

    with np.errstate(over="ignore", under="ignore"):
        res = optimize.minimize(
            fun,
            np.asarray(x0, dtype=np.float64),
            jac=True,
            method=cfg.method,
            options=options,
        )

    if not res.success:
        logger.debug("Optimizer stopped early after %d iterations: %s", res.nit, res.message)

    return OptimizeOutcome(
        x=np.asarray(res.x, dtype=np.float64),
        value=float(res.fun),
        n_iterations=int(res.nit),
        success=bool(res.success),
        message=str(res.message),
    )
